"""
Geometric primitives shared by the force iterator and the repulsion strategies.

The computation box is an axis-aligned square that contains every vertex of
the graph currently being laid out. It is recomputed after each iteration and
passed explicitly to whoever needs it.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Optional

import numpy as np

# Distances below/above these limits are treated as degenerate.
POS_SMALL_LIMIT = 1e-110
POS_BIG_LIMIT = 1e110

MIN_NODE_SIZE = 10.0
BOX_SCALING_FACTOR = 1.1

# Separation used when two particles coincide.
EPSILON = 0.1


@dataclass(frozen=True)
class ComputationBox:
    """Square box given by its down-left corner and side length."""

    x_min: float
    y_min: float
    length: float

    @property
    def x_max(self) -> float:
        return self.x_min + self.length

    @property
    def y_max(self) -> float:
        return self.y_min + self.length

    @classmethod
    def initial(cls, width: np.ndarray, height: np.ndarray) -> ComputationBox:
        """
        Box used for the initial placement of the coarsest level.

        The side is 1.1 times the larger of the summed widths and heights,
        where every vertex counts as at least 10 wide and high.
        """
        w = float(np.maximum(width, MIN_NODE_SIZE).sum())
        h = float(np.maximum(height, MIN_NODE_SIZE).sum())
        return cls(0.0, 0.0, float(math.ceil(max(w, h) * BOX_SCALING_FACTOR)))

    @classmethod
    def from_positions(cls, x: np.ndarray, y: np.ndarray) -> ComputationBox:
        """
        Smallest integer-cornered box (plus a margin) around the positions.

        When all vertices coincide the box has side 20 n centred on them.
        """
        xmin, xmax = float(x.min()), float(x.max())
        ymin, ymax = float(y.min()), float(y.max())
        length = float(math.ceil(max(ymax - ymin, xmax - xmin) * 1.01 + 2))
        if length <= 2:
            length = float(x.shape[0] * 20)
            return cls(math.floor(xmin) - length / 2, math.floor(ymin) - length / 2, length)
        return cls(float(math.floor(xmin - 1)), float(math.floor(ymin - 1)), length)

    def contains(self, x: np.ndarray, y: np.ndarray) -> bool:
        """True if every point lies inside the closed box."""
        return bool(
            np.all(x >= self.x_min)
            and np.all(x <= self.x_max)
            and np.all(y >= self.y_min)
            and np.all(y <= self.y_max)
        )

    def max_radius(self, iteration: int) -> float:
        """Maximum displacement of a vertex in one iteration."""
        return self.length / 1000 if iteration == 1 else self.length / 5


def separate_coincident(
    x: np.ndarray,
    y: np.ndarray,
    rng: random.Random,
    epsilon: float = EPSILON,
) -> bool:
    """
    Move apart points that share a position, in place.

    Every point after the first at a given location is shifted by ``epsilon``
    in a random direction. Returns True if anything moved.
    """
    moved = False
    seen: set[tuple[float, float]] = set()
    for i in range(x.shape[0]):
        key = (float(x[i]), float(y[i]))
        while key in seen:
            phi = rng.uniform(0.0, 2.0 * math.pi)
            x[i] += epsilon * math.cos(phi)
            y[i] += epsilon * math.sin(phi)
            key = (float(x[i]), float(y[i]))
            moved = True
        seen.add(key)
    return moved


def _segment_intersection(
    p: tuple[float, float],
    q: tuple[float, float],
    a: tuple[float, float],
    b: tuple[float, float],
) -> Optional[tuple[float, float]]:
    """Intersection point of segments pq and ab, or None."""
    rx, ry = q[0] - p[0], q[1] - p[1]
    sx, sy = b[0] - a[0], b[1] - a[1]
    denom = rx * sy - ry * sx
    if denom == 0:
        return None
    qpx, qpy = a[0] - p[0], a[1] - p[1]
    t = (qpx * sy - qpy * sx) / denom
    u = (qpx * ry - qpy * rx) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return (p[0] + t * rx, p[1] + t * ry)
    return None


def project_onto_square(px: float, py: float, bound: float) -> tuple[float, float]:
    """
    Project a point outside the square [-bound, bound]^2 onto its border.

    The point is moved along the segment from the origin to itself; the
    segment leaves the square through exactly one of its sides.
    """
    lt = (-bound, bound)
    rt = (bound, bound)
    lb = (-bound, -bound)
    rb = (bound, -bound)
    for a, b in ((lb, lt), (rb, rt), (lt, rt), (lb, rb)):
        hit = _segment_intersection((0.0, 0.0), (px, py), a, b)
        if hit is not None:
            return hit
    raise AssertionError(f"point ({px}, {py}) has no intersection with the bounding square")


def make_positions_integer(x: np.ndarray, y: np.ndarray, bound: float) -> None:
    """
    Restrict positions to [-bound, bound]^2 and round them down, in place.

    Points outside the square are first projected onto its border along the
    line through the origin.
    """
    outside = np.nonzero((np.abs(x) > bound) | (np.abs(y) > bound))[0]
    for i in outside.tolist():
        x[i], y[i] = project_onto_square(float(x[i]), float(y[i]), bound)
    np.floor(x, out=x)
    np.floor(y, out=y)


def integer_bound(average_ideal_length: float, n: int, exponent: Optional[int] = None) -> float:
    """
    Largest admissible absolute coordinate.

    Without an exponent the bound grows with the graph: 100 * L * n^2.
    """
    if exponent is not None:
        return float(2.0**exponent)
    return 100.0 * average_ideal_length * n * n


def _orientation(
    ax: np.ndarray, ay: np.ndarray, bx: np.ndarray, by: np.ndarray, cx: np.ndarray, cy: np.ndarray
) -> np.ndarray:
    """Sign of the turn a -> b -> c: 1 counter-clockwise, -1 clockwise, 0 collinear."""
    return np.sign((bx - ax) * (cy - ay) - (by - ay) * (cx - ax))


def crossing_matrix(
    x: np.ndarray,
    y: np.ndarray,
    sources: np.ndarray,
    targets: np.ndarray,
    first: np.ndarray,
    second: np.ndarray,
) -> np.ndarray:
    """
    Which edges of ``first`` properly cross which edges of ``second``.

    Edges sharing an endpoint never cross; touching or collinear segments
    do not count.

    Args:
        x, y: Vertex coordinates
        sources, targets: Endpoints of every edge
        first, second: Edge indices to compare

    Returns:
        Boolean array of shape (len(first), len(second))
    """
    s1, t1 = sources[first][:, None], targets[first][:, None]
    s2, t2 = sources[second][None, :], targets[second][None, :]
    ax, ay, bx, by = x[s1], y[s1], x[t1], y[t1]
    cx, cy, dx, dy = x[s2], y[s2], x[t2], y[t2]

    separates_second = _orientation(ax, ay, bx, by, cx, cy) * _orientation(
        ax, ay, bx, by, dx, dy
    )
    separates_first = _orientation(cx, cy, dx, dy, ax, ay) * _orientation(
        cx, cy, dx, dy, bx, by
    )
    shared = (s1 == s2) | (s1 == t2) | (t1 == s2) | (t1 == t2)
    return (separates_second < 0) & (separates_first < 0) & ~shared


__all__ = [
    "POS_SMALL_LIMIT",
    "POS_BIG_LIMIT",
    "ComputationBox",
    "separate_coincident",
    "project_onto_square",
    "make_positions_integer",
    "integer_bound",
    "crossing_matrix",
]
