"""
Placement of the multilevel hierarchy.

The coarsest level receives an initial placement inside the initial
computation box. Every finer level is then interpolated from the level
above: a sun inherits the position of the coarse vertex it became, planets
and moons are placed around their sun.
"""

from __future__ import annotations

import math
import random
import time
from typing import Optional

import numpy as np

from ..geometry import ComputationBox, crossing_matrix
from ..graph import LayoutGraph
from ..options import InitialPlacementForces, InitialPlacementMult
from .coarsening import Level, Role

# Crossing repair is quadratic in the edge count
UNTANGLE_MAX_EDGES = 100


def uniform_grid_placement(graph: LayoutGraph, box: ComputationBox) -> None:
    """
    Place the vertices on the cell midpoints of a 2^k x 2^k grid covering ``box``.

    k = ceil(log4(n)), so the grid has at least n cells. Cells are filled
    column by column.
    """
    n = graph.n
    k = max(0, math.ceil(math.log(n, 4))) if n > 1 else 0
    side = 2**k
    cell = box.length / side
    index = np.arange(n)
    graph.x = box.x_min + (index // side) * cell + cell / 2.0
    graph.y = box.y_min + (index % side) * cell + cell / 2.0


def random_placement(graph: LayoutGraph, box: ComputationBox, rng: random.Random) -> None:
    """Place the vertices uniformly at random, one unit away from the box border."""
    low = 1.0
    high = max(low, box.length - 1.0)
    graph.x = np.array([box.x_min + rng.uniform(low, high) for _ in range(graph.n)])
    graph.y = np.array([box.y_min + rng.uniform(low, high) for _ in range(graph.n)])


def initial_placement(
    graph: LayoutGraph,
    mode: InitialPlacementForces,
    box: ComputationBox,
    rng: random.Random,
    *,
    is_finest: bool,
) -> ComputationBox:
    """
    Place the coarsest level and return the box around its positions.

    Input positions are only kept when the coarsest level is also the
    finest one; otherwise the seeded random placement is used.
    """
    if mode == InitialPlacementForces.KEEP_POSITIONS and not is_finest:
        mode = InitialPlacementForces.RANDOM_SEEDED

    if mode == InitialPlacementForces.UNIFORM_GRID:
        uniform_grid_placement(graph, box)
    elif mode == InitialPlacementForces.RANDOM_TIME:
        random_placement(graph, box, random.Random(int(time.time())))
    elif mode == InitialPlacementForces.RANDOM_SEEDED:
        random_placement(graph, box, rng)
    return ComputationBox.from_positions(graph.x, graph.y)


def free_sectors(graph: LayoutGraph) -> list[tuple[float, float]]:
    """
    Widest angular gap between the neighbours of every vertex.

    Returns:
        (start angle, end angle) per vertex; the full circle for vertices
        without neighbours
    """
    sectors: list[tuple[float, float]] = []
    for v, incident in enumerate(graph.adjacency()):
        angles = sorted(
            math.atan2(graph.y[u] - graph.y[v], graph.x[u] - graph.x[v]) % (2.0 * math.pi)
            for u, _ in incident
            if graph.x[u] != graph.x[v] or graph.y[u] != graph.y[v]
        )
        if not angles:
            sectors.append((0.0, 2.0 * math.pi))
            continue
        best_start = angles[-1]
        best_gap = angles[0] + 2.0 * math.pi - angles[-1]
        for a, b in zip(angles, angles[1:]):
            if b - a > best_gap:
                best_start, best_gap = a, b - a
        sectors.append((best_start, best_start + best_gap))
    return sectors


def interpolate(
    fine: Level,
    coarse: LayoutGraph,
    mode: InitialPlacementMult,
    rng: random.Random,
) -> ComputationBox:
    """
    Derive the positions of ``fine`` from the placed coarser graph.

    Suns take their coarse vertex's position. In advanced mode a planet or
    moon with edges leaving its solar system is put at the mean of the
    points sun + lambda * (other sun - sun); otherwise it is put at its sun
    distance at a random angle inside the widest free sector around its sun.

    Returns:
        The computation box around the new positions
    """
    assert fine.sun_of is not None and fine.role is not None and fine.sun_distance is not None
    graph = fine.graph
    sun_x = coarse.x[fine.sun_of]
    sun_y = coarse.y[fine.sun_of]
    x = sun_x.copy()
    y = sun_y.copy()
    sectors = free_sectors(coarse)

    for v in range(graph.n):
        if fine.role[v] == Role.sun:
            continue
        sx, sy = float(sun_x[v]), float(sun_y[v])
        lambdas = fine.lambdas[v] if fine.lambdas else []
        if mode == InitialPlacementMult.ADVANCED and lambdas:
            px = [sx + lam * (coarse.x[other] - sx) for lam, other in lambdas]
            py = [sy + lam * (coarse.y[other] - sy) for lam, other in lambdas]
            x[v] = sum(px) / len(px)
            y[v] = sum(py) / len(py)
        else:
            start, end = sectors[int(fine.sun_of[v])]
            phi = rng.uniform(start, end)
            radius = float(fine.sun_distance[v])
            x[v] = sx + radius * math.cos(phi)
            y[v] = sy + radius * math.sin(phi)

    graph.x = x
    graph.y = y
    return ComputationBox.from_positions(graph.x, graph.y)


def _crossings_at(graph: LayoutGraph, edges: np.ndarray) -> int:
    """Number of crossing edge pairs with at least one edge in ``edges``."""
    everything = np.arange(graph.m)
    crossing = crossing_matrix(graph.x, graph.y, graph.sources, graph.targets, edges, everything)
    # Pairs with both edges in ``edges`` appear twice
    inner = int(crossing[:, edges].sum())
    return int(crossing.sum()) - inner // 2


def _swap(graph: LayoutGraph, u: int, v: int) -> None:
    graph.x[u], graph.x[v] = graph.x[v], graph.x[u]
    graph.y[u], graph.y[v] = graph.y[v], graph.y[u]


def untangle_crossings(graph: LayoutGraph, max_swaps: Optional[int] = None) -> int:
    """
    Remove edge crossings by exchanging the positions of two vertices.

    For every pair of crossing edges the four exchanges of one endpoint of
    the first edge with one endpoint of the second are tried; the exchange
    removing the most crossings is applied. This repeats until no exchange
    helps or ``max_swaps`` (default n) exchanges were made. A 4-cycle drawn
    as a crossed "bowtie" becomes a convex quadrilateral this way.

    Graphs with more than UNTANGLE_MAX_EDGES edges are left alone.

    Returns:
        Number of exchanges made
    """
    if graph.m < 2 or graph.m > UNTANGLE_MAX_EDGES:
        return 0
    limit = graph.n if max_swaps is None else max_swaps
    incident = [np.array([e for _, e in pairs], dtype=np.int64) for pairs in graph.adjacency()]
    everything = np.arange(graph.m)
    swaps = 0

    while swaps < limit:
        crossing = crossing_matrix(
            graph.x, graph.y, graph.sources, graph.targets, everything, everything
        )
        pairs = np.argwhere(np.triu(crossing))
        if pairs.shape[0] == 0:
            break

        best: Optional[tuple[int, int, int]] = None
        tried: set[tuple[int, int]] = set()
        for e, f in pairs.tolist():
            for u in (int(graph.sources[e]), int(graph.targets[e])):
                for v in (int(graph.sources[f]), int(graph.targets[f])):
                    key = (min(u, v), max(u, v))
                    if key in tried:
                        continue
                    tried.add(key)
                    touched = np.union1d(incident[u], incident[v])
                    before = _crossings_at(graph, touched)
                    _swap(graph, u, v)
                    gain = before - _crossings_at(graph, touched)
                    _swap(graph, u, v)
                    if gain > 0 and (best is None or gain > best[0]):
                        best = (gain, u, v)

        if best is None:
            break
        _swap(graph, best[1], best[2])
        swaps += 1
    return swaps


__all__ = [
    "free_sectors",
    "initial_placement",
    "interpolate",
    "random_placement",
    "uniform_grid_placement",
    "untangle_crossings",
]
