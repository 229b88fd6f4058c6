"""
Repulsive force strategies.

Every strategy computes, for each vertex, the sum of the forces
(p - q) / |p - q|^2 exerted by all other vertices q. They differ in how
that sum is obtained:

- ExactRepulsion: all pairs, O(n^2)
- GridRepulsion: only vertices in neighbouring grid cells, O(n) for spread points
- MultipoleRepulsion: reduced bucket quadtree with multipole expansions (NMM)

A strategy is chosen once per layout; the force iterator only calls
``prepare(box)`` after each move and ``compute(x, y)`` each iteration.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..geometry import POS_SMALL_LIMIT, ComputationBox
from ..options import (
    FMMMOptions,
    ReducedTreeConstruction,
    RepulsiveForcesMethod,
    SmallestCellFinding,
)
from ..spatial.multipole import compute_expansions, evaluate_force
from ..spatial.quadtree import QuadTree, QuadTreeNode

# Rows processed at once by the dense pairwise kernels
CHUNK_SIZE = 1024


def pairwise_forces(
    px: np.ndarray,
    py: np.ndarray,
    sx: np.ndarray,
    sy: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Repulsive forces on the points (px, py) from the sources (sx, sy).

    Coincident pairs contribute nothing.
    """
    fx = np.zeros(px.shape[0])
    fy = np.zeros(px.shape[0])
    if sx.shape[0] == 0:
        return fx, fy
    for start in range(0, px.shape[0], CHUNK_SIZE):
        stop = start + CHUNK_SIZE
        dx = px[start:stop, None] - sx[None, :]
        dy = py[start:stop, None] - sy[None, :]
        d2 = dx * dx + dy * dy
        with np.errstate(divide="ignore", invalid="ignore"):
            inv = np.where(d2 > POS_SMALL_LIMIT, 1.0 / d2, 0.0)
        fx[start:stop] = (dx * inv).sum(axis=1)
        fy[start:stop] = (dy * inv).sum(axis=1)
    return fx, fy


class RepulsionStrategy(ABC):
    """
    Abstract base for repulsive force computation.

    Provides:
    - The current computation box, set by ``prepare``
    - ``compute`` returning per-vertex force components
    """

    def __init__(self) -> None:
        self._box: Optional[ComputationBox] = None

    @property
    def box(self) -> Optional[ComputationBox]:
        """The computation box the strategy was last prepared for."""
        return self._box

    def prepare(self, box: ComputationBox) -> None:
        """Re-initialize spatial structures for a new computation box."""
        self._box = box

    def _require_box(self, x: np.ndarray, y: np.ndarray) -> ComputationBox:
        if self._box is None:
            self._box = ComputationBox.from_positions(x, y)
        return self._box

    @abstractmethod
    def compute(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Repulsive force acting on every vertex.

        Args:
            x: Vertex x coordinates
            y: Vertex y coordinates

        Returns:
            (fx, fy) arrays of length n
        """
        pass


class ExactRepulsion(RepulsionStrategy):
    """Exact pairwise repulsion over all vertex pairs."""

    def compute(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return pairwise_forces(x, y, x, y)


class GridRepulsion(RepulsionStrategy):
    """
    Grid approximation of the repulsive forces.

    The computation box is divided into k x k cells with
    k = max(1, int(sqrt(n) / quotient)). A vertex is only repelled by the
    vertices in its own cell and the eight cells around it; farther
    vertices are ignored. Vertices are bucketed by cell once per call, so
    the work grows with n times the number of vertices per neighbourhood.
    """

    def __init__(self, quotient: int = 2) -> None:
        super().__init__()
        self.quotient = max(1, int(quotient))

    def grid_size(self, n: int) -> int:
        """Number of cells per side for ``n`` vertices."""
        return max(1, int(math.sqrt(n) / self.quotient))

    def compute(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        n = x.shape[0]
        box = self._require_box(x, y)
        k = self.grid_size(n)
        if k < 3:
            return pairwise_forces(x, y, x, y)

        size = box.length / k
        ci = np.clip(np.floor((x - box.x_min) / size), 0, k - 1).astype(np.int64)
        cj = np.clip(np.floor((y - box.y_min) / size), 0, k - 1).astype(np.int64)
        cell = ci * k + cj

        # Bucket: vertices of cell c are order[starts[c]:ends[c]]
        order = np.argsort(cell, kind="stable")
        sorted_cells = cell[order]
        all_cells = np.arange(k * k)
        starts = np.searchsorted(sorted_cells, all_cells, side="left")
        ends = np.searchsorted(sorted_cells, all_cells, side="right")

        fx = np.zeros(n)
        fy = np.zeros(n)
        for c in np.unique(sorted_cells).tolist():
            i, j = divmod(c, k)
            members = order[starts[c] : ends[c]]
            near = np.concatenate(
                [
                    order[starts[a * k + b] : ends[a * k + b]]
                    for a in range(max(0, i - 1), min(k, i + 2))
                    for b in range(max(0, j - 1), min(k, j + 2))
                ]
            )
            fx[members], fy[members] = pairwise_forces(x[members], y[members], x[near], y[near])
        return fx, fy


class MultipoleRepulsion(RepulsionStrategy):
    """
    New multipole method (NMM) for repulsive forces.

    A reduced bucket quadtree is built over the current positions and every
    node receives a multipole expansion. For each leaf, the tree is
    traversed from the root: well-separated nodes act through their
    expansions, the remaining leaves are evaluated directly.

    Graphs with at most ``particles_per_leaf`` vertices are handled exactly.
    """

    # Separation factor of the multipole acceptance criterion
    SEPARATION = 2.0

    def __init__(
        self,
        particles_per_leaf: int = 25,
        precision: int = 4,
        construction: ReducedTreeConstruction = ReducedTreeConstruction.SUBTREE_BY_SUBTREE,
        smallest_cell: SmallestCellFinding = SmallestCellFinding.ITERATIVELY,
    ) -> None:
        super().__init__()
        self.particles_per_leaf = max(1, int(particles_per_leaf))
        self.precision = max(1, int(precision))
        self.construction = construction
        self.smallest_cell = smallest_cell
        self.tree: Optional[QuadTree] = None

    def compute(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        n = x.shape[0]
        if n <= self.particles_per_leaf:
            return pairwise_forces(x, y, x, y)

        box = self._require_box(x, y)
        tree = QuadTree(
            box,
            particles_per_leaf=self.particles_per_leaf,
            construction=self.construction,
            smallest_cell=self.smallest_cell,
        ).build(x, y)
        self.tree = tree
        z = x + 1j * y
        compute_expansions(tree, z, self.precision)
        assert tree.root is not None

        fx = np.zeros(n)
        fy = np.zeros(n)
        for leaf in tree.leaves():
            assert leaf.particles is not None
            members = leaf.particles
            near, far = self._interaction_lists(tree.root, leaf)
            sources = np.concatenate([members] + near) if near else members
            lfx, lfy = pairwise_forces(x[members], y[members], x[sources], y[sources])
            if far:
                zl = z[members]
                total = np.zeros(members.shape[0], dtype=complex)
                for node in far:
                    assert node.multipole is not None
                    total += evaluate_force(node.multipole, complex(node.x, node.y), zl)
                lfx = lfx + total.real
                lfy = lfy + total.imag
            fx[members] = lfx
            fy[members] = lfy
        return fx, fy

    def _interaction_lists(
        self, root: QuadTreeNode, leaf: QuadTreeNode
    ) -> tuple[list[np.ndarray], list[QuadTreeNode]]:
        """Particles of near leaves and well-separated nodes, as seen from ``leaf``."""
        near: list[np.ndarray] = []
        far: list[QuadTreeNode] = []
        leaf_radius = leaf.half_size * math.sqrt(2.0)
        stack = [root]
        while stack:
            node = stack.pop()
            if node is leaf:
                continue
            dist = math.hypot(node.x - leaf.x, node.y - leaf.y)
            radius = node.half_size * math.sqrt(2.0)
            if dist >= self.SEPARATION * (leaf_radius + radius):
                far.append(node)
            elif node.is_leaf():
                assert node.particles is not None
                near.append(node.particles)
            else:
                assert node.children is not None
                stack.extend(c for c in node.children if c is not None)
        return near, far


def make_repulsion(options: FMMMOptions) -> RepulsionStrategy:
    """Create the repulsion strategy selected by ``options``."""
    if options.repulsive_forces == RepulsiveForcesMethod.EXACT:
        return ExactRepulsion()
    if options.repulsive_forces == RepulsiveForcesMethod.GRID_APPROXIMATION:
        return GridRepulsion(quotient=options.fr_grid_quotient)
    return MultipoleRepulsion(
        particles_per_leaf=options.nm_particles_in_leaves,
        precision=options.nm_precision,
        construction=options.nm_tree_construction,
        smallest_cell=options.nm_small_cell,
    )


__all__ = [
    "RepulsionStrategy",
    "ExactRepulsion",
    "GridRepulsion",
    "MultipoleRepulsion",
    "make_repulsion",
    "pairwise_forces",
]
