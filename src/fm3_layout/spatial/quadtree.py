"""
Reduced bucket quadtree over a square computation box.

The box is subdivided into a regular grid of ``2**MAX_LEVEL`` cells per side;
a cell at depth ``level`` is identified by its integer indices ``(i, j)``.
Every tree node is shrunk to the smallest cell that encloses its particles,
so chains of single-child nodes never occur. Leaves hold at most
``particles_per_leaf`` particles unless they reach the maximum depth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from ..geometry import ComputationBox
from ..options import ReducedTreeConstruction, SmallestCellFinding

MAX_LEVEL = 30

Cell = tuple[int, int, int]
"""A quadtree cell as (level, i, j)."""


@dataclass(eq=False)
class QuadTreeNode:
    """
    A node of the reduced bucket quadtree.

    Attributes:
        level: Depth of the node's cell
        i, j: Integer cell indices at that depth
        x, y: Center of the cell
        half_size: Half the side length of the cell
        particles: Particle indices (leaves only)
        children: Four child quadrants [NW, NE, SW, SE] if internal
        count: Number of particles in the subtree
        multipole: Multipole coefficients, attached by the NMM strategy
    """

    level: int
    i: int
    j: int
    x: float
    y: float
    half_size: float
    particles: Optional[np.ndarray] = None
    children: Optional[List[Optional[QuadTreeNode]]] = None
    count: int = 0
    multipole: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def cell(self) -> Cell:
        return (self.level, self.i, self.j)

    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return self.children is None

    def contains_cell(self, level: int, i: int, j: int) -> bool:
        """True if the cell (level, i, j) lies inside this node's cell."""
        if level < self.level:
            return False
        shift = level - self.level
        return (i >> shift) == self.i and (j >> shift) == self.j

    def get_quadrant(self, level: int, i: int, j: int) -> int:
        """
        Quadrant of this cell that holds the deeper cell (level, i, j).

        Returns:
            0=NW, 1=NE, 2=SW, 3=SE
        """
        shift = level - self.level - 1
        east = (i >> shift) & 1
        south = (j >> shift) & 1
        return 2 * south + east


class QuadTree:
    """
    Reduced bucket quadtree built over a set of particle positions.

    Usage:
        box = ComputationBox.from_positions(x, y)
        tree = QuadTree(box, particles_per_leaf=25)
        tree.build(x, y)
        for leaf in tree.leaves():
            ...

    Two construction orders produce the same tree: subtree by subtree
    (recursive partitioning) and path by path (insertion of one particle
    at a time). The smallest enclosing cell of a particle set is found
    either by descending level by level or in closed form from the
    highest differing bit of the integer coordinates.
    """

    def __init__(
        self,
        box: ComputationBox,
        particles_per_leaf: int = 25,
        construction: ReducedTreeConstruction = ReducedTreeConstruction.SUBTREE_BY_SUBTREE,
        smallest_cell: SmallestCellFinding = SmallestCellFinding.ITERATIVELY,
    ):
        self.box = box
        self.particles_per_leaf = max(1, int(particles_per_leaf))
        self.construction = construction
        self.smallest_cell = smallest_cell
        self.root: Optional[QuadTreeNode] = None
        self._ix = np.zeros(0, dtype=np.int64)
        self._iy = np.zeros(0, dtype=np.int64)

    # -------------------------------------------------------------------------
    # Coordinates and cells
    # -------------------------------------------------------------------------

    def grid_coordinates(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Integer cell indices of the points at the maximum depth."""
        cells = 1 << MAX_LEVEL
        scale = cells / self.box.length
        ix = np.floor((np.asarray(x, dtype=float) - self.box.x_min) * scale)
        iy = np.floor((np.asarray(y, dtype=float) - self.box.y_min) * scale)
        ix = np.clip(ix, 0, cells - 1).astype(np.int64)
        iy = np.clip(iy, 0, cells - 1).astype(np.int64)
        return ix, iy

    def make_node(self, level: int, i: int, j: int) -> QuadTreeNode:
        """Create an empty node for the cell (level, i, j)."""
        side = self.box.length / (1 << level)
        return QuadTreeNode(
            level=level,
            i=i,
            j=j,
            x=self.box.x_min + (i + 0.5) * side,
            y=self.box.y_min + (j + 0.5) * side,
            half_size=side / 2,
        )

    def find_smallest_cell(self, members: np.ndarray, start: Cell = (0, 0, 0)) -> Cell:
        """Smallest cell enclosing the given particles, inside ``start``."""
        ix = self._ix[members]
        iy = self._iy[members]
        if self.smallest_cell == SmallestCellFinding.ALURU:
            return _smallest_cell_aluru(ix, iy)
        return _smallest_cell_iterative(ix, iy, start)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def build(self, x: np.ndarray, y: np.ndarray) -> QuadTree:
        """
        Build the tree over the points (x[k], y[k]).

        Points are expected to lie inside the box; stray points are clamped
        into the border cells.

        Returns:
            self (for chaining)
        """
        self._ix, self._iy = self.grid_coordinates(x, y)
        n = int(self._ix.shape[0])
        if n == 0:
            self.root = None
        elif self.construction == ReducedTreeConstruction.PATH_BY_PATH:
            self.root = self._build_path_by_path(n)
        else:
            self.root = self._build_subtree(np.arange(n, dtype=np.int64), (0, 0, 0))
        return self

    def _build_subtree(self, members: np.ndarray, start: Cell) -> QuadTreeNode:
        level, i, j = self.find_smallest_cell(members, start)
        node = self.make_node(level, i, j)
        node.count = int(members.shape[0])
        if node.count <= self.particles_per_leaf or level == MAX_LEVEL:
            node.particles = members
            return node

        shift = MAX_LEVEL - level - 1
        quadrant = 2 * ((self._iy[members] >> shift) & 1) + ((self._ix[members] >> shift) & 1)
        node.children = [None, None, None, None]
        for q in range(4):
            part = members[quadrant == q]
            if part.shape[0]:
                child_cell = (level + 1, 2 * i + (q & 1), 2 * j + (q >> 1))
                node.children[q] = self._build_subtree(part, child_cell)
        return node

    def _build_path_by_path(self, n: int) -> QuadTreeNode:
        root = self._leaf([0])
        for p in range(1, n):
            root = self._insert(root, p)
        return root

    def _leaf(self, members: list[int]) -> QuadTreeNode:
        arr = np.asarray(members, dtype=np.int64)
        level, i, j = self.find_smallest_cell(arr)
        node = self.make_node(level, i, j)
        node.particles = arr
        node.count = len(members)
        return node

    def _insert(self, node: QuadTreeNode, p: int) -> QuadTreeNode:
        """Insert particle ``p`` below ``node``; returns the subtree's new root."""
        pi, pj = int(self._ix[p]), int(self._iy[p])
        inside = node.contains_cell(MAX_LEVEL, pi, pj)

        if node.is_leaf():
            assert node.particles is not None
            members = sorted(node.particles.tolist() + [p])
            if len(members) <= self.particles_per_leaf:
                return self._leaf(members)
            if inside:
                return self._build_subtree(np.asarray(members, dtype=np.int64), node.cell)
            return self._join(node, p)

        if not inside:
            return self._join(node, p)

        assert node.children is not None
        q = node.get_quadrant(MAX_LEVEL, pi, pj)
        child = node.children[q]
        node.children[q] = self._leaf([p]) if child is None else self._insert(child, p)
        node.count += 1
        return node

    def _join(self, node: QuadTreeNode, p: int) -> QuadTreeNode:
        """New internal node at the smallest cell holding both ``node`` and ``p``."""
        pi, pj = int(self._ix[p]), int(self._iy[p])
        level, i, j = _common_cell(node.cell, (MAX_LEVEL, pi, pj))
        parent = self.make_node(level, i, j)
        parent.children = [None, None, None, None]
        parent.children[parent.get_quadrant(*node.cell)] = node
        parent.children[parent.get_quadrant(MAX_LEVEL, pi, pj)] = self._leaf([p])
        parent.count = node.count + 1
        return parent

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def nodes(self, order: str = "pre") -> Iterator[QuadTreeNode]:
        """Iterate over all nodes in pre-order or post-order."""
        if self.root is None:
            return
        yield from _walk(self.root, order)

    def leaves(self) -> Iterator[QuadTreeNode]:
        """Iterate over the leaves."""
        for node in self.nodes():
            if node.is_leaf():
                yield node

    def depth(self) -> int:
        """Maximum cell level in the tree."""
        return max((node.level for node in self.nodes()), default=0)

    def signature(self) -> list[tuple[Cell, tuple[int, ...]]]:
        """
        Canonical description of the tree: (cell, particles) per node in
        pre-order, with particles listed for leaves only.
        """
        result: list[tuple[Cell, tuple[int, ...]]] = []
        for node in self.nodes():
            parts: tuple[int, ...] = ()
            if node.particles is not None:
                parts = tuple(sorted(node.particles.tolist()))
            result.append((node.cell, parts))
        return result


# =============================================================================
# Cell helpers
# =============================================================================


def _smallest_cell_iterative(ix: np.ndarray, iy: np.ndarray, start: Cell) -> Cell:
    level, i, j = start
    while level < MAX_LEVEL:
        shift = MAX_LEVEL - level - 1
        xb = (ix >> shift) & 1
        yb = (iy >> shift) & 1
        if xb.min() != xb.max() or yb.min() != yb.max():
            break
        i = 2 * i + int(xb[0])
        j = 2 * j + int(yb[0])
        level += 1
    return level, i, j


def _smallest_cell_aluru(ix: np.ndarray, iy: np.ndarray) -> Cell:
    xmin, xmax = int(ix.min()), int(ix.max())
    ymin, ymax = int(iy.min()), int(iy.max())
    bits = max((xmin ^ xmax).bit_length(), (ymin ^ ymax).bit_length())
    return MAX_LEVEL - bits, xmin >> bits, ymin >> bits


def _common_cell(a: Cell, b: Cell) -> Cell:
    """Smallest cell containing both cells."""
    level = min(a[0], b[0])
    ai, aj = a[1] >> (a[0] - level), a[2] >> (a[0] - level)
    bi, bj = b[1] >> (b[0] - level), b[2] >> (b[0] - level)
    bits = max((ai ^ bi).bit_length(), (aj ^ bj).bit_length())
    return level - bits, ai >> bits, aj >> bits


def _walk(node: QuadTreeNode, order: str) -> Iterator[QuadTreeNode]:
    if order == "pre":
        yield node
    if node.children is not None:
        for child in node.children:
            if child is not None:
                yield from _walk(child, order)
    if order != "pre":
        yield node


__all__ = ["MAX_LEVEL", "QuadTree", "QuadTreeNode"]
