"""
Arena-indexed graph used throughout the layout pipeline.

A LayoutGraph owns contiguous numpy arrays for vertex sizes, positions and
edge endpoints. Links to the vertex a row was derived from (the input node,
the reduced-graph vertex, the finer-level vertex) are plain integer indices
stored in ``origin``; nothing holds object references across graphs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np


@dataclass(eq=False)
class LayoutGraph:
    """
    Undirected graph with per-vertex geometry and per-edge ideal lengths.

    Attributes:
        width: Vertex widths
        height: Vertex heights
        x: Vertex centre x coordinates
        y: Vertex centre y coordinates
        sources: Edge source vertex indices
        targets: Edge target vertex indices
        lengths: Edge ideal lengths
        origin: For each vertex, index of the vertex it was derived from
    """

    width: np.ndarray
    height: np.ndarray
    x: np.ndarray
    y: np.ndarray
    sources: np.ndarray
    targets: np.ndarray
    lengths: np.ndarray
    origin: np.ndarray
    _adjacency: Optional[list[list[tuple[int, int]]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def create(
        cls,
        n: int,
        edges: Sequence[tuple[int, int]] = (),
        lengths: Optional[Sequence[float]] = None,
        width: Optional[Sequence[float]] = None,
        height: Optional[Sequence[float]] = None,
        x: Optional[Sequence[float]] = None,
        y: Optional[Sequence[float]] = None,
        origin: Optional[Sequence[int]] = None,
    ) -> LayoutGraph:
        """Build a graph from plain Python sequences, filling in defaults."""
        m = len(edges)
        edge_array = np.asarray(edges, dtype=np.int64).reshape(m, 2)
        return cls(
            width=_float_array(width, n, 0.0),
            height=_float_array(height, n, 0.0),
            x=_float_array(x, n, 0.0),
            y=_float_array(y, n, 0.0),
            sources=edge_array[:, 0].copy(),
            targets=edge_array[:, 1].copy(),
            lengths=_float_array(lengths, m, 1.0),
            origin=(
                np.arange(n, dtype=np.int64)
                if origin is None
                else np.asarray(origin, dtype=np.int64)
            ),
        )

    @property
    def n(self) -> int:
        """Number of vertices."""
        return int(self.x.shape[0])

    @property
    def m(self) -> int:
        """Number of edges."""
        return int(self.sources.shape[0])

    @property
    def positions(self) -> np.ndarray:
        """Vertex positions as an (n, 2) array (a copy)."""
        return np.column_stack((self.x, self.y))

    def adjacency(self) -> list[list[tuple[int, int]]]:
        """
        Incidence lists: for each vertex, the (neighbour, edge index) pairs.

        Built once and cached; the edge set of a graph never changes after
        construction.
        """
        if self._adjacency is None:
            adj: list[list[tuple[int, int]]] = [[] for _ in range(self.n)]
            for e, (s, t) in enumerate(zip(self.sources.tolist(), self.targets.tolist())):
                adj[s].append((t, e))
                adj[t].append((s, e))
            self._adjacency = adj
        return self._adjacency

    def neighbors(self, v: int) -> list[int]:
        """Neighbour vertices of ``v``."""
        return [u for u, _ in self.adjacency()[v]]

    def edge_vectors(self) -> tuple[np.ndarray, np.ndarray]:
        """Per-edge (target - source) coordinate differences."""
        return (
            self.x[self.targets] - self.x[self.sources],
            self.y[self.targets] - self.y[self.sources],
        )

    def induced_subgraph(self, vertices: Sequence[int]) -> LayoutGraph:
        """
        Subgraph induced by ``vertices``.

        Vertex ``i`` of the result has ``origin[i] == vertices[i]``, an index
        into this graph.
        """
        verts = np.asarray(vertices, dtype=np.int64)
        local = np.full(self.n, -1, dtype=np.int64)
        local[verts] = np.arange(verts.shape[0], dtype=np.int64)
        mask = (local[self.sources] >= 0) & (local[self.targets] >= 0)
        return LayoutGraph(
            width=self.width[verts].copy(),
            height=self.height[verts].copy(),
            x=self.x[verts].copy(),
            y=self.y[verts].copy(),
            sources=local[self.sources[mask]],
            targets=local[self.targets[mask]],
            lengths=self.lengths[mask].copy(),
            origin=verts.copy(),
        )

    def copy(self) -> LayoutGraph:
        """Deep copy of the arrays; ``origin`` is preserved."""
        return LayoutGraph(
            width=self.width.copy(),
            height=self.height.copy(),
            x=self.x.copy(),
            y=self.y.copy(),
            sources=self.sources.copy(),
            targets=self.targets.copy(),
            lengths=self.lengths.copy(),
            origin=self.origin.copy(),
        )


def _float_array(values: Optional[Sequence[float]], size: int, fill: float) -> np.ndarray:
    if values is None:
        return np.full(size, fill, dtype=float)
    return np.asarray(values, dtype=float).reshape(size).copy()


__all__ = ["LayoutGraph"]
