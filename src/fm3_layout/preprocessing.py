"""
Graph preprocessing utilities.

This module provides the steps that prepare an input graph before layout:
- Ideal edge length scaling
- Reduction to a simple, loop-free graph
- Connected component detection

These utilities are used internally by the layout but can also be used
directly for graph analysis.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Optional, Sequence

import numpy as np

from .graph import LayoutGraph
from .options import EdgeLengthMeasurement


def _default_get_source(link: Any) -> int:
    """Default function to extract source index from a link."""
    if isinstance(link, tuple):
        return link[0]
    return link["source"] if isinstance(link, dict) else link.source


def _default_get_target(link: Any) -> int:
    """Default function to extract target index from a link."""
    if isinstance(link, tuple):
        return link[1]
    return link["target"] if isinstance(link, dict) else link.target


# =============================================================================
# Edge Length Scaling
# =============================================================================


def scale_edge_lengths(
    graph: LayoutGraph,
    unit_edge_length: float,
    measurement: EdgeLengthMeasurement = EdgeLengthMeasurement.BOUNDING_CIRCLE,
) -> None:
    """
    Convert requested edge lengths into ideal distances between vertex centres.

    With midpoint measurement the requested length is multiplied by the unit
    edge length. With bounding-circle measurement the radii of both endpoint
    bounding circles (half the diagonal of each vertex box) are added, so that
    large vertices are not drawn overlapping.

    Args:
        graph: Graph whose ``lengths`` are updated in place
        unit_edge_length: Length of an edge with requested length 1
        measurement: Edge length measurement mode
    """
    lengths = graph.lengths * unit_edge_length
    if measurement == EdgeLengthMeasurement.BOUNDING_CIRCLE and graph.m > 0:
        radius = np.hypot(graph.width / 2, graph.height / 2)
        lengths = lengths + radius[graph.sources] + radius[graph.targets]
    graph.lengths = lengths


# =============================================================================
# Reduction
# =============================================================================


def reduce_graph(graph: LayoutGraph) -> LayoutGraph:
    """
    Build a simple, loop-free copy of ``graph``.

    Self-loops are removed. Parallel and anti-parallel edges are merged into
    the first edge of their group; its ideal length becomes the mean of the
    merged lengths. The vertex set is unchanged and ``origin`` maps every
    vertex of the result to the same index in ``graph``.

    Example:
        >>> g = LayoutGraph.create(2, [(0, 1), (1, 0)], lengths=[4.0, 6.0])
        >>> reduce_graph(g).lengths.tolist()
        [5.0]
    """
    keep = graph.sources != graph.targets
    edge_ids = np.nonzero(keep)[0]
    src = graph.sources[edge_ids]
    tgt = graph.targets[edge_ids]
    lo = np.minimum(src, tgt)
    hi = np.maximum(src, tgt)

    # Stable sort by the orientation-independent key brings parallels together
    order = np.lexsort((hi, lo))
    kept: list[int] = []
    merged_lengths: list[float] = []
    prev_key: Optional[tuple[int, int]] = None
    run_sum = 0.0
    run_count = 0
    for pos in order.tolist():
        key = (int(lo[pos]), int(hi[pos]))
        length = float(graph.lengths[edge_ids[pos]])
        if key == prev_key:
            run_sum += length
            run_count += 1
            continue
        if run_count:
            merged_lengths.append(run_sum / run_count)
        kept.append(int(edge_ids[pos]))
        prev_key = key
        run_sum = length
        run_count = 1
    if run_count:
        merged_lengths.append(run_sum / run_count)

    # Restore input order of the surviving edges
    kept_array = np.asarray(kept, dtype=np.int64)
    length_array = np.asarray(merged_lengths, dtype=float)
    restore = np.argsort(kept_array, kind="stable")
    kept_array = kept_array[restore]
    length_array = length_array[restore]

    return LayoutGraph(
        width=graph.width.copy(),
        height=graph.height.copy(),
        x=graph.x.copy(),
        y=graph.y.copy(),
        sources=graph.sources[kept_array].copy(),
        targets=graph.targets[kept_array].copy(),
        lengths=length_array,
        origin=np.arange(graph.n, dtype=np.int64),
    )


# =============================================================================
# Connected Components
# =============================================================================


def connected_components(
    n: int,
    links: Sequence[Any],
    get_source: Optional[Callable[[Any], int]] = None,
    get_target: Optional[Callable[[Any], int]] = None,
) -> list[list[int]]:
    """
    Find connected components in an undirected graph.

    Args:
        n: Number of nodes
        links: List of edges (tuples, dicts or objects with source/target)
        get_source: Function to extract source index from link
        get_target: Function to extract target index from link

    Returns:
        List of components, where each component is a sorted list of node
        indices. Components are ordered by their smallest node.

    Example:
        >>> links = [(0, 1), (2, 3)]
        >>> components = connected_components(4, links)
        >>> len(components)
        2
    """
    if get_source is None:
        get_source = _default_get_source
    if get_target is None:
        get_target = _default_get_target

    adj: list[list[int]] = [[] for _ in range(n)]
    for link in links:
        src = get_source(link)
        tgt = get_target(link)
        if 0 <= src < n and 0 <= tgt < n:
            adj[src].append(tgt)
            adj[tgt].append(src)

    visited = [False] * n
    components: list[list[int]] = []

    for start in range(n):
        if visited[start]:
            continue

        # BFS to find all nodes in this component
        component: list[int] = []
        queue: deque[int] = deque([start])
        visited[start] = True

        while queue:
            node = queue.popleft()
            component.append(node)

            for neighbor in adj[node]:
                if not visited[neighbor]:
                    visited[neighbor] = True
                    queue.append(neighbor)

        components.append(sorted(component))

    return components


def graph_components(graph: LayoutGraph) -> list[LayoutGraph]:
    """
    Split a graph into its connected components.

    Each returned subgraph has ``origin`` pointing back into ``graph``.
    """
    edges = list(zip(graph.sources.tolist(), graph.targets.tolist()))
    return [graph.induced_subgraph(comp) for comp in connected_components(graph.n, edges)]


__all__ = [
    "scale_edge_lengths",
    "reduce_graph",
    "connected_components",
    "graph_components",
]
