"""
Layout quality metrics.

Provides quantitative measures of an FM^3 drawing:
- Repulsion energy: the potential whose gradient is the repulsive force
- Edge length ratios: real length over target length per link
- Edge length variance and uniformity
- Bounding box of the node centres

All metrics work with final node positions from any layout.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence, Union

import numpy as np

from .types import Link, Node


def _get_link_index(endpoint: Union[Node, int]) -> int:
    """Get index from a link endpoint (Node or int)."""
    if isinstance(endpoint, int):
        return endpoint
    return endpoint.index if endpoint.index is not None else -1


def _coordinates(nodes: Sequence[Node]) -> tuple[np.ndarray, np.ndarray]:
    x = np.array([float(node.x) for node in nodes])
    y = np.array([float(node.y) for node in nodes])
    return x, y


def repulsion_energy(nodes: Sequence[Node]) -> float:
    """
    Total repulsive energy of the layout.

    The repulsive force (p - q) / |p - q|^2 is the negative gradient of
    -ln |p - q|, so the energy is the sum of -ln d over all node pairs.
    Coincident pairs are skipped.

    Args:
        nodes: List of positioned nodes

    Returns:
        Sum of -ln(distance) over all pairs

    Time Complexity: O(n^2)
    """
    n = len(nodes)
    if n < 2:
        return 0.0
    x, y = _coordinates(nodes)
    i, j = np.triu_indices(n, k=1)
    d = np.hypot(x[i] - x[j], y[i] - y[j])
    d = d[d > 0]
    return float(-np.log(d).sum())


def _get_edge_lengths(nodes: Sequence[Node], links: Sequence[Link]) -> list[float]:
    """Get list of edge lengths."""
    n = len(nodes)
    lengths = []

    for link in links:
        s = _get_link_index(link.source)
        t = _get_link_index(link.target)

        if 0 <= s < n and 0 <= t < n:
            dx = nodes[s].x - nodes[t].x
            dy = nodes[s].y - nodes[t].y
            lengths.append(math.sqrt(dx * dx + dy * dy))

    return lengths


def edge_length_ratios(
    nodes: Sequence[Node],
    links: Sequence[Link],
    unit_edge_length: float = 1.0,
) -> list[float]:
    """
    Ratio of drawn length to target length for every valid link.

    The target length of a link is ``link.length`` (1 when missing) times
    ``unit_edge_length``. Self-loops and links with invalid endpoints are
    skipped.

    Example:
        >>> nodes = [Node(x=0, y=0), Node(x=50, y=0)]
        >>> edge_length_ratios(nodes, [Link(0, 1, length=1)], unit_edge_length=100)
        [0.5]
    """
    n = len(nodes)
    ratios = []
    for link in links:
        s = _get_link_index(link.source)
        t = _get_link_index(link.target)
        if s == t or not (0 <= s < n and 0 <= t < n):
            continue
        target = (link.length if link.length is not None else 1.0) * unit_edge_length
        if target <= 0:
            continue
        real = math.hypot(nodes[s].x - nodes[t].x, nodes[s].y - nodes[t].y)
        ratios.append(real / target)
    return ratios


def edge_length_variance(nodes: Sequence[Node], links: Sequence[Link]) -> float:
    """
    Compute the variance of edge lengths.

    Lower variance indicates more uniform edge lengths.

    Args:
        nodes: List of positioned nodes
        links: List of links

    Returns:
        Variance of edge lengths
    """
    lengths = _get_edge_lengths(nodes, links)
    if not lengths:
        return 0.0
    return float(np.var(lengths))


def edge_length_uniformity(nodes: Sequence[Node], links: Sequence[Link]) -> float:
    """
    Compute edge length uniformity (0-1, higher is better).

    Returns:
        1 - (std_dev / mean), clamped to [0, 1]
    """
    lengths = _get_edge_lengths(nodes, links)
    if not lengths:
        return 1.0

    mean = float(np.mean(lengths))
    if mean == 0:
        return 1.0
    return max(0.0, min(1.0, 1.0 - float(np.std(lengths)) / mean))


def bounding_box(nodes: Sequence[Node]) -> Optional[tuple[float, float, float, float]]:
    """
    Axis-aligned box around the node centres.

    Returns:
        (x_min, y_min, x_max, y_max), or None for an empty node list
    """
    if not nodes:
        return None
    x, y = _coordinates(nodes)
    return float(x.min()), float(y.min()), float(x.max()), float(y.max())


def layout_quality_summary(
    nodes: Sequence[Node],
    links: Sequence[Link],
    unit_edge_length: float = 1.0,
) -> dict[str, Any]:
    """
    Compute all quality metrics for a layout.

    Returns:
        Dictionary with the individual metrics; ``mean_edge_length_ratio``
        is None when there are no links
    """
    ratios = edge_length_ratios(nodes, links, unit_edge_length)
    return {
        "repulsion_energy": repulsion_energy(nodes),
        "mean_edge_length_ratio": float(np.mean(ratios)) if ratios else None,
        "edge_length_variance": edge_length_variance(nodes, links),
        "edge_length_uniformity": edge_length_uniformity(nodes, links),
        "bounding_box": bounding_box(nodes),
    }


__all__ = [
    "repulsion_energy",
    "edge_length_ratios",
    "edge_length_variance",
    "edge_length_uniformity",
    "bounding_box",
    "layout_quality_summary",
]
