"""
Input validation utilities for the layout engine.

Provides validation functions for nodes and links. In strict mode they raise
descriptive exceptions; otherwise they return the list of issues found so the
caller can drop or repair the offending items.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence


class ValidationError(ValueError):
    """Base exception for layout validation errors."""

    pass


class InvalidNodeError(ValidationError):
    """Raised when a node is malformed."""

    pass


class InvalidLinkError(ValidationError):
    """Raised when a link references invalid nodes."""

    pass


def validate_link_indices(
    links: Sequence[Any],
    node_count: int,
    strict: bool = True,
) -> list[tuple[int, str]]:
    """
    Validate that all link source/target indices are within bounds.

    Args:
        links: Sequence of Link objects or dicts with source/target
        node_count: Number of nodes in the graph
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (link_index, issue_description) tuples

    Raises:
        InvalidLinkError: If strict=True and invalid links found
    """
    issues: list[tuple[int, str]] = []

    for i, link in enumerate(links):
        src = _get_index(link, "source")
        tgt = _get_index(link, "target")

        if src is None:
            issues.append((i, f"Link {i}: source is None"))
        elif src < 0 or src >= node_count:
            issues.append((i, f"Link {i}: source index {src} out of bounds [0, {node_count})"))

        if tgt is None:
            issues.append((i, f"Link {i}: target is None"))
        elif tgt < 0 or tgt >= node_count:
            issues.append((i, f"Link {i}: target index {tgt} out of bounds [0, {node_count})"))

    if strict and issues:
        msg = "Invalid link indices:\n" + "\n".join(issue[1] for issue in issues)
        raise InvalidLinkError(msg)

    return issues


def validate_node_sizes(
    nodes: Sequence[Any],
    strict: bool = True,
) -> list[tuple[int, str]]:
    """
    Validate that node widths and heights are finite and non-negative.

    Missing sizes are allowed and mean a point-sized node.

    Args:
        nodes: Sequence of Node objects
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (node_index, issue_description) tuples

    Raises:
        InvalidNodeError: If strict=True and invalid sizes found
    """
    issues: list[tuple[int, str]] = []

    for i, node in enumerate(nodes):
        for attr in ("width", "height"):
            value = getattr(node, attr, None)
            if value is None:
                continue
            try:
                size = float(value)
            except (TypeError, ValueError):
                issues.append((i, f"Node {i}: {attr} {value!r} is not a number"))
                continue
            if not math.isfinite(size) or size < 0:
                issues.append((i, f"Node {i}: {attr} must be finite and >= 0, got {size}"))

    if strict and issues:
        msg = "Invalid node sizes:\n" + "\n".join(issue[1] for issue in issues)
        raise InvalidNodeError(msg)

    return issues


def sanitize_size(value: Any) -> float:
    """Return a node dimension as a float, treating missing or bad values as 0."""
    if value is None:
        return 0.0
    try:
        size = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(size) or size < 0:
        return 0.0
    return size


def sanitize_length(value: Any) -> float:
    """Return a link target length, forcing missing or non-positive values to 1."""
    if value is None:
        return 1.0
    try:
        length = float(value)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(length) or length <= 0:
        return 1.0
    return length


def _get_index(obj: Any, attr: str) -> Optional[int]:
    """Extract index from int, Node, or object with index attribute."""
    if hasattr(obj, attr):
        val = getattr(obj, attr, None)
    elif isinstance(obj, dict):
        val = obj.get(attr)
    else:
        val = None

    if val is None:
        return None
    if isinstance(val, int):
        return val
    if hasattr(val, "index") and val.index is not None:
        return int(val.index)
    return None


__all__ = [
    "ValidationError",
    "InvalidNodeError",
    "InvalidLinkError",
    "validate_link_indices",
    "validate_node_sizes",
    "sanitize_size",
    "sanitize_length",
]
