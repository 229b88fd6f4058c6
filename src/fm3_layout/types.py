"""
Common types for the FM^3 layout engine.

This module provides the fundamental types exchanged with the host application:
- Node: Graph vertex with size and position
- Link: Edge connecting two nodes, with an optional target length
- EventType: Layout lifecycle events
- Event: Event payload for callbacks
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Optional, Sequence, TypedDict, Union


class EventType(IntEnum):
    """
    Layout lifecycle events.

    - start: Layout has begun
    - tick: Fired once per force iteration
    - end: Layout has finished
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    alpha: float
    level: int
    iteration: int
    average_force: Optional[float]
    listener: Optional[Callable[[], None]]


class Node:
    """
    Graph node with size and position.

    Attributes:
        index: Index in nodes array (set by layout)
        x: X coordinate (centre)
        y: Y coordinate (centre)
        width: Node width (0 if unknown)
        height: Node height (0 if unknown)
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize node with optional properties."""
        self.index: Optional[int] = kwargs.get("index")
        self.x: float = kwargs.get("x", 0.0)
        self.y: float = kwargs.get("y", 0.0)
        self.width: Optional[float] = kwargs.get("width")
        self.height: Optional[float] = kwargs.get("height")

        # Copy any additional custom properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"Node(index={self.index}, x={self.x:.2f}, y={self.y:.2f})"


class Link:
    """
    Edge connecting two nodes.

    Attributes:
        source: Source node or node index
        target: Target node or node index
        length: Requested edge length in unit edge lengths (optional, default 1)
    """

    def __init__(
        self,
        source: Union[Node, int],
        target: Union[Node, int],
        length: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize link between two nodes.

        Args:
            source: Source node or node index (required)
            target: Target node or node index (required)
            length: Requested edge length (optional)

        Raises:
            ValueError: If source or target is None
        """
        if source is None:
            raise ValueError("Link source cannot be None")
        if target is None:
            raise ValueError("Link target cannot be None")

        self.source = source
        self.target = target
        self.length = length

        # Copy any additional custom properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        if isinstance(self.source, int):
            src: Any = self.source
        else:
            src = getattr(self.source, "index", None)
        if isinstance(self.target, int):
            tgt: Any = self.target
        else:
            tgt = getattr(self.target, "index", None)
        return f"Link({src} -- {tgt})"


# Type aliases for Pythonic API
# These allow flexible input types while maintaining type safety
NodeLike = Union[Node, dict[str, Any], Any]
"""Input type for nodes: Node objects, dicts, or objects with node attributes."""

LinkLike = Union[Link, dict[str, Any], Any]
"""Input type for links: Link objects, dicts, or objects with source/target."""

Position = tuple[float, float]
"""A 2D point (x, y)."""

PositionList = Sequence[Position]


__all__ = [
    "EventType",
    "Event",
    "Node",
    "Link",
    "NodeLike",
    "LinkLike",
    "Position",
    "PositionList",
]
