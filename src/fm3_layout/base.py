"""
Base class for layout engines.

BaseLayout defines the interface the host application talks to: node and
link management, the start/tick/end event system and input validation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

if TYPE_CHECKING:
    from typing_extensions import Self

from .types import (
    Event,
    EventType,
    Link,
    LinkLike,
    Node,
    NodeLike,
)
from .validation import validate_link_indices, validate_node_sizes


class BaseLayout(ABC):
    """
    Abstract base class for layout engines.

    Provides shared infrastructure:
    - Event system (start/tick/end events)
    - Node/link management via properties
    - Input validation

    Example:
        layout = SomeLayout(nodes=nodes, links=links, random_seed=7)
        layout.run()

        # Access results via properties
        for node in layout.nodes:
            print(f"Node {node.index}: ({node.x}, {node.y})")
    """

    def __init__(
        self,
        *,
        nodes: Optional[Sequence[NodeLike]] = None,
        links: Optional[Sequence[LinkLike]] = None,
        random_seed: Optional[int] = None,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize layout with configuration.

        Args:
            nodes: List of nodes (Node objects, dicts, or objects with attributes)
            links: List of links (Link objects or dicts with source/target)
            random_seed: Random seed for reproducible layouts
            on_start: Callback for start event
            on_tick: Callback for tick event
            on_end: Callback for end event
        """
        self._nodes: list[Node] = []
        self._links: list[Link] = []
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}
        self._random_seed: Optional[int] = None

        # Set initial values via properties (triggers normalization)
        if nodes is not None:
            self.nodes = nodes
        if links is not None:
            self.links = links
        if random_seed is not None:
            self.random_seed = random_seed

        # Register event callbacks
        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        """Get the list of nodes."""
        return self._nodes

    @nodes.setter
    def nodes(self, value: Sequence[NodeLike]) -> None:
        """Set nodes from a sequence of Node objects, dicts, or objects."""
        self._nodes = []
        for node_data in value:
            if isinstance(node_data, Node):
                self._nodes.append(node_data)
            elif isinstance(node_data, dict):
                self._nodes.append(Node(**node_data))
            else:
                # Generic object - copy geometry
                node = Node()
                for attr in ["index", "x", "y", "width", "height"]:
                    if hasattr(node_data, attr):
                        setattr(node, attr, getattr(node_data, attr))
                self._nodes.append(node)

    @property
    def links(self) -> list[Link]:
        """Get the list of links."""
        return self._links

    @links.setter
    def links(self, value: Sequence[LinkLike]) -> None:
        """Set links from a sequence of Link objects, dicts, or objects."""
        self._links = []
        for link_data in value:
            if isinstance(link_data, Link):
                self._links.append(link_data)
            elif isinstance(link_data, dict):
                self._links.append(Link(**link_data))
            else:
                # Generic object - extract source/target
                source = getattr(link_data, "source", 0)
                target = getattr(link_data, "target", 0)
                length = getattr(link_data, "length", None)
                self._links.append(Link(source, target, length))

    @property
    def random_seed(self) -> Optional[int]:
        """Get random seed for reproducible layouts."""
        return self._random_seed

    @random_seed.setter
    def random_seed(self, value: Optional[int]) -> None:
        """Set random seed for reproducible layouts."""
        self._random_seed = value

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a layout event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """
        Trigger an event, calling the registered callback.

        Args:
            event: Event payload with type and optional data
        """
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> Self:
        """
        Validate current configuration.

        Checks that all links point to valid node indices and that node
        sizes are finite and non-negative. ``run()`` repairs such input
        instead of raising; call this first for fail-fast behavior.

        Returns:
            self (for chaining)

        Raises:
            InvalidLinkError: If any link references an invalid node index.
            InvalidNodeError: If any node has an invalid width or height.
        """
        if self._links:
            validate_link_indices(self._links, len(self._nodes), strict=True)
        validate_node_sizes(self._nodes, strict=True)
        return self

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def run(self, **kwargs: Any) -> Self:
        """
        Run the layout algorithm.

        Implementations should fire the start and end events around the
        computation and write the final positions back to the nodes.

        Returns:
            self (for chaining)
        """
        pass

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _initialize_indices(self) -> None:
        """Assign indices to nodes that don't have them."""
        for i, node in enumerate(self._nodes):
            if node.index is None:
                node.index = i

    def _get_source_index(self, link: Link) -> Optional[int]:
        """Get source node index from a link."""
        if isinstance(link.source, int):
            return link.source
        return getattr(link.source, "index", None)

    def _get_target_index(self, link: Link) -> Optional[int]:
        """Get target node index from a link."""
        if isinstance(link.target, int):
            return link.target
        return getattr(link.target, "index", None)


__all__ = ["BaseLayout"]
