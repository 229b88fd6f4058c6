"""
FM^3 (fast multipole multilevel method) layout.

The layout runs in four stages:

1. Reduction: scale the requested edge lengths, remove self-loops and merge
   parallel edges.
2. Divide: split the reduced graph into connected components.
3. Per component: build the solar-system hierarchy, place the coarsest
   level, then run the force iteration on every level from coarse to fine.
   On small components, crossings left on the finest level are repaired by
   exchanging vertex positions and relaxing again. Then post-process.
4. Pack the component drawings and, if requested, restrict the final
   positions to integers.

Components are independent; with ``max_workers > 1`` they are laid out on a
thread pool. Every component draws its random numbers from its own
generator seeded with (random seed, component index), so results do not
depend on the number of workers.
"""

from __future__ import annotations

import math
import random
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .base import BaseLayout
from .force.iterator import ForceIterator, average_ideal_edge_length
from .geometry import ComputationBox, integer_bound, make_positions_integer
from .graph import LayoutGraph
from .multilevel import build_hierarchy, initial_placement, interpolate, untangle_crossings
from .options import (
    AllowedPositions,
    FMMMOptions,
    InitialPlacementForces,
    QualityVsSpeed,
    RepulsiveForcesMethod,
)
from .packing import pack_components
from .preprocessing import graph_components, reduce_graph, scale_edge_lengths
from .types import Event, EventType, LinkLike, NodeLike, PositionList
from .validation import (
    InvalidLinkError,
    sanitize_length,
    sanitize_size,
    validate_link_indices,
)

# Multiplier used to derive per-component seeds
COMPONENT_SEED_STRIDE = 1_000_003

# Rounds of crossing repair followed by relaxation on the finest level
UNTANGLE_ROUNDS = 3


class GraphStructureWarning(UserWarning):
    """Warning issued when input links are dropped or repaired."""


class FMMMLayout(BaseLayout):
    """
    Multilevel force-directed layout with multipole-approximated repulsion.

    Every node keeps its width and height; the layout writes ``x``/``y``
    (the node centre). Link ``length`` is the requested edge length in
    units of ``unit_edge_length``.

    Example:
        layout = FMMMLayout(
            nodes=[{"width": 10, "height": 10} for _ in range(4)],
            links=[{"source": i, "target": (i + 1) % 4} for i in range(4)],
            random_seed=7,
            repulsive_forces="exact",
        )
        layout.run()
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
        options: Optional[FMMMOptions] = None,
        **option_overrides: Any,
    ) -> None:
        """
        Initialize FM^3 layout.

        Args:
            nodes: List of nodes
            links: List of links
            random_seed: Overrides ``options.random_seed`` when given
            on_start: Callback for start event
            on_tick: Callback for tick event (once per force iteration)
            on_end: Callback for end event
            options: Complete option set; defaults to ``FMMMOptions()``
            **option_overrides: Individual FMMMOptions fields

        Raises:
            TypeError: If an override names an unknown option.
        """
        super().__init__(
            nodes=nodes,
            links=links,
            random_seed=random_seed,
            on_start=on_start,
            on_tick=on_tick,
            on_end=on_end,
        )
        base = options if options is not None else FMMMOptions()
        if option_overrides:
            base = base.replace(**option_overrides)
        self._options = base.clamped()
        self._levels_per_component: list[int] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def options(self) -> FMMMOptions:
        """Get the (clamped) layout options."""
        return self._options

    @options.setter
    def options(self, value: FMMMOptions) -> None:
        """Set the layout options; out-of-range values are clamped."""
        self._options = value.clamped()

    @property
    def unit_edge_length(self) -> float:
        """Get the length of an edge with requested length 1."""
        return self._options.unit_edge_length

    @unit_edge_length.setter
    def unit_edge_length(self, value: float) -> None:
        """Set the unit edge length (non-positive values become 1)."""
        self._options = self._options.replace(unit_edge_length=value).clamped()

    @property
    def quality_vs_speed(self) -> QualityVsSpeed:
        """Get the quality tier used with high-level options."""
        return self._options.quality_vs_speed

    @quality_vs_speed.setter
    def quality_vs_speed(self, value: QualityVsSpeed | str) -> None:
        """Set the quality tier; enables the high-level options."""
        self._options = self._options.replace(
            quality_vs_speed=value, use_high_level_options=True
        ).clamped()

    @property
    def repulsive_forces(self) -> RepulsiveForcesMethod:
        """Get the repulsive force strategy."""
        return self._options.repulsive_forces

    @repulsive_forces.setter
    def repulsive_forces(self, value: RepulsiveForcesMethod | str) -> None:
        """Set the repulsive force strategy (unknown names fall back to NMM)."""
        self._options = self._options.replace(repulsive_forces=value).clamped()

    @property
    def max_workers(self) -> int:
        """Get the number of threads used for independent components."""
        return self._options.max_workers

    @max_workers.setter
    def max_workers(self, value: int) -> None:
        """Set the number of worker threads (minimum 1)."""
        self._options = self._options.replace(max_workers=value).clamped()

    @property
    def levels_per_component(self) -> list[int]:
        """Number of multilevel levels built for each component in the last run."""
        return list(self._levels_per_component)

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    def run(self, **kwargs: Any) -> Self:
        """
        Run the layout.

        Invalid links are dropped with a GraphStructureWarning and missing
        sizes or lengths are replaced by defaults; this method does not
        raise for bad input.

        Returns:
            self (for chaining)
        """
        self._initialize_indices()
        opts = self._options.resolved()
        seed = self._random_seed if self._random_seed is not None else opts.random_seed
        self._levels_per_component = []
        self.trigger({"type": EventType.start, "alpha": 1.0})

        n = len(self._nodes)
        if n == 1:
            self._nodes[0].x = 0.0
            self._nodes[0].y = 0.0
        elif n > 1:
            x, y = self._layout(opts, seed)
            for i, node in enumerate(self._nodes):
                node.x = float(x[i])
                node.y = float(y[i])

        self.trigger({"type": EventType.end, "alpha": 0.0})
        return self

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _layout(self, opts: FMMMOptions, seed: int) -> tuple[np.ndarray, np.ndarray]:
        graph = self._build_graph()
        scale_edge_lengths(graph, opts.unit_edge_length, opts.edge_length_measurement)
        reduced = reduce_graph(graph)
        components = graph_components(reduced)

        if opts.max_workers > 1 and len(components) > 1:
            with ThreadPoolExecutor(max_workers=opts.max_workers) as pool:
                levels = list(
                    pool.map(
                        lambda item: self._layout_component(item[1], item[0], opts, seed),
                        enumerate(components),
                    )
                )
        else:
            levels = [
                self._layout_component(component, i, opts, seed)
                for i, component in enumerate(components)
            ]
        self._levels_per_component = levels

        pack_components(components, opts)

        x = np.zeros(reduced.n)
        y = np.zeros(reduced.n)
        for component in components:
            x[component.origin] = component.x
            y[component.origin] = component.y

        if opts.allowed_positions != AllowedPositions.ALL:
            if opts.allowed_positions == AllowedPositions.EXPONENT:
                bound = integer_bound(0.0, reduced.n, opts.max_int_pos_exponent)
            else:
                bound = integer_bound(average_ideal_edge_length(reduced), reduced.n)
            make_positions_integer(x, y, bound)
        return x, y

    def _layout_component(
        self, graph: LayoutGraph, index: int, opts: FMMMOptions, seed: int
    ) -> int:
        """
        Lay out one connected component in place.

        Returns:
            Number of levels of the multilevel hierarchy
        """
        if graph.n == 1:
            graph.x = np.zeros(1)
            graph.y = np.zeros(1)
            return 1

        rng = random.Random(seed * COMPONENT_SEED_STRIDE + index)
        input_x, input_y = graph.x.copy(), graph.y.copy()
        levels = build_hierarchy(graph, opts, rng)
        max_level = len(levels) - 1

        box = initial_placement(
            levels[max_level].graph,
            opts.initial_placement_forces,
            ComputationBox.initial(graph.width, graph.height),
            rng,
            is_finest=max_level == 0,
        )

        keep_input = opts.initial_placement_forces == InitialPlacementForces.KEEP_POSITIONS
        iterator = ForceIterator(opts, rng, listener=self.trigger)
        for level in range(max_level, -1, -1):
            current = levels[level].graph
            if level < max_level:
                box = interpolate(
                    levels[level], levels[level + 1].graph, opts.initial_placement_mult, rng
                )
                if level == 0 and keep_input:
                    current.x, current.y = input_x.copy(), input_y.copy()
                    box = ComputationBox.from_positions(current.x, current.y)
            box = iterator.run_level(current, level, max_level, box)

        for _ in range(UNTANGLE_ROUNDS):
            if untangle_crossings(graph) == 0:
                break
            box = iterator.run_level(
                graph, 0, max_level, ComputationBox.from_positions(graph.x, graph.y)
            )

        iterator.postprocess(graph, box)
        return len(levels)

    def _build_graph(self) -> LayoutGraph:
        """Convert nodes and links into a LayoutGraph, dropping invalid links."""
        n = len(self._nodes)
        issues = validate_link_indices(self._links, n, strict=False)
        invalid = {i for i, _ in issues}
        if invalid:
            warnings.warn(
                f"Dropping {len(invalid)} link(s) with invalid endpoints: "
                + "; ".join(msg for _, msg in issues),
                GraphStructureWarning,
                stacklevel=4,
            )

        edges: list[tuple[int, int]] = []
        lengths: list[float] = []
        for i, link in enumerate(self._links):
            if i in invalid:
                continue
            src = self._get_source_index(link)
            tgt = self._get_target_index(link)
            if src is None or tgt is None:
                raise InvalidLinkError(f"Link {i}: endpoint has no node index")
            edges.append((src, tgt))
            lengths.append(sanitize_length(link.length))

        return LayoutGraph.create(
            n,
            edges,
            lengths=lengths,
            width=[sanitize_size(node.width) for node in self._nodes],
            height=[sanitize_size(node.height) for node in self._nodes],
            x=[_finite_or_zero(node.x) for node in self._nodes],
            y=[_finite_or_zero(node.y) for node in self._nodes],
        )


def _finite_or_zero(value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def fmmm_layout(
    nodes: Sequence[NodeLike],
    links: Sequence[LinkLike],
    **options: Any,
) -> PositionList:
    """
    Compute an FM^3 layout and return the node positions.

    Args:
        nodes: Nodes with optional width/height
        links: Links with source/target and optional length
        **options: FMMMOptions fields (and ``random_seed``)

    Returns:
        List of (x, y) node centres, in node order
    """
    layout = FMMMLayout(nodes=nodes, links=links, **options)
    layout.run()
    return [(node.x, node.y) for node in layout.nodes]


__all__ = ["FMMMLayout", "GraphStructureWarning", "fmmm_layout"]
