"""
Configuration for the FM^3 layout engine.

FMMMOptions collects every tunable parameter of the algorithm with its
default value. Options are permissive: out-of-range values are never
rejected, ``clamped()`` replaces them by safe defaults. When
``use_high_level_options`` is set, ``resolved()`` derives the low-level
numeric parameters from the page format and the quality-vs-speed tier.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound=Enum)


# =============================================================================
# Enumerations
# =============================================================================


class PageFormat(str, Enum):
    """Aspect ratio of the final drawing when high-level options are used."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    SQUARE = "square"


class QualityVsSpeed(str, Enum):
    """Trade-off tier that selects iteration counts and multipole precision."""

    GORGEOUS_AND_EFFICIENT = "gorgeous_and_efficient"
    BEAUTIFUL_AND_FAST = "beautiful_and_fast"
    NICE_AND_INCREDIBLY_FAST = "nice_and_incredibly_fast"


class EdgeLengthMeasurement(str, Enum):
    """How the distance between two nodes is measured against the edge length."""

    MIDPOINT = "midpoint"
    BOUNDING_CIRCLE = "bounding_circle"


class AllowedPositions(str, Enum):
    """Range of coordinates the drawing may use."""

    ALL = "all"
    INTEGER = "integer"
    EXPONENT = "exponent"


class TipOver(str, Enum):
    """When a component rectangle may be rotated by 90 degrees during packing."""

    NONE = "none"
    NO_GROWING_ROW = "no_growing_row"
    ALWAYS = "always"


class PreSort(str, Enum):
    """Order in which component rectangles are packed."""

    NONE = "none"
    DECREASING_HEIGHT = "decreasing_height"
    DECREASING_WIDTH = "decreasing_width"


class GalaxyChoice(str, Enum):
    """How suns are sampled during coarsening."""

    UNIFORM_PROB = "uniform_prob"
    NON_UNIFORM_PROB_LOWER_MASS = "non_uniform_prob_lower_mass"
    NON_UNIFORM_PROB_HIGHER_MASS = "non_uniform_prob_higher_mass"


class MaxIterChange(str, Enum):
    """How the iteration bound changes from the coarsest to the finest level."""

    CONSTANT = "constant"
    LINEARLY_DECREASING = "linearly_decreasing"
    RAPIDLY_DECREASING = "rapidly_decreasing"


class InitialPlacementMult(str, Enum):
    """How finer-level positions are interpolated from the coarser level."""

    SIMPLE = "simple"
    ADVANCED = "advanced"


class ForceModel(str, Enum):
    """Attractive spring force model."""

    FRUCHTERMAN_REINGOLD = "fruchterman_reingold"
    EADES = "eades"
    NEW = "new"


class RepulsiveForcesMethod(str, Enum):
    """Strategy used to compute repulsive forces."""

    EXACT = "exact"
    GRID_APPROXIMATION = "grid_approximation"
    NMM = "nmm"


class StopCriterion(str, Enum):
    """Condition that ends the force iteration on a level."""

    FIXED_ITERATIONS = "fixed_iterations"
    THRESHOLD = "threshold"
    FIXED_ITERATIONS_OR_THRESHOLD = "fixed_iterations_or_threshold"


class InitialPlacementForces(str, Enum):
    """Initial placement of the coarsest level."""

    UNIFORM_GRID = "uniform_grid"
    RANDOM_TIME = "random_time"
    RANDOM_SEEDED = "random_seeded"
    KEEP_POSITIONS = "keep_positions"


class ReducedTreeConstruction(str, Enum):
    """Construction order of the reduced bucket quadtree."""

    PATH_BY_PATH = "path_by_path"
    SUBTREE_BY_SUBTREE = "subtree_by_subtree"


class SmallestCellFinding(str, Enum):
    """How the smallest enclosing quadtree cell of a particle set is found."""

    ITERATIVELY = "iteratively"
    ALURU = "aluru"


# =============================================================================
# Options
# =============================================================================


@dataclass
class FMMMOptions:
    """
    All parameters of the FM^3 algorithm.

    Enum-valued fields accept either the enum member or its name/value as a
    string; ``clamped()`` normalizes them.
    """

    # High-level options
    use_high_level_options: bool = False
    page_format: PageFormat = PageFormat.SQUARE
    unit_edge_length: float = 100.0
    new_initial_placement: bool = False
    quality_vs_speed: QualityVsSpeed = QualityVsSpeed.BEAUTIFUL_AND_FAST

    # General
    random_seed: int = 100
    edge_length_measurement: EdgeLengthMeasurement = EdgeLengthMeasurement.BOUNDING_CIRCLE
    allowed_positions: AllowedPositions = AllowedPositions.INTEGER
    max_int_pos_exponent: int = 40

    # Divide et impera
    page_ratio: float = 1.0
    steps_for_rotating_components: int = 10
    tip_over: TipOver = TipOver.NO_GROWING_ROW
    min_dist_cc: float = 100.0
    presort: PreSort = PreSort.DECREASING_HEIGHT

    # Multilevel
    min_graph_size: int = 50
    galaxy_choice: GalaxyChoice = GalaxyChoice.NON_UNIFORM_PROB_LOWER_MASS
    random_tries: int = 20
    max_iter_change: MaxIterChange = MaxIterChange.LINEARLY_DECREASING
    max_iter_factor: int = 10
    initial_placement_mult: InitialPlacementMult = InitialPlacementMult.ADVANCED
    single_level: bool = False

    # Force calculation
    force_model: ForceModel = ForceModel.NEW
    spring_strength: float = 1.0
    rep_forces_strength: float = 1.0
    repulsive_forces: RepulsiveForcesMethod = RepulsiveForcesMethod.NMM
    stop_criterion: StopCriterion = StopCriterion.FIXED_ITERATIONS_OR_THRESHOLD
    threshold: float = 0.01
    fixed_iterations: int = 30
    force_scaling_factor: float = 0.05
    cool_temperature: bool = False
    cool_value: float = 0.99
    initial_placement_forces: InitialPlacementForces = InitialPlacementForces.RANDOM_SEEDED

    # Postprocessing
    resize_drawing: bool = True
    resizing_scalar: float = 1.0
    fine_tuning_iterations: int = 20
    fine_tune_scalar: float = 0.2
    adjust_post_rep_strength_dynamically: bool = True
    post_spring_strength: float = 2.0
    post_strength_of_rep_forces: float = 0.01

    # Repulsive force approximation
    fr_grid_quotient: int = 2
    nm_tree_construction: ReducedTreeConstruction = ReducedTreeConstruction.SUBTREE_BY_SUBTREE
    nm_small_cell: SmallestCellFinding = SmallestCellFinding.ITERATIVELY
    nm_particles_in_leaves: int = 25
    nm_precision: int = 4

    # Execution
    max_workers: int = 1

    def replace(self, **changes: Any) -> FMMMOptions:
        """Return a copy with the given fields replaced."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise TypeError(f"Unknown layout option(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)

    def clamped(self) -> FMMMOptions:
        """
        Return a copy with every out-of-domain value replaced by a safe default.

        Never raises. Unknown enum names fall back to the field default.
        """
        defaults = FMMMOptions()
        values: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            default = getattr(defaults, f.name)
            if isinstance(default, Enum):
                values[f.name] = _coerce_enum(type(default), value, default)
            elif isinstance(default, bool):
                values[f.name] = bool(value)
            else:
                values[f.name] = value

        values["unit_edge_length"] = _positive_float(values["unit_edge_length"], 1.0)
        values["random_seed"] = _int_at_least(values["random_seed"], 0, 1)
        exponent = _int_or(values["max_int_pos_exponent"], 31)
        values["max_int_pos_exponent"] = exponent if 31 <= exponent <= 51 else 31

        values["page_ratio"] = _positive_float(values["page_ratio"], 1.0)
        values["steps_for_rotating_components"] = _int_at_least(
            values["steps_for_rotating_components"], 0, 0
        )
        values["min_dist_cc"] = _positive_float(values["min_dist_cc"], 1.0)

        values["min_graph_size"] = _int_at_least(values["min_graph_size"], 2, 2)
        values["random_tries"] = _int_at_least(values["random_tries"], 1, 1)
        values["max_iter_factor"] = _int_at_least(values["max_iter_factor"], 1, 1)

        values["spring_strength"] = _positive_float(values["spring_strength"], 1.0)
        values["rep_forces_strength"] = _positive_float(values["rep_forces_strength"], 1.0)
        values["threshold"] = _positive_float(values["threshold"], 0.1)
        values["fixed_iterations"] = _int_at_least(values["fixed_iterations"], 1, 1)
        values["force_scaling_factor"] = _positive_float(values["force_scaling_factor"], 1.0)
        cool = _float_or(values["cool_value"], 0.99)
        values["cool_value"] = cool if 0 < cool <= 1 else 0.99

        values["resizing_scalar"] = _positive_float(values["resizing_scalar"], 1.0)
        values["fine_tuning_iterations"] = _int_at_least(values["fine_tuning_iterations"], 0, 0)
        scalar = _float_or(values["fine_tune_scalar"], 1.0)
        values["fine_tune_scalar"] = scalar if scalar >= 0 else 1.0
        values["post_spring_strength"] = _positive_float(values["post_spring_strength"], 1.0)
        values["post_strength_of_rep_forces"] = _positive_float(
            values["post_strength_of_rep_forces"], 1.0
        )

        values["fr_grid_quotient"] = _int_at_least(values["fr_grid_quotient"], 1, 2)
        values["nm_particles_in_leaves"] = _int_at_least(values["nm_particles_in_leaves"], 1, 1)
        values["nm_precision"] = _int_at_least(values["nm_precision"], 1, 1)

        values["max_workers"] = _int_at_least(values["max_workers"], 1, 1)
        return FMMMOptions(**values)

    def resolved(self) -> FMMMOptions:
        """
        Return the clamped options the algorithm actually runs with.

        With high-level options enabled, every low-level option is reset to
        its default and then derived from page format, unit edge length,
        new initial placement and quality tier. The random seed, the
        single-level switch and the worker count are preserved.
        """
        opts = self.clamped()
        if not opts.use_high_level_options:
            return opts

        if opts.page_format == PageFormat.SQUARE:
            page_ratio = 1.0
        elif opts.page_format == PageFormat.LANDSCAPE:
            page_ratio = 1.4142
        else:
            page_ratio = 0.7071

        if opts.new_initial_placement:
            placement = InitialPlacementForces.RANDOM_TIME
        else:
            placement = InitialPlacementForces.RANDOM_SEEDED

        fixed, fine, precision = _QUALITY_TIERS[opts.quality_vs_speed]

        return FMMMOptions(
            use_high_level_options=True,
            page_format=opts.page_format,
            unit_edge_length=opts.unit_edge_length,
            new_initial_placement=opts.new_initial_placement,
            quality_vs_speed=opts.quality_vs_speed,
            random_seed=opts.random_seed,
            single_level=opts.single_level,
            max_workers=opts.max_workers,
            page_ratio=page_ratio,
            initial_placement_forces=placement,
            fixed_iterations=fixed,
            fine_tuning_iterations=fine,
            nm_precision=precision,
        )


_QUALITY_TIERS: dict[QualityVsSpeed, tuple[int, int, int]] = {
    QualityVsSpeed.GORGEOUS_AND_EFFICIENT: (60, 40, 6),
    QualityVsSpeed.BEAUTIFUL_AND_FAST: (30, 20, 4),
    QualityVsSpeed.NICE_AND_INCREDIBLY_FAST: (15, 10, 2),
}


# =============================================================================
# Helpers
# =============================================================================


def _coerce_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """Map an enum member, value string or name string to ``enum_cls``."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip()
        try:
            return enum_cls(key.lower())
        except ValueError:
            pass
        try:
            return enum_cls[key.upper()]
        except KeyError:
            return default
    return default


def _float_or(value: Any, fallback: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return fallback
    return result if math.isfinite(result) else fallback


def _int_or(value: Any, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return fallback


def _positive_float(value: Any, fallback: float) -> float:
    result = _float_or(value, fallback)
    return result if result > 0 else fallback


def _int_at_least(value: Any, minimum: int, fallback: int) -> int:
    result = _int_or(value, fallback)
    return result if result >= minimum else fallback


__all__ = [
    "FMMMOptions",
    "PageFormat",
    "QualityVsSpeed",
    "EdgeLengthMeasurement",
    "AllowedPositions",
    "TipOver",
    "PreSort",
    "GalaxyChoice",
    "MaxIterChange",
    "InitialPlacementMult",
    "ForceModel",
    "RepulsiveForcesMethod",
    "StopCriterion",
    "InitialPlacementForces",
    "ReducedTreeConstruction",
    "SmallestCellFinding",
]
