"""Multilevel hierarchy: solar-system coarsening and level-by-level placement."""

from .coarsening import MAX_LEVEL, Level, Role, build_hierarchy
from .placement import initial_placement, interpolate, untangle_crossings

__all__ = [
    "MAX_LEVEL",
    "Level",
    "Role",
    "build_hierarchy",
    "initial_placement",
    "interpolate",
    "untangle_crossings",
]
