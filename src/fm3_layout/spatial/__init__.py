"""
Spatial data structures for repulsive force approximation.

Provides the reduced bucket quadtree and the multipole expansions attached to
its cells by the NMM repulsion strategy.
"""

from .multipole import compute_expansions, evaluate_force, particle_expansion, shift_expansion
from .quadtree import MAX_LEVEL, QuadTree, QuadTreeNode

__all__ = [
    "MAX_LEVEL",
    "QuadTree",
    "QuadTreeNode",
    "compute_expansions",
    "evaluate_force",
    "particle_expansion",
    "shift_expansion",
]
