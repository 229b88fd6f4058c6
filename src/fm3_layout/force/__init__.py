"""
Force calculation for the FM^3 layout.

This module provides the pieces of one force iteration:
- Spring (attractive) force models
- Repulsion strategies: exact, grid approximation and NMM
- Oscillation damping
- ForceIterator: the per-level simulation loop and post-processing
"""

from .damping import damp_oscillations
from .iterator import ConvergenceWarning, ForceIterator, max_mult_iter
from .models import attraction_scalar, attractive_forces
from .repulsion import (
    ExactRepulsion,
    GridRepulsion,
    MultipoleRepulsion,
    RepulsionStrategy,
    make_repulsion,
)

__all__ = [
    "ConvergenceWarning",
    "ForceIterator",
    "max_mult_iter",
    "attraction_scalar",
    "attractive_forces",
    "damp_oscillations",
    "RepulsionStrategy",
    "ExactRepulsion",
    "GridRepulsion",
    "MultipoleRepulsion",
    "make_repulsion",
]
