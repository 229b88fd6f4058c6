"""
Oscillation damping.

The angle between a vertex's previous and current displacement is quantized
into twelve 30-degree sectors. Each sector allows the new displacement to be
at most a fixed multiple of the old one: up to twice as long when moving on
in the same direction, a third as long when turning back. Longer
displacements are shortened to that limit.
"""

from __future__ import annotations

import math

import numpy as np

SECTOR_ANGLE = math.pi / 6

# Allowed growth factor per sector, counter-clockwise from the old direction
SECTOR_MULTIPLIERS = np.array(
    [2.0, 1.5, 1.0, 2.0 / 3.0, 0.5, 1.0 / 3.0, 1.0 / 3.0, 0.5, 2.0 / 3.0, 1.0, 1.5, 2.0]
)


def turning_angles(
    old_x: np.ndarray, old_y: np.ndarray, new_x: np.ndarray, new_y: np.ndarray
) -> np.ndarray:
    """Counter-clockwise angles in [0, 2*pi) from old to new vectors."""
    fi = np.arctan2(old_x * new_y - old_y * new_x, old_x * new_x + old_y * new_y)
    return np.where(fi < 0, fi + 2.0 * math.pi, fi)


def damp_oscillations(
    fx: np.ndarray,
    fy: np.ndarray,
    last_x: np.ndarray,
    last_y: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Shorten displacements that grow too much relative to the previous ones.

    Vertices whose old or new displacement is zero are left alone.

    Returns:
        The damped (fx, fy); the caller keeps them as the next "last" movement
    """
    norm_new = np.hypot(fx, fy)
    norm_old = np.hypot(last_x, last_y)
    active = (norm_new > 0) & (norm_old > 0)
    if not np.any(active):
        return fx.copy(), fy.copy()

    fi = turning_angles(last_x, last_y, fx, fy)
    sector = np.floor(fi / SECTOR_ANGLE).astype(np.int64) % 12
    limit = SECTOR_MULTIPLIERS[sector]
    damp = active & (norm_new > norm_old * limit)

    scale = np.ones_like(norm_new)
    scale[damp] = norm_old[damp] / norm_new[damp] * limit[damp]
    return fx * scale, fy * scale


__all__ = ["SECTOR_MULTIPLIERS", "turning_angles", "damp_oscillations"]
