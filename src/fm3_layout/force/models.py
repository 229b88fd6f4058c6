"""
Attractive spring force models.

Each model maps the current edge length d and the ideal edge length L to a
scalar s(d, L); the force on the source endpoint is s / d times the vector
from source to target, and the target receives the opposite force.

- Fruchterman-Reingold: s = d^2 / L^3
- Eades: s = 10 * log2(d / L) / L
- New: s = log2(d / L) * d^2 / L^3
"""

from __future__ import annotations

import numpy as np

from ..geometry import POS_BIG_LIMIT, POS_SMALL_LIMIT
from ..graph import LayoutGraph
from ..options import ForceModel

EADES_CONSTANT = 10.0


def attraction_scalar(model: ForceModel, d: np.ndarray, ideal: np.ndarray) -> np.ndarray:
    """
    Scalar spring force for distances ``d`` and ideal lengths ``ideal``.

    Zero distances yield zero.
    """
    d = np.asarray(d, dtype=float)
    ideal = np.asarray(ideal, dtype=float)
    result = np.zeros_like(d)
    positive = d > 0
    dp = d[positive]
    lp = ideal[positive] if ideal.shape else np.full_like(dp, float(ideal))
    if model == ForceModel.FRUCHTERMAN_REINGOLD:
        result[positive] = dp * dp / (lp * lp * lp)
    elif model == ForceModel.EADES:
        result[positive] = EADES_CONSTANT * np.log2(dp / lp) / lp
    else:
        result[positive] = np.log2(dp / lp) * dp * dp / (lp * lp * lp)
    return result


def attractive_forces(graph: LayoutGraph, model: ForceModel) -> tuple[np.ndarray, np.ndarray]:
    """
    Sum of spring forces at every vertex.

    Edges whose length is zero or outside the representable range contribute
    nothing.

    Returns:
        (fx, fy) arrays of length n
    """
    fx = np.zeros(graph.n)
    fy = np.zeros(graph.n)
    if graph.m == 0:
        return fx, fy

    dx, dy = graph.edge_vectors()
    d = np.hypot(dx, dy)
    usable = (d > POS_SMALL_LIMIT) & (d < POS_BIG_LIMIT)
    scalar = np.zeros_like(d)
    scalar[usable] = attraction_scalar(model, d[usable], graph.lengths[usable]) / d[usable]

    ex = scalar * dx
    ey = scalar * dy
    np.add.at(fx, graph.sources, ex)
    np.add.at(fy, graph.sources, ey)
    np.subtract.at(fx, graph.targets, ex)
    np.subtract.at(fy, graph.targets, ey)
    return fx, fy


__all__ = ["attraction_scalar", "attractive_forces"]
