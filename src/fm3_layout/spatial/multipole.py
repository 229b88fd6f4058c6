"""
Multipole expansions of the logarithmic potential in complex notation.

A particle at z_j repels a point z with force (z - z_j) / |z - z_j|^2, which
in complex form is conj(1 / (z - z_j)), the conjugated derivative of
log(z - z_j). The combined potential of a cluster around z0 is expanded as

    phi(z) = a0 * log(z - z0) + sum_{k=1..p} a_k / (z - z0)^k

with a0 the particle count and a_k = -sum_j (z_j - z0)^k / k.
"""

from __future__ import annotations

from math import comb

import numpy as np

from .quadtree import QuadTree, QuadTreeNode


def particle_expansion(points: np.ndarray, center: complex, precision: int) -> np.ndarray:
    """
    Coefficients [a0, a1, ..., ap] for the particles ``points`` about ``center``.

    Args:
        points: Complex particle positions
        center: Expansion centre
        precision: Number of terms p beyond the logarithmic one
    """
    coeffs = np.zeros(precision + 1, dtype=complex)
    coeffs[0] = points.shape[0]
    offset = points - center
    power = np.ones_like(offset)
    for k in range(1, precision + 1):
        power = power * offset
        coeffs[k] = -power.sum() / k
    return coeffs


def shift_expansion(coeffs: np.ndarray, shift: complex) -> np.ndarray:
    """
    Translate an expansion to a new centre.

    Args:
        coeffs: Coefficients about the old centre
        shift: Old centre minus new centre

    Returns:
        Coefficients about the new centre, valid outside the enclosing circle
    """
    precision = coeffs.shape[0] - 1
    a0 = coeffs[0]
    result = np.zeros_like(coeffs)
    result[0] = a0
    powers = np.ones(precision + 1, dtype=complex)
    for k in range(1, precision + 1):
        powers[k] = powers[k - 1] * shift
    for order in range(1, precision + 1):
        value = -a0 * powers[order] / order
        for k in range(1, order + 1):
            value += coeffs[k] * powers[order - k] * comb(order - 1, k - 1)
        result[order] = value
    return result


def evaluate_force(coeffs: np.ndarray, center: complex, points: np.ndarray) -> np.ndarray:
    """
    Repulsive force exerted by an expansion on the far-away ``points``.

    Returns:
        Complex forces, real part x and imaginary part y
    """
    w = points - center
    inv = 1.0 / w
    derivative = coeffs[0] * inv
    inv_power = inv
    for k in range(1, coeffs.shape[0]):
        inv_power = inv_power * inv
        derivative = derivative - k * coeffs[k] * inv_power
    return np.conj(derivative)


def compute_expansions(tree: QuadTree, points: np.ndarray, precision: int) -> None:
    """
    Attach multipole coefficients to every node of ``tree``.

    Leaves are expanded directly from their particles; internal nodes
    combine the shifted expansions of their children.
    """
    for node in tree.nodes(order="post"):
        center = complex(node.x, node.y)
        if node.is_leaf():
            assert node.particles is not None
            node.multipole = particle_expansion(points[node.particles], center, precision)
            continue
        total = np.zeros(precision + 1, dtype=complex)
        for child in _children(node):
            assert child.multipole is not None
            total += shift_expansion(child.multipole, complex(child.x, child.y) - center)
        node.multipole = total


def _children(node: QuadTreeNode) -> list[QuadTreeNode]:
    return [c for c in node.children or () if c is not None]


__all__ = [
    "particle_expansion",
    "shift_expansion",
    "evaluate_force",
    "compute_expansions",
]
