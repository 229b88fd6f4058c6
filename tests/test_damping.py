"""Tests for oscillation damping."""

import math

import numpy as np

from fm3_layout.force.damping import SECTOR_MULTIPLIERS, damp_oscillations, turning_angles


def vec(length, degrees):
    """Helper returning one-element x, y arrays for a polar vector."""
    phi = math.radians(degrees)
    return np.array([length * math.cos(phi)]), np.array([length * math.sin(phi)])


class TestTurningAngles:
    """Tests for the counter-clockwise angle between displacements."""

    def test_quarter_turn(self):
        """A counter-clockwise quarter turn is pi/2."""
        ox, oy = vec(1, 0)
        nx, ny = vec(1, 90)
        assert np.isclose(turning_angles(ox, oy, nx, ny)[0], math.pi / 2)

    def test_clockwise_turn_wraps(self):
        """A clockwise quarter turn is 3*pi/2."""
        ox, oy = vec(1, 0)
        nx, ny = vec(1, -90)
        assert np.isclose(turning_angles(ox, oy, nx, ny)[0], 3 * math.pi / 2)


class TestDampOscillations:
    """Tests for sector-based displacement limiting."""

    def test_multipliers_symmetric(self):
        """Sector multipliers mirror around the reversal direction."""
        assert SECTOR_MULTIPLIERS.tolist() == SECTOR_MULTIPLIERS[::-1].tolist()
        assert SECTOR_MULTIPLIERS.max() == 2.0
        assert np.isclose(SECTOR_MULTIPLIERS.min(), 1.0 / 3.0)

    def test_small_growth_unchanged(self):
        """Moving on in the same direction may double the step."""
        ox, oy = vec(1.0, 10)
        nx, ny = vec(1.5, 15)
        dx, dy = damp_oscillations(nx, ny, ox, oy)
        assert np.allclose(dx, nx)
        assert np.allclose(dy, ny)

    def test_large_growth_limited(self):
        """A step longer than twice the previous one is shortened."""
        ox, oy = vec(1.0, 10)
        nx, ny = vec(3.0, 15)
        dx, dy = damp_oscillations(nx, ny, ox, oy)
        assert np.isclose(math.hypot(dx[0], dy[0]), 2.0)
        # Direction is kept
        assert np.isclose(math.atan2(dy[0], dx[0]), math.radians(15))

    def test_reversal_limited_to_third(self):
        """Turning back allows a third of the previous length."""
        ox, oy = vec(3.0, 0)
        nx, ny = vec(3.0, 175)
        dx, dy = damp_oscillations(nx, ny, ox, oy)
        assert np.isclose(math.hypot(dx[0], dy[0]), 1.0)

    def test_sideways_sector(self):
        """About 100 degrees falls into the two-thirds sector."""
        ox, oy = vec(3.0, 0)
        nx, ny = vec(3.0, 100)
        dx, dy = damp_oscillations(nx, ny, ox, oy)
        assert np.isclose(math.hypot(dx[0], dy[0]), 2.0)

    def test_zero_previous_movement(self):
        """Without a previous movement nothing is damped."""
        nx, ny = vec(5.0, 30)
        dx, dy = damp_oscillations(nx, ny, np.zeros(1), np.zeros(1))
        assert np.allclose(dx, nx)
        assert np.allclose(dy, ny)

    def test_vectorized(self):
        """Each vertex is damped independently."""
        fx = np.array([3.0, 1.0])
        fy = np.array([0.0, 0.0])
        last_x = np.array([1.0, 1.0])
        last_y = np.array([0.0, 0.0])
        dx, dy = damp_oscillations(fx, fy, last_x, last_y)
        assert np.allclose(dx, [2.0, 1.0])
        assert np.allclose(dy, [0.0, 0.0])
