"""Tests for the computation box, integer positions and edge crossings."""

import random

import numpy as np
import pytest

from fm3_layout.geometry import (
    ComputationBox,
    crossing_matrix,
    integer_bound,
    make_positions_integer,
    project_onto_square,
    separate_coincident,
)
from fm3_layout.graph import LayoutGraph


class TestComputationBox:
    """Tests for ComputationBox."""

    def test_from_positions(self):
        """The box has integer corner and a margin around the points."""
        box = ComputationBox.from_positions(np.array([0.0, 10.0]), np.array([0.0, 10.0]))
        assert box == ComputationBox(-1.0, -1.0, 13.0)
        assert box.x_max == 12.0

    def test_from_coincident_positions(self):
        """Coincident points get a box of side 20 n centred on them."""
        box = ComputationBox.from_positions(np.full(3, 5.0), np.full(3, 5.0))
        assert box.length == 60.0
        assert box.x_min == -25.0
        assert box.contains(np.full(3, 5.0), np.full(3, 5.0))

    def test_initial(self):
        """The initial box is 1.1 times the larger summed extent."""
        box = ComputationBox.initial(np.array([0.0, 20.0]), np.array([5.0, 5.0]))
        # Widths count as at least 10, so the sums are 30 and 20
        assert 33.0 <= box.length <= 34.0
        assert (box.x_min, box.y_min) == (0.0, 0.0)

    def test_contains(self):
        """Points on the border are inside."""
        box = ComputationBox(0.0, 0.0, 10.0)
        assert box.contains(np.array([0.0, 10.0]), np.array([10.0, 0.0]))
        assert not box.contains(np.array([10.5]), np.array([0.0]))

    def test_max_radius(self):
        """The first iteration moves at most a thousandth of the box."""
        box = ComputationBox(0.0, 0.0, 1000.0)
        assert box.max_radius(1) == 1.0
        assert box.max_radius(2) == 200.0


class TestSeparateCoincident:
    """Tests for moving apart coincident points."""

    def test_moves_duplicates(self):
        """Only the later duplicates move, by epsilon."""
        x = np.array([0.0, 0.0, 1.0])
        y = np.array([0.0, 0.0, 1.0])
        assert separate_coincident(x, y, random.Random(0))
        assert (x[0], y[0]) == (0.0, 0.0)
        assert np.isclose(np.hypot(x[1], y[1]), 0.1)
        assert (x[2], y[2]) == (1.0, 1.0)

    def test_nothing_to_do(self):
        """Distinct points are left alone."""
        x = np.array([0.0, 1.0])
        y = np.array([0.0, 0.0])
        assert not separate_coincident(x, y, random.Random(0))
        assert x.tolist() == [0.0, 1.0]

    def test_many_duplicates(self):
        """A pile of identical points becomes pairwise distinct."""
        graph = LayoutGraph.create(20)
        separate_coincident(graph.x, graph.y, random.Random(1))
        assert len(set(zip(graph.x.tolist(), graph.y.tolist()))) == 20


class TestIntegerPositions:
    """Tests for restricting coordinates to integers."""

    def test_project_onto_square(self):
        """Points outside are moved along the ray from the origin."""
        assert project_onto_square(200.0, 100.0, 100.0) == pytest.approx((100.0, 50.0))
        assert project_onto_square(-50.0, -400.0, 100.0) == pytest.approx((-12.5, -100.0))

    def test_make_positions_integer(self):
        """Positions are clipped to the square and rounded down."""
        x = np.array([1.7, -2.3, 300.0])
        y = np.array([0.5, 4.9, 0.0])
        make_positions_integer(x, y, 100.0)
        assert x.tolist() == [1.0, -3.0, 100.0]
        assert y.tolist() == [0.0, 4.0, 0.0]

    def test_integer_bound(self):
        """The bound grows with n^2 or is a power of two."""
        assert integer_bound(2.0, 3) == 1800.0
        assert integer_bound(2.0, 3, exponent=31) == 2.0**31


class TestCrossingMatrix:
    """Tests for detecting crossing edges."""

    def crossings(self, points, edges):
        x = np.array([p[0] for p in points], dtype=float)
        y = np.array([p[1] for p in points], dtype=float)
        sources = np.array([s for s, _ in edges])
        targets = np.array([t for _, t in edges])
        everything = np.arange(len(edges))
        return crossing_matrix(x, y, sources, targets, everything, everything)

    def test_crossing_diagonals(self):
        """The diagonals of a square cross each other."""
        result = self.crossings([(0, 0), (10, 10), (0, 10), (10, 0)], [(0, 1), (2, 3)])
        assert result.tolist() == [[False, True], [True, False]]

    def test_disjoint_segments(self):
        """Parallel sides do not cross."""
        result = self.crossings([(0, 0), (10, 0), (0, 5), (10, 5)], [(0, 1), (2, 3)])
        assert not result.any()

    def test_shared_endpoint(self):
        """Edges meeting in a vertex do not cross."""
        result = self.crossings([(0, 0), (10, 0), (0, 10)], [(0, 1), (0, 2), (1, 2)])
        assert not result.any()

    def test_touching_is_not_crossing(self):
        """An endpoint lying on another edge does not count."""
        result = self.crossings([(0, 0), (10, 0), (5, 0), (5, 5)], [(0, 1), (2, 3)])
        assert not result.any()
