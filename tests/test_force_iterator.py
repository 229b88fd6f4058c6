"""Tests for spring force models and the per-level force iterator."""

import random
import warnings

import numpy as np
import pytest

from fm3_layout.force import ConvergenceWarning, ForceIterator, max_mult_iter
from fm3_layout.force import iterator as iterator_module
from fm3_layout.force.models import attraction_scalar, attractive_forces
from fm3_layout.force.repulsion import ExactRepulsion
from fm3_layout.geometry import ComputationBox
from fm3_layout.graph import LayoutGraph
from fm3_layout.options import (
    AllowedPositions,
    FMMMOptions,
    ForceModel,
    MaxIterChange,
    RepulsiveForcesMethod,
    StopCriterion,
)


def create_cycle(n, length=100.0, seed=0):
    """Helper building a cycle with random positions."""
    rng = np.random.default_rng(seed)
    edges = [(i, (i + 1) % n) for i in range(n)]
    return LayoutGraph.create(
        n,
        edges,
        lengths=[length] * n,
        x=rng.uniform(0, 300, n),
        y=rng.uniform(0, 300, n),
    )


def free_options(**kwargs):
    """Helper: unrestricted positions, exact repulsion, constant iteration bound."""
    base = dict(
        allowed_positions=AllowedPositions.ALL,
        repulsive_forces=RepulsiveForcesMethod.EXACT,
        max_iter_change=MaxIterChange.CONSTANT,
    )
    base.update(kwargs)
    return FMMMOptions(**base).clamped()


# =============================================================================
# Spring Models
# =============================================================================


class TestAttraction:
    """Tests for attractive force models."""

    def test_fruchterman_reingold(self):
        """FR grows with d^2 / L^3."""
        s = attraction_scalar(ForceModel.FRUCHTERMAN_REINGOLD, np.array([100.0]), np.array([100.0]))
        assert np.isclose(s[0], 0.01)

    @pytest.mark.parametrize("model", [ForceModel.EADES, ForceModel.NEW])
    def test_log_models_vanish_at_ideal_length(self, model):
        """Logarithmic models have no force at the ideal length."""
        s = attraction_scalar(model, np.array([50.0]), np.array([50.0]))
        assert np.isclose(s[0], 0.0)

    def test_log_models_push_when_short(self):
        """Logarithmic models are negative below the ideal length."""
        s = attraction_scalar(ForceModel.NEW, np.array([25.0]), np.array([50.0]))
        assert s[0] < 0

    def test_zero_distance(self):
        """Zero distance yields zero force."""
        s = attraction_scalar(ForceModel.EADES, np.array([0.0]), np.array([10.0]))
        assert s[0] == 0.0

    def test_forces_along_edge(self):
        """Spring forces pull the endpoints towards each other."""
        g = LayoutGraph.create(2, [(0, 1)], lengths=[100.0], x=[0.0, 200.0], y=[0.0, 0.0])
        fx, fy = attractive_forces(g, ForceModel.FRUCHTERMAN_REINGOLD)
        assert np.isclose(fx[0], 0.04)
        assert np.isclose(fx[1], -0.04)
        assert np.allclose(fy, 0.0)

    def test_no_edges(self):
        """A graph without edges has no spring forces."""
        g = LayoutGraph.create(3)
        fx, fy = attractive_forces(g, ForceModel.NEW)
        assert not fx.any() and not fy.any()


# =============================================================================
# Iteration Bounds
# =============================================================================


class TestMaxMultIter:
    """Tests for the per-level iteration bound."""

    def test_constant(self):
        """Constant change always runs the fixed number of iterations."""
        opts = FMMMOptions(max_iter_change=MaxIterChange.CONSTANT)
        assert max_mult_iter(opts, 3, 5, 1000) == 30
        assert max_mult_iter(opts, 0, 5, 1000) == 30

    def test_linearly_decreasing(self):
        """Linear change goes from factor * fixed down to fixed."""
        opts = FMMMOptions(max_iter_change=MaxIterChange.LINEARLY_DECREASING)
        assert max_mult_iter(opts, 4, 4, 1000) == 300
        assert max_mult_iter(opts, 2, 4, 1000) == 165
        assert max_mult_iter(opts, 0, 4, 1000) == 30

    def test_rapidly_decreasing(self):
        """Rapid change uses full, half and quarter extra iterations."""
        opts = FMMMOptions(max_iter_change=MaxIterChange.RAPIDLY_DECREASING)
        assert max_mult_iter(opts, 5, 5, 1000) == 300
        assert max_mult_iter(opts, 4, 5, 1000) == 165
        assert max_mult_iter(opts, 3, 5, 1000) == 97
        assert max_mult_iter(opts, 2, 5, 1000) == 30

    def test_small_graph_minimum(self):
        """Graphs with at most 500 vertices run at least 100 iterations."""
        opts = FMMMOptions(max_iter_change=MaxIterChange.CONSTANT)
        assert max_mult_iter(opts, 0, 0, 500) == 100
        assert max_mult_iter(opts, 0, 0, 501) == 30


# =============================================================================
# Force Iterator
# =============================================================================


class TestForceIterator:
    """Tests for running the force simulation on one level."""

    def test_fixed_iterations(self):
        """Fixed iterations run exactly the level's bound."""
        g = create_cycle(6)
        events = []
        opts = free_options(stop_criterion=StopCriterion.FIXED_ITERATIONS)
        it = ForceIterator(opts, random.Random(1), listener=events.append)
        it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))
        assert it.iterations_run == 100
        assert len(events) == 100
        assert events[-1]["iteration"] == 100
        assert events[-1]["level"] == 0
        assert set(events[0]) >= {"type", "alpha", "level", "iteration", "average_force"}

    def test_box_contains_positions(self):
        """After every iteration the box encloses all vertices."""
        g = create_cycle(8)
        opts = free_options(stop_criterion=StopCriterion.FIXED_ITERATIONS)
        it = ForceIterator(opts, random.Random(2))
        box = it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))
        assert box.contains(g.x, g.y)
        for i in range(1, 6):
            it.step(g, i, 0)
            assert it.box.contains(g.x, g.y)

    def test_single_vertex_untouched(self):
        """A single vertex does not move."""
        g = LayoutGraph.create(1, x=[5.0], y=[7.0])
        it = ForceIterator(free_options(), random.Random(0))
        it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))
        assert g.x.tolist() == [5.0]
        assert it.iterations_run == 0

    def test_threshold_stops_early(self):
        """A large threshold ends the loop after the first iteration."""
        g = create_cycle(5)
        opts = free_options(stop_criterion=StopCriterion.THRESHOLD, threshold=1e9)
        it = ForceIterator(opts, random.Random(3))
        it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))
        assert it.iterations_run == 1

    def test_threshold_convergence(self):
        """Under the threshold criterion the average force drops below the threshold."""
        g = create_cycle(6)
        events = []
        opts = free_options(stop_criterion=StopCriterion.THRESHOLD, threshold=0.01)
        it = ForceIterator(opts, random.Random(10), listener=events.append)
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))

        forces = [event["average_force"] for event in events]
        assert forces[-1] < 0.01
        assert all(f >= 0.01 for f in forces[:-1])
        assert len(forces) < iterator_module.ITERBOUND
        window = min(10, len(forces))
        assert np.mean(forces[-window:]) < np.mean(forces[:window])

    def test_iteration_ceiling_warns(self, monkeypatch):
        """Hitting the iteration ceiling emits a ConvergenceWarning."""
        monkeypatch.setattr(iterator_module, "ITERBOUND", 20)
        g = create_cycle(5)
        opts = free_options(stop_criterion=StopCriterion.THRESHOLD, threshold=1e-300)
        it = ForceIterator(opts, random.Random(4))
        with pytest.warns(ConvergenceWarning):
            it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))
        assert it.iterations_run == 20

    def test_coincident_vertices_separated(self):
        """Vertices sharing a position are moved apart."""
        g = LayoutGraph.create(3, [(0, 1), (1, 2)], lengths=[10.0, 10.0])
        it = ForceIterator(free_options(), random.Random(5))
        it.step(g, 1, 0)
        points = set(zip(g.x.tolist(), g.y.tolist()))
        assert len(points) == 3

    def test_non_finite_forces_zeroed(self):
        """A vertex with a non-finite force stays where it is."""

        class BrokenRepulsion(ExactRepulsion):
            def compute(self, x, y):
                fx, fy = super().compute(x, y)
                fx[0] = np.nan
                return fx, fy

        g = create_cycle(4)
        x0, y0 = float(g.x[0]), float(g.y[0])
        it = ForceIterator(free_options(), random.Random(6), repulsion=BrokenRepulsion())
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            it.step(g, 1, 0)
        assert g.x[0] == x0 and g.y[0] == y0
        assert np.all(np.isfinite(g.x)) and np.all(np.isfinite(g.y))

    def test_integer_positions(self):
        """Restricted positions are snapped to integers before moving."""
        g = create_cycle(4)
        opts = FMMMOptions(
            allowed_positions=AllowedPositions.INTEGER,
            repulsive_forces=RepulsiveForcesMethod.EXACT,
        )
        it = ForceIterator(opts, random.Random(7))
        it.step(g, 1, 0)
        # The step snapped before moving; snapping again changes less than 1
        before = g.x.copy()
        it._snap_to_integer(g)
        assert np.all(np.abs(before - g.x) < 1.0)
        assert np.all(g.x == np.floor(g.x))

    def test_postprocess_matches_ideal_length(self):
        """Resizing makes the summed edge lengths equal the ideal ones."""
        g = create_cycle(6, length=80.0)
        opts = free_options(stop_criterion=StopCriterion.FIXED_ITERATIONS)
        it = ForceIterator(opts, random.Random(8))
        box = it.run_level(g, 0, 0, ComputationBox.from_positions(g.x, g.y))
        it.postprocess(g, box)
        dx, dy = g.edge_vectors()
        assert np.isclose(np.hypot(dx, dy).sum(), 6 * 80.0)

    def test_cooling(self):
        """With cooling enabled the cool factor decays geometrically."""
        g = create_cycle(4)
        opts = free_options(cool_temperature=True, cool_value=0.5)
        it = ForceIterator(opts, random.Random(9))
        it.step(g, 1, 0)
        assert it.cool_factor == 0.5
        it.step(g, 2, 0)
        assert it.cool_factor == 0.25
