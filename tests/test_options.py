"""Tests for FMMMOptions defaults, clamping and high-level resolution."""

import math

import pytest

from fm3_layout.options import (
    AllowedPositions,
    FMMMOptions,
    InitialPlacementForces,
    PageFormat,
    QualityVsSpeed,
    RepulsiveForcesMethod,
)


class TestDefaults:
    """Tests for the default option values."""

    def test_defaults(self):
        """Defaults match the standard FM^3 configuration."""
        opts = FMMMOptions()
        assert opts.unit_edge_length == 100.0
        assert opts.random_seed == 100
        assert opts.allowed_positions == AllowedPositions.INTEGER
        assert opts.repulsive_forces == RepulsiveForcesMethod.NMM
        assert opts.min_graph_size == 50
        assert opts.fixed_iterations == 30
        assert opts.fine_tuning_iterations == 20
        assert opts.nm_particles_in_leaves == 25
        assert opts.nm_precision == 4
        assert opts.max_workers == 1

    def test_defaults_survive_clamping(self):
        """Clamping the defaults changes nothing."""
        assert FMMMOptions().clamped() == FMMMOptions()


class TestReplace:
    """Tests for FMMMOptions.replace()."""

    def test_replace_returns_copy(self):
        """replace() leaves the original untouched."""
        opts = FMMMOptions()
        other = opts.replace(unit_edge_length=5.0)
        assert other.unit_edge_length == 5.0
        assert opts.unit_edge_length == 100.0

    def test_unknown_option(self):
        """Unknown option names raise TypeError."""
        with pytest.raises(TypeError, match="no_such_option"):
            FMMMOptions().replace(no_such_option=1)


class TestClamped:
    """Tests for replacing out-of-domain values."""

    @pytest.mark.parametrize(
        "field,value,expected",
        [
            ("unit_edge_length", -5.0, 1.0),
            ("unit_edge_length", 0.0, 1.0),
            ("unit_edge_length", math.nan, 1.0),
            ("unit_edge_length", "abc", 1.0),
            ("random_seed", -3, 1),
            ("max_int_pos_exponent", 10, 31),
            ("max_int_pos_exponent", 60, 31),
            ("max_int_pos_exponent", 45, 45),
            ("page_ratio", -1.0, 1.0),
            ("steps_for_rotating_components", -2, 0),
            ("min_dist_cc", 0.0, 1.0),
            ("min_graph_size", 1, 2),
            ("random_tries", 0, 1),
            ("max_iter_factor", 0, 1),
            ("threshold", -0.5, 0.1),
            ("fixed_iterations", 0, 1),
            ("force_scaling_factor", 0.0, 1.0),
            ("cool_value", 1.5, 0.99),
            ("cool_value", 0.0, 0.99),
            ("fine_tuning_iterations", -1, 0),
            ("fine_tune_scalar", -0.1, 1.0),
            ("fr_grid_quotient", 0, 2),
            ("nm_particles_in_leaves", 0, 1),
            ("nm_precision", 0, 1),
            ("max_workers", 0, 1),
        ],
    )
    def test_out_of_domain(self, field, value, expected):
        """Invalid values are replaced by safe defaults."""
        opts = FMMMOptions(**{field: value}).clamped()
        assert getattr(opts, field) == expected

    def test_enum_from_string(self):
        """Enum fields accept values and names, case-insensitively."""
        opts = FMMMOptions(repulsive_forces="exact", page_format="LANDSCAPE").clamped()
        assert opts.repulsive_forces is RepulsiveForcesMethod.EXACT
        assert opts.page_format is PageFormat.LANDSCAPE

    def test_unknown_enum_falls_back(self):
        """Unknown enum strings fall back to the field default."""
        opts = FMMMOptions(repulsive_forces="quantum").clamped()
        assert opts.repulsive_forces is RepulsiveForcesMethod.NMM

    def test_never_raises(self):
        """Arbitrary garbage is absorbed."""
        opts = FMMMOptions(nm_precision=None, page_ratio=object(), tip_over=42).clamped()
        assert opts.nm_precision == 1
        assert opts.page_ratio == 1.0


class TestResolved:
    """Tests for deriving low-level options from high-level ones."""

    def test_low_level_untouched(self):
        """Without high-level options resolving only clamps."""
        opts = FMMMOptions(fixed_iterations=7, page_ratio=3.0)
        resolved = opts.resolved()
        assert resolved.fixed_iterations == 7
        assert resolved.page_ratio == 3.0

    @pytest.mark.parametrize(
        "tier,fixed,fine,precision",
        [
            (QualityVsSpeed.GORGEOUS_AND_EFFICIENT, 60, 40, 6),
            (QualityVsSpeed.BEAUTIFUL_AND_FAST, 30, 20, 4),
            (QualityVsSpeed.NICE_AND_INCREDIBLY_FAST, 15, 10, 2),
        ],
    )
    def test_quality_tiers(self, tier, fixed, fine, precision):
        """Each tier sets iterations and multipole precision."""
        opts = FMMMOptions(use_high_level_options=True, quality_vs_speed=tier).resolved()
        assert opts.fixed_iterations == fixed
        assert opts.fine_tuning_iterations == fine
        assert opts.nm_precision == precision

    @pytest.mark.parametrize(
        "page_format,ratio",
        [(PageFormat.SQUARE, 1.0), (PageFormat.LANDSCAPE, 1.4142), (PageFormat.PORTRAIT, 0.7071)],
    )
    def test_page_format(self, page_format, ratio):
        """The page format decides the page ratio."""
        opts = FMMMOptions(use_high_level_options=True, page_format=page_format).resolved()
        assert opts.page_ratio == ratio

    def test_new_initial_placement(self):
        """New initial placement switches to time-seeded randomness."""
        opts = FMMMOptions(use_high_level_options=True, new_initial_placement=True).resolved()
        assert opts.initial_placement_forces == InitialPlacementForces.RANDOM_TIME
        opts = FMMMOptions(use_high_level_options=True).resolved()
        assert opts.initial_placement_forces == InitialPlacementForces.RANDOM_SEEDED

    def test_low_level_reset(self):
        """Low-level options are reset to defaults under high-level control."""
        opts = FMMMOptions(
            use_high_level_options=True,
            repulsive_forces=RepulsiveForcesMethod.EXACT,
            min_graph_size=7,
        ).resolved()
        assert opts.repulsive_forces == RepulsiveForcesMethod.NMM
        assert opts.min_graph_size == 50

    def test_preserved_fields(self):
        """Seed, unit edge length, single level and workers are kept."""
        opts = FMMMOptions(
            use_high_level_options=True,
            random_seed=7,
            unit_edge_length=40.0,
            single_level=True,
            max_workers=3,
        ).resolved()
        assert opts.random_seed == 7
        assert opts.unit_edge_length == 40.0
        assert opts.single_level
        assert opts.max_workers == 3
