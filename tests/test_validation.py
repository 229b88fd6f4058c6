"""Tests for input validation module."""

import math

import pytest

from fm3_layout import Link, Node
from fm3_layout.validation import (
    InvalidLinkError,
    InvalidNodeError,
    ValidationError,
    sanitize_length,
    sanitize_size,
    validate_link_indices,
    validate_node_sizes,
)


class TestLinkValidation:
    """Tests for link index validation."""

    def test_valid_links(self):
        """Valid links return empty issues list."""
        links = [Link(0, 1), Link(1, 2)]
        issues = validate_link_indices(links, node_count=3)
        assert issues == []

    def test_valid_links_with_node_objects(self):
        """Links with Node objects validate correctly."""
        n0 = Node(index=0)
        n1 = Node(index=1)
        links = [Link(n0, n1)]
        issues = validate_link_indices(links, node_count=2)
        assert issues == []

    def test_dict_links(self):
        """Dict links are read by key."""
        issues = validate_link_indices([{"source": 0, "target": 4}], node_count=3, strict=False)
        assert issues == [(0, "Link 0: target index 4 out of bounds [0, 3)")]

    def test_out_of_bounds_source_strict(self):
        """Out of bounds source raises in strict mode."""
        links = [Link(10, 1)]
        with pytest.raises(InvalidLinkError, match="source index 10 out of bounds"):
            validate_link_indices(links, node_count=3, strict=True)

    def test_out_of_bounds_target_strict(self):
        """Out of bounds target raises in strict mode."""
        links = [Link(0, 99)]
        with pytest.raises(InvalidLinkError, match="target index 99 out of bounds"):
            validate_link_indices(links, node_count=3, strict=True)

    def test_negative_source_raises(self):
        """Negative source index raises."""
        links = [Link(-1, 1)]
        with pytest.raises(InvalidLinkError, match="source index -1 out of bounds"):
            validate_link_indices(links, node_count=3, strict=True)

    def test_node_without_index(self):
        """A Node endpoint without an index is reported."""
        links = [Link(Node(), 1)]
        issues = validate_link_indices(links, node_count=3, strict=False)
        assert issues == [(0, "Link 0: source is None")]

    def test_non_strict_returns_issues(self):
        """Non-strict mode returns issues list without raising."""
        links = [Link(0, 1), Link(10, 20)]
        issues = validate_link_indices(links, node_count=3, strict=False)
        # Link 1 has both source (10) and target (20) out of bounds
        assert len(issues) == 2
        assert {i for i, _ in issues} == {1}

    def test_empty_links_valid(self):
        """Empty links list is valid."""
        issues = validate_link_indices([], node_count=0)
        assert issues == []

    def test_boundary_indices_valid(self):
        """Boundary indices (0 and n-1) are valid."""
        links = [Link(0, 2)]
        issues = validate_link_indices(links, node_count=3)
        assert issues == []


class TestNodeSizeValidation:
    """Tests for node size validation."""

    def test_missing_sizes_valid(self):
        """Nodes without sizes are point-sized and valid."""
        assert validate_node_sizes([Node(), Node()]) == []

    def test_negative_width_raises(self):
        """Negative width raises InvalidNodeError."""
        with pytest.raises(InvalidNodeError, match="width must be finite and >= 0"):
            validate_node_sizes([Node(width=-1.0)])

    def test_infinite_height_raises(self):
        """Infinite height raises InvalidNodeError."""
        with pytest.raises(InvalidNodeError, match="height must be finite"):
            validate_node_sizes([Node(height=math.inf)])

    def test_non_numeric_size(self):
        """Non-numeric sizes are reported."""
        issues = validate_node_sizes([Node(width="big")], strict=False)
        assert issues == [(0, "Node 0: width 'big' is not a number")]

    def test_errors_are_value_errors(self):
        """Validation errors derive from ValueError."""
        assert issubclass(InvalidNodeError, ValidationError)
        assert issubclass(InvalidLinkError, ValidationError)
        assert issubclass(ValidationError, ValueError)


class TestSanitize:
    """Tests for repairing sizes and lengths."""

    @pytest.mark.parametrize(
        "value,expected",
        [(None, 0.0), (12, 12.0), ("7.5", 7.5), (-3.0, 0.0), (math.nan, 0.0), ("x", 0.0)],
    )
    def test_sanitize_size(self, value, expected):
        """Missing or invalid sizes become 0."""
        assert sanitize_size(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(None, 1.0), (2.5, 2.5), (0.0, 1.0), (-1.0, 1.0), (math.inf, 1.0), ([], 1.0)],
    )
    def test_sanitize_length(self, value, expected):
        """Missing or non-positive lengths become 1."""
        assert sanitize_length(value) == expected


class TestLinkConstructorValidation:
    """Tests for Link constructor validation."""

    def test_link_none_source_raises(self):
        """Link with None source raises ValueError."""
        with pytest.raises(ValueError, match="source cannot be None"):
            Link(None, 1)  # type: ignore

    def test_link_none_target_raises(self):
        """Link with None target raises ValueError."""
        with pytest.raises(ValueError, match="target cannot be None"):
            Link(0, None)  # type: ignore

    def test_link_valid_node_objects(self):
        """Link with valid Node objects works."""
        n0 = Node(index=0)
        n1 = Node(index=1)
        link = Link(n0, n1, length=2.0)
        assert link.source is n0
        assert link.target is n1
        assert link.length == 2.0


class TestBaseLayoutValidation:
    """Tests for BaseLayout validation integration."""

    def test_validate_method_catches_bad_links(self):
        """BaseLayout.validate() catches invalid link indices."""
        from fm3_layout import FMMMLayout

        layout = FMMMLayout(
            nodes=[{}, {}],  # 2 nodes
            links=[{"source": 0, "target": 99}],  # Invalid target
        )

        with pytest.raises(InvalidLinkError):
            layout.validate()

    def test_validate_method_catches_bad_sizes(self):
        """BaseLayout.validate() catches invalid node sizes."""
        from fm3_layout import FMMMLayout

        layout = FMMMLayout(nodes=[{"width": 10, "height": -10}])

        with pytest.raises(InvalidNodeError):
            layout.validate()

    def test_validate_method_passes_valid_config(self):
        """BaseLayout.validate() passes valid configuration."""
        from fm3_layout import FMMMLayout

        layout = FMMMLayout(
            nodes=[{}, {}, {}],
            links=[{"source": 0, "target": 1}, {"source": 1, "target": 2}],
        )

        # Should not raise
        result = layout.validate()
        assert result is layout  # Returns self for chaining
