"""Tests for the schema registry."""

import pytest

from perf_assessment.core.errors import SchemaError, UnknownMetricError
from perf_assessment.schema import (
    DEFAULT_REGISTRY,
    RATING_LABELS,
    Metric,
    SchemaRegistry,
    Theme,
    rating_label,
)


class TestDefaultRegistry:
    """Tests for the built-in themes."""

    def test_has_nineteen_metrics_in_four_themes(self):
        """Test the default schema size."""
        assert len(DEFAULT_REGISTRY.list_themes()) == 4
        assert len(DEFAULT_REGISTRY) == 19
        assert len(DEFAULT_REGISTRY.list_metric_ids()) == 19

    def test_theme_order(self):
        """Test themes keep their declared order."""
        names = [t.name for t in DEFAULT_REGISTRY.list_themes()]
        assert names == [
            "Strategic Vision",
            "Focus and Engagement",
            "Autonomy and Change",
            "Stakeholders and Team",
        ]

    def test_ordered_ids_follow_theme_then_metric_order(self):
        """Test flattened order starts and ends where expected."""
        ids = DEFAULT_REGISTRY.ordered_metric_ids()
        assert ids[:4] == ("sharedVision", "strategy", "businessAlignment", "customerFocus")
        assert ids[-1] == "subordinatesForSuccess"

    def test_theme_of(self):
        """Test metric to theme lookup."""
        assert DEFAULT_REGISTRY.theme_of("engagement").name == "Focus and Engagement"
        assert DEFAULT_REGISTRY.metric("workAutonomously").label == "Works Autonomously"

    def test_unknown_metric_lookup_raises(self):
        """Test lookups for unknown ids raise."""
        assert DEFAULT_REGISTRY.is_known_metric("bogus") is False
        with pytest.raises(UnknownMetricError):
            DEFAULT_REGISTRY.theme_of("bogus")
        with pytest.raises(UnknownMetricError):
            DEFAULT_REGISTRY.metric("bogus")

    def test_color_with_alpha(self):
        """Test color template substitution."""
        theme = DEFAULT_REGISTRY.list_themes()[0]
        assert theme.color_with_alpha(0.5) == "rgba(255, 99, 132, 0.5)"
        assert theme.color_with_alpha(1) == "rgba(255, 99, 132, 1)"


class TestRegistryInvariants:
    """Tests for registry construction checks."""

    def test_duplicate_metric_id_across_themes_fails(self):
        """Test a metric id may only appear once."""
        themes = [
            Theme("A", "rgba(0, 0, 0, %a)", (Metric("x", "X"),)),
            Theme("B", "rgba(0, 0, 0, %a)", (Metric("x", "X again"),)),
        ]
        with pytest.raises(SchemaError, match="Duplicate metric"):
            SchemaRegistry(themes)

    def test_duplicate_theme_name_fails(self):
        """Test theme names must be unique."""
        themes = [
            Theme("A", "rgba(0, 0, 0, %a)", (Metric("x", "X"),)),
            Theme("A", "rgba(0, 0, 0, %a)", (Metric("y", "Y"),)),
        ]
        with pytest.raises(SchemaError, match="Duplicate theme"):
            SchemaRegistry(themes)

    def test_empty_theme_fails(self):
        """Test a theme needs at least one metric."""
        with pytest.raises(SchemaError, match="no metrics"):
            SchemaRegistry([Theme("A", "rgba(0, 0, 0, %a)", ())])


class TestRatingLabels:
    """Tests for the rating scale."""

    def test_labels(self):
        """Test scale endpoints."""
        assert rating_label(0) == "Not Applicable"
        assert rating_label(5) == "Excellent"
        assert sorted(RATING_LABELS) == [0, 1, 2, 3, 4, 5]
