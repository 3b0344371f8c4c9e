"""Tests for chart data and Markdown summaries."""

from perf_assessment.schema import DEFAULT_REGISTRY
from perf_assessment.services.reporting import chart_series, chart_title, render_summary

ALL_IDS = DEFAULT_REGISTRY.ordered_metric_ids()


class TestChartSeries:
    """Tests for chart_series."""

    def test_one_segment_per_metric(self):
        """Test labels, values and colors line up with the registry."""
        series = chart_series({"sharedVision": 4, "teams": 9}, "Jane")

        assert len(series.labels) == 19
        assert series.labels[0] == "Strategic Vision: Shared Vision"
        assert series.values[0] == 4
        assert series.values[ALL_IDS.index("teams")] == 5
        assert series.background_colors[0] == "rgba(255, 99, 132, 0.5)"
        assert series.border_colors[0] == "rgba(255, 99, 132, 1)"
        assert [name for name, _ in series.legend] == [t.name for t in DEFAULT_REGISTRY.list_themes()]

    def test_title(self):
        """Test chart title with and without a name."""
        assert chart_title("Jane") == "Jane - Results"
        assert chart_title("") == "Results"
        assert chart_title("<b>") == "&lt;b&gt; - Results"


class TestRenderSummary:
    """Tests for render_summary."""

    def test_contains_theme_sections_and_overall(self):
        """Test every theme gets a section and the overall row is present."""
        text = render_summary("Jane", dict.fromkeys(ALL_IDS, 4))

        assert text.startswith("# Jane - Results")
        for theme in DEFAULT_REGISTRY.list_themes():
            assert f"## {theme.name} (average 4.00)" in text
        assert "| Overall" in text
        assert "Good" in text

    def test_missing_ratings_count_as_zero(self):
        """Test an empty mapping renders zero averages."""
        text = render_summary("", {})
        assert "(average 0.00)" in text
        assert "Not Applicable" in text
