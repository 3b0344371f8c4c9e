"""Chart data and Markdown summaries for assessments."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from tabulate import tabulate

from perf_assessment.core.slug import sanitize_display_name
from perf_assessment.schema import DEFAULT_REGISTRY, SchemaRegistry, rating_label
from perf_assessment.scoring import Rating, clamp_rating, compute_averages
from perf_assessment.scoring.table import format_rating

FILL_ALPHA = 0.5
BORDER_ALPHA = 1


@dataclass(frozen=True)
class ChartSeries:
    """Data for a polar-area chart with one segment per metric."""

    title: str
    labels: list[str]
    values: list[Rating]
    background_colors: list[str]
    border_colors: list[str]
    legend: list[tuple[str, str]]


def chart_title(subject_name: str) -> str:
    name = sanitize_display_name(subject_name)
    return f"{name} - Results" if name else "Results"


def chart_series(
    ratings: Mapping[str, object],
    subject_name: str = "",
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> ChartSeries:
    """Build chart segments in registry order.

    Labels read ``"{theme}: {metric label}"``; values are clamped and
    missing metrics plot as 0. The legend lists one entry per theme.
    """
    labels: list[str] = []
    values: list[Rating] = []
    background: list[str] = []
    border: list[str] = []
    for theme in registry.list_themes():
        for metric in theme.metrics:
            labels.append(f"{theme.name}: {metric.label}")
            values.append(clamp_rating(ratings.get(metric.id, 0)))
            background.append(theme.color_with_alpha(FILL_ALPHA))
            border.append(theme.color_with_alpha(BORDER_ALPHA))

    legend = [(theme.name, theme.color_with_alpha(FILL_ALPHA)) for theme in registry.list_themes()]
    return ChartSeries(
        title=chart_title(subject_name),
        labels=labels,
        values=values,
        background_colors=background,
        border_colors=border,
        legend=legend,
    )


def render_summary(
    subject_name: str,
    ratings: Mapping[str, Rating],
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> str:
    """Render a Markdown report of ratings and theme averages."""
    averages = compute_averages(ratings, registry)
    lines = [f"# {chart_title(subject_name)}", ""]

    for theme in registry.list_themes():
        rows = []
        for metric in theme.metrics:
            value = ratings.get(metric.id, 0)
            label = rating_label(int(value)) if float(value).is_integer() else ""
            rows.append([metric.label, format_rating(value), label])
        lines.append(f"## {theme.name} (average {averages.per_theme[theme.name]:.2f})")
        lines.append("")
        lines.append(tabulate(rows, headers=["Metric", "Rating", "Label"], tablefmt="github"))
        lines.append("")

    summary_rows = [[name, f"{avg:.2f}"] for name, avg in averages.per_theme.items()]
    summary_rows.append(["Overall", f"{averages.overall:.2f}"])
    lines.append("## Summary")
    lines.append("")
    lines.append(tabulate(summary_rows, headers=["Theme", "Average"], tablefmt="github"))
    return "\n".join(lines) + "\n"
