"""Static definition of assessment themes, metrics and the rating scale."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from perf_assessment.core.errors import SchemaError, UnknownMetricError

RATING_MIN = 0
RATING_MAX = 5

RATING_LABELS: dict[int, str] = {
    0: "Not Applicable",
    1: "Very Poor",
    2: "Poor",
    3: "Fair",
    4: "Good",
    5: "Excellent",
}


@dataclass(frozen=True)
class Metric:
    """A single scored criterion."""

    id: str
    label: str


@dataclass(frozen=True)
class Theme:
    """A named, colored group of metrics.

    The color is an ``rgba(r, g, b, %a)`` template; ``%a`` is replaced by an
    alpha value when rendering.
    """

    name: str
    color: str
    metrics: tuple[Metric, ...]

    def color_with_alpha(self, alpha: float) -> str:
        return self.color.replace("%a", f"{alpha:g}")

    @property
    def metric_ids(self) -> tuple[str, ...]:
        return tuple(m.id for m in self.metrics)


class SchemaRegistry:
    """Lookup over an ordered, immutable set of themes."""

    def __init__(self, themes: Iterable[Theme]) -> None:
        self._themes = tuple(themes)
        self._theme_by_metric: dict[str, Theme] = {}
        self._metric_by_id: dict[str, Metric] = {}

        seen_names: set[str] = set()
        for theme in self._themes:
            if theme.name in seen_names:
                msg = f"Duplicate theme name: {theme.name}"
                raise SchemaError(msg)
            seen_names.add(theme.name)
            if not theme.metrics:
                msg = f"Theme has no metrics: {theme.name}"
                raise SchemaError(msg)
            for metric in theme.metrics:
                if metric.id in self._metric_by_id:
                    msg = f"Duplicate metric identifier: {metric.id}"
                    raise SchemaError(msg)
                self._metric_by_id[metric.id] = metric
                self._theme_by_metric[metric.id] = theme

        self._ordered_ids = tuple(self._metric_by_id)
        self._id_set = frozenset(self._ordered_ids)

    def list_themes(self) -> tuple[Theme, ...]:
        return self._themes

    def list_metric_ids(self) -> frozenset[str]:
        return self._id_set

    def ordered_metric_ids(self) -> tuple[str, ...]:
        """Metric identifiers in theme order, then metric order."""
        return self._ordered_ids

    def is_known_metric(self, metric_id: str) -> bool:
        return metric_id in self._id_set

    def metric(self, metric_id: str) -> Metric:
        try:
            return self._metric_by_id[metric_id]
        except KeyError as e:
            raise UnknownMetricError(metric_id) from e

    def theme_of(self, metric_id: str) -> Theme:
        try:
            return self._theme_by_metric[metric_id]
        except KeyError as e:
            raise UnknownMetricError(metric_id) from e

    def __len__(self) -> int:
        return len(self._ordered_ids)


def rating_label(value: int) -> str:
    """Return the human label for an integer rating."""
    return RATING_LABELS[value]


def _theme(name: str, color: str, *metrics: tuple[str, str]) -> Theme:
    return Theme(name=name, color=color, metrics=tuple(Metric(i, label) for i, label in metrics))


DEFAULT_THEMES: tuple[Theme, ...] = (
    _theme(
        "Strategic Vision",
        "rgba(255, 99, 132, %a)",
        ("sharedVision", "Shared Vision"),
        ("strategy", "Strategy"),
        ("businessAlignment", "Business Alignment"),
        ("customerFocus", "Customer Focus"),
    ),
    _theme(
        "Focus and Engagement",
        "rgba(54, 162, 235, %a)",
        ("crossFunctionalTeams", "Cross-Functional Teams"),
        ("clarityInPriorities", "Clarity in Priorities"),
        ("acceptanceCriteria", "Acceptance Criteria"),
        ("enablingFocus", "Enabling Focus"),
        ("engagement", "Engagement"),
    ),
    _theme(
        "Autonomy and Change",
        "rgba(255, 206, 86, %a)",
        ("feedback", "Feedback"),
        ("enablingAutonomy", "Enabling Autonomy"),
        ("changeAndAmbiguity", "Change and Ambiguity"),
        ("desiredCulture", "Desired Culture"),
        ("workAutonomously", "Works Autonomously"),
    ),
    _theme(
        "Stakeholders and Team",
        "rgba(75, 192, 192, %a)",
        ("stakeholders", "Stakeholders"),
        ("teamAttrition", "Team Attrition"),
        ("teams", "Teams"),
        ("developingPeople", "Developing People"),
        ("subordinatesForSuccess", "Subordinates for Success"),
    ),
)

DEFAULT_REGISTRY = SchemaRegistry(DEFAULT_THEMES)
