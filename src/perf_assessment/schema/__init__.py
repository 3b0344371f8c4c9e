"""Assessment schema: themes, metrics and the rating scale."""

from .registry import (
    DEFAULT_REGISTRY,
    DEFAULT_THEMES,
    RATING_LABELS,
    RATING_MAX,
    RATING_MIN,
    Metric,
    SchemaRegistry,
    Theme,
    rating_label,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_THEMES",
    "RATING_LABELS",
    "RATING_MAX",
    "RATING_MIN",
    "Metric",
    "SchemaRegistry",
    "Theme",
    "rating_label",
]
