"""Validation, aggregation and tabular conversion of metric ratings."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from statistics import fmean

import structlog

from perf_assessment.core.errors import (
    CsvHeaderError,
    EmptyOrInvalidTableError,
    MissingMetricsError,
    RatingDomainError,
)
from perf_assessment.schema import DEFAULT_REGISTRY, RATING_MAX, RATING_MIN, SchemaRegistry

logger = structlog.get_logger()

Rating = int | float

TABLE_HEADER: tuple[str, str] = ("Categories", "Ratings")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a completeness check.

    Attributes:
        missing: Metric identifiers absent from the mapping, in registry order.
        invalid: Identifiers present with a value that is not an integer in [0, 5].
    """

    missing: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.invalid

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class Averages:
    """Per-theme and overall rating means."""

    per_theme: dict[str, float]
    overall: float


@dataclass
class TableImport:
    """Metrics recovered from a two-column table plus skipped-row warnings."""

    metrics: dict[str, Rating]
    warnings: list[str] = field(default_factory=list)
    loaded: int = 0


def _parse_number(raw: object) -> Rating | None:
    """Parse a raw value as a number, or None when it is not numeric."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return None if math.isnan(raw) else raw
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            return None
        return None if math.isnan(value) else value
    return None


def clamp_rating(raw: object) -> Rating:
    """Coerce a raw input into the rating domain.

    Non-numeric input becomes 0, values below the scale become 0 and values
    above it become 5. In-range values are returned unchanged, fractional
    ones included.
    """
    value = _parse_number(raw)
    if value is None:
        return RATING_MIN
    if value < RATING_MIN:
        return RATING_MIN
    if value > RATING_MAX:
        return RATING_MAX
    return value


def is_valid_rating(value: object) -> bool:
    """Check a stored rating: an integer in [0, 5]."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return RATING_MIN <= value <= RATING_MAX


def validate_complete(
    mapping: Mapping[str, object], registry: SchemaRegistry = DEFAULT_REGISTRY
) -> ValidationResult:
    """Check that every known metric is present with a valid integer rating."""
    missing: list[str] = []
    invalid: list[str] = []
    for metric_id in registry.ordered_metric_ids():
        if metric_id not in mapping or mapping[metric_id] is None:
            missing.append(metric_id)
        elif not is_valid_rating(mapping[metric_id]):
            invalid.append(metric_id)
    return ValidationResult(missing=missing, invalid=invalid)


def require_complete(
    mapping: Mapping[str, object], registry: SchemaRegistry = DEFAULT_REGISTRY
) -> dict[str, int]:
    """Return a normalized copy of a complete mapping or raise.

    Raises:
        MissingMetricsError: If any known metric is absent.
        RatingDomainError: If a rating is not an integer in [0, 5].
    """
    result = validate_complete(mapping, registry)
    if result.missing:
        raise MissingMetricsError(result.missing)
    if result.invalid:
        metric_id = result.invalid[0]
        raise RatingDomainError(metric_id, mapping[metric_id])
    return {metric_id: int(mapping[metric_id]) for metric_id in registry.ordered_metric_ids()}


def compute_averages(
    mapping: Mapping[str, Rating], registry: SchemaRegistry = DEFAULT_REGISTRY
) -> Averages:
    """Compute theme means and the overall mean of all ratings.

    Missing ratings count as 0. The overall figure is the mean of every
    metric, not the mean of the theme averages.
    """
    per_theme = {
        theme.name: fmean(mapping.get(metric_id, 0) for metric_id in theme.metric_ids)
        for theme in registry.list_themes()
    }
    overall = fmean(mapping.get(metric_id, 0) for metric_id in registry.ordered_metric_ids())
    return Averages(per_theme=per_theme, overall=overall)


def to_table(
    mapping: Mapping[str, Rating], registry: SchemaRegistry = DEFAULT_REGISTRY
) -> list[tuple[str, Rating | str]]:
    """Flatten a mapping into header plus (metric_id, rating) rows in registry order."""
    rows: list[tuple[str, Rating | str]] = [TABLE_HEADER]
    rows.extend((metric_id, mapping.get(metric_id, 0)) for metric_id in registry.ordered_metric_ids())
    return rows


def _strict_rating(raw: str) -> int | None:
    value = _parse_number(raw)
    if value is None or not is_valid_rating(value):
        return None
    return int(value)


def from_table(
    rows: Iterable[Sequence[object]],
    registry: SchemaRegistry = DEFAULT_REGISTRY,
    *,
    strict: bool = False,
) -> TableImport:
    """Rebuild a (possibly partial) mapping from header plus rating rows.

    Rows naming an unknown metric are skipped and reported as warnings.
    Ratings are clamped; with ``strict`` set, rows whose rating is not an
    integer in [0, 5] are skipped and reported instead.

    Raises:
        CsvHeaderError: If the header lacks "categories" or "ratings".
        EmptyOrInvalidTableError: If no row names a known metric.
    """
    table = [[str(cell).strip() for cell in row] for row in rows]
    if not table:
        raise EmptyOrInvalidTableError("CSV file is empty or invalid")

    header = ",".join(table[0]).lower()
    if "categories" not in header or "ratings" not in header:
        raise CsvHeaderError(",".join(table[0]))

    result = TableImport(metrics={})
    for cells in table[1:]:
        if not any(cells):
            continue
        metric_id = cells[0]
        raw = cells[1] if len(cells) > 1 else ""
        if not registry.is_known_metric(metric_id):
            logger.warning("unknown_category", category=metric_id)
            result.warnings.append(f"Unknown category: {metric_id}")
            continue
        if strict:
            value = _strict_rating(raw)
            if value is None:
                result.warnings.append(f"Invalid rating for {metric_id}: {raw}")
                continue
            result.metrics[metric_id] = value
        else:
            result.metrics[metric_id] = clamp_rating(raw)
        result.loaded += 1

    if not result.metrics:
        raise EmptyOrInvalidTableError()
    return result
