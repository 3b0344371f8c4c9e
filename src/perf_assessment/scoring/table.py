"""CSV text encoding for single assessments and assessment histories."""

from __future__ import annotations

import csv
import io
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Protocol

from perf_assessment.schema import DEFAULT_REGISTRY, SchemaRegistry
from perf_assessment.scoring.engine import Rating, TableImport, from_table, to_table

HISTORY_HEADER_PREFIX = ("Employee Name", "Assessment Date")


class TabularRecord(Protocol):
    """Fields a record needs for the wide history export."""

    subject_name: str
    assessment_date: datetime
    metrics: dict[str, int]


def format_rating(value: Rating | str) -> str:
    """Render a rating without a trailing ``.0`` for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_csv_rows(text: str) -> list[list[str]]:
    """Split CSV text into rows of cells."""
    return list(csv.reader(io.StringIO(text.strip())))


def render_record_csv(
    mapping: Mapping[str, Rating], registry: SchemaRegistry = DEFAULT_REGISTRY
) -> str:
    """Render the two-column ``Categories,Ratings`` form of one assessment."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for metric_id, value in to_table(mapping, registry):
        writer.writerow([metric_id, format_rating(value)])
    return buffer.getvalue()


def parse_record_csv(
    text: str, registry: SchemaRegistry = DEFAULT_REGISTRY, *, strict: bool = False
) -> TableImport:
    """Parse the two-column form back into a metric mapping."""
    return from_table(parse_csv_rows(text), registry, strict=strict)


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def render_history_csv(
    records: Sequence[TabularRecord], registry: SchemaRegistry = DEFAULT_REGISTRY
) -> str:
    """Render the wide form: one row per assessment, one column per metric."""
    metric_ids = registry.ordered_metric_ids()
    lines = [",".join([*HISTORY_HEADER_PREFIX, *metric_ids])]
    for record in records:
        values = [format_rating(record.metrics.get(metric_id, 0)) for metric_id in metric_ids]
        lines.append(
            ",".join([_quote(record.subject_name), record.assessment_date.date().isoformat(), *values])
        )
    return "\n".join(lines) + "\n"


def history_filename(on: date) -> str:
    return f"assessments_export_{on.isoformat()}.csv"
