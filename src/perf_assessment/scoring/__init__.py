"""Scoring record engine: rating coercion, validation, averages and CSV."""

from .engine import (
    TABLE_HEADER,
    Averages,
    Rating,
    TableImport,
    ValidationResult,
    clamp_rating,
    compute_averages,
    from_table,
    is_valid_rating,
    require_complete,
    to_table,
    validate_complete,
)
from .table import (
    history_filename,
    parse_csv_rows,
    parse_record_csv,
    render_history_csv,
    render_record_csv,
)

__all__ = [
    "TABLE_HEADER",
    "Averages",
    "Rating",
    "TableImport",
    "ValidationResult",
    "clamp_rating",
    "compute_averages",
    "from_table",
    "history_filename",
    "is_valid_rating",
    "parse_csv_rows",
    "parse_record_csv",
    "render_history_csv",
    "render_record_csv",
    "require_complete",
    "to_table",
    "validate_complete",
]
