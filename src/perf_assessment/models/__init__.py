from .record import (
    AssessmentRecord,
    ImportResult,
    RecordCreate,
    RecordFilter,
    RecordPage,
    RecordUpdate,
    TableExport,
    to_naive_utc,
    utcnow,
)

__all__ = [
    "AssessmentRecord",
    "ImportResult",
    "RecordCreate",
    "RecordFilter",
    "RecordPage",
    "RecordUpdate",
    "TableExport",
    "to_naive_utc",
    "utcnow",
]
