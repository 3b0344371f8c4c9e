"""Custom exceptions for assessment scoring, persistence and configuration."""

from __future__ import annotations

from collections.abc import Sequence


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class AssessmentError(Exception):
    """Base exception for scoring and persistence failures."""


class SchemaError(AssessmentError):
    """Error when a schema definition breaks registry invariants."""


class RecordValidationError(AssessmentError):
    """Error when a record or table fails validation."""


class CsvHeaderError(RecordValidationError):
    """Error when a CSV header lacks the categories/ratings tokens."""

    def __init__(self, header: str = "") -> None:
        self.header = header
        super().__init__('Invalid CSV format. Expected "Categories,Ratings" header')


class EmptyOrInvalidTableError(RecordValidationError):
    """Error when a table holds no recognizable rating rows."""

    def __init__(self, message: str = "No valid data found in CSV file") -> None:
        super().__init__(message)


class MissingMetricsError(RecordValidationError):
    """Error when a mapping does not cover every known metric."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required metrics: {', '.join(self.missing)}")


class RatingDomainError(RecordValidationError):
    """Error when a rating is not an integer in the valid domain."""

    def __init__(self, metric_id: str, value: object) -> None:
        self.metric_id = metric_id
        self.value = value
        super().__init__(f"Rating for {metric_id} must be an integer between 0 and 5, got {value!r}")


class UnknownMetricError(RecordValidationError):
    """Error when a metric identifier is not in the schema registry."""

    def __init__(self, metric_id: str) -> None:
        self.metric_id = metric_id
        super().__init__(f"Unknown metric: {metric_id}")


class AuthenticationError(AssessmentError):
    """Error when a credential is absent, expired or rejected."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class NotFoundError(AssessmentError):
    """Error when a record does not exist or belongs to another owner."""

    def __init__(self, message: str = "Assessment not found") -> None:
        super().__init__(message)


class TransientError(AssessmentError):
    """Error when the remote store is unreachable or failing."""


class ReadOnlySessionError(AssessmentError):
    """Error when an edit is attempted on a read-only session."""

    def __init__(self) -> None:
        super().__init__("Assessment is open in read-only mode")
