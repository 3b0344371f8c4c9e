"""Core configuration, errors and utilities for Performance Assessment."""

from perf_assessment.core.config import (
    API_TOKEN_ENV,
    DEFAULT_FILENAME_MAX_LENGTH,
    AssessmentConfig,
    load_config,
)
from perf_assessment.core.errors import (
    AssessmentError,
    AuthenticationError,
    ConfigurationError,
    CsvHeaderError,
    EmptyOrInvalidTableError,
    MissingMetricsError,
    NotFoundError,
    RatingDomainError,
    ReadOnlySessionError,
    RecordValidationError,
    SchemaError,
    TransientError,
    UnknownMetricError,
)
from perf_assessment.core.slug import SlugGenerator, sanitize_display_name

__all__ = [
    "API_TOKEN_ENV",
    "DEFAULT_FILENAME_MAX_LENGTH",
    "AssessmentConfig",
    "SlugGenerator",
    "load_config",
    "sanitize_display_name",
    "AssessmentError",
    "AuthenticationError",
    "ConfigurationError",
    "CsvHeaderError",
    "EmptyOrInvalidTableError",
    "MissingMetricsError",
    "NotFoundError",
    "RatingDomainError",
    "ReadOnlySessionError",
    "RecordValidationError",
    "SchemaError",
    "TransientError",
    "UnknownMetricError",
]
