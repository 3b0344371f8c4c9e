"""Configuration schemas and loading for the assessment tool."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from perf_assessment.core.errors import AuthenticationError, ConfigurationError

DEFAULT_FILENAME_MAX_LENGTH = 50
API_TOKEN_ENV = "ASSESSMENT_API_TOKEN"


class AssessmentConfig(BaseModel):
    """Complete assessment tool configuration.

    Attributes:
        database_path: DuckDB file holding the authoritative record store.
        cache_path: JSON file holding the in-progress draft.
        api_base_url: Base URL of the remote assessment API.
        api_token: Bearer token for the remote API. Falls back to the
            ASSESSMENT_API_TOKEN environment variable.
        autosave_delay: Quiescence interval in seconds before an autosave.
        page_size: Default number of records per history page.
        filename_max_length: Cap on the sanitized subject part of export filenames.
        request_timeout: Remote API timeout in seconds.
    """

    database_path: str = "./data/assessments.duckdb"
    cache_path: str = "./data/draft.json"
    api_base_url: str = "http://localhost:5000/api"
    api_token: str | None = None
    autosave_delay: float = Field(default=5.0, gt=0)
    page_size: int = Field(default=20, ge=1, le=100)
    filename_max_length: int = Field(default=DEFAULT_FILENAME_MAX_LENGTH, ge=1, le=100)
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "api_base_url cannot be empty"
            raise ValueError(msg)
        return v.rstrip("/")

    def resolve_api_token(self) -> str | None:
        return self.api_token or os.environ.get(API_TOKEN_ENV)

    def get_api_token(self) -> str:
        """Get API token from config or environment."""
        token = self.resolve_api_token()
        if not token:
            msg = f"API token required. Set {API_TOKEN_ENV} env var or api_token in config."
            raise AuthenticationError(msg)
        return token


def load_config(path: str | Path) -> AssessmentConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated AssessmentConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If the file is not a YAML mapping.
        ValidationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a mapping at the top of {config_path}, got {type(data).__name__}",
            suggestion="Write the configuration as key: value pairs, e.g. page_size: 20",
        )

    return AssessmentConfig.model_validate(data)
