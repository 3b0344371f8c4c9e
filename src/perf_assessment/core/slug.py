"""Sanitization helpers for subject names and export filenames."""

from __future__ import annotations

import html
import re
from datetime import date

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


class SlugGenerator:
    """Generate filesystem-safe filenames from free-text subject names."""

    def __init__(self, max_length: int | None = 50) -> None:
        """Initialize slug generator.

        Args:
            max_length: Maximum length for generated slugs. Use None to disable truncation.
        """
        self.max_length = max_length

    def sanitize_filename(self, value: str) -> str:
        """Replace unsafe characters with underscores and cap the length."""
        slug = _UNSAFE_FILENAME_CHARS.sub("_", value.strip())
        slug = _REPEATED_UNDERSCORES.sub("_", slug)
        return self.truncate(slug)

    def export_filename(self, subject_name: str, on: date) -> str:
        """Build the single-record export filename for a subject."""
        name = self.sanitize_filename(subject_name) if subject_name else ""
        return f"{name or 'user'}_assessment_{on.isoformat()}.csv"

    def truncate(self, value: str) -> str:
        """Truncate a value to the configured max length."""
        if self.max_length is None:
            return value
        return value[: self.max_length]


def sanitize_display_name(value: str) -> str:
    """Escape markup in a subject name so it is safe to display.

    Already-escaped input is left as is, so applying this twice is harmless.
    """
    return html.escape(html.unescape(value), quote=False).strip()
