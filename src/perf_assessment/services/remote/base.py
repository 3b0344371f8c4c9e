"""Abstract remote store consumed by the sync policy and the CLI."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from perf_assessment.models import (
    AssessmentRecord,
    ImportResult,
    RecordCreate,
    RecordFilter,
    RecordPage,
    RecordUpdate,
    TableExport,
)


class RemoteStore(ABC):
    """Owner-scoped access to the authoritative record collection.

    Implementations raise AuthenticationError when no valid credential is
    available, NotFoundError for missing or foreign records,
    RecordValidationError for rejected payloads and TransientError when the
    store cannot be reached.
    """

    @abstractmethod
    async def list_records(self, flt: RecordFilter | None = None) -> RecordPage:
        """List the caller's records matching a filter."""

    @abstractmethod
    async def get(self, record_id: str) -> AssessmentRecord:
        """Fetch one of the caller's records."""

    @abstractmethod
    async def create(self, payload: RecordCreate) -> AssessmentRecord:
        """Create a record and return it with its assigned id."""

    @abstractmethod
    async def update(self, record_id: str, changes: RecordUpdate) -> AssessmentRecord:
        """Apply a partial update to one of the caller's records."""

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Permanently delete one of the caller's records."""

    @abstractmethod
    async def import_table(self, raw_text: str, subject_name: str | None = None) -> ImportResult:
        """Create a record from two-column CSV text."""

    @abstractmethod
    async def export_table(
        self, flt: RecordFilter | None = None, ids: Sequence[str] | None = None
    ) -> TableExport:
        """Export the caller's records as CSV."""

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""
