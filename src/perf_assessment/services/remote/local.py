"""In-process remote store backed directly by the record repository."""

from __future__ import annotations

from collections.abc import Sequence

from perf_assessment.core.errors import AuthenticationError
from perf_assessment.models import (
    AssessmentRecord,
    ImportResult,
    RecordCreate,
    RecordFilter,
    RecordPage,
    RecordUpdate,
    TableExport,
)
from perf_assessment.services.storage import RecordRepository

from .base import RemoteStore


class LocalRemoteStore(RemoteStore):
    """Bind a RecordRepository to one owner."""

    def __init__(self, repository: RecordRepository, owner_id: str | None) -> None:
        """Initialize the store.

        Args:
            repository: Authoritative record repository.
            owner_id: Calling user's id. None means unauthenticated and every
                operation raises AuthenticationError.
        """
        self.repository = repository
        self.owner_id = owner_id

    def _owner(self) -> str:
        if not self.owner_id:
            raise AuthenticationError()
        return self.owner_id

    async def list_records(self, flt: RecordFilter | None = None) -> RecordPage:
        return await self.repository.list_records(self._owner(), flt)

    async def get(self, record_id: str) -> AssessmentRecord:
        return await self.repository.get(self._owner(), record_id)

    async def create(self, payload: RecordCreate) -> AssessmentRecord:
        return await self.repository.create(self._owner(), payload)

    async def update(self, record_id: str, changes: RecordUpdate) -> AssessmentRecord:
        return await self.repository.update(self._owner(), record_id, changes)

    async def delete(self, record_id: str) -> None:
        await self.repository.delete(self._owner(), record_id)

    async def import_table(self, raw_text: str, subject_name: str | None = None) -> ImportResult:
        return await self.repository.import_table(self._owner(), raw_text, subject_name)

    async def export_table(
        self, flt: RecordFilter | None = None, ids: Sequence[str] | None = None
    ) -> TableExport:
        return await self.repository.export_table(self._owner(), flt, ids)
