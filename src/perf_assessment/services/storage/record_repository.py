"""Database persistence for assessment records, scoped to their owner."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func
from sqlmodel import Session, col, select

from perf_assessment.core.errors import NotFoundError, RecordValidationError, UnknownMetricError
from perf_assessment.core.slug import SlugGenerator, sanitize_display_name
from perf_assessment.models import (
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
from perf_assessment.schema import DEFAULT_REGISTRY, SchemaRegistry
from perf_assessment.scoring import (
    history_filename,
    parse_record_csv,
    render_history_csv,
    render_record_csv,
    require_complete,
)

from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

SUBJECT_NAME_MAX_LENGTH = 100
DEFAULT_SUBJECT_NAME = "Unknown"


class RecordRepository(AsyncRepository):
    """Persist and query assessment records.

    Every operation takes the calling owner's id; records belonging to other
    owners behave as if they did not exist.
    """

    def __init__(
        self,
        engine: Engine,
        registry: SchemaRegistry = DEFAULT_REGISTRY,
        filename_max_length: int = 50,
    ) -> None:
        super().__init__(engine)
        self.registry = registry
        self._slugs = SlugGenerator(max_length=filename_max_length)

    # ==================== Validation ====================

    @staticmethod
    def _clean_subject_name(raw: str | None) -> str:
        name = (raw or "").strip()
        if not name:
            msg = "Employee name is required"
            raise RecordValidationError(msg)
        if len(name) > SUBJECT_NAME_MAX_LENGTH:
            msg = f"Employee name must be between 1 and {SUBJECT_NAME_MAX_LENGTH} characters"
            raise RecordValidationError(msg)
        return sanitize_display_name(name)

    def _clean_metrics(self, metrics: Mapping[str, Any]) -> dict[str, int]:
        for metric_id in metrics:
            if not self.registry.is_known_metric(metric_id):
                raise UnknownMetricError(metric_id)
        return require_complete(metrics, self.registry)

    @staticmethod
    def _owned(owner_id: str, record_id: str):
        return select(AssessmentRecord).where(
            AssessmentRecord.id == record_id,
            AssessmentRecord.owner_id == owner_id,
        )

    @staticmethod
    def _conditions(owner_id: str, flt: RecordFilter) -> list[Any]:
        conditions: list[Any] = [AssessmentRecord.owner_id == owner_id]
        if flt.subject_name_contains:
            needle = flt.subject_name_contains.strip().lower()
            conditions.append(func.instr(func.lower(AssessmentRecord.subject_name), needle) > 0)
        if flt.date_from is not None:
            start = datetime.combine(flt.date_from, time.min)
            conditions.append(col(AssessmentRecord.assessment_date) >= start)
        if flt.date_to is not None:
            end = datetime.combine(flt.date_to, time.max)
            conditions.append(col(AssessmentRecord.assessment_date) <= end)
        return conditions

    # ==================== CRUD ====================

    async def list_records(self, owner_id: str, flt: RecordFilter | None = None) -> RecordPage:
        """Get one page of the owner's records, newest assessment first."""
        flt = flt or RecordFilter()
        conditions = self._conditions(owner_id, flt)

        def _list(session: Session) -> RecordPage:
            total = session.exec(
                select(func.count()).select_from(AssessmentRecord).where(*conditions)
            ).one()
            statement = (
                select(AssessmentRecord)
                .where(*conditions)
                .order_by(
                    col(AssessmentRecord.assessment_date).desc(),
                    col(AssessmentRecord.created_at).desc(),
                )
                .offset((flt.page - 1) * flt.page_size)
                .limit(flt.page_size)
            )
            records = list(session.exec(statement).all())
            return RecordPage(records=records, total=total, page=flt.page, page_size=flt.page_size)

        return await self._read(_list)

    async def get(self, owner_id: str, record_id: str) -> AssessmentRecord:
        """Get a single record.

        Raises:
            NotFoundError: If the record is missing or owned by someone else.
        """

        def _get(session: Session) -> AssessmentRecord | None:
            return session.exec(self._owned(owner_id, record_id)).first()

        record = await self._read(_get)
        if record is None:
            raise NotFoundError()
        return record

    async def create(self, owner_id: str, payload: RecordCreate) -> AssessmentRecord:
        """Validate and store a new record for the owner."""
        record = AssessmentRecord(
            owner_id=owner_id,
            subject_name=self._clean_subject_name(payload.subject_name),
            assessment_date=to_naive_utc(payload.assessment_date or utcnow()),
            metrics=self._clean_metrics(payload.metrics),
        )

        def _save(session: Session) -> AssessmentRecord:
            session.add(record)
            return record

        saved = await self._write(_save)
        logger.info("record_created", record_id=saved.id, owner_id=owner_id)
        return saved

    async def update(self, owner_id: str, record_id: str, changes: RecordUpdate) -> AssessmentRecord:
        """Apply a partial update; only supplied fields change."""
        data = changes.model_dump(exclude_unset=True)
        updates: dict[str, Any] = {}
        if data.get("subject_name") is not None:
            updates["subject_name"] = self._clean_subject_name(data["subject_name"])
        if data.get("assessment_date") is not None:
            updates["assessment_date"] = to_naive_utc(data["assessment_date"])
        if data.get("metrics") is not None:
            updates["metrics"] = self._clean_metrics(data["metrics"])

        def _update(session: Session) -> AssessmentRecord | None:
            existing = session.exec(self._owned(owner_id, record_id)).first()
            if existing is None:
                return None
            for key, value in updates.items():
                setattr(existing, key, value)
            existing.version += 1
            existing.updated_at = utcnow()
            session.add(existing)
            return existing

        record = await self._write(_update)
        if record is None:
            raise NotFoundError()
        logger.info("record_updated", record_id=record_id, version=record.version)
        return record

    async def delete(self, owner_id: str, record_id: str) -> None:
        """Permanently delete one of the owner's records."""

        def _delete(session: Session) -> bool:
            existing = session.exec(self._owned(owner_id, record_id)).first()
            if existing is None:
                return False
            session.delete(existing)
            return True

        if not await self._write(_delete):
            raise NotFoundError()
        logger.info("record_deleted", record_id=record_id, owner_id=owner_id)

    # ==================== CSV ====================

    async def import_table(
        self, owner_id: str, raw_text: str, subject_name: str | None = None
    ) -> ImportResult:
        """Create a record from two-column CSV text.

        Rows with a rating outside the integer domain are skipped and reported,
        and the remaining rows must cover every metric.
        """
        parsed = parse_record_csv(raw_text, self.registry, strict=True)
        record = await self.create(
            owner_id,
            RecordCreate(
                subject_name=(subject_name or "").strip() or DEFAULT_SUBJECT_NAME,
                metrics=parsed.metrics,
            ),
        )
        if parsed.warnings:
            logger.warning("import_rows_skipped", record_id=record.id, count=len(parsed.warnings))
        return ImportResult(record=record, warnings=parsed.warnings)

    async def export_table(
        self,
        owner_id: str,
        flt: RecordFilter | None = None,
        ids: Sequence[str] | None = None,
        today: date | None = None,
    ) -> TableExport:
        """Export records selected by id or by filter as CSV.

        A single record uses the two-column form; several use the wide form.

        Raises:
            NotFoundError: If nothing matches.
        """
        if ids:
            conditions: list[Any] = [
                AssessmentRecord.owner_id == owner_id,
                col(AssessmentRecord.id).in_(list(ids)),
            ]
        else:
            conditions = self._conditions(owner_id, flt or RecordFilter())

        def _select(session: Session) -> list[AssessmentRecord]:
            statement = (
                select(AssessmentRecord)
                .where(*conditions)
                .order_by(col(AssessmentRecord.assessment_date).desc())
            )
            return list(session.exec(statement).all())

        records = await self._read(_select)
        if not records:
            raise NotFoundError("No assessments found")

        if len(records) == 1:
            record = records[0]
            filename = self._slugs.export_filename(record.subject_name, record.assessment_date.date())
            content = render_record_csv(record.metrics, self.registry)
        else:
            filename = history_filename(today or utcnow().date())
            content = render_history_csv(records, self.registry)

        logger.debug("records_exported", count=len(records), filename=filename)
        return TableExport(filename=filename, content=content.encode("utf-8"), count=len(records))
