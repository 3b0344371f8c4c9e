"""Persisted assessment record and the payloads exchanged with the record store."""

import math
import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel
from pydantic import Field as PydanticField
from sqlalchemy import Column
from sqlmodel import JSON, Field, SQLModel


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, as stored in the database."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class AssessmentRecord(SQLModel, table=True):
    """One subject's ratings, owned by exactly one user."""

    __tablename__ = "assessments"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    owner_id: str = Field(index=True)
    subject_name: str = Field(index=True)
    assessment_date: datetime = Field(default_factory=utcnow, index=True)
    metrics: dict[str, int] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1


class RecordCreate(BaseModel):
    """Fields supplied when creating a record."""

    subject_name: str
    assessment_date: datetime | None = None
    metrics: dict[str, Any]


class RecordUpdate(BaseModel):
    """Partial update: only fields that are set change."""

    subject_name: str | None = None
    assessment_date: datetime | None = None
    metrics: dict[str, Any] | None = None


class RecordFilter(BaseModel):
    """History query scoped to one owner."""

    subject_name_contains: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = PydanticField(default=1, ge=1)
    page_size: int = PydanticField(default=20, ge=1, le=100)


@dataclass
class RecordPage:
    """A page of records plus the total match count."""

    records: list[AssessmentRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


@dataclass
class ImportResult:
    """A record created from CSV plus the rows skipped while parsing it."""

    record: AssessmentRecord
    warnings: list[str] = field(default_factory=list)


@dataclass
class TableExport:
    """CSV bytes and the suggested download filename."""

    filename: str
    content: bytes
    count: int
