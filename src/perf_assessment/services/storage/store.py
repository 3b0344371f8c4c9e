"""Database engine lifecycle for the authoritative assessment store."""

from __future__ import annotations

import gc
from pathlib import Path

import structlog
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, create_engine

from perf_assessment.core.config import AssessmentConfig
from perf_assessment.models import AssessmentRecord
from perf_assessment.schema import DEFAULT_REGISTRY, SchemaRegistry

from .record_repository import RecordRepository

logger = structlog.get_logger()


class AssessmentStore:
    """Owns the DuckDB engine and hands out repositories bound to it."""

    def __init__(
        self,
        config: AssessmentConfig,
        registry: SchemaRegistry = DEFAULT_REGISTRY,
    ) -> None:
        """Initialize assessment store.

        Args:
            config: Assessment configuration (database path, filename limits).
            registry: Schema the stored metrics are validated against.
        """
        self.config = config
        self.registry = registry
        self._db_path = Path(config.database_path)
        self._engine = None
        self._init_db()
        self.records = RecordRepository(
            self._engine,
            registry=registry,
            filename_max_length=config.filename_max_length,
        )

    def _init_db(self) -> None:
        """Initialize DuckDB database and create tables."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db_url = f"duckdb:///{self._db_path}"
        # Use NullPool to avoid connection pooling issues on Windows
        self._engine = create_engine(db_url, poolclass=NullPool)
        SQLModel.metadata.create_all(self._engine, tables=[AssessmentRecord.__table__])
        logger.info("store_init", path=str(self._db_path))

    async def close(self) -> None:
        """Dispose of the database engine."""
        self.close_sync()

    def close_sync(self) -> None:
        """Synchronously dispose of the database engine."""
        if self._engine:
            self._engine.dispose()
            self._engine = None

        gc.collect()
