"""Client-durable storage for the single in-progress assessment draft."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()


class Draft(BaseModel):
    """Snapshot of an in-progress assessment."""

    subject_name: str = ""
    ratings: dict[str, int | float] = Field(default_factory=dict)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class LocalCache:
    """JSON file holding at most one draft, independent of connectivity."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _write(self, draft: Draft) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(draft.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def _read(self) -> Draft | None:
        if not self.path.exists():
            return None
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return Draft.model_validate(data)

    async def save(self, draft: Draft) -> None:
        """Replace the stored draft."""
        await asyncio.to_thread(self._write, draft)
        logger.debug("draft_saved", path=str(self.path))

    async def load(self) -> Draft | None:
        """Load the stored draft, or None if there is none or it is unreadable."""
        try:
            return await asyncio.to_thread(self._read)
        except (OSError, ValueError) as e:
            logger.warning("draft_load_failed", path=str(self.path), error=str(e))
            return None

    async def clear(self) -> None:
        """Remove the stored draft."""
        await asyncio.to_thread(self.path.unlink, missing_ok=True)
