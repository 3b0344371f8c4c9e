"""Autosave orchestration between the editing session, remote store and local cache."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from pathlib import Path

import structlog

from perf_assessment.core.config import AssessmentConfig
from perf_assessment.core.errors import AssessmentError, ReadOnlySessionError
from perf_assessment.core.slug import SlugGenerator
from perf_assessment.models import RecordUpdate, utcnow
from perf_assessment.scoring import Rating, TableImport, parse_record_csv, render_record_csv
from perf_assessment.services.remote import RemoteStore
from perf_assessment.services.session import EditSession
from perf_assessment.services.storage import LocalCache

logger = structlog.get_logger()

DEFAULT_AUTOSAVE_DELAY = 5.0


class SyncEventKind(StrEnum):
    SAVED = "saved"
    UPDATED = "updated"
    DEGRADED = "degraded"
    LOADED = "loaded"
    CLEARED = "cleared"
    ERROR = "error"


@dataclass(frozen=True)
class SyncEvent:
    """User-facing notification raised by the sync policy."""

    kind: SyncEventKind
    message: str


Notifier = Callable[[SyncEvent], None]


def _log_notifier(event: SyncEvent) -> None:
    logger.info("sync_event", kind=str(event.kind), message=event.message)


class Debouncer:
    """Run an async callback once edits have been quiet for ``delay`` seconds.

    Each trigger cancels the pending timer and starts a new one. A callback
    that already started is never cancelled by a later trigger.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self.delay = delay
        self._callback = callback
        self._timer: asyncio.Task[None] | None = None
        self._running: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        """Restart the quiescence timer. Must run on the event loop."""
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self.delay)
        task = asyncio.current_task()
        self._timer = None
        self._running.add(task)
        try:
            await self._callback()
        finally:
            self._running.discard(task)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> None:
        """Wait until no timer is pending and no callback is running."""
        while self._timer is not None or self._running:
            tasks = [t for t in (self._timer, *self._running) if t is not None]
            await asyncio.gather(*tasks, return_exceptions=True)


class SyncPolicy:
    """Decide when and where the session's assessment is written.

    Edits restart a debounce timer. When it fires, the session is created
    remotely (Unsaved) or updated (Bound). Any remote failure writes the
    session to the local cache instead and raises one degraded-mode
    notification; nothing is retried until the next edit. Writes for one
    session never overlap.
    """

    def __init__(
        self,
        session: EditSession,
        remote: RemoteStore,
        cache: LocalCache,
        notifier: Notifier | None = None,
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        filename_max_length: int = 50,
    ) -> None:
        """Initialize the sync policy.

        Args:
            session: Session this policy saves.
            remote: Authoritative store.
            cache: Local draft cache used as fallback and backup.
            notifier: Receives user-facing notifications. Defaults to logging.
            delay: Quiescence interval in seconds.
            filename_max_length: Cap on the subject part of CSV filenames.
        """
        self.session = session
        self.remote = remote
        self.cache = cache
        self.notifier = notifier or _log_notifier
        self._lock = asyncio.Lock()
        self._debouncer = Debouncer(delay, self._autosave)
        self._slugs = SlugGenerator(max_length=filename_max_length)

    @classmethod
    def from_config(
        cls,
        config: AssessmentConfig,
        remote: RemoteStore,
        session: EditSession | None = None,
        notifier: Notifier | None = None,
    ) -> SyncPolicy:
        """Build a policy using the configured draft path and autosave delay."""
        return cls(
            session or EditSession(),
            remote,
            LocalCache(Path(config.cache_path)),
            notifier=notifier,
            delay=config.autosave_delay,
            filename_max_length=config.filename_max_length,
        )

    def _notify(self, kind: SyncEventKind, message: str) -> None:
        self.notifier(SyncEvent(kind, message))

    @property
    def save_pending(self) -> bool:
        return self._debouncer.pending

    # ==================== Editing ====================

    def edit_rating(self, metric_id: str, raw: object) -> Rating:
        """Apply a rating edit and restart the autosave timer."""
        value = self.session.set_rating(metric_id, raw)
        self._debouncer.trigger()
        return value

    def edit_subject_name(self, raw: str) -> str:
        """Apply a subject name edit and restart the autosave timer."""
        name = self.session.set_subject_name(raw)
        self._debouncer.trigger()
        return name

    # ==================== Saving ====================

    async def _autosave(self) -> None:
        try:
            await self.save()
        except Exception:
            logger.exception("autosave_failed")

    async def save_now(self) -> bool:
        """Save immediately, skipping any pending timer."""
        self._debouncer.cancel()
        return await self.save()

    async def save(self) -> bool:
        """Create or update the session remotely, falling back to the local cache.

        Returns:
            True if the remote write succeeded.
        """
        if self.session.read_only:
            return False

        async with self._lock:
            session = self.session
            generation = session.generation
            revision = session.revision
            record_id = session.record_id
            payload = session.payload()

            try:
                if record_id is None:
                    record = await self.remote.create(payload)
                else:
                    record = await self.remote.update(
                        record_id,
                        RecordUpdate(subject_name=payload.subject_name, metrics=payload.metrics),
                    )
            except AssessmentError as e:
                if generation != session.generation:
                    logger.info("stale_save_failure_ignored", error=str(e))
                    return False
                logger.warning("autosave_fallback", error=str(e), record_id=record_id)
                await self._save_local()
                self._notify(SyncEventKind.DEGRADED, "Saved locally (offline mode)")
                return False

            if generation != session.generation:
                logger.info("stale_save_response_ignored", record_id=record.id)
                return False

            if record_id is None:
                session.bind(record.id)
                self._notify(SyncEventKind.SAVED, "Assessment saved to database")
            else:
                self._notify(SyncEventKind.UPDATED, "Assessment updated successfully")
            session.mark_clean(revision)
            await self._save_local()
            return True

    async def _save_local(self) -> bool:
        """Best-effort write of the session to the local cache."""
        try:
            await self.cache.save(self.session.snapshot())
        except OSError as e:
            logger.warning("local_cache_write_failed", path=str(self.cache.path), error=str(e))
            return False
        return True

    # ==================== Loading ====================

    async def load(self, record_id: str | None = None, read_only: bool = False) -> bool:
        """Seed the session from the remote store or the local cache.

        With a record id the record is fetched remotely and the session becomes
        Bound; errors are raised to the caller. Without one, a local draft is
        restored if present and the session stays Unsaved.

        Returns:
            True if anything was loaded.
        """
        self._debouncer.cancel()
        if record_id is not None:
            try:
                record = await self.remote.get(record_id)
            except AssessmentError as e:
                self._notify(SyncEventKind.ERROR, f"Could not load assessment: {e}")
                raise
            self.session.load_record(record, read_only=read_only)
            message = "Assessment loaded successfully"
            if read_only:
                message = "Viewing assessment in read-only mode"
            self._notify(SyncEventKind.LOADED, message)
            return True

        draft = await self.cache.load()
        if draft is None:
            return False
        self.session.restore(draft)
        logger.info("draft_restored", saved_at=draft.saved_at.isoformat())
        return True

    async def start_new(self) -> None:
        """Unbind the session, zero every rating and drop the local draft."""
        self._debouncer.cancel()
        self.session.start_new()
        try:
            await self.cache.clear()
        except OSError as e:
            logger.warning("local_cache_clear_failed", error=str(e))
        self._notify(SyncEventKind.CLEARED, "Ready for new assessment")

    # ==================== CSV ====================

    def export_csv(self, today: date | None = None) -> tuple[str, str]:
        """Render the session as two-column CSV with its download filename."""
        filename = self._slugs.export_filename(self.session.subject_name, today or utcnow().date())
        return filename, render_record_csv(self.session.full_ratings(), self.session.registry)

    async def import_csv(self, text: str) -> TableImport:
        """Load ratings from two-column CSV into the session.

        Ratings are clamped, unknown rows are skipped with a warning, and the
        result is written to the local cache.
        """
        if self.session.read_only:
            raise ReadOnlySessionError()
        try:
            parsed = parse_record_csv(text, self.session.registry)
        except AssessmentError as e:
            self._notify(SyncEventKind.ERROR, f"Failed to load CSV file: {e}")
            raise
        for metric_id, value in parsed.metrics.items():
            self.session.set_rating(metric_id, value)
        await self._save_local()
        self._notify(SyncEventKind.LOADED, f"Successfully loaded {parsed.loaded} ratings from CSV")
        return parsed

    async def wait_idle(self) -> None:
        """Wait for any pending autosave to finish."""
        await self._debouncer.wait()

    async def close(self) -> None:
        """Cancel the pending autosave timer."""
        self._debouncer.cancel()
