"""Tests for autosave orchestration."""

import asyncio
import tempfile
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path

import httpx
import pytest

from perf_assessment.core.config import AssessmentConfig
from perf_assessment.core.errors import (
    CsvHeaderError,
    NotFoundError,
    ReadOnlySessionError,
    TransientError,
)
from perf_assessment.models import (
    AssessmentRecord,
    ImportResult,
    RecordCreate,
    RecordFilter,
    RecordPage,
    RecordUpdate,
    TableExport,
)
from perf_assessment.schema import DEFAULT_REGISTRY
from perf_assessment.services import Debouncer, EditSession, SyncEvent, SyncEventKind, SyncPolicy
from perf_assessment.services.remote import HttpRemoteStore, RemoteStore
from perf_assessment.services.storage import Draft, LocalCache

ALL_IDS = DEFAULT_REGISTRY.ordered_metric_ids()


class _RemoteStoreStub(RemoteStore):
    """In-memory remote that can fail or hold writes open."""

    def __init__(self) -> None:
        self.records: dict[str, AssessmentRecord] = {}
        self.fail = False
        self.gate: asyncio.Event | None = None
        self.creates = 0
        self.updates = 0
        self.active = 0
        self.max_active = 0

    async def _enter(self) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if self.fail:
                raise TransientError("remote down")
        finally:
            self.active -= 1

    async def list_records(self, flt: RecordFilter | None = None) -> RecordPage:
        return RecordPage(records=list(self.records.values()), total=len(self.records))

    async def get(self, record_id: str) -> AssessmentRecord:
        if record_id not in self.records:
            raise NotFoundError()
        return self.records[record_id]

    async def create(self, payload: RecordCreate) -> AssessmentRecord:
        self.creates += 1
        await self._enter()
        record = AssessmentRecord(
            id=f"rec-{self.creates}",
            owner_id="alice",
            subject_name=payload.subject_name,
            assessment_date=datetime(2026, 1, 1),
            metrics=dict(payload.metrics),
        )
        self.records[record.id] = record
        return record

    async def update(self, record_id: str, changes: RecordUpdate) -> AssessmentRecord:
        self.updates += 1
        await self._enter()
        record = self.records[record_id]
        record.metrics = dict(changes.metrics or record.metrics)
        record.version += 1
        return record

    async def delete(self, record_id: str) -> None:
        self.records.pop(record_id)

    async def import_table(self, raw_text: str, subject_name: str | None = None) -> ImportResult:
        raise NotImplementedError

    async def export_table(
        self, flt: RecordFilter | None = None, ids: Sequence[str] | None = None
    ) -> TableExport:
        raise NotImplementedError


@pytest.fixture
def cache_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _policy(cache_dir: Path, remote: _RemoteStoreStub | None = None, delay: float = 0.01):
    events: list[SyncEvent] = []
    policy = SyncPolicy(
        EditSession(),
        remote or _RemoteStoreStub(),
        LocalCache(cache_dir / "draft.json"),
        notifier=events.append,
        delay=delay,
    )
    return policy, events


def _kinds(events: list[SyncEvent]) -> list[SyncEventKind]:
    return [e.kind for e in events]


class TestDebouncer:
    """Tests for the quiescence timer."""

    async def test_burst_fires_once(self):
        """Test several triggers inside the delay coalesce into one call."""
        calls = 0

        async def _callback():
            nonlocal calls
            calls += 1

        debouncer = Debouncer(0.01, _callback)
        for _ in range(5):
            debouncer.trigger()
        assert debouncer.pending
        await debouncer.wait()
        assert calls == 1
        assert not debouncer.pending

    async def test_cancel_prevents_call(self):
        """Test a cancelled timer never fires."""
        calls = 0

        async def _callback():
            nonlocal calls
            calls += 1

        debouncer = Debouncer(0.01, _callback)
        debouncer.trigger()
        debouncer.cancel()
        await asyncio.sleep(0.03)
        assert calls == 0


class TestAutosave:
    """Tests for create/update through the debounce timer."""

    async def test_burst_of_edits_creates_once(self, cache_dir):
        """Test edits coalesce into a single create that binds the session."""
        remote = _RemoteStoreStub()
        policy, events = _policy(cache_dir, remote)

        policy.edit_subject_name("Jane")
        policy.edit_rating("strategy", 4)
        policy.edit_rating("teams", "9")
        await policy.wait_idle()

        assert remote.creates == 1
        assert policy.session.record_id == "rec-1"
        assert policy.session.dirty is False
        assert _kinds(events) == [SyncEventKind.SAVED]
        assert events[0].message == "Assessment saved to database"
        assert remote.records["rec-1"].metrics["teams"] == 5

        draft = await policy.cache.load()
        assert draft is not None
        assert draft.ratings["strategy"] == 4

    async def test_bound_session_updates(self, cache_dir):
        """Test the second save is an update, not another create."""
        remote = _RemoteStoreStub()
        policy, events = _policy(cache_dir, remote)

        policy.edit_rating("strategy", 4)
        await policy.wait_idle()
        policy.edit_rating("strategy", 2)
        await policy.wait_idle()

        assert remote.creates == 1
        assert remote.updates == 1
        assert remote.records["rec-1"].metrics["strategy"] == 2
        assert _kinds(events) == [SyncEventKind.SAVED, SyncEventKind.UPDATED]

    async def test_remote_failure_degrades_once(self, cache_dir):
        """Test a failed save writes locally and notifies exactly once."""
        remote = _RemoteStoreStub()
        remote.fail = True
        policy, events = _policy(cache_dir, remote)

        policy.edit_rating("strategy", 3)
        await policy.wait_idle()

        assert _kinds(events) == [SyncEventKind.DEGRADED]
        assert events[0].message == "Saved locally (offline mode)"
        assert policy.session.record_id is None
        assert policy.session.dirty is True
        draft = await policy.cache.load()
        assert draft.ratings["strategy"] == 3

    async def test_no_retry_until_next_edit(self, cache_dir):
        """Test recovery happens on the next edit, not automatically."""
        remote = _RemoteStoreStub()
        remote.fail = True
        policy, events = _policy(cache_dir, remote)

        policy.edit_rating("strategy", 3)
        await policy.wait_idle()
        await asyncio.sleep(0.03)
        assert remote.creates == 1

        remote.fail = False
        policy.edit_rating("strategy", 4)
        await policy.wait_idle()
        assert remote.creates == 2
        assert _kinds(events) == [SyncEventKind.DEGRADED, SyncEventKind.SAVED]

    async def test_unreadable_api_response_degrades(self, cache_dir):
        """Test a non-JSON 200 from the API falls back to the local cache."""
        remote = HttpRemoteStore(
            "http://api.test/api",
            "tok",
            retry_wait=0,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>proxy login</html>")
            ),
        )
        policy, events = _policy(cache_dir, remote)

        policy.edit_rating("teams", 4)
        await policy.wait_idle()

        assert _kinds(events) == [SyncEventKind.DEGRADED]
        draft = await policy.cache.load()
        assert draft.ratings["teams"] == 4
        assert await policy.save_now() is False
        await remote.close()

    async def test_stale_response_does_not_rebind(self, cache_dir):
        """Test a create finishing after start-over leaves the new session unbound."""
        remote = _RemoteStoreStub()
        remote.gate = asyncio.Event()
        policy, events = _policy(cache_dir, remote)

        policy.session.set_rating("strategy", 4)
        save = asyncio.create_task(policy.save())
        await asyncio.sleep(0.01)
        await policy.start_new()
        remote.gate.set()

        assert await save is False
        assert policy.session.record_id is None
        assert _kinds(events) == [SyncEventKind.CLEARED]

    async def test_writes_never_overlap(self, cache_dir):
        """Test concurrent saves are serialized."""
        remote = _RemoteStoreStub()
        remote.gate = asyncio.Event()
        policy, _ = _policy(cache_dir, remote)
        policy.session.set_rating("strategy", 1)

        first = asyncio.create_task(policy.save())
        second = asyncio.create_task(policy.save())
        await asyncio.sleep(0.01)
        remote.gate.set()
        await asyncio.gather(first, second)

        assert remote.max_active == 1
        assert remote.creates == 1
        assert remote.updates == 1

    async def test_save_now_skips_timer(self, cache_dir):
        """Test an explicit save cancels the pending autosave."""
        remote = _RemoteStoreStub()
        policy, _ = _policy(cache_dir, remote, delay=10)

        policy.edit_rating("strategy", 4)
        assert policy.save_pending
        assert await policy.save_now() is True
        assert not policy.save_pending
        assert remote.creates == 1

    async def test_read_only_never_writes(self, cache_dir):
        """Test a read-only session is not saved."""
        remote = _RemoteStoreStub()
        policy, _ = _policy(cache_dir, remote)
        await policy.save_now()
        await policy.load("rec-1", read_only=True)

        assert await policy.save() is False
        with pytest.raises(ReadOnlySessionError):
            policy.edit_rating("strategy", 1)
        assert remote.updates == 0


class TestLoadAndReset:
    """Tests for load and start-over."""

    async def test_load_remote_record(self, cache_dir):
        """Test loading binds the session."""
        remote = _RemoteStoreStub()
        policy, events = _policy(cache_dir, remote)
        await policy.save_now()
        events.clear()

        other, other_events = _policy(cache_dir, remote)
        assert await other.load("rec-1") is True
        assert other.session.record_id == "rec-1"
        assert other_events[0] == SyncEvent(SyncEventKind.LOADED, "Assessment loaded successfully")

    async def test_load_missing_record_raises(self, cache_dir):
        """Test a failed fetch is reported and raised."""
        policy, events = _policy(cache_dir)
        with pytest.raises(NotFoundError):
            await policy.load("missing")
        assert _kinds(events) == [SyncEventKind.ERROR]

    async def test_load_restores_local_draft(self, cache_dir):
        """Test the draft seeds an unsaved session."""
        policy, _ = _policy(cache_dir)
        await policy.cache.save(Draft(subject_name="Jane", ratings={"teams": 3}))

        assert await policy.load() is True
        assert policy.session.subject_name == "Jane"
        assert policy.session.rating("teams") == 3
        assert policy.session.record_id is None

    async def test_restore_after_read_only_view_is_editable(self, cache_dir):
        """Test restoring a draft ends read-only mode."""
        remote = _RemoteStoreStub()
        policy, _ = _policy(cache_dir, remote)
        await policy.save_now()
        await policy.load("rec-1", read_only=True)
        await policy.cache.save(Draft(subject_name="Jane", ratings={"teams": 3}))

        assert await policy.load() is True
        assert policy.session.read_only is False
        policy.edit_rating("teams", 5)
        await policy.wait_idle()
        assert policy.session.rating("teams") == 5
        assert remote.creates == 2

    async def test_load_without_draft(self, cache_dir):
        """Test nothing to restore."""
        policy, _ = _policy(cache_dir)
        assert await policy.load() is False

    async def test_start_new_clears_draft(self, cache_dir):
        """Test starting over drops the cache and zeroes ratings."""
        policy, events = _policy(cache_dir)
        policy.session.set_rating("teams", 3)
        await policy.save_now()
        await policy.start_new()

        assert await policy.cache.load() is None
        assert policy.session.rating("teams") == 0
        assert events[-1] == SyncEvent(SyncEventKind.CLEARED, "Ready for new assessment")


class TestCsv:
    """Tests for session CSV import/export."""

    async def test_import_sets_ratings(self, cache_dir):
        """Test imported ratings are clamped and cached."""
        policy, events = _policy(cache_dir)
        result = await policy.import_csv("Categories,Ratings\nstrategy,9\nbogus,1\nteams,2\n")

        assert result.loaded == 2
        assert result.warnings == ["Unknown category: bogus"]
        assert policy.session.rating("strategy") == 5
        assert events[-1].message == "Successfully loaded 2 ratings from CSV"
        assert (await policy.cache.load()).ratings["teams"] == 2

    async def test_import_bad_header(self, cache_dir):
        """Test header errors are reported and raised."""
        policy, events = _policy(cache_dir)
        with pytest.raises(CsvHeaderError):
            await policy.import_csv("Name,Score\nstrategy,1\n")
        assert _kinds(events) == [SyncEventKind.ERROR]

    def test_export_csv(self, cache_dir):
        """Test export filename and body."""
        policy, _ = _policy(cache_dir)
        policy.session.set_subject_name("Jane Doe")
        policy.session.set_rating("sharedVision", 4)

        filename, text = policy.export_csv(date(2026, 2, 3))
        assert filename == "Jane_Doe_assessment_2026-02-03.csv"
        assert text.splitlines()[:2] == ["Categories,Ratings", "sharedVision,4"]


class TestFromConfig:
    """Tests for building a policy from configuration."""

    async def test_uses_configured_cache_and_delay(self, cache_dir):
        """Test the draft path and autosave delay come from the config."""
        config = AssessmentConfig(cache_path=str(cache_dir / "drafts" / "current.json"), autosave_delay=0.01)
        remote = _RemoteStoreStub()
        remote.fail = True
        policy = SyncPolicy.from_config(config, remote)

        policy.edit_rating("teams", 2)
        await policy.wait_idle()

        assert policy.cache.path == cache_dir / "drafts" / "current.json"
        assert (cache_dir / "drafts" / "current.json").exists()
