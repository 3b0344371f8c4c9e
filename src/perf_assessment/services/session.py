"""In-memory handle for the assessment currently being edited."""

from __future__ import annotations

from dataclasses import dataclass, field

from perf_assessment.core.errors import ReadOnlySessionError, UnknownMetricError
from perf_assessment.core.slug import sanitize_display_name
from perf_assessment.models import AssessmentRecord, RecordCreate
from perf_assessment.schema import DEFAULT_REGISTRY, SchemaRegistry
from perf_assessment.scoring import Averages, Rating, clamp_rating, compute_averages
from perf_assessment.services.storage import Draft

DEFAULT_SUBJECT_NAME = "Unknown"


@dataclass
class EditSession:
    """One in-progress assessment and its persistence state.

    A session is Unsaved until a record id is bound, and Dirty whenever an
    edit happened after the last successful write. ``generation`` changes
    whenever the session starts over or is reloaded, so callers can tell if
    a pending response still belongs to the record that issued it.
    ``revision`` counts edits.
    """

    registry: SchemaRegistry = DEFAULT_REGISTRY
    subject_name: str = ""
    ratings: dict[str, Rating] = field(default_factory=dict)
    record_id: str | None = None
    dirty: bool = False
    read_only: bool = False
    generation: int = 0
    revision: int = 0

    @property
    def is_bound(self) -> bool:
        return self.record_id is not None

    @property
    def state(self) -> str:
        return "bound" if self.is_bound else "unsaved"

    def _check_writable(self) -> None:
        if self.read_only:
            raise ReadOnlySessionError()

    def _touch(self) -> None:
        self.dirty = True
        self.revision += 1

    def rating(self, metric_id: str) -> Rating:
        if not self.registry.is_known_metric(metric_id):
            raise UnknownMetricError(metric_id)
        return self.ratings.get(metric_id, 0)

    def set_rating(self, metric_id: str, raw: object) -> Rating:
        """Clamp and store a rating; returns the stored value."""
        self._check_writable()
        if not self.registry.is_known_metric(metric_id):
            raise UnknownMetricError(metric_id)
        value = clamp_rating(raw)
        self.ratings[metric_id] = value
        self._touch()
        return value

    def set_subject_name(self, raw: str) -> str:
        self._check_writable()
        self.subject_name = sanitize_display_name(raw)
        self._touch()
        return self.subject_name

    def full_ratings(self) -> dict[str, Rating]:
        """Every metric in registry order, 0 where nothing was entered."""
        return {metric_id: self.ratings.get(metric_id, 0) for metric_id in self.registry.ordered_metric_ids()}

    def averages(self) -> Averages:
        return compute_averages(self.ratings, self.registry)

    def payload(self) -> RecordCreate:
        """Build the remote write payload; ratings are truncated to integers."""
        return RecordCreate(
            subject_name=self.subject_name or DEFAULT_SUBJECT_NAME,
            metrics={metric_id: int(value) for metric_id, value in self.full_ratings().items()},
        )

    def bind(self, record_id: str) -> None:
        self.record_id = record_id

    def mark_clean(self, revision: int | None = None) -> None:
        """Clear Dirty unless edits happened after ``revision``."""
        if revision is None or revision == self.revision:
            self.dirty = False

    def start_new(self) -> None:
        """Drop the bound id and reset every rating to 0."""
        self.record_id = None
        self.subject_name = ""
        self.ratings = dict.fromkeys(self.registry.ordered_metric_ids(), 0)
        self.dirty = False
        self.read_only = False
        self.generation += 1

    def load_record(self, record: AssessmentRecord, read_only: bool = False) -> None:
        """Seed the session from a stored record and bind its id."""
        self.subject_name = record.subject_name
        self.ratings = {
            metric_id: clamp_rating(value)
            for metric_id, value in record.metrics.items()
            if self.registry.is_known_metric(metric_id)
        }
        self.record_id = record.id
        self.dirty = False
        self.read_only = read_only
        self.generation += 1

    def snapshot(self) -> Draft:
        return Draft(subject_name=self.subject_name, ratings=self.full_ratings())

    def restore(self, draft: Draft) -> None:
        """Seed the session from a local draft; the session stays Unsaved."""
        self.subject_name = draft.subject_name
        self.ratings = {
            metric_id: clamp_rating(value)
            for metric_id, value in draft.ratings.items()
            if self.registry.is_known_metric(metric_id)
        }
        self.record_id = None
        self.dirty = False
        self.read_only = False
        self.generation += 1
