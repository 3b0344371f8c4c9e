from .local_cache import Draft, LocalCache
from .record_repository import RecordRepository
from .store import AssessmentStore

__all__ = ["AssessmentStore", "Draft", "LocalCache", "RecordRepository"]
