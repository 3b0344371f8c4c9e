from .session import EditSession
from .sync import Debouncer, SyncEvent, SyncEventKind, SyncPolicy

__all__ = ["Debouncer", "EditSession", "SyncEvent", "SyncEventKind", "SyncPolicy"]
