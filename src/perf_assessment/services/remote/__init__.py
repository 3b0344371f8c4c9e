from .base import RemoteStore
from .http import HttpRemoteStore, record_from_json
from .local import LocalRemoteStore

__all__ = ["HttpRemoteStore", "LocalRemoteStore", "RemoteStore", "record_from_json"]
