"""Chronolog - timeline journal with local-first sync."""

from chronolog.errors import AuthError, ChronologError, NetworkError, NotFoundError, ValidationError
from chronolog.storage.local import LocalStore
from chronolog.sync.orchestrator import SyncOrchestrator, SyncState
from chronolog.types import CloudData, ContentType, Entry, EntryType, MediaItem, SyncResult

__version__ = "0.3.0"
__all__ = [
    "AuthError",
    "ChronologError",
    "CloudData",
    "ContentType",
    "Entry",
    "EntryType",
    "LocalStore",
    "MediaItem",
    "NetworkError",
    "NotFoundError",
    "SyncOrchestrator",
    "SyncResult",
    "SyncState",
    "ValidationError",
]
