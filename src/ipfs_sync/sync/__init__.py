from .engine import SyncEngine
from .events import EventHub, Subscription, SyncEvent
from .state import FileRecord, SyncState
from .watcher import FolderWatcher

__all__ = [
    "SyncEngine",
    "SyncState",
    "FileRecord",
    "SyncEvent",
    "EventHub",
    "Subscription",
    "FolderWatcher",
]
