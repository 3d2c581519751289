"""Document store and snapshot persistence."""

from agentbuilders.storage.base import INDEXES, DocumentStore
from agentbuilders.storage.memory import JsonFileStore, MemoryStore
from agentbuilders.storage.snapshots import SnapshotStore, utc_day_start

__all__ = [
    "INDEXES",
    "DocumentStore",
    "JsonFileStore",
    "MemoryStore",
    "SnapshotStore",
    "utc_day_start",
]
