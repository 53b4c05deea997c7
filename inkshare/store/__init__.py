"""Remote store contract and implementations."""

from inkshare.store.base import DocumentStore, FeedItem, RemoteStore, SnapshotHub
from inkshare.store.filesystem import FileStore, validate_canvas_id
from inkshare.store.memory import MemoryStore

__all__ = [
    "DocumentStore",
    "FeedItem",
    "FileStore",
    "MemoryStore",
    "RemoteStore",
    "SnapshotHub",
    "validate_canvas_id",
]
