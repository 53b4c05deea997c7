"""Remote store contract and the shared document-store implementation."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from inkshare.errors import RemoteFeedError, StoreError
from inkshare.types import CanvasDocument, Stroke
from inkshare.types.document import utc_now

logger = logging.getLogger(__name__)

# One feed delivery: a full document snapshot, or an error for that delivery
FeedItem = CanvasDocument | RemoteFeedError

# Snapshots buffered per watcher before the oldest are dropped
WATCH_QUEUE_SIZE = 16


@runtime_checkable
class RemoteStore(Protocol):
    """Contract the drawing core needs from the persistence/transport layer.

    `watch_canvas` must deliver FULL document snapshots, never deltas: the
    reconciler drops snapshots that arrive mid-stroke and relies on the next
    one to catch up.
    """

    async def load_canvas(self, canvas_id: str) -> CanvasDocument:
        """Return the canvas, or an empty document if none exists."""
        ...

    async def save_stroke(self, canvas_id: str, stroke: Stroke) -> None:
        """Append one stroke durably. Idempotent on stroke id."""
        ...

    async def remove_stroke(self, canvas_id: str, stroke_id: str) -> None:
        """Remove a stroke by id. No-op if absent."""
        ...

    async def clear_canvas(self, canvas_id: str) -> None:
        """Remove all strokes durably."""
        ...

    def watch_canvas(self, canvas_id: str) -> AsyncIterator[FeedItem]:
        """Yield the current document immediately, then after every mutation."""
        ...


class SnapshotHub:
    """In-process fan-out of document snapshots to watchers of a canvas."""

    def __init__(self, queue_size: int = WATCH_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._watchers: dict[str, set[asyncio.Queue[FeedItem]]] = defaultdict(set)

    def subscribe(self, canvas_id: str) -> asyncio.Queue[FeedItem]:
        queue: asyncio.Queue[FeedItem] = asyncio.Queue(maxsize=self._queue_size)
        self._watchers[canvas_id].add(queue)
        return queue

    def unsubscribe(self, canvas_id: str, queue: asyncio.Queue[FeedItem]) -> None:
        watchers = self._watchers.get(canvas_id)
        if watchers is None:
            return
        watchers.discard(queue)
        if not watchers:
            del self._watchers[canvas_id]

    def watcher_count(self, canvas_id: str) -> int:
        return len(self._watchers.get(canvas_id, ()))

    def publish(self, canvas_id: str, item: FeedItem) -> None:
        """Deliver an item to every watcher, dropping a slow watcher's oldest item."""
        for queue in self._watchers.get(canvas_id, ()):
            if queue.full():
                # Snapshots are full documents, so older ones are redundant
                queue.get_nowait()
                logger.debug(f"Canvas {canvas_id}: watcher lagging, dropped oldest snapshot")
            queue.put_nowait(item)


class DocumentStore(ABC):
    """Store built on whole-document reads and writes.

    Subclasses provide `_read` and `_write`; mutation semantics (idempotent
    saves, version bumps, watcher notification) live here.
    """

    def __init__(self) -> None:
        self._hub = SnapshotHub()
        self._lock = asyncio.Lock()

    @abstractmethod
    async def _read(self, canvas_id: str) -> CanvasDocument | None:
        """Return the stored document, or None if the canvas does not exist."""

    @abstractmethod
    async def _write(self, document: CanvasDocument) -> None:
        """Persist the document."""

    async def _load(self, canvas_id: str) -> CanvasDocument:
        document = await self._read(canvas_id)
        return document if document is not None else CanvasDocument.empty(canvas_id)

    async def load_canvas(self, canvas_id: str) -> CanvasDocument:
        return await self._load(canvas_id)

    async def _commit(self, document: CanvasDocument) -> None:
        await self._write(document)
        self._hub.publish(document.canvas_id, document)

    async def save_stroke(self, canvas_id: str, stroke: Stroke) -> None:
        async with self._lock:
            document = await self._load(canvas_id)
            if document.get_stroke(stroke.id) is not None:
                logger.debug(f"Canvas {canvas_id}: stroke {stroke.id} already saved")
                return
            await self._commit(document.add_stroke(stroke))
        logger.debug(f"Canvas {canvas_id}: saved stroke {stroke.id}")

    async def remove_stroke(self, canvas_id: str, stroke_id: str) -> None:
        async with self._lock:
            document = await self._load(canvas_id)
            updated = document.remove_stroke(stroke_id)
            if updated is document:
                return
            await self._commit(updated)
        logger.debug(f"Canvas {canvas_id}: removed stroke {stroke_id}")

    async def clear_canvas(self, canvas_id: str) -> None:
        async with self._lock:
            document = await self._load(canvas_id)
            cleared = document.model_copy(
                update={"strokes": [], "version": document.version + 1, "last_updated": utc_now()}
            )
            await self._commit(cleared)
        logger.info(f"Canvas {canvas_id}: cleared in store")

    async def watch_canvas(self, canvas_id: str) -> AsyncIterator[FeedItem]:
        # Subscribe before the initial read so no mutation falls in between
        queue = self._hub.subscribe(canvas_id)
        try:
            try:
                yield await self.load_canvas(canvas_id)
            except StoreError as e:
                yield RemoteFeedError(canvas_id, str(e))
            while True:
                yield await queue.get()
        finally:
            self._hub.unsubscribe(canvas_id, queue)

    def publish_feed_error(self, canvas_id: str, message: str) -> None:
        """Signal a failed delivery to every watcher of the canvas."""
        self._hub.publish(canvas_id, RemoteFeedError(canvas_id, message))

    def watcher_count(self, canvas_id: str) -> int:
        return self._hub.watcher_count(canvas_id)
