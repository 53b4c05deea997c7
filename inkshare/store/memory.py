"""In-process remote store, used for tests and local demos."""

from __future__ import annotations

import logging
from collections import defaultdict

from inkshare.errors import StoreError
from inkshare.store.base import DocumentStore
from inkshare.types import CanvasDocument, Stroke

logger = logging.getLogger(__name__)


class MemoryStore(DocumentStore):
    """Keeps canvas documents in a dict and fans snapshots out to watchers.

    `fail_next` makes the next call(s) of an operation raise, to exercise the
    write-failure path of the reconciler.
    """

    def __init__(self) -> None:
        super().__init__()
        self._documents: dict[str, CanvasDocument] = {}
        self._pending_failures: dict[str, list[Exception]] = defaultdict(list)
        self.calls: list[tuple[str, str]] = []  # (operation, canvas_id), in call order

    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        """Make the next `operation` call raise `error` (StoreError by default)."""
        self._pending_failures[operation].append(error or StoreError(f"{operation} failed"))

    def _maybe_fail(self, operation: str, canvas_id: str) -> None:
        self.calls.append((operation, canvas_id))
        failures = self._pending_failures.get(operation)
        if failures:
            raise failures.pop(0)

    async def _read(self, canvas_id: str) -> CanvasDocument | None:
        return self._documents.get(canvas_id)

    async def _write(self, document: CanvasDocument) -> None:
        self._documents[document.canvas_id] = document

    async def load_canvas(self, canvas_id: str) -> CanvasDocument:
        self._maybe_fail("load_canvas", canvas_id)
        return await super().load_canvas(canvas_id)

    async def save_stroke(self, canvas_id: str, stroke: Stroke) -> None:
        self._maybe_fail("save_stroke", canvas_id)
        await super().save_stroke(canvas_id, stroke)

    async def remove_stroke(self, canvas_id: str, stroke_id: str) -> None:
        self._maybe_fail("remove_stroke", canvas_id)
        await super().remove_stroke(canvas_id, stroke_id)

    async def clear_canvas(self, canvas_id: str) -> None:
        self._maybe_fail("clear_canvas", canvas_id)
        await super().clear_canvas(canvas_id)

    def snapshot(self, canvas_id: str) -> CanvasDocument:
        """Current stored document without going through the async API."""
        return self._documents.get(canvas_id) or CanvasDocument.empty(canvas_id)
