"""Shared fixtures for inkshare tests."""

import itertools
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from inkshare.session import DrawingSession
from inkshare.store import MemoryStore
from inkshare.types import MAX_STROKES, CanvasDocument, Point, Stroke

CANVAS_ID = "canvas-1"

StrokeFactory = Callable[..., Stroke]


@pytest.fixture
def make_stroke() -> StrokeFactory:
    """Factory for finalized strokes with unique ids."""
    counter = itertools.count(1)

    def _make(
        stroke_id: str | None = None,
        points: list[Point] | None = None,
        author_id: str = "alice",
    ) -> Stroke:
        return Stroke(
            id=stroke_id or f"stroke-{next(counter)}",
            points=points or [Point(x=0, y=0), Point(x=10, y=10)],
            color="#FF0000",
            width=2.0,
            authored_at=datetime(2024, 1, 1, tzinfo=UTC),
            author_id=author_id,
        )

    return _make


@pytest.fixture
def full_document(make_stroke: StrokeFactory) -> CanvasDocument:
    """A canvas holding exactly MAX_STROKES strokes."""
    return CanvasDocument(
        canvas_id=CANVAS_ID,
        strokes=[make_stroke() for _ in range(MAX_STROKES)],
    )


@pytest.fixture
def session() -> DrawingSession:
    """A drawing session with deterministic stroke ids."""
    ids = itertools.count(1)
    return DrawingSession(CANVAS_ID, "alice", id_factory=lambda: f"local-{next(ids)}")


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
