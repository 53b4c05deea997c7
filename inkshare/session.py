"""Drawing session state machine for one canvas and one local author."""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime

from inkshare.errors import CapacityExceededError
from inkshare.geometry import SMOOTHING_STEPS, simplify_points, smooth_points
from inkshare.types import (
    MAX_STROKES,
    CanvasDocument,
    EditOutcome,
    EditResult,
    OpenStroke,
    Point,
    SessionStatus,
    Stroke,
    ensure_finite,
    normalize_color,
)
from inkshare.types.document import utc_now
from inkshare.types.session import IGNORED

logger = logging.getLogger(__name__)


def new_stroke_id() -> str:
    return uuid.uuid4().hex


class DrawingSession:
    """Local editing session: stroke lifecycle, undo/redo and capacity.

    States:
        IDLE    - no open stroke
        EDITING - one open stroke accumulating points

    All operations are synchronous and must be called from a single thread of
    control (the asyncio event loop that owns the canvas view).

    Undo history is implicit: undo removes the last appended stroke from the
    document and pushes it on the redo stack. The redo stack is cleared by
    every newly finalized stroke.
    """

    def __init__(
        self,
        canvas_id: str,
        author_id: str,
        document: CanvasDocument | None = None,
        *,
        smoothing_steps: int = SMOOTHING_STEPS,
        simplify_tolerance: float | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_stroke_id,
    ) -> None:
        if document is not None and document.canvas_id != canvas_id:
            raise ValueError(
                f"Document belongs to canvas {document.canvas_id}, not {canvas_id}"
            )
        self.canvas_id = canvas_id
        self.author_id = author_id
        self._smoothing_steps = smoothing_steps
        self._simplify_tolerance = simplify_tolerance
        self._clock = clock
        self._id_factory = id_factory

        self._document: CanvasDocument = document or CanvasDocument.empty(canvas_id)
        self._redo_stack: list[Stroke] = []
        self._open_stroke: OpenStroke | None = None

    # --- Queries ---

    @property
    def document(self) -> CanvasDocument:
        """The local view of the canvas, for rendering."""
        return self._document

    @property
    def open_stroke(self) -> OpenStroke | None:
        return self._open_stroke

    @property
    def redo_stack(self) -> tuple[Stroke, ...]:
        """Undone strokes, most recent last."""
        return tuple(self._redo_stack)

    @property
    def is_editing(self) -> bool:
        return self._open_stroke is not None

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.EDITING if self.is_editing else SessionStatus.IDLE

    @property
    def can_undo(self) -> bool:
        return self._document.stroke_count > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    @property
    def can_add_stroke(self) -> bool:
        return self._document.can_add_stroke

    @property
    def stroke_count(self) -> int:
        return self._document.stroke_count

    @property
    def stroke_limit_percentage(self) -> float:
        return self._document.stroke_limit_percentage

    # --- Stroke lifecycle ---

    def start_stroke(self, point: Point, color: str, width: float) -> bool:
        """Open a new stroke at `point`.

        Returns False without changing state when a stroke is already open or
        the canvas is full.

        Raises:
            InvalidGeometryError: if the point has non-finite coordinates.
            ValueError: if the color is not a hex color or width is not positive.
        """
        ensure_finite([point])
        color = normalize_color(color)
        if not (math.isfinite(width) and width > 0):
            raise ValueError(f"Stroke width must be a positive number, got {width}")

        if self.is_editing:
            logger.debug(f"Canvas {self.canvas_id}: start_stroke ignored, already editing")
            return False
        if not self.can_add_stroke:
            logger.info(
                f"Canvas {self.canvas_id}: start_stroke ignored, "
                f"stroke limit ({MAX_STROKES}) reached"
            )
            return False

        self._open_stroke = OpenStroke(
            id=self._id_factory(),
            color=color,
            width=width,
            authored_at=self._clock(),
            author_id=self.author_id,
            points=[point],
        )
        return True

    def append_point(self, point: Point) -> bool:
        """Add a point to the open stroke. Returns False when idle."""
        if self._open_stroke is None:
            return False
        ensure_finite([point])
        self._open_stroke.append(point)
        return True

    def finalize_stroke(self) -> EditResult:
        """Smooth the open stroke, commit it to the document and go idle.

        Returns:
            APPLIED with the committed stroke, IGNORED when idle, or
            CAPACITY_EXCEEDED when the canvas is full (the stroke is dropped
            and the document is left untouched). A full canvas also reports
            CAPACITY_EXCEEDED when idle, since start_stroke refused the gesture.
        """
        open_stroke = self._open_stroke
        if open_stroke is None:
            if not self.can_add_stroke:
                return EditResult(EditOutcome.CAPACITY_EXCEEDED)
            return IGNORED
        self._open_stroke = None

        raw_points = open_stroke.points
        points = (
            smooth_points(raw_points, self._smoothing_steps)
            if len(raw_points) >= 4
            else list(raw_points)
        )
        if self._simplify_tolerance is not None:
            points = simplify_points(points, self._simplify_tolerance)

        stroke = open_stroke.finalize(points)

        try:
            self._document = self._document.add_stroke(stroke)
        except CapacityExceededError as e:
            logger.warning(f"Canvas {self.canvas_id}: stroke {stroke.id} discarded: {e}")
            return EditResult(EditOutcome.CAPACITY_EXCEEDED, stroke)

        self._redo_stack.clear()
        logger.debug(
            f"Canvas {self.canvas_id}: stroke {stroke.id} finalized "
            f"({len(raw_points)} raw -> {stroke.point_count} points)"
        )
        return EditResult(EditOutcome.APPLIED, stroke)

    def cancel_stroke(self) -> bool:
        """Discard the open stroke without committing it. Returns False when idle."""
        if self._open_stroke is None:
            return False
        logger.debug(f"Canvas {self.canvas_id}: stroke {self._open_stroke.id} cancelled")
        self._open_stroke = None
        return True

    # --- History ---

    def undo(self) -> EditResult:
        """Move the last appended stroke from the document to the redo stack."""
        last = self._document.last_stroke
        if last is None:
            return IGNORED

        self._document = self._document.remove_last_stroke()
        self._redo_stack.append(last)
        return EditResult(EditOutcome.APPLIED, last)

    def redo(self) -> EditResult:
        """Re-append the most recently undone stroke at the end of the document.

        On a full canvas the stroke stays on the redo stack and the result is
        CAPACITY_EXCEEDED. A stroke that a remote snapshot has already put back
        is discarded from the stack and the result is IGNORED.
        """
        if not self._redo_stack:
            return IGNORED

        stroke = self._redo_stack[-1]
        if self._document.get_stroke(stroke.id) is not None:
            self._redo_stack.pop()
            logger.debug(
                f"Canvas {self.canvas_id}: redo skipped, stroke {stroke.id} already present"
            )
            return IGNORED
        try:
            self._document = self._document.add_stroke(stroke)
        except CapacityExceededError as e:
            logger.warning(f"Canvas {self.canvas_id}: redo of stroke {stroke.id} failed: {e}")
            return EditResult(EditOutcome.CAPACITY_EXCEEDED, stroke)

        self._redo_stack.pop()
        return EditResult(EditOutcome.APPLIED, stroke)

    def clear(self) -> EditResult:
        """Remove every stroke, drop all history and any open stroke.

        Irreversible: cleared strokes are not pushed on the redo stack.
        """
        self._document = self._document.clear()
        self._redo_stack.clear()
        self._open_stroke = None
        logger.info(f"Canvas {self.canvas_id}: cleared")
        return EditResult(EditOutcome.APPLIED)

    # --- Remote state ---

    def replace_document(self, document: CanvasDocument) -> None:
        """Swap in a whole document delivered by the remote store."""
        if document.canvas_id != self.canvas_id:
            raise ValueError(
                f"Document belongs to canvas {document.canvas_id}, not {self.canvas_id}"
            )
        self._document = document

    def __repr__(self) -> str:
        return (
            f"DrawingSession(canvas_id={self.canvas_id!r}, strokes={self.stroke_count}, "
            f"status={self.status.value}, can_undo={self.can_undo}, can_redo={self.can_redo})"
        )
