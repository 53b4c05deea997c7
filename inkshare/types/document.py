"""Canvas document model."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from inkshare.errors import CapacityExceededError
from inkshare.types.strokes import Stroke

# Maximum number of strokes allowed on a canvas
MAX_STROKES = 1000


def utc_now() -> datetime:
    return datetime.now(UTC)


class CanvasDocument(BaseModel):
    """The ordered, versioned collection of finalized strokes for one canvas.

    Documents are treated as values: every mutating method returns a new
    document and leaves the receiver untouched. Stroke order is append order,
    not timestamp order.

    `version` is a change signal only. It is never used to resolve conflicts.
    """

    canvas_id: str
    strokes: list[Stroke] = []
    version: int = Field(default=0, ge=0)
    last_updated: datetime = Field(default_factory=utc_now)

    @field_validator("strokes")
    @classmethod
    def _check_capacity(cls, strokes: list[Stroke]) -> list[Stroke]:
        if len(strokes) > MAX_STROKES:
            raise ValueError(f"Canvas has {len(strokes)} strokes, limit is {MAX_STROKES}")
        return strokes

    @classmethod
    def empty(cls, canvas_id: str) -> "CanvasDocument":
        """Create an empty document for a newly opened canvas."""
        return cls(canvas_id=canvas_id)

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        """Serialize with ISO timestamps so the result is JSON-ready."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)

    # --- Queries ---

    @property
    def stroke_count(self) -> int:
        return len(self.strokes)

    @property
    def can_add_stroke(self) -> bool:
        """Whether another stroke fits under the capacity limit."""
        return self.stroke_count < MAX_STROKES

    @property
    def stroke_limit_percentage(self) -> float:
        """Fraction of the stroke limit in use (0.0 to 1.0)."""
        return self.stroke_count / MAX_STROKES

    @property
    def last_stroke(self) -> Stroke | None:
        return self.strokes[-1] if self.strokes else None

    def stroke_ids(self) -> list[str]:
        return [s.id for s in self.strokes]

    def get_stroke(self, stroke_id: str) -> Stroke | None:
        for stroke in self.strokes:
            if stroke.id == stroke_id:
                return stroke
        return None

    # --- Mutations (copy-on-write) ---

    def _bumped(self, strokes: list[Stroke]) -> "CanvasDocument":
        return self.model_copy(
            update={
                "strokes": strokes,
                "version": self.version + 1,
                "last_updated": utc_now(),
            }
        )

    def add_stroke(self, stroke: Stroke) -> "CanvasDocument":
        """Return a new document with `stroke` appended.

        Raises:
            CapacityExceededError: if the canvas already holds MAX_STROKES strokes.
        """
        if not self.can_add_stroke:
            raise CapacityExceededError(MAX_STROKES)
        return self._bumped([*self.strokes, stroke])

    def remove_stroke(self, stroke_id: str) -> "CanvasDocument":
        """Return a new document without the given stroke (self if absent)."""
        remaining = [s for s in self.strokes if s.id != stroke_id]
        if len(remaining) == len(self.strokes):
            return self
        return self._bumped(remaining)

    def remove_last_stroke(self) -> "CanvasDocument":
        if not self.strokes:
            return self
        return self._bumped(self.strokes[:-1])

    def clear(self) -> "CanvasDocument":
        if not self.strokes:
            return self
        return self._bumped([])
