"""Stroke models: the mutable stroke being drawn and the finalized stroke."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inkshare.errors import StrokeAlreadyFinalizedError
from inkshare.types.geometry import Point

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def normalize_color(value: str) -> str:
    """Validate a #RRGGBB / #RRGGBBAA hex color and lower-case it."""
    if not HEX_COLOR_RE.match(value):
        raise ValueError(f"Invalid hex color: {value!r}")
    return value.lower()


class Stroke(BaseModel):
    """A finalized stroke: one pen-down to pen-up gesture.

    Finalized strokes are immutable. Two strokes are equal when their ids are
    equal, so a stroke echoed back by the remote store compares equal to the
    local copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    points: tuple[Point, ...] = Field(min_length=1)
    color: str
    width: float = Field(gt=0)
    authored_at: datetime
    author_id: str

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        return normalize_color(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stroke):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def point_count(self) -> int:
        return len(self.points)

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        """Serialize with ISO timestamps so the result is JSON-ready."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)


@dataclass
class OpenStroke:
    """A stroke that is still being drawn.

    Points are appended while the pointer is down. `finalize` turns it into an
    immutable Stroke exactly once.
    """

    id: str
    color: str
    width: float
    authored_at: datetime
    author_id: str
    points: list[Point] = field(default_factory=list)
    _finalized: bool = field(default=False, repr=False)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def append(self, point: Point) -> None:
        if self._finalized:
            raise StrokeAlreadyFinalizedError(self.id)
        self.points.append(point)

    def finalize(self, points: list[Point] | None = None) -> Stroke:
        """Freeze this stroke, optionally replacing its points (e.g. smoothed)."""
        if self._finalized:
            raise StrokeAlreadyFinalizedError(self.id)
        stroke = Stroke(
            id=self.id,
            points=tuple(self.points if points is None else points),
            color=self.color,
            width=self.width,
            authored_at=self.authored_at,
            author_id=self.author_id,
        )
        self._finalized = True
        return stroke
