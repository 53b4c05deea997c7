"""Core geometry types."""

import math
from collections.abc import Sequence
from typing import TypedDict

from pydantic import BaseModel, ConfigDict

from inkshare.errors import InvalidGeometryError


class PointDict(TypedDict):
    """Dictionary representation of a point."""

    x: float
    y: float


class Point(BaseModel):
    """A 2D point in canvas coordinates."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def to_dict(self) -> PointDict:
        return {"x": self.x, "y": self.y}


def ensure_finite(points: Sequence[Point]) -> None:
    """Reject points with NaN or infinite coordinates.

    Raises:
        InvalidGeometryError: naming the index of the first bad point.
    """
    for index, point in enumerate(points):
        if not point.is_finite:
            raise InvalidGeometryError(
                f"Point {index} has non-finite coordinates ({point.x}, {point.y})",
                index=index,
            )
