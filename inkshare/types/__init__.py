"""Type definitions for the drawing core.

This package contains all type definitions organized into focused modules:
- geometry: Core geometry types (Point, PointDict)
- strokes: Open and finalized stroke models
- document: Canvas document model and capacity limit
- session: Session status values and edit results
"""

from inkshare.types.document import MAX_STROKES, CanvasDocument
from inkshare.types.geometry import Point, PointDict, ensure_finite
from inkshare.types.session import (
    EditOutcome,
    EditResult,
    LocalMutation,
    MutationKind,
    SessionStatus,
)
from inkshare.types.strokes import OpenStroke, Stroke, normalize_color

__all__ = [
    # Geometry
    "Point",
    "PointDict",
    "ensure_finite",
    # Strokes
    "OpenStroke",
    "Stroke",
    "normalize_color",
    # Document
    "CanvasDocument",
    "MAX_STROKES",
    # Session
    "EditOutcome",
    "EditResult",
    "LocalMutation",
    "MutationKind",
    "SessionStatus",
]
