"""Exception types for the drawing core.

Geometry and session errors are raised synchronously to the caller.
Remote store errors (RemoteWriteFailed, RemoteFeedError) are only ever logged.
"""


class InkshareError(Exception):
    """Base class for all inkshare errors."""


class CapacityExceededError(InkshareError):
    """Raised when adding a stroke would exceed the canvas stroke limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Cannot add stroke: maximum limit of {limit} strokes reached")
        self.limit = limit


class InvalidGeometryError(InkshareError, ValueError):
    """Raised for malformed input points (e.g. NaN or infinite coordinates)."""

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class StrokeAlreadyFinalizedError(InkshareError):
    """Raised when an open stroke is finalized twice."""

    def __init__(self, stroke_id: str) -> None:
        super().__init__(f"Stroke {stroke_id} has already been finalized")
        self.stroke_id = stroke_id


class StoreError(InkshareError):
    """Unrecoverable remote store failure."""


class InvalidCanvasIdError(StoreError, ValueError):
    """Raised when a canvas id is not safe to use as a storage key."""


class RemoteWriteFailed(InkshareError):
    """A background save/remove/clear call against the remote store failed."""

    def __init__(self, operation: str, canvas_id: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed for canvas {canvas_id}: {cause}")
        self.operation = operation
        self.canvas_id = canvas_id
        self.cause = cause


class RemoteFeedError(InkshareError):
    """A single delivery on the remote change feed failed."""

    def __init__(self, canvas_id: str, message: str) -> None:
        super().__init__(f"Feed error for canvas {canvas_id}: {message}")
        self.canvas_id = canvas_id
