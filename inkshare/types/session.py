"""Drawing session state values and edit results."""

from dataclasses import dataclass
from enum import Enum

from inkshare.types.strokes import Stroke


class SessionStatus(str, Enum):
    """Drawing session states."""

    IDLE = "idle"  # No open stroke
    EDITING = "editing"  # One open stroke accumulating points


class EditOutcome(str, Enum):
    """Result of a session edit operation."""

    APPLIED = "applied"
    IGNORED = "ignored"  # Precondition not met, nothing changed
    CAPACITY_EXCEEDED = "capacity_exceeded"


class MutationKind(str, Enum):
    """Kinds of local change forwarded to the remote store."""

    ADD = "add"  # save_stroke
    REMOVE = "remove"  # remove_stroke
    CLEAR = "clear"  # clear_canvas


@dataclass(frozen=True)
class LocalMutation:
    """A local change that must be mirrored to the remote store."""

    kind: MutationKind
    canvas_id: str
    stroke: Stroke | None = None

    def __post_init__(self) -> None:
        if self.kind != MutationKind.CLEAR and self.stroke is None:
            raise ValueError(f"{self.kind.value} mutation requires a stroke")


@dataclass(frozen=True)
class EditResult:
    """Outcome of finalize/undo/redo/clear, with the stroke involved (if any)."""

    outcome: EditOutcome
    stroke: Stroke | None = None

    @property
    def applied(self) -> bool:
        return self.outcome == EditOutcome.APPLIED

    @property
    def capacity_exceeded(self) -> bool:
        return self.outcome == EditOutcome.CAPACITY_EXCEEDED

    def to_mutation(self, kind: MutationKind, canvas_id: str) -> LocalMutation | None:
        """Build the store mutation for an applied result, None otherwise."""
        if not self.applied:
            return None
        return LocalMutation(kind=kind, canvas_id=canvas_id, stroke=self.stroke)


IGNORED = EditResult(EditOutcome.IGNORED)
