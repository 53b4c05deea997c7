"""Canvas controller: the surface a canvas view drives."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType

from inkshare.config import settings
from inkshare.session import DrawingSession
from inkshare.store import RemoteStore
from inkshare.sync import SyncReconciler
from inkshare.types import CanvasDocument, EditResult, MutationKind, Point

logger = logging.getLogger(__name__)

DocumentListener = Callable[[CanvasDocument], None]


class CanvasController:
    """Binds one DrawingSession to its SyncReconciler.

    Every applied local edit is visible immediately through `document` and is
    then handed to the reconciler for background persistence. `listener`, if
    set, is called with the new document after every local or remote change.
    """

    def __init__(
        self,
        canvas_id: str,
        store: RemoteStore,
        *,
        author_id: str | None = None,
        smoothing_steps: int | None = None,
        simplify_tolerance: float | None = None,
        listener: DocumentListener | None = None,
    ) -> None:
        self.session = DrawingSession(
            canvas_id,
            author_id or settings.author_id,
            smoothing_steps=smoothing_steps or settings.smoothing_steps,
            simplify_tolerance=(
                simplify_tolerance
                if simplify_tolerance is not None
                else settings.simplify_tolerance
            ),
        )
        self.reconciler = SyncReconciler(self.session, store, on_applied=self._notify)
        self._listener = listener

    @property
    def canvas_id(self) -> str:
        return self.session.canvas_id

    @property
    def document(self) -> CanvasDocument:
        return self.session.document

    @property
    def can_undo(self) -> bool:
        return self.session.can_undo

    @property
    def can_redo(self) -> bool:
        return self.session.can_redo

    @property
    def can_add_stroke(self) -> bool:
        return self.session.can_add_stroke

    @property
    def is_editing(self) -> bool:
        return self.session.is_editing

    def _notify(self, document: CanvasDocument) -> None:
        if self._listener is not None:
            self._listener(document)

    def _commit(self, result: EditResult, kind: MutationKind) -> EditResult:
        mutation = result.to_mutation(kind, self.canvas_id)
        if mutation is not None:
            self.reconciler.attach_local_mutation(mutation)
            self._notify(self.session.document)
        return result

    # --- Input events ---

    def start_stroke(self, point: Point, color: str, width: float) -> bool:
        return self.session.start_stroke(point, color, width)

    def append_point(self, point: Point) -> bool:
        return self.session.append_point(point)

    def finalize_stroke(self) -> EditResult:
        return self._commit(self.session.finalize_stroke(), MutationKind.ADD)

    def cancel_stroke(self) -> bool:
        return self.session.cancel_stroke()

    # --- History ---

    def undo(self) -> EditResult:
        return self._commit(self.session.undo(), MutationKind.REMOVE)

    def redo(self) -> EditResult:
        return self._commit(self.session.redo(), MutationKind.ADD)

    def clear(self) -> EditResult:
        return self._commit(self.session.clear(), MutationKind.CLEAR)

    # --- Lifecycle ---

    async def open(self) -> None:
        """Load the canvas from the store and start following its feed."""
        await self.reconciler.start()

    async def close(self) -> None:
        await self.reconciler.close()
        logger.info(f"Canvas {self.canvas_id}: controller closed")

    async def __aenter__(self) -> CanvasController:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
