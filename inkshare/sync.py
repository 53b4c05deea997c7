"""Reconciles a local drawing session with the remote store's change feed."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable

from inkshare.errors import RemoteFeedError, RemoteWriteFailed
from inkshare.session import DrawingSession
from inkshare.store import FeedItem, RemoteStore
from inkshare.types import CanvasDocument, LocalMutation, MutationKind

logger = logging.getLogger(__name__)


class SyncReconciler:
    """Keeps a DrawingSession eventually consistent with the remote store.

    Local mutations are applied to the session first (optimistic) and then
    mirrored to the store by detached tasks that nobody awaits. Failures are
    logged and never rolled back: for the acting session, local state is the
    source of truth.

    Remote snapshots replace the local document wholesale, except:
    - while a snapshot is already being applied (reentrancy guard), and
    - while the user has a stroke open (the snapshot is dropped, not queued;
      the next full snapshot catches the session up).

    The reentrancy guard is a plain bool. That is only sound because every
    callback runs on one asyncio event loop and never concurrently.
    """

    def __init__(
        self,
        session: DrawingSession,
        store: RemoteStore,
        on_applied: Callable[[CanvasDocument], None] | None = None,
    ) -> None:
        self.session = session
        self.store = store
        self._on_applied = on_applied
        self._applying_remote = False
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def canvas_id(self) -> str:
        return self.session.canvas_id

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    # --- Local -> remote ---

    def attach_local_mutation(self, mutation: LocalMutation) -> asyncio.Task[None]:
        """Mirror a local change to the store in the background.

        Returns the detached task; callers are not expected to await it.
        """
        if self._applying_remote:
            raise RuntimeError("Local mutation issued while applying a remote snapshot")

        task = asyncio.create_task(self._write(mutation))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return task

    async def _write(self, mutation: LocalMutation) -> None:
        operation = {
            MutationKind.ADD: "save_stroke",
            MutationKind.REMOVE: "remove_stroke",
            MutationKind.CLEAR: "clear_canvas",
        }[mutation.kind]

        try:
            match mutation.kind:
                case MutationKind.ADD:
                    assert mutation.stroke is not None
                    await self.store.save_stroke(mutation.canvas_id, mutation.stroke)
                case MutationKind.REMOVE:
                    assert mutation.stroke is not None
                    await self.store.remove_stroke(mutation.canvas_id, mutation.stroke.id)
                case MutationKind.CLEAR:
                    await self.store.clear_canvas(mutation.canvas_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = RemoteWriteFailed(operation, mutation.canvas_id, e)
            logger.error(str(error), exc_info=e, extra={"canvas_id": mutation.canvas_id})

    async def wait_for_pending_writes(self) -> None:
        """Wait until every background write issued so far has finished."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # --- Remote -> local ---

    def on_remote_snapshot(self, document: CanvasDocument) -> bool:
        """Apply a snapshot from the feed. Returns True if it replaced local state."""
        if self._applying_remote:
            logger.debug(f"Canvas {self.canvas_id}: re-entrant snapshot ignored")
            return False

        self._applying_remote = True
        try:
            if self.session.is_editing:
                logger.debug(
                    f"Canvas {self.canvas_id}: snapshot v{document.version} dropped while editing"
                )
                return False

            if document.canvas_id != self.canvas_id:
                logger.warning(
                    f"Canvas {self.canvas_id}: ignoring snapshot for canvas {document.canvas_id}"
                )
                return False

            self.session.replace_document(document)
            logger.debug(
                f"Canvas {self.canvas_id}: updated from remote, "
                f"{document.stroke_count} strokes (v{document.version})"
            )
            if self._on_applied is not None:
                try:
                    self._on_applied(document)
                except Exception as e:
                    # The snapshot is applied; a failing listener must not end the feed
                    logger.error(
                        f"Canvas {self.canvas_id}: snapshot listener failed: {e}",
                        exc_info=e,
                        extra={"canvas_id": self.canvas_id},
                    )
            return True
        finally:
            self._applying_remote = False

    def on_feed_error(self, error: BaseException) -> None:
        """Log a failed feed delivery. The subscription stays active."""
        logger.warning(
            f"Canvas {self.canvas_id}: error in canvas watch stream: {error}",
            extra={"canvas_id": self.canvas_id},
        )

    # --- Lifecycle ---

    async def start(self) -> None:
        """Load the canvas, then subscribe to the store's change feed.

        The feed's first (current) snapshot is consumed before returning, so
        the subscription is live once start() returns.
        """
        if self._watch_task is not None:
            return

        try:
            document = await self.store.load_canvas(self.canvas_id)
        except Exception as e:
            logger.error(
                f"Canvas {self.canvas_id}: failed to load, keeping local state: {e}",
                exc_info=e,
            )
        else:
            if self.on_remote_snapshot(document):
                logger.info(f"Canvas {self.canvas_id} loaded: {document.stroke_count} strokes")

        logger.info(f"Subscribing to canvas {self.canvas_id} updates")
        feed = self.store.watch_canvas(self.canvas_id)
        try:
            first = await anext(feed)
        except StopAsyncIteration:
            logger.warning(f"Canvas {self.canvas_id}: watch stream ended immediately")
            return
        except Exception as e:
            logger.error(f"Canvas {self.canvas_id}: watch stream ended: {e}", exc_info=e)
            return

        self._dispatch(first)
        self._watch_task = asyncio.create_task(self._watch(feed))

    def _dispatch(self, item: FeedItem) -> None:
        if isinstance(item, RemoteFeedError):
            self.on_feed_error(item)
        else:
            self.on_remote_snapshot(item)

    async def _watch(self, feed: AsyncIterator[FeedItem]) -> None:
        try:
            async for item in feed:
                self._dispatch(item)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Canvas {self.canvas_id}: watch stream ended: {e}", exc_info=e)

    async def close(self) -> None:
        """Unsubscribe from the feed. In-flight writes are left to finish on their own."""
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._watch_task
        self._watch_task = None
        if self._pending_writes:
            logger.info(
                f"Canvas {self.canvas_id}: closing with {len(self._pending_writes)} "
                "writes in flight"
            )
