"""Registry of open canvases for one process."""

import asyncio
import logging
from typing import Any

from inkshare.controller import CanvasController
from inkshare.store import RemoteStore

logger = logging.getLogger(__name__)


class CanvasRegistry:
    """Keeps at most one open CanvasController per canvas id.

    Handles:
    - Lazy opening on first access
    - Closing on release
    - Shutdown of every open canvas
    """

    def __init__(self, store: RemoteStore, **controller_options: Any) -> None:
        self._store = store
        self._controller_options = controller_options
        self._controllers: dict[str, CanvasController] = {}
        self._lock = asyncio.Lock()

    async def get_or_open(self, canvas_id: str) -> CanvasController:
        """Get the open controller for a canvas, opening it if needed."""
        async with self._lock:
            controller = self._controllers.get(canvas_id)
            if controller is not None:
                return controller

            logger.info(f"Opening canvas {canvas_id}")
            controller = CanvasController(canvas_id, self._store, **self._controller_options)
            await controller.open()
            self._controllers[canvas_id] = controller
            return controller

    async def release(self, canvas_id: str) -> None:
        """Close and forget a canvas. No-op if it is not open."""
        async with self._lock:
            controller = self._controllers.pop(canvas_id, None)
        if controller is not None:
            await controller.close()

    async def close_all(self) -> None:
        """Close every open canvas (for shutdown)."""
        async with self._lock:
            controllers = list(self._controllers.values())
            self._controllers.clear()

        for controller in controllers:
            await controller.close()

        logger.info(f"All canvases closed ({len(controllers)})")

    def get(self, canvas_id: str) -> CanvasController | None:
        """Get an open controller without opening it."""
        return self._controllers.get(canvas_id)

    @property
    def open_count(self) -> int:
        return len(self._controllers)

    def __contains__(self, canvas_id: str) -> bool:
        return canvas_id in self._controllers
