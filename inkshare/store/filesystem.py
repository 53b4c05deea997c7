"""Filesystem-backed store: one JSON document per canvas."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path as FilePath

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from inkshare.errors import InvalidCanvasIdError, StoreError
from inkshare.store.base import DocumentStore
from inkshare.types import CanvasDocument

logger = logging.getLogger(__name__)

# Canvas ids double as file names
CANVAS_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_canvas_id(canvas_id: str) -> None:
    """Validate canvas_id is safe to use as a file name (path traversal protection).

    Raises:
        InvalidCanvasIdError: If canvas_id has an unsupported format.
    """
    if not isinstance(canvas_id, str) or not CANVAS_ID_PATTERN.match(canvas_id):
        raise InvalidCanvasIdError(f"Invalid canvas_id: {canvas_id!r}")


async def atomic_write(file_path: FilePath, data: str) -> None:
    """Write data to file atomically using temp file + rename."""
    temp_file = file_path.with_suffix(file_path.suffix + ".tmp")
    async with aiofiles.open(temp_file, "w") as f:
        await f.write(data)
    # Atomic rename (on POSIX systems)
    await aiofiles.os.replace(temp_file, file_path)


class FileStore(DocumentStore):
    """Canvas documents stored as files under `base_dir`:

        {base_dir}/
            {canvas_id}.json            - current document
            {canvas_id}.json.corrupted  - last unreadable copy, kept for debugging

    Watchers are notified in-process, so only writers sharing this FileStore
    instance show up on each other's feeds.
    """

    def __init__(self, base_dir: str | FilePath) -> None:
        super().__init__()
        self._base_dir = FilePath(base_dir).resolve()

    @property
    def base_dir(self) -> FilePath:
        return self._base_dir

    def canvas_file(self, canvas_id: str) -> FilePath:
        validate_canvas_id(canvas_id)
        path = (self._base_dir / f"{canvas_id}.json").resolve()
        if path.parent != self._base_dir:
            raise InvalidCanvasIdError(f"Invalid canvas path for {canvas_id!r}")
        return path

    async def _read(self, canvas_id: str) -> CanvasDocument | None:
        canvas_file = self.canvas_file(canvas_id)
        if not await aiofiles.os.path.exists(canvas_file):
            return None

        try:
            async with aiofiles.open(canvas_file) as f:
                raw = await f.read()
        except OSError as e:
            raise StoreError(f"Failed to read canvas {canvas_id}: {e}") from e

        try:
            document = CanvasDocument.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(
                f"Corrupted canvas file for {canvas_id}: {e}. Starting with an empty canvas."
            )
            backup_file = canvas_file.with_suffix(".json.corrupted")
            await aiofiles.os.replace(canvas_file, backup_file)
            return None

        if document.canvas_id != canvas_id:
            raise StoreError(
                f"Canvas file {canvas_file.name} contains canvas {document.canvas_id}"
            )
        return document

    async def _write(self, document: CanvasDocument) -> None:
        canvas_file = self.canvas_file(document.canvas_id)
        try:
            await aiofiles.os.makedirs(self._base_dir, exist_ok=True)
            await atomic_write(canvas_file, json.dumps(document.model_dump(), indent=2))
        except OSError as e:
            raise StoreError(f"Failed to write canvas {document.canvas_id}: {e}") from e

    async def list_canvases(self) -> list[str]:
        """Ids of all canvases stored under base_dir, sorted."""
        if not await aiofiles.os.path.exists(self._base_dir):
            return []
        return sorted(
            entry[: -len(".json")]
            for entry in await aiofiles.os.listdir(self._base_dir)
            if entry.endswith(".json") and CANVAS_ID_PATTERN.match(entry[: -len(".json")])
        )
