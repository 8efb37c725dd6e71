"""
KeepNotes Backend — Note Repository
=====================================

What:  Storage seam for the notes document, plus its one concrete
       implementation: a single JSON file on disk.
Why:   NoteService depends on the abstract seam only, so the JSON file can
       be swapped for another store without touching business logic.
How:   Every operation reads the entire document; every mutation writes the
       entire document back. A process-wide asyncio.Lock is held around each
       read-modify-write cycle, and writes go to a temp file that is then
       atomically renamed over the document.
Who:   NoteService.

On-disk format (pretty-printed, camelCase keys):
    {
      "notes": [
        {"id": "...", "title": "...", ..., "createdAt": "...", "updatedAt": "..."}
      ]
    }

Concurrency:
    The lock serializes writers inside one process, which removes the lost
    update between two concurrent PUTs. Several processes sharing one file
    are still not coordinated.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager, AsyncIterator

import aiofiles

from keepnotes.schemas.note import NoteDocument

logger = logging.getLogger(__name__)


class NoteRepository(ABC):
    """
    Abstract storage for the notes document.

    Contract:
        - read() returns a fresh copy of the whole document
        - transaction() yields a document to mutate in place; it is saved
          when the block exits normally and discarded if the block raises
        - Implementations serialize transactions against each other
    """

    @abstractmethod
    async def read(self) -> NoteDocument:
        """Load the full document."""
        ...

    @abstractmethod
    def transaction(self) -> AsyncContextManager[NoteDocument]:
        """Async context manager for one read-modify-write cycle."""
        ...


class JsonFileNoteRepository(NoteRepository):
    """NoteRepository backed by one JSON file."""

    def __init__(self, data_file: str):
        self.path = Path(data_file).resolve()
        self._lock = asyncio.Lock()

    async def _ensure_file(self) -> None:
        """Create the parent directory and an empty document if missing."""
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        await self._write(NoteDocument())
        logger.info("Created empty notes document at %s", self.path)

    async def _read(self) -> NoteDocument:
        await self._ensure_file()
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            raw = await f.read()
        return NoteDocument.model_validate_json(raw)

    async def _write(self, document: NoteDocument) -> None:
        """
        Replace the document on disk.

        The temp file sits next to the target so os.replace() stays on one
        filesystem and is atomic: readers see either the old or the new
        document, never a partial one. The temp file is fsynced before the
        rename, so after a power loss the name never points at unwritten data.
        """
        payload = document.model_dump_json(by_alias=True, indent=2)
        tmp_path = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
                await f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if tmp_path.exists():
                os.remove(tmp_path)
            raise
        logger.debug("Wrote %d notes to %s", len(document.notes), self.path)

    async def read(self) -> NoteDocument:
        async with self._lock:
            return await self._read()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[NoteDocument]:
        async with self._lock:
            document = await self._read()
            yield document
            await self._write(document)
