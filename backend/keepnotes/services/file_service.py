"""
KeepNotes Backend — Upload Store
==================================

What:  Writes attachment bytes to the upload directory, serves them back,
       and deletes them when their attachment record goes away.
Why:   Keeps every file system path decision in one place, so routes and
       the note service only ever see attachment URLs.
How:   Generates a collision-resistant filename per upload
       (<epoch millis>-<uuid4>-<original basename>), writes it with aiofiles,
       and maps attachment URLs (<prefix>/<percent-encoded filename>) back
       to paths.
Who:   MultipartDecoder (store), NoteService (delete), uploads route (resolve).
When:  Files are written while the request body is decoded, before the note
       record exists.

Security Model:
    - The client filename is reduced to its basename ('/' and '\\' both count
      as separators) before it becomes part of the stored name.
    - resolve() refuses any name whose resolved path leaves the upload
      directory.
    - The client name inside the stored name is capped at MAX_NAME_BYTES
      (extension kept), so the whole name stays under the usual 255-byte
      file name limit. Attachment.name keeps the full client name.
    - Stored names are percent-encoded in URLs; "#", "?" and "%" are
      legal in file names but not in a URL path segment.

Directory Structure:
    uploads/
    ├── 1760000000000-6f1c...-report.pdf
    └── 1760000000123-a9b2...-photo.png
"""

import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote

import aiofiles

from keepnotes.exceptions import FileStorageError
from keepnotes.schemas.note import DEFAULT_MIME_TYPE, Attachment, utc_now

logger = logging.getLogger(__name__)

# ── Served Content Types ──────────────────────────────────────────────────
CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".pdf": "application/pdf",
}

# 255-byte name limit minus "<13 digits>-<36-char uuid>-"
MAX_NAME_BYTES = 200
# Longer "extensions" are treated as part of the name
MAX_SUFFIX_BYTES = 16


def safe_basename(filename: str) -> str:
    """Strip any client-supplied directory part from a filename."""
    return filename.replace("\\", "/").rsplit("/", 1)[-1].strip()


def shorten_name(name: str, max_bytes: int = MAX_NAME_BYTES) -> str:
    """
    Cut a file name to at most max_bytes of UTF-8, keeping its extension.

    Truncation never splits a multi-byte character.
    """
    if len(name.encode("utf-8")) <= max_bytes:
        return name
    stem, suffix = os.path.splitext(name)
    if len(suffix.encode("utf-8")) > MAX_SUFFIX_BYTES:
        stem, suffix = name, ""
    budget = max_bytes - len(suffix.encode("utf-8"))
    stem = stem.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return stem + suffix


def media_type_for(path: Path) -> str:
    """Content type derived from the file extension."""
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


class FileService:
    """
    Manages the upload directory.

    Lifecycle of an uploaded file:
        1. MultipartDecoder finds a part with a non-empty filename → store()
        2. Bytes land in <upload_dir>/<generated name>; an Attachment is returned
        3. GET <prefix>/<generated name> → resolve() → FileResponse
        4. Note or attachment deleted → delete(url), best-effort
    """

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads"):
        """
        Args:
            upload_dir: Directory receiving uploads (created on first write).
            url_prefix: Public URL prefix, e.g. "/uploads".
        """
        self.upload_dir = Path(upload_dir).resolve()
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_directory(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def _generate_filename(self, original_name: str) -> str:
        """
        Create the stored filename: <epoch millis>-<uuid4>-<original name>.

        The uuid alone makes the name unique; the timestamp keeps a directory
        listing in upload order and the original name keeps it readable.
        """
        return f"{int(time.time() * 1000)}-{uuid.uuid4()}-{shorten_name(original_name)}"

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{quote(filename, safe='')}"

    async def store(
        self,
        original_name: str,
        content: bytes,
        mime_type: Optional[str] = None,
    ) -> Attachment:
        """
        Write one uploaded file to disk and describe it as an Attachment.

        Raises:
            FileStorageError if the directory or file cannot be written.
        """
        name = safe_basename(original_name)
        stored_name = self._generate_filename(name)
        absolute_path = self.upload_dir / stored_name

        try:
            self.ensure_directory()
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store upload at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Upload stored: %s (%d bytes)", stored_name, len(content))
        return Attachment(
            id=str(uuid.uuid4()),
            name=name,
            url=self.url_for(stored_name),
            size=len(content),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            created_at=utc_now(),
        )

    def resolve(self, filename: str) -> Optional[Path]:
        """
        Map a stored filename to its path, or None if it is not a file
        directly inside the upload directory.
        """
        candidate = (self.upload_dir / filename).resolve()
        if candidate.parent != self.upload_dir:
            logger.warning("Rejected upload path outside upload dir: %s", filename)
            return None
        if not candidate.is_file():
            return None
        return candidate

    def path_for_url(self, url: str) -> Optional[Path]:
        """Path of the file behind an Attachment.url, or None for a foreign URL."""
        prefix = self.url_prefix + "/"
        if not url.startswith(prefix):
            return None
        filename = unquote(url[len(prefix):])
        candidate = (self.upload_dir / filename).resolve()
        if candidate.parent != self.upload_dir:
            return None
        return candidate

    async def delete(self, url: str) -> None:
        """
        Remove the file behind an attachment URL.

        Best-effort: a file that is already gone counts as deleted, and
        other OS errors are logged rather than raised so the record
        removal that triggered this still completes.
        """
        path = self.path_for_url(url)
        if path is None:
            logger.warning("Cleanup: not an upload URL: %s", url)
            return
        try:
            os.remove(path)
            logger.info("Deleted upload: %s", path.name)
        except FileNotFoundError:
            logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to delete upload %s: %s", path.name, str(e))
