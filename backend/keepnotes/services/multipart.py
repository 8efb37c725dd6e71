"""
KeepNotes Backend — Multipart Form Decoder
============================================

What:  Turns a raw multipart/form-data body into text fields and stored files.
Why:   Uploaded files may be binary; decoding the whole body as text would
       corrupt them, so text decoding is limited to field values.
How:   Works on bytes end to end: split on the boundary delimiter, split each
       part into header block and content at the first blank line, classify
       by Content-Disposition, and only then decode field content as text.
       File content is never decoded; it goes straight to the Upload Store.
Who:   POST /api/notes.

Body layout (CRLF line endings):

    <preamble, ignored>
    --BOUNDARY
    Content-Disposition: form-data; name="title"

    Team update
    --BOUNDARY
    Content-Disposition: form-data; name="attachments"; filename="a.png"
    Content-Type: image/png

    <raw bytes>
    --BOUNDARY--
    <epilogue, ignored>

Leniency:
    Nothing in here raises on bad input. A missing boundary yields an empty
    form; a part without a blank-line separator, or without a `name`, is
    skipped; a part with filename="" is treated as "no file chosen" and
    dropped. Only a failed disk write (FileStorageError) propagates.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from keepnotes.schemas.note import Attachment
from keepnotes.services.file_service import FileService

logger = logging.getLogger(__name__)

CRLF = b"\r\n"
HEADER_SEPARATOR = b"\r\n\r\n"

_BOUNDARY_RE = re.compile(r'boundary=(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)
_NAME_RE = re.compile(r'(?:^|;)\s*name="([^"]+)"', re.IGNORECASE)
_FILENAME_RE = re.compile(r'(?:^|;)\s*filename="([^"]*)"', re.IGNORECASE)


@dataclass
class FormPart:
    """One classified body part. `filename` is None for plain fields."""

    name: str
    filename: Optional[str]
    content_type: Optional[str]
    content: bytes

    @property
    def is_file(self) -> bool:
        return self.filename is not None


@dataclass
class DecodedForm:
    fields: Dict[str, str] = field(default_factory=dict)
    files: List[Attachment] = field(default_factory=list)


def extract_boundary(content_type: Optional[str]) -> Optional[str]:
    """Boundary token from a Content-Type header, or None if it has none."""
    if not content_type:
        return None
    match = _BOUNDARY_RE.search(content_type)
    if not match:
        return None
    return match.group(1) or match.group(2)


def iter_raw_parts(body: bytes, boundary: str) -> Iterator[bytes]:
    """
    Yield the raw bytes of each part between delimiters.

    The first segment is the preamble and the last one is whatever follows
    the closing delimiter ("--\\r\\n" plus epilogue), so both are dropped.
    A body truncated before its closing delimiter loses its last,
    incomplete part for the same reason.
    """
    delimiter = b"--" + boundary.encode("latin-1")
    segments = body.split(delimiter)
    for segment in segments[1:-1]:
        if segment.startswith(CRLF):
            segment = segment[len(CRLF):]
        if segment.endswith(CRLF):
            segment = segment[: -len(CRLF)]
        yield segment


def parse_headers(header_block: bytes) -> Dict[str, str]:
    """Header block → {lower-cased name: value}. Lines without ':' are ignored."""
    headers: Dict[str, str] = {}
    for line in header_block.decode("utf-8", errors="replace").split("\r\n"):
        key, sep, value = line.partition(":")
        if not sep:
            continue
        headers[key.strip().lower()] = value.strip()
    return headers


def parse_part(raw_part: bytes) -> Optional[FormPart]:
    """Classify one raw part, or return None if it should be skipped."""
    split_index = raw_part.find(HEADER_SEPARATOR)
    if split_index == -1:
        return None

    headers = parse_headers(raw_part[:split_index])
    content = raw_part[split_index + len(HEADER_SEPARATOR):]

    disposition = headers.get("content-disposition", "")
    name_match = _NAME_RE.search(disposition)
    if not name_match:
        return None
    filename_match = _FILENAME_RE.search(disposition)

    return FormPart(
        name=name_match.group(1),
        filename=filename_match.group(1) if filename_match else None,
        content_type=headers.get("content-type") or None,
        content=content,
    )


class MultipartDecoder:
    """
    Decodes multipart bodies and persists their file parts.

    Files are written as they are encountered, before any note references
    them. If a later write fails, files already written for the same body
    are removed again before the error propagates.
    """

    def __init__(self, file_service: FileService):
        self.file_service = file_service

    async def decode(self, body: bytes, content_type: Optional[str]) -> DecodedForm:
        form = DecodedForm()

        boundary = extract_boundary(content_type)
        if boundary is None:
            logger.warning("Multipart body without boundary (Content-Type: %r)", content_type)
            return form

        try:
            for raw_part in iter_raw_parts(body, boundary):
                part = parse_part(raw_part)
                if part is None:
                    logger.debug("Skipping malformed multipart part (%d bytes)", len(raw_part))
                    continue

                if not part.is_file:
                    form.fields[part.name] = part.content.decode("utf-8", errors="replace").strip()
                elif part.filename:
                    attachment = await self.file_service.store(
                        original_name=part.filename,
                        content=part.content,
                        mime_type=part.content_type,
                    )
                    form.files.append(attachment)
                # filename="" means the file input was left empty
        except Exception:
            for attachment in form.files:
                await self.file_service.delete(attachment.url)
            raise

        logger.debug(
            "Decoded multipart body: %d fields, %d files", len(form.fields), len(form.files)
        )
        return form
