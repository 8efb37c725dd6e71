"""
KeepNotes Backend — Note Service (Business Logic)
===================================================

What:  List, create, update and delete notes, and delete single attachments.
Why:   Routes stay thin and the same operations are unit-testable without
       HTTP.
How:   Composes a NoteRepository (the JSON document) with a FileService
       (the upload directory). Every mutation runs inside one repository
       transaction, so it is a single locked read-modify-write.
Who:   Called by the route handlers.

Create Flow (POST /api/notes):
    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐
    │  Multipart   │───▶│  Normalize   │───▶│  Append +    │
    │  decode +    │    │  fields /    │    │  persist     │
    │  store files │    │  labels      │    │  (repo txn)  │
    └──────────────┘    └──────────────┘    └──────────────┘

    Files are on disk before the note referencing them is written. If the
    write fails, those files are removed again.

Deletion of backing files is best-effort and happens after the document
has been saved, so a crash in between can leave an orphan file but never
a record pointing at a missing file.
"""

import logging
import uuid
from typing import Dict, List, Optional, Sequence

from keepnotes.exceptions import NotFoundError
from keepnotes.repositories.note_repository import NoteRepository
from keepnotes.schemas.note import (
    DEFAULT_NOTE_COLOR,
    Attachment,
    Note,
    NotePatch,
    coerce_flag,
    utc_now,
)
from keepnotes.services.file_service import FileService
from keepnotes.services.labels import normalize_labels

logger = logging.getLogger(__name__)


class NoteService:
    """
    Business logic layer for note operations.

    Error Handling Strategy:
        Unknown ids raise NotFoundError ("Note not found" / "Attachment not
        found"). Repository I/O errors are not caught here.
    """

    def __init__(
        self,
        repository: NoteRepository,
        file_service: FileService,
        default_color: str = DEFAULT_NOTE_COLOR,
    ):
        self.repository = repository
        self.file_service = file_service
        self.default_color = default_color

    async def list_notes(
        self,
        search: Optional[str] = None,
        label: Optional[str] = None,
    ) -> List[Note]:
        """
        Notes matching both filters, most recently updated first.

        search: case-insensitive substring of title + content + labels
        label:  case-insensitive exact match against any one label
        Empty strings count as "no filter". Notes with equal updated_at keep
        their stored order (sorted() is stable, also with reverse=True).
        """
        document = await self.repository.read()
        notes: Sequence[Note] = document.notes

        if search:
            needle = search.lower()
            notes = [note for note in notes if needle in note.search_text()]
        if label:
            notes = [note for note in notes if note.has_label(label)]

        return sorted(notes, key=lambda note: note.updated_at, reverse=True)

    async def create_note(
        self,
        fields: Dict[str, str],
        files: Sequence[Attachment] = (),
    ) -> Note:
        """
        Build a note from decoded form fields and already-stored files.

        Form fields:
            title, content  default ""
            color           default self.default_color (also when empty)
            pinned          "true"/"1"/"yes"/"on" → True
            archived        same rules as pinned
            labels          see normalize_labels()
        """
        now = utc_now()
        note = Note(
            id=str(uuid.uuid4()),
            title=fields.get("title", ""),
            content=fields.get("content", ""),
            color=fields.get("color") or self.default_color,
            # Only true/1/yes/on (any case) count as set; "false" is False
            pinned=coerce_flag(fields.get("pinned", "")),
            archived=coerce_flag(fields.get("archived", "")),
            labels=normalize_labels(fields.get("labels")),
            attachments=list(files),
            created_at=now,
            updated_at=now,
        )

        try:
            async with self.repository.transaction() as document:
                document.notes.append(note)
        except Exception:
            logger.error("Failed to persist new note %s; removing its uploads", note.id)
            for attachment in note.attachments:
                await self.file_service.delete(attachment.url)
            raise

        logger.info(
            "Note created: %s (%d labels, %d attachments)",
            note.id,
            len(note.labels),
            len(note.attachments),
        )
        return note

    async def update_note(self, note_id: str, patch: NotePatch) -> Note:
        """
        Apply the fields present in `patch`; updated_at is refreshed even
        when the patch is empty.

        Raises:
            NotFoundError: no note with this id (nothing is written)
        """
        async with self.repository.transaction() as document:
            note = document.find_note(note_id)
            if note is None:
                raise NotFoundError(resource="Note", resource_id=note_id)

            changes = patch.changes()
            for name, value in changes.items():
                setattr(note, name, value)
            note.updated_at = utc_now()

        logger.info("Note updated: %s (fields: %s)", note_id, ", ".join(sorted(changes)) or "none")
        return note

    async def delete_note(self, note_id: str) -> Note:
        """
        Remove a note and then its attachment files.

        Raises:
            NotFoundError: no note with this id
        """
        async with self.repository.transaction() as document:
            note = document.find_note(note_id)
            if note is None:
                raise NotFoundError(resource="Note", resource_id=note_id)
            document.notes.remove(note)

        for attachment in note.attachments:
            await self.file_service.delete(attachment.url)

        logger.info("Note deleted: %s (%d attachments)", note_id, len(note.attachments))
        return note

    async def delete_attachment(self, attachment_id: str) -> Attachment:
        """
        Remove the first attachment with this id from whichever note owns it,
        touch that note's updated_at, then delete the file.

        Raises:
            NotFoundError: no attachment with this id
        """
        async with self.repository.transaction() as document:
            removed: Optional[Attachment] = None
            owner: Optional[Note] = None
            for note in document.notes:
                for index, attachment in enumerate(note.attachments):
                    if attachment.id == attachment_id:
                        removed = note.attachments.pop(index)
                        owner = note
                        owner.updated_at = utc_now()
                        break
                if removed is not None:
                    break

            if removed is None:
                raise NotFoundError(resource="Attachment", resource_id=attachment_id)

        await self.file_service.delete(removed.url)

        logger.info("Attachment deleted: %s (note %s)", attachment_id, owner.id)
        return removed
