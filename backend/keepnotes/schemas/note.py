"""
KeepNotes Backend — Pydantic Models
=====================================

What:  The note/attachment records, the on-disk document, the update patch,
       and the small response envelopes used by the API.
How:   Python attribute names are snake_case; the JSON form (both on the
       wire and in notes.json) is camelCase via an alias generator.
       FastAPI serializes response models by alias, and the repository
       dumps with by_alias=True, so both sides agree.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from keepnotes.services.labels import as_text, normalize_labels

DEFAULT_MIME_TYPE = "application/octet-stream"
DEFAULT_NOTE_COLOR = "#fff9c4"

TRUE_FLAGS = {"true", "1", "yes", "on"}


def utc_now() -> datetime:
    """Current time, timezone-aware UTC, millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def coerce_flag(value: Any) -> bool:
    """
    Interpret a loosely-typed boolean.

    Text is compared case-insensitively against TRUE_FLAGS (so the form
    value "false" is False); everything else goes by truthiness.
    """
    if isinstance(value, str):
        return value.strip().lower() in TRUE_FLAGS
    return bool(value)


class CamelModel(BaseModel):
    """Base for every model whose JSON form is camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Stored Records
# ══════════════════════════════════════════════════════════════════════════


class Attachment(CamelModel):
    """
    A file uploaded together with a note.

    `url` points at the stored copy ("/uploads/<generated name>"); `name`
    is the client's original filename and is metadata only.
    """

    id: str
    name: str
    url: str
    size: int = Field(ge=0)
    mime_type: str = DEFAULT_MIME_TYPE
    created_at: datetime


class Note(CamelModel):
    """A user note. `created_at` never changes; `updated_at` moves on every mutation."""

    id: str
    title: str = ""
    content: str = ""
    color: str = DEFAULT_NOTE_COLOR
    pinned: bool = False
    archived: bool = False
    labels: List[str] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def search_text(self) -> str:
        """Lower-cased title + content + labels, the haystack for ?search=."""
        return " ".join([self.title, self.content, *self.labels]).lower()

    def has_label(self, label: str) -> bool:
        wanted = label.lower()
        return any(existing.lower() == wanted for existing in self.labels)


class NoteDocument(BaseModel):
    """The whole persisted document: {"notes": [...]}."""

    notes: List[Note] = Field(default_factory=list)

    def find_note(self, note_id: str) -> Optional[Note]:
        return next((note for note in self.notes if note.id == note_id), None)


# ══════════════════════════════════════════════════════════════════════════
# Update Patch
# ══════════════════════════════════════════════════════════════════════════


class NotePatch(BaseModel):
    """
    Partial update for PUT /api/notes/{id}.

    A field is "present" when the client sent the key, even with a null
    value; presence is read from `model_fields_set`, never from the value.
    Present values are coerced rather than rejected:

        title / content / color  → text (null → "")
        pinned / archived        → bool via coerce_flag()
        labels                   → normalize_labels()

    Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    content: Optional[str] = None
    color: Optional[str] = None
    pinned: Optional[bool] = None
    archived: Optional[bool] = None
    labels: Optional[List[str]] = None

    @field_validator("title", "content", "color", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else as_text(v)

    @field_validator("pinned", "archived", mode="before")
    @classmethod
    def coerce_bool(cls, v: Any) -> bool:
        # Same rule as on create: the text "false" is False, not truthy
        return coerce_flag(v)

    @field_validator("labels", mode="before")
    @classmethod
    def coerce_labels(cls, v: Any) -> List[str]:
        return normalize_labels(v)

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually supplied, already coerced."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ══════════════════════════════════════════════════════════════════════════
# Response Envelopes
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body.

    Example:
        {"error": "not_found", "message": "Note not found", "request_id": "1f3a9c2e"}
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    ok: bool = Field(description="Always true while the process can serve requests")
    version: str = Field(description="Application version")
