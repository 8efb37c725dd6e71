"""
KeepNotes Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the few error scenarios the API exposes.
Why:   Services raise domain errors without knowing about HTTP; the
       mapping to status codes lives in one place.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and routes; caught by global handlers.

Exception Hierarchy:
    KeepNotesError (base)
    ├── ValidationError   → 400 Bad Request (unparseable JSON patch body)
    ├── NotFoundError     → 404 Not Found (unknown note / attachment / upload)
    └── FileStorageError  → 500 Internal Server Error (upload write failed)

Malformed multipart bodies are NOT errors: the decoder degrades them to
empty fields and files. Failures reading or writing the notes document are
left to propagate and end up in the generic 500 handler.
"""

from typing import Any, Dict, Optional


class KeepNotesError(Exception):
    """
    Base exception for all KeepNotes application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(KeepNotesError):
    """
    Raised when client input cannot be interpreted at all.

    When:    PUT /api/notes/{id} with a body that is not a JSON object.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(KeepNotesError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown note id, unknown attachment id, missing upload file.
    HTTP:    404 Not Found

    The message is always "<Resource> not found" (e.g. "Note not found");
    the offending id only goes into the context for logging.
    """

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class FileStorageError(KeepNotesError):
    """
    Raised when an uploaded file cannot be written to the upload directory.

    When:    Disk full, permission denied, directory not writable.
    HTTP:    500 Internal Server Error

    Deleting a file that is already gone is never an error; see
    FileService.delete().
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
