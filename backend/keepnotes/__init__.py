"""
KeepNotes Backend — Application Package Initializer
=====================================================

What: Marks the `keepnotes` directory as a Python package.
Who:  Used by uvicorn (`keepnotes.main:app`), pytest and the `keepnotes` script.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Multipart, Labels,      │  ← Parsing and business rules
    │   Notes, Upload Store)              │
    ├─────────────────────────────────────┤
    │         Schemas (pydantic)          │  ← Note / Attachment / Patch
    ├─────────────────────────────────────┤
    │   Repositories (JSON document)      │  ← Locked read-modify-write
    └─────────────────────────────────────┘

    Routes never touch the JSON file or the upload directory directly.
"""

__version__ = "1.0.0"
