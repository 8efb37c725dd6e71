"""
KeepNotes Backend — Route Dependencies
========================================

What:  FastAPI dependency getters for the per-app service objects.
How:   create_app() builds one FileService, NoteRepository, NoteService and
       MultipartDecoder and parks them on app.state; routes receive them via
       Depends(), so tests can swap in instances built on temp directories.
"""

from fastapi import Request

from keepnotes.services.file_service import FileService
from keepnotes.services.multipart import MultipartDecoder
from keepnotes.services.note_service import NoteService


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_multipart_decoder(request: Request) -> MultipartDecoder:
    return request.app.state.multipart_decoder
