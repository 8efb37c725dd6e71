"""
KeepNotes Backend — Notes Route Handlers
==========================================

What:  CRUD over notes: list/search, create (multipart), update (JSON patch),
       delete.
Why:   Keeps HTTP concerns (status codes, body parsing) out of NoteService.
How:   Pulls data out of the request, delegates to NoteService, returns the
       pydantic model; FastAPI serializes it with camelCase aliases.

Request bodies:
    POST /api/notes        multipart/form-data, decoded by MultipartDecoder
                           (not FastAPI's Form/UploadFile)
    PUT  /api/notes/{id}   JSON object; empty body means "no fields"
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from keepnotes.dependencies import get_multipart_decoder, get_note_service
from keepnotes.exceptions import ValidationError
from keepnotes.schemas.note import ErrorResponse, Note, NotePatch
from keepnotes.services.multipart import MultipartDecoder
from keepnotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


async def read_patch(request: Request) -> NotePatch:
    """
    Parse the PUT body into a NotePatch.

    An empty body is an empty patch. Anything that is not a JSON object is
    rejected, since there is no sensible partial update to derive from it.
    """
    body = await request.body()
    if not body.strip():
        return NotePatch()
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationError(message="Request body must be valid JSON", field="body")
    if not isinstance(payload, dict):
        raise ValidationError(message="Request body must be a JSON object", field="body")
    return NotePatch.model_validate(payload)


@router.get(
    "/notes",
    response_model=List[Note],
    summary="List notes, optionally filtered",
    description=(
        "Returns every note matching `search` (case-insensitive, over title, "
        "content and labels) and `label` (case-insensitive exact label match), "
        "most recently updated first."
    ),
)
async def list_notes(
    search: Optional[str] = Query(default=None, description="Free-text filter"),
    label: Optional[str] = Query(default=None, description="Label filter"),
    service: NoteService = Depends(get_note_service),
) -> List[Note]:
    return await service.list_notes(search=search, label=label)


@router.post(
    "/notes",
    status_code=201,
    response_model=Note,
    responses={500: {"description": "Upload could not be stored", "model": ErrorResponse}},
    summary="Create a note",
    description=(
        "multipart/form-data with fields title, content, labels, color, pinned, "
        "archived and any number of files under `attachments`."
    ),
)
async def create_note(
    request: Request,
    service: NoteService = Depends(get_note_service),
    decoder: MultipartDecoder = Depends(get_multipart_decoder),
) -> Note:
    body = await request.body()
    form = await decoder.decode(body, request.headers.get("content-type"))
    logger.info(
        "Create note request: %d fields, %d files", len(form.fields), len(form.files)
    )
    return await service.create_note(form.fields, form.files)


@router.put(
    "/notes/{note_id}",
    response_model=Note,
    responses={
        400: {"description": "Body is not a JSON object", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Partially update a note",
)
async def update_note(
    note_id: str,
    request: Request,
    service: NoteService = Depends(get_note_service),
) -> Note:
    patch = await read_patch(request)
    return await service.update_note(note_id, patch)


@router.delete(
    "/notes/{note_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Delete a note and its attachment files",
)
async def delete_note(
    note_id: str,
    service: NoteService = Depends(get_note_service),
) -> Response:
    await service.delete_note(note_id)
    return Response(status_code=204)
