"""
KeepNotes Backend — Attachment Route Handlers
===============================================

What:  DELETE /api/attachments/{id}: detach one file from its note and
       remove it from disk. Attachments are only ever added at note creation.
"""

from fastapi import APIRouter, Depends, Response

from keepnotes.dependencies import get_note_service
from keepnotes.schemas.note import ErrorResponse
from keepnotes.services.note_service import NoteService

router = APIRouter(prefix="/api", tags=["Attachments"])


@router.delete(
    "/attachments/{attachment_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "Attachment not found", "model": ErrorResponse}},
    summary="Delete a single attachment",
)
async def delete_attachment(
    attachment_id: str,
    service: NoteService = Depends(get_note_service),
) -> Response:
    await service.delete_attachment(attachment_id)
    return Response(status_code=204)
