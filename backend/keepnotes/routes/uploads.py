"""
KeepNotes Backend — Upload Serving Route
==========================================

What:  Serves stored attachment files back by their generated filename.
How:   FileService.resolve() confines lookups to the upload directory; the
       content type comes from the extension (see media_type_for()).
Who:   Browsers following Attachment.url.

Mounted by create_app() under settings.upload_url_prefix (default /uploads).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from keepnotes.dependencies import get_file_service
from keepnotes.exceptions import NotFoundError
from keepnotes.services.file_service import FileService, media_type_for

router = APIRouter(tags=["Uploads"])


@router.get(
    "/{filename}",
    summary="Download an uploaded file",
    responses={200: {"description": "Raw file bytes"}, 404: {"description": "File not found"}},
)
async def serve_upload(
    filename: str,
    file_service: FileService = Depends(get_file_service),
) -> FileResponse:
    path = file_service.resolve(filename)
    if path is None:
        raise NotFoundError(resource="File", resource_id=filename)

    return FileResponse(path=str(path), media_type=media_type_for(path))
