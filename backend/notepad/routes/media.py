"""
Infinite Notepad Backend — Media Route Handlers
=================================================

What:  Upload, list, sign and delete note attachments.
How:   Thin wrappers over MediaService with user-scoped note and media
       repositories. The declared upload size is checked before the body
       is read; the remaining validation (type, note ownership) happens
       inside the service before anything touches the bucket.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from notepad.config import settings
from notepad.dependencies import get_media_repository, get_note_repository, get_storage
from notepad.repositories.media import MediaRepository
from notepad.repositories.note import NoteRepository
from notepad.schemas.common import ErrorResponse, SuccessResponse
from notepad.schemas.media import MediaResponse, MediaUrlResponse
from notepad.services.media_service import media_service
from notepad.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/media", tags=["Media"])

_NOT_FOUND = {404: {"description": "No such note or attachment for this user", "model": ErrorResponse}}


@router.post(
    "/upload/{note_id}",
    response_model=MediaResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "File too large or type not allowed", "model": ErrorResponse},
        **_NOT_FOUND,
        500: {"description": "Storage or database failure", "model": ErrorResponse},
    },
    summary="Attach a file to a note",
)
async def upload_media(
    request: Request,
    note_id: str,
    file: UploadFile = File(..., description="Image, audio or video file (max 50MB)"),
    notes: NoteRepository = Depends(get_note_repository),
    media: MediaRepository = Depends(get_media_repository),
    storage: ObjectStorage = Depends(get_storage),
) -> MediaResponse:
    declared = request.headers.get("content-length", "")
    media_service.validate_size(int(declared) if declared.isdigit() else None, file.size or 0)

    # Bounded read; anything past the ceiling is rejected by validate_upload
    content = await file.read(settings.max_file_size + 1)
    return await media_service.upload(
        notes,
        media,
        storage,
        note_id=note_id,
        file_name=file.filename or "file",
        content=content,
        mime_type=file.content_type,
    )


@router.get(
    "/{note_id}",
    response_model=List[MediaResponse],
    responses=_NOT_FOUND,
    summary="List a note's attachments",
)
async def list_media(
    note_id: str,
    notes: NoteRepository = Depends(get_note_repository),
    media: MediaRepository = Depends(get_media_repository),
) -> List[MediaResponse]:
    return await media_service.list_for_note(notes, media, note_id)


@router.get(
    "/{media_id}/url",
    response_model=MediaUrlResponse,
    responses=_NOT_FOUND,
    summary="Signed download URL for an attachment",
)
async def media_url(
    media_id: str,
    request: Request,
    notes: NoteRepository = Depends(get_note_repository),
    media: MediaRepository = Depends(get_media_repository),
    storage: ObjectStorage = Depends(get_storage),
) -> MediaUrlResponse:
    return await media_service.signed_url(
        notes, media, storage, media_id, base_url=str(request.base_url)
    )


@router.delete(
    "/{media_id}",
    response_model=SuccessResponse,
    responses=_NOT_FOUND,
    summary="Delete an attachment",
)
async def delete_media(
    media_id: str,
    media: MediaRepository = Depends(get_media_repository),
    storage: ObjectStorage = Depends(get_storage),
) -> SuccessResponse:
    await media_service.delete(media, storage, media_id)
    return SuccessResponse()
