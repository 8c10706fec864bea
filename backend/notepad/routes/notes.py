"""
Infinite Notepad Backend — Notes Route Handlers
=================================================

What:  List, create, replace and delete the caller's notes.
How:   Every handler receives a NoteRepository already scoped to the
       authenticated user; a note id that isn't the caller's is a 404.
"""

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Response, status

from notepad.dependencies import get_note_repository, get_storage
from notepad.repositories.note import NoteRepository
from notepad.schemas.common import ErrorResponse, SuccessResponse
from notepad.schemas.note import NoteCreate, NoteResponse, NoteUpdate
from notepad.services.note_service import note_service
from notepad.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

_AUTH_ERRORS = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}


@router.get(
    "",
    response_model=Dict[str, NoteResponse],
    responses=_AUTH_ERRORS,
    summary="List the caller's notes",
    description="Object keyed by note id, most recently updated first.",
)
async def list_notes(
    response: Response,
    notes: NoteRepository = Depends(get_note_repository),
) -> Dict[str, NoteResponse]:
    result = await note_service.list_notes(notes)
    response.headers["X-Total-Count"] = str(len(result))
    # Notes change on every keystroke save
    response.headers["Cache-Control"] = "no-store"
    return result


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_AUTH_ERRORS,
    summary="Create a note",
)
async def create_note(
    body: NoteCreate = NoteCreate(),
    notes: NoteRepository = Depends(get_note_repository),
) -> NoteResponse:
    return await note_service.create_note(notes, body.content or "")


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        **_AUTH_ERRORS,
        404: {"description": "No such note for this user", "model": ErrorResponse},
    },
    summary="Replace a note's content",
)
async def update_note(
    note_id: str,
    body: NoteUpdate,
    notes: NoteRepository = Depends(get_note_repository),
) -> NoteResponse:
    return await note_service.update_note(notes, note_id, body.content or "")


@router.delete(
    "/{note_id}",
    response_model=SuccessResponse,
    responses={
        **_AUTH_ERRORS,
        404: {"description": "No such note for this user", "model": ErrorResponse},
    },
    summary="Delete a note and its attachments",
)
async def delete_note(
    note_id: str,
    notes: NoteRepository = Depends(get_note_repository),
    storage: ObjectStorage = Depends(get_storage),
) -> SuccessResponse:
    await note_service.delete_note(notes, storage, note_id)
    return SuccessResponse()
