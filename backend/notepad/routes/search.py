"""
Infinite Notepad Backend — Search Route Handlers
==================================================

GET /api/search?q=          whole-word full-text match
GET /api/search/partial?q=  every term matched as a word prefix

Both return a JSON array of notes, most recently updated first. A blank or
missing `q` is a 400.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from notepad.dependencies import get_note_repository
from notepad.repositories.note import NoteRepository
from notepad.schemas.common import ErrorResponse
from notepad.schemas.note import NoteResponse
from notepad.services.note_service import note_service

router = APIRouter(prefix="/api/search", tags=["Search"])

_ERRORS = {
    400: {"description": "Blank query", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}


@router.get("", response_model=List[NoteResponse], responses=_ERRORS, summary="Full-text search")
async def search_notes(
    q: Optional[str] = Query(default=None, description="Search terms"),
    notes: NoteRepository = Depends(get_note_repository),
) -> List[NoteResponse]:
    return await note_service.search(notes, q or "", partial=False)


@router.get("/partial", response_model=List[NoteResponse], responses=_ERRORS, summary="Prefix search")
async def search_notes_partial(
    q: Optional[str] = Query(default=None, description="Search term prefixes"),
    notes: NoteRepository = Depends(get_note_repository),
) -> List[NoteResponse]:
    return await note_service.search(notes, q or "", partial=True)
