"""
Infinite Notepad Backend — Note Service
=========================================

What:  Note CRUD and search on top of the user-scoped NoteRepository.
How:   Every method takes a repository already bound to the caller, so the
       service never sees (or filters on) a user id. Rows are rendered
       through NoteResponse, the single place where storage columns become
       the camelCase client shape.
Who:   Called by the notes and search route handlers.

Error Handling Strategy:
    NotFoundError (missing or foreign note) propagates unchanged.
    SQLAlchemy failures are wrapped in DatabaseError; the SQL error is
    logged server-side only.
"""

import logging
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError

from notepad.exceptions import DatabaseError, ValidationError
from notepad.repositories.note import NoteRepository
from notepad.schemas.note import NoteResponse
from notepad.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


class NoteService:
    """
    Business logic layer for note operations.

    NoteService is stateless: it receives the scoped repository (and the
    storage bucket where needed) for each call.
    """

    async def list_notes(self, notes: NoteRepository) -> Dict[str, NoteResponse]:
        """
        All of the caller's notes keyed by id.

        Dict insertion order follows `updatedAt` descending, so clients that
        iterate the object see most recent first.
        """
        try:
            rows = await notes.list_recent()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve notes. Please try again.")
        return {str(row.id): NoteResponse.model_validate(row) for row in rows}

    async def create_note(self, notes: NoteRepository, content: str = "") -> NoteResponse:
        try:
            note = await notes.create(content)
        except SQLAlchemyError as e:
            logger.error("Database error creating note: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not create the note. Please try again.")
        logger.info("Note created: %s", note.id)
        return NoteResponse.model_validate(note)

    async def update_note(self, notes: NoteRepository, note_id: str, content: str) -> NoteResponse:
        """
        Replace a note's content.

        Raises:
            NotFoundError: no such note for this user (→ 404)
        """
        try:
            note = await notes.replace_content(note_id, content)
        except SQLAlchemyError as e:
            logger.error("Database error updating note %s: %s", note_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"note_id": note_id},
            )
        logger.debug("Note %s updated (%d chars)", note_id, len(content))
        return NoteResponse.model_validate(note)

    async def delete_note(self, notes: NoteRepository, storage: ObjectStorage, note_id: str) -> None:
        """
        Delete a note and its attachments.

        Attachment rows go with the note in the same transaction; their
        objects are then removed best-effort. A failed removal leaves an
        orphan object, which is logged and not raised.
        """
        try:
            object_keys = await notes.delete(note_id)
        except SQLAlchemyError as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": note_id},
            )
        logger.info("Note deleted: %s (%d attachments)", note_id, len(object_keys))

        for key in object_keys:
            try:
                await storage.remove(key)
            except Exception as e:
                logger.warning("Orphaned object after note delete %s: %s", key, str(e))

    async def search(self, notes: NoteRepository, query: str, partial: bool = False) -> List[NoteResponse]:
        """
        Search the caller's notes.

        Raises:
            ValidationError: blank query (→ 400)
        """
        if not query or not query.strip():
            raise ValidationError(message="Search query is required", field="q")
        try:
            rows = await notes.search(query.strip(), partial=partial)
        except SQLAlchemyError as e:
            logger.error("Search failed for %r: %s", query, str(e), exc_info=True)
            raise DatabaseError(message="Search failed. Please try again.")
        return [NoteResponse.model_validate(row) for row in rows]


note_service = NoteService()
