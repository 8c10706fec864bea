"""
Note Repository.

User-scoped data access for notes, including the content search queries.
"""

import re
from datetime import datetime
from typing import List, Optional

from sqlalchemy import ColumnElement, and_, delete, func, or_

from notepad.database import utc_now
from notepad.models.media import MediaAttachment
from notepad.models.note import Note
from notepad.repositories.base import ScopedRepository

SEARCH_TOKEN = re.compile(r"\w+", re.UNICODE)


class NoteRepository(ScopedRepository[Note]):
    """Notes belonging to one user."""

    model = Note
    resource = "note"

    async def list_recent(self) -> List[Note]:
        """All of the user's notes, most recently updated first."""
        result = await self.session.execute(
            self.scoped().order_by(Note.updated_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, content: str = "") -> Note:
        now = utc_now()
        note = Note(user_id=self.user_id, content=content, created_at=now, updated_at=now)
        return await self.add(note)

    async def replace_content(self, note_id, content: str) -> Note:
        """
        Full-content replacement.

        updated_at is refreshed to now but never moves backwards, so
        updated_at >= created_at and successive updates are non-decreasing.
        """
        note = await self.get(note_id)
        note.content = content
        note.updated_at = _not_before(utc_now(), note.updated_at)
        await self.session.flush()
        return note

    async def delete(self, note_id) -> List[str]:
        """
        Delete a note and its attachment rows.

        Returns:
            Object keys of the removed attachments, for storage cleanup.
        """
        note = await self.get(note_id)
        result = await self.session.execute(
            MediaAttachment.__table__.select()
            .with_only_columns(MediaAttachment.file_path)
            .where(MediaAttachment.note_id == note.id)
        )
        object_keys = [row[0] for row in result.all()]
        await self.session.execute(
            delete(MediaAttachment).where(MediaAttachment.note_id == note.id)
        )
        await self.remove(note)
        return object_keys

    async def search(self, query: str, partial: bool = False) -> List[Note]:
        """
        Content search over the user's notes, most recently updated first.

        PostgreSQL uses the full-text index (websearch syntax, or `term:*`
        prefixes in partial mode). Other dialects fall back to
        case-insensitive LIKE: every term as a substring, or in partial mode
        every term as a word prefix.
        """
        clause = self._match_clause(query, partial)
        if clause is None:
            return []
        result = await self.session.execute(
            self.scoped().where(clause).order_by(Note.updated_at.desc())
        )
        return list(result.scalars().all())

    def _match_clause(self, query: str, partial: bool) -> Optional[ColumnElement[bool]]:
        terms = SEARCH_TOKEN.findall(query.lower())
        if not terms:
            return None

        if self.session.get_bind().dialect.name == "postgresql":
            vector = func.to_tsvector("english", Note.content)
            if partial:
                tsquery = func.to_tsquery("english", " & ".join(f"{t}:*" for t in terms))
            else:
                tsquery = func.websearch_to_tsquery("english", query)
            return vector.bool_op("@@")(tsquery)

        if partial:
            return and_(*[
                or_(
                    Note.content.istartswith(term, autoescape=True),
                    Note.content.icontains(f" {term}", autoescape=True),
                    Note.content.icontains(f"\n{term}", autoescape=True),
                )
                for term in terms
            ])
        return and_(*[Note.content.icontains(term, autoescape=True) for term in terms])


def _not_before(value: datetime, floor: datetime) -> datetime:
    return value if floor is None or value >= floor else floor
