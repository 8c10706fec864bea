"""
Infinite Notepad Backend — Note SQLAlchemy Model
==================================================

What:  ORM model representing the `notes` table.
Who:   Used by NoteRepository for user-scoped CRUD and by Alembic.

Table Design:
    - UUID primary key, generated in Python (portable across PostgreSQL/SQLite)
    - user_id: owner; every query is filtered on it
    - content: full text, empty string rather than NULL
    - created_at / updated_at: UTC, updated_at >= created_at

    Composite index (user_id, updated_at DESC) serves the list and search
    queries, which are always "this user's notes, most recently edited first".
    The full-text GIN index exists on PostgreSQL only (see the migration).
"""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notepad.database import Base, UTCDateTime, utc_now


class Note(Base):
    """
    A single note owned by one user.

    Lifecycle:
        1. Created with empty content on "new note" (server assigns id + timestamps)
        2. Content replaced wholesale on each update; updated_at refreshed
        3. Deleted explicitly (terminal); attachment rows go with it
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner of the note",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free text; empty string when the note is blank",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    __table_args__ = (
        Index("idx_notes_user_updated_at", "user_id", updated_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, user_id={self.user_id}, "
            f"updated_at='{self.updated_at}')>"
        )
