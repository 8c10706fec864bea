"""
Infinite Notepad Backend — Media Attachment SQLAlchemy Model
==============================================================

What:  Metadata row for an object stored in the media bucket.
How:   The object itself lives in object storage under `file_path`; this row
       and the object are written/removed as a pair (best effort).

file_type is a coarse classification derived from the MIME prefix:
image/* → image, audio/* → audio, video/* → video, anything else → other.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notepad.database import Base, UTCDateTime, utc_now


class MediaAttachment(Base):
    """A file attached to a note."""

    __tablename__ = "note_media"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Original file name as uploaded",
    )

    file_path: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Object key: {userId}/{noteId}/{timestamp}-{sanitizedName}",
    )

    file_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="image, audio, video or other",
    )

    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    mime_type: Mapped[str] = mapped_column(String(127), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    __table_args__ = (
        Index("idx_note_media_note_id", "note_id"),
        Index("idx_note_media_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<MediaAttachment(id={self.id}, note_id={self.note_id}, path='{self.file_path}')>"
