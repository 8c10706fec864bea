"""
Infinite Notepad Backend — User SQLAlchemy Model
==================================================

What:  ORM model for the `users` table (the auth half of the data service).
How:   Passwords are stored as bcrypt hashes; emails are stored lower-cased.

Lifecycle:
    1. Created at sign-up (email_confirmed_at NULL if confirmation required)
    2. Confirmed via GET /api/auth/confirm (email_confirmed_at set)
    3. Never deleted through the API
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notepad.database import Base, UTCDateTime, utc_now


class User(Base):
    """An account that owns notes, media and payments."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased login email",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the password",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    email_confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(timezone=True),
        nullable=True,
        default=None,
        comment="NULL until the email confirmation link is followed",
    )

    @property
    def is_confirmed(self) -> bool:
        return self.email_confirmed_at is not None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
