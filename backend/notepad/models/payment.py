"""
Infinite Notepad Backend — Payment SQLAlchemy Model
=====================================================

What:  Local record of a hosted payment link created with the payment provider.
How:   Inserted as 'pending' when the link is created; moved to 'completed' or
       'failed' by the signed provider webhook.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notepad.database import Base, UTCDateTime, utc_now

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"


class Payment(Base):
    """A payment attempt initiated by a user."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    payment_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Provider-side payment identifier",
    )

    product_id: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Total in minor currency units",
    )

    currency: Mapped[str] = mapped_column(String(8), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=PAYMENT_PENDING,
        comment="pending, completed or failed",
    )

    payment_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    def __repr__(self) -> str:
        return f"<Payment(payment_id='{self.payment_id}', status='{self.status}')>"
