"""
Ticket model — issued once, toggled between used and unused, never deleted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Uuid

from boxoffice.db.base import Base


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        CheckConstraint("expires_at >= issued_at", name="ck_ticket_expiry_after_issue"),
        Index("ix_ticket_owner_screening", "owner_user_id", "theatre_screening_id"),
    )

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    owner_user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    issuer_user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    theatre_screening_id: uuid.UUID = Column(  # type: ignore[assignment]
        Uuid, ForeignKey("theatre_screenings.id"), nullable=False
    )
    ticket_type_id: uuid.UUID = Column(  # type: ignore[assignment]
        Uuid, ForeignKey("ticket_types.id"), nullable=False
    )
    seat_row: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    seat_column: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    issued_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    used: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
