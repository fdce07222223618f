"""
User model — accounts, activation state and the global superuser flag.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Uuid

from boxoffice.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    first_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    username: str = Column(String(64), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    # NULL for accounts provisioned by an external provider
    password_hash: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    is_super_user: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    is_activated: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    is_deleted: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
