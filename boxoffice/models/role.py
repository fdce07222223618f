"""
Theatre role records and the user/role/theatre bridge table.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, ForeignKey, String, Uuid

from boxoffice.db.base import Base


class TheatreRole(Base):
    __tablename__ = "theatre_roles"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    name: str = Column(String(64), unique=True, nullable=False)  # type: ignore[assignment]


class UserTheatreRole(Base):
    __tablename__ = "users_theatre_roles"

    # The composite key doubles as the uniqueness guarantee for assignments.
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), primary_key=True)  # type: ignore[assignment]
    role_id: uuid.UUID = Column(Uuid, ForeignKey("theatre_roles.id"), primary_key=True)  # type: ignore[assignment]
    theatre_id: uuid.UUID = Column(  # type: ignore[assignment]
        Uuid, ForeignKey("theatres.id"), primary_key=True, index=True
    )
