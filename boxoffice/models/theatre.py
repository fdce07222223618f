"""
Theatre, screening and ticket type tables.

Managed by the catalogue service; the ticketing core only reads them to
resolve which theatre a screening or ticket type belongs to.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Uuid

from boxoffice.db.base import Base


class Theatre(Base):
    __tablename__ = "theatres"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    location_lat: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    location_lon: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    is_deleted: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]


class TheatreScreening(Base):
    __tablename__ = "theatre_screenings"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    theatre_id: uuid.UUID = Column(  # type: ignore[assignment]
        Uuid, ForeignKey("theatres.id"), nullable=False, index=True
    )
    starting_time: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    status: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]


class TicketType(Base):
    __tablename__ = "ticket_types"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    theatre_id: uuid.UUID = Column(  # type: ignore[assignment]
        Uuid, ForeignKey("theatres.id"), nullable=False, index=True
    )
    type: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    movie_type: str = Column(String(64), nullable=False, default="2D")  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    currency: str = Column(String(3), nullable=False, default="EUR")  # type: ignore[assignment]
    price: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
