"""Pydantic schemas for ticket issuance, listing and redemption."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class TicketCreate(BaseModel):
    theatre_screening_id: uuid.UUID
    ticket_type_id: uuid.UUID
    seat_row: int = Field(ge=0)
    seat_column: int = Field(ge=0)
    owner_user_id: uuid.UUID | None = None
    expires_at: datetime | None = Field(default=None, description="Honoured for ticket staff only")


class TicketRead(BaseModel):
    id: uuid.UUID
    owner_user_id: uuid.UUID
    issuer_user_id: uuid.UUID
    theatre_screening_id: uuid.UUID
    ticket_type_id: uuid.UUID
    seat_row: int
    seat_column: int
    issued_at: datetime
    expires_at: datetime
    used: bool

    model_config = {"from_attributes": True}


class IssuedTicket(BaseModel):
    ticket: TicketRead
    ticket_jwt: str

