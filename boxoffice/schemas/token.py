"""Pydantic schemas for JWT claims and token responses."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


# ── Claims payload (tagged by ``t``) ────────────────────────────────
class AuthTokenData(BaseModel):
    t: Literal["User"] = "User"
    v: uuid.UUID  # user id

    model_config = {"frozen": True}


class EmailTokenData(BaseModel):
    t: Literal["Email"] = "Email"
    v: uuid.UUID  # user id

    model_config = {"frozen": True}


class TicketTokenData(BaseModel):
    t: Literal["Ticket"] = "Ticket"
    v: uuid.UUID  # ticket id

    model_config = {"frozen": True}


TokenData = Annotated[
    Union[AuthTokenData, EmailTokenData, TicketTokenData],
    Field(discriminator="t"),
]


class TokenClaims(BaseModel):
    dat: TokenData
    sub: uuid.UUID
    iat: int
    exp: int

    model_config = {"frozen": True}

    @property
    def ref_id(self) -> uuid.UUID:
        """Id the token refers to: a user for auth/email tokens, a ticket otherwise."""
        return self.dat.v


# ── Responses ───────────────────────────────────────────────────────
class AuthToken(BaseModel):
    token: str
    expires_at: datetime
