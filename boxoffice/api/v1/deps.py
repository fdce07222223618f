"""
FastAPI dependencies — database session, token codec, auth guards and
the service objects handed to the routers.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Path, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.core.clock import Clock, utcnow
from boxoffice.core.exceptions import NoAuthError, NotFoundError
from boxoffice.core.security import TokenCodec, TokenKind
from boxoffice.db.repository import fetch_one
from boxoffice.db.session import async_session_factory
from boxoffice.models.theatre import Theatre
from boxoffice.models.user import User
from boxoffice.schemas.token import TokenClaims
from boxoffice.services.mailer import MailDispatchQueue
from boxoffice.services.permissions import ScopedPermissionResolver
from boxoffice.services.tickets import TicketLedger
from boxoffice.services.users import UserService

# The raw token travels in the Authorization header without a scheme prefix.
auth_header = APIKeyHeader(name="Authorization", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Clock & codec ───────────────────────────────────────────────────
def get_clock() -> Clock:
    return utcnow


def get_token_codec(clock: Clock = Depends(get_clock)) -> TokenCodec:
    return TokenCodec.from_settings(clock)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_claims(
    token: str | None = Depends(auth_header),
    codec: TokenCodec = Depends(get_token_codec),
) -> TokenClaims:
    """Verify the auth token: missing → NoAuth, bad → Invalid, stale → Expired."""
    if not token or not token.strip():
        raise NoAuthError()
    return codec.verify(TokenKind.AUTH, token.strip())


async def get_current_user(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the acting user; a deleted account no longer authenticates."""
    user = await UserService(db).get_by_id(claims.ref_id)
    if user is None:
        raise NoAuthError("User no longer exists")
    return user


async def get_theatre(
    theatre_id: uuid.UUID = Path(description="Unique storage ID of the theatre"),
    db: AsyncSession = Depends(get_db),
) -> Theatre:
    """Resolve the theatre path segment before any permission check runs."""
    theatre = await fetch_one(db, Theatre, id=theatre_id)
    if theatre is None:
        raise NotFoundError("Theatre not found")
    return theatre


# ── Services ────────────────────────────────────────────────────────
def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def get_permission_resolver(db: AsyncSession = Depends(get_db)) -> ScopedPermissionResolver:
    return ScopedPermissionResolver(db)


def get_ticket_ledger(
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    resolver: ScopedPermissionResolver = Depends(get_permission_resolver),
) -> TicketLedger:
    return TicketLedger(db, codec, resolver)


def get_mailer(request: Request) -> MailDispatchQueue:
    return request.app.state.mailer
