"""
Signed-token codec (python-jose) and password hashing (passlib / bcrypt).

Three token kinds live in three separate trust domains.  Each kind is
signed with its own secret *and* carries its kind as a tag inside the
payload, so a token minted for one domain never verifies in another
even if two secrets were configured identically.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Protocol

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from boxoffice.core.clock import Clock, ensure_utc, utcnow
from boxoffice.core.config import settings
from boxoffice.core.exceptions import ExpiredError, InvalidError
from boxoffice.schemas.token import TokenClaims

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
class TokenKind(str, Enum):
    """Token trust domains; the value is the tag embedded in ``dat.t``."""

    AUTH = "User"
    EMAIL = "Email"
    TICKET = "Ticket"


class _TicketLike(Protocol):
    id: uuid.UUID
    owner_user_id: uuid.UUID
    expires_at: datetime


class TokenCodec:
    """Issues and verifies tokens of every kind.

    The codec is a pure function of its secrets and clock.  Expiry is
    decided here, by comparing ``exp`` against the injected clock; the
    JWT library's own ``exp`` validation is switched off so there is a
    single authoritative check.
    """

    def __init__(
        self,
        secrets: Mapping[TokenKind, str],
        algorithm: str = "HS256",
        clock: Clock = utcnow,
    ) -> None:
        missing = [kind.name for kind in TokenKind if not secrets.get(kind)]
        if missing:
            raise ValueError(f"Missing secret for token kinds: {', '.join(missing)}")
        self._secrets = MappingProxyType(dict(secrets))
        self._algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, clock: Clock = utcnow) -> TokenCodec:
        return cls(
            {
                TokenKind.AUTH: settings.JWT_USER_SECRET,
                TokenKind.EMAIL: settings.JWT_EMAIL_SECRET,
                TokenKind.TICKET: settings.JWT_TICKET_SECRET,
            },
            algorithm=settings.JWT_ALGORITHM,
            clock=clock,
        )

    def now(self) -> datetime:
        return self._clock()

    def issue(
        self,
        kind: TokenKind,
        subject_id: uuid.UUID,
        ttl: timedelta,
        ref_id: uuid.UUID | None = None,
    ) -> str:
        """Sign a token valid for *ttl* from now.

        *ref_id* is the id carried in the tagged payload; it defaults to the
        subject for auth and email tokens.
        """
        issued_at = self._clock()
        return self._encode(kind, subject_id, ref_id or subject_id, issued_at, issued_at + ttl)

    def issue_auth(self, user_id: uuid.UUID) -> str:
        return self.issue(TokenKind.AUTH, user_id, timedelta(days=settings.AUTH_TOKEN_EXPIRE_DAYS))

    def issue_email(self, user_id: uuid.UUID) -> str:
        return self.issue(TokenKind.EMAIL, user_id, timedelta(days=settings.EMAIL_TOKEN_EXPIRE_DAYS))

    def issue_ticket(self, ticket: _TicketLike) -> str:
        """Redemption token expiring together with the ticket itself."""
        return self._encode(
            TokenKind.TICKET,
            ticket.owner_user_id,
            ticket.id,
            self._clock(),
            ensure_utc(ticket.expires_at),
        )

    def verify(self, kind: TokenKind, token: str) -> TokenClaims:
        """Return the claims of a *kind* token or raise Invalid / Expired."""
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidError("Invalid token") from exc

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise InvalidError("Malformed token claims") from exc

        if claims.dat.t != kind.value:
            raise InvalidError("Token kind mismatch")

        if self._clock().timestamp() > claims.exp:
            raise ExpiredError("Token has expired")

        return claims

    def _encode(
        self,
        kind: TokenKind,
        subject_id: uuid.UUID,
        ref_id: uuid.UUID,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        payload = {
            "dat": {"t": kind.value, "v": str(ref_id)},
            "sub": str(subject_id),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)
