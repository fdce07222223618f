"""
Ticket ledger — issuance, redemption and the used/unused toggle.

A ticket moves between two states, unused and used, and is never
deleted.  ``redeem`` is read-only so a scanner can display a ticket
without touching it; ``mark`` sets the flag unconditionally and
``consume`` flips it from unused to used in a single conditional
UPDATE, so two scanners cannot both admit the same ticket.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.core.clock import Clock, ensure_utc
from boxoffice.core.config import settings
from boxoffice.core.exceptions import (
    ConflictError,
    ExpiredError,
    InvalidError,
    NotFoundError,
    TicketLimitReachedError,
)
from boxoffice.core.security import TokenCodec, TokenKind
from boxoffice.db.repository import fetch_one
from boxoffice.models.theatre import Theatre, TheatreScreening, TicketType
from boxoffice.models.ticket import Ticket
from boxoffice.models.user import User
from boxoffice.services.permissions import ScopedPermissionResolver
from boxoffice.services.roles import RoleKind

ISSUER_ROLES = frozenset({RoleKind.THEATRE_OWNER, RoleKind.TICKET_MANAGER})
REDEEMER_ROLES = frozenset({RoleKind.THEATRE_OWNER, RoleKind.TICKET_CHECKER})


class TicketLedger:
    def __init__(
        self,
        db: AsyncSession,
        codec: TokenCodec,
        resolver: ScopedPermissionResolver | None = None,
        clock: Clock | None = None,
        self_issue_limit: int | None = None,
    ) -> None:
        self.db = db
        self.codec = codec
        self.resolver = resolver or ScopedPermissionResolver(db)
        self._clock = clock or codec.now
        self.self_issue_limit = (
            settings.TICKET_SELF_ISSUE_LIMIT if self_issue_limit is None else self_issue_limit
        )

    # ── Issuance ────────────────────────────────────────────────────
    async def issue(
        self,
        issuer: User,
        screening_id: uuid.UUID,
        ticket_type_id: uuid.UUID,
        seat_row: int,
        seat_column: int,
        owner_id: uuid.UUID | None = None,
        expires_at: datetime | None = None,
        theatre_id: uuid.UUID | None = None,
    ) -> Ticket:
        """Issue a ticket for *owner_id* (default: the issuer).

        When *theatre_id* is given the screening must belong to that theatre.

        Issuing to someone else requires TheatreOwner or TicketManager in
        the screening's theatre and is not capped.  Issuing to oneself is
        capped per screening at ``self_issue_limit`` tickets.

        *expires_at* is only honoured for ticket staff; everyone else gets
        the screening start plus the configured grace period.
        """
        screening = await fetch_one(self.db, TheatreScreening, id=screening_id)
        if screening is None or (theatre_id is not None and screening.theatre_id != theatre_id):
            raise NotFoundError("Screening not found")
        if await fetch_one(self.db, Theatre, id=screening.theatre_id) is None:
            raise NotFoundError("Screening not found")

        ticket_type = await fetch_one(self.db, TicketType, id=ticket_type_id)
        if ticket_type is None or ticket_type.theatre_id != screening.theatre_id:
            raise NotFoundError("Ticket type not found")

        owner_id = owner_id or issuer.id
        self_issued = owner_id == issuer.id

        if not self_issued:
            await self.resolver.authorize_any(issuer, screening.theatre_id, ISSUER_ROLES)
            if await fetch_one(self.db, User, id=owner_id) is None:
                raise NotFoundError("Ticket owner not found")

        if expires_at is not None and self_issued:
            if not await self.resolver.check(issuer, screening.theatre_id, ISSUER_ROLES):
                expires_at = None

        now = self._clock()
        if expires_at is None:
            expires_at = ensure_utc(screening.starting_time) + timedelta(
                minutes=settings.TICKET_EXPIRY_GRACE_MINUTES
            )
        expires_at = ensure_utc(expires_at)
        if expires_at < now:
            raise InvalidError("Ticket would expire before it is issued")

        if self_issued:
            # Serialise concurrent self-issuance for the same owner.
            await self.db.execute(select(User.id).where(User.id == owner_id).with_for_update())
            held = await self.count_owned(owner_id, screening.id)
            if held >= self.self_issue_limit:
                raise TicketLimitReachedError(
                    f"At most {self.self_issue_limit} tickets per screening may be self-issued"
                )

        ticket = Ticket(
            owner_user_id=owner_id,
            issuer_user_id=issuer.id,
            theatre_screening_id=screening.id,
            ticket_type_id=ticket_type.id,
            seat_row=seat_row,
            seat_column=seat_column,
            issued_at=now,
            expires_at=expires_at,
            used=False,
        )
        self.db.add(ticket)
        await self.db.commit()
        await self.db.refresh(ticket)
        return ticket

    async def count_owned(self, owner_id: uuid.UUID, screening_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Ticket)
            .where(Ticket.owner_user_id == owner_id, Ticket.theatre_screening_id == screening_id)
        )
        return result.scalar_one()

    def create_token(self, ticket: Ticket) -> str:
        return self.codec.issue_ticket(ticket)

    # ── Redemption ──────────────────────────────────────────────────
    async def redeem(self, token: str, acting_user: User, theatre_id: uuid.UUID) -> Ticket:
        """Validate a redemption token for *theatre_id* without changing the ticket."""
        claims = self.codec.verify(TokenKind.TICKET, token)

        ticket = await self._ticket_in_theatre(claims.ref_id, theatre_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")

        await self.resolver.authorize_any(acting_user, theatre_id, REDEEMER_ROLES)

        if self._clock() > ensure_utc(ticket.expires_at):
            raise ExpiredError("Ticket has expired")
        return ticket

    async def mark(self, ticket: Ticket, used: bool) -> Ticket:
        """Set the used flag; re-marking with the same value is a no-op."""
        await self.db.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id)
            .values(used=used)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(ticket)
        return ticket

    async def consume(self, token: str, acting_user: User, theatre_id: uuid.UUID) -> Ticket:
        """Redeem and flip unused → used atomically; a used ticket is a conflict."""
        ticket = await self.redeem(token, acting_user, theatre_id)
        result = await self.db.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            raise ConflictError("Ticket has already been used")
        await self.db.refresh(ticket)
        return ticket

    # ── Reads ───────────────────────────────────────────────────────
    async def get_ticket(self, ticket_id: uuid.UUID) -> Ticket:
        ticket = await fetch_one(self.db, Ticket, id=ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    async def owned_ticket(self, owner: User, ticket_id: uuid.UUID) -> Ticket:
        """Like ``get_ticket``, but someone else's ticket is reported as missing."""
        ticket = await self.get_ticket(ticket_id)
        if ticket.owner_user_id != owner.id:
            raise NotFoundError("Ticket not found")
        return ticket

    async def tickets_for_owner(self, owner_id: uuid.UUID) -> Sequence[Ticket]:
        result = await self.db.execute(
            select(Ticket).where(Ticket.owner_user_id == owner_id).order_by(Ticket.issued_at.desc())
        )
        return result.scalars().all()

    async def query(
        self,
        acting_user: User,
        theatre_id: uuid.UUID,
        *,
        issuer_id: uuid.UUID | None = None,
        ticket_type_id: uuid.UUID | None = None,
        screening_id: uuid.UUID | None = None,
        owner_id: uuid.UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Ticket]:
        """Staff listing of a theatre's tickets (TheatreOwner / TicketManager)."""
        await self.resolver.authorize_any(acting_user, theatre_id, ISSUER_ROLES)

        stmt = (
            select(Ticket)
            .join(TheatreScreening, Ticket.theatre_screening_id == TheatreScreening.id)
            .where(TheatreScreening.theatre_id == theatre_id)
        )
        if issuer_id is not None:
            stmt = stmt.where(Ticket.issuer_user_id == issuer_id)
        if ticket_type_id is not None:
            stmt = stmt.where(Ticket.ticket_type_id == ticket_type_id)
        if screening_id is not None:
            stmt = stmt.where(Ticket.theatre_screening_id == screening_id)
        if owner_id is not None:
            stmt = stmt.where(Ticket.owner_user_id == owner_id)
        stmt = stmt.order_by(Ticket.issued_at.desc()).offset(offset).limit(limit)

        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def _ticket_in_theatre(self, ticket_id: uuid.UUID, theatre_id: uuid.UUID) -> Ticket | None:
        result = await self.db.execute(
            select(Ticket)
            .join(TheatreScreening, Ticket.theatre_screening_id == TheatreScreening.id)
            .where(Ticket.id == ticket_id, TheatreScreening.theatre_id == theatre_id)
        )
        return result.scalar_one_or_none()
