"""
Theatre-scoped ticket endpoints — issuance, staff listing and redemption.

The ``ticket_jwt`` query parameter carries a ticket redemption token.
``/validate`` only reads; ``/mark`` sets the used flag either way;
``/consume`` admits a ticket at most once.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query

from boxoffice.api.v1.deps import get_current_user, get_theatre, get_ticket_ledger
from boxoffice.models.theatre import Theatre
from boxoffice.models.ticket import Ticket
from boxoffice.models.user import User
from boxoffice.schemas.ticket import IssuedTicket, TicketCreate, TicketRead
from boxoffice.services.tickets import TicketLedger

router = APIRouter(prefix="/theatre/{theatre_id}/ticket", tags=["tickets"])
logger = logging.getLogger(__name__)


@router.post("/new", response_model=IssuedTicket, status_code=201)
async def create_ticket(
    body: TicketCreate,
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> IssuedTicket:
    """Issue a ticket to yourself or, as ticket staff, to another user."""
    ticket = await ledger.issue(
        user,
        body.theatre_screening_id,
        body.ticket_type_id,
        body.seat_row,
        body.seat_column,
        owner_id=body.owner_user_id,
        expires_at=body.expires_at,
        theatre_id=theatre.id,
    )
    logger.info("User %s issued ticket %s to %s", user.id, ticket.id, ticket.owner_user_id)
    return IssuedTicket(ticket=TicketRead.model_validate(ticket), ticket_jwt=ledger.create_token(ticket))


@router.get("/query", response_model=list[TicketRead])
async def query_tickets(
    issuer_id: uuid.UUID | None = Query(default=None),
    ticket_type: uuid.UUID | None = Query(default=None),
    theatre_screening_id: uuid.UUID | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> list[Ticket]:
    return list(
        await ledger.query(
            user,
            theatre.id,
            issuer_id=issuer_id,
            ticket_type_id=ticket_type,
            screening_id=theatre_screening_id,
            owner_id=user_id,
            limit=limit,
            offset=offset,
        )
    )


@router.get("/validate", response_model=TicketRead)
async def validate_ticket(
    ticket_jwt: str = Query(min_length=1),
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> Ticket:
    """Check a redemption token without changing the ticket."""
    return await ledger.redeem(ticket_jwt, user, theatre.id)


@router.put("/mark", response_model=TicketRead)
async def mark_ticket(
    ticket_jwt: str = Query(min_length=1),
    used: bool = Query(default=True),
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> Ticket:
    """Set the ticket's used flag."""
    ticket = await ledger.redeem(ticket_jwt, user, theatre.id)
    ticket = await ledger.mark(ticket, used)
    logger.info("User %s marked ticket %s used=%s", user.id, ticket.id, used)
    return ticket


@router.post("/consume", response_model=TicketRead)
async def consume_ticket(
    ticket_jwt: str = Query(min_length=1),
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> Ticket:
    """Admit a ticket: unused → used, or 409 when it was already used."""
    ticket = await ledger.consume(ticket_jwt, user, theatre.id)
    logger.info("User %s admitted ticket %s", user.id, ticket.id)
    return ticket
