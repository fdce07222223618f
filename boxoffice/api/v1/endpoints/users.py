"""
Endpoints for the authenticated user's own account and tickets.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends

from boxoffice.api.v1.deps import get_current_user, get_ticket_ledger, get_user_service
from boxoffice.models.ticket import Ticket
from boxoffice.models.user import User
from boxoffice.schemas.common import MessageResponse
from boxoffice.schemas.ticket import IssuedTicket, TicketRead
from boxoffice.schemas.user import UserRead
from boxoffice.services.tickets import TicketLedger
from boxoffice.services.users import UserService

router = APIRouter(prefix="/user", tags=["user"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    """Return profile of the currently authenticated user."""
    return current_user


@router.delete("/me", response_model=MessageResponse)
async def delete_current_user(
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    """Soft-delete the current account; its tokens stop authenticating."""
    await users.soft_delete(current_user.id)
    logger.info("User %s deleted their account", current_user.id)
    return MessageResponse(message="Account deleted")


@router.get("/me/tickets", response_model=list[TicketRead])
async def list_own_tickets(
    current_user: User = Depends(get_current_user),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> list[Ticket]:
    return list(await ledger.tickets_for_owner(current_user.id))


@router.get("/me/tickets/{ticket_id}/token", response_model=IssuedTicket)
async def own_ticket_token(
    ticket_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    ledger: TicketLedger = Depends(get_ticket_ledger),
) -> IssuedTicket:
    """Mint a fresh redemption token for one of the caller's tickets."""
    ticket = await ledger.owned_ticket(current_user, ticket_id)
    return IssuedTicket(
        ticket=TicketRead.model_validate(ticket),
        ticket_jwt=ledger.create_token(ticket),
    )
