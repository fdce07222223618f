"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from boxoffice.api.v1.endpoints import auth, health, roles, tickets, users

api_router = APIRouter()

# Registration, email verification, login
api_router.include_router(auth.router)

# The caller's own account and tickets
api_router.include_router(users.router)

# Role catalogue and theatre role assignments
api_router.include_router(roles.router)
api_router.include_router(roles.theatre_router)

# Ticket issuance and redemption
api_router.include_router(tickets.router)

# Liveness
api_router.include_router(health.router)
