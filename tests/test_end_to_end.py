"""
End-to-end scenario: an owner staffs a theatre, a customer buys a
ticket and a checker admits it at the door.
"""

import pytest
from httpx import AsyncClient

from boxoffice.services.roles import RoleKind


@pytest.mark.asyncio
async def test_box_office_evening(async_client: AsyncClient, factory, clock):
    theatre = await factory.theatre("Odeon")
    screening = await factory.screening(theatre)
    ticket_type = await factory.ticket_type(theatre)
    owner = await factory.user()
    checker = await factory.user()
    customer = await factory.user()
    await factory.grant(owner, theatre, RoleKind.THEATRE_OWNER)

    staff_url = f"/api/v1/theatre/{theatre.id}/role/update"
    ticket_url = f"/api/v1/theatre/{theatre.id}/ticket"

    resp = await async_client.post(
        f"{ticket_url}/new",
        headers=factory.auth(customer),
        json={
            "theatre_screening_id": str(screening.id),
            "ticket_type_id": str(ticket_type.id),
            "seat_row": 5,
            "seat_column": 12,
        },
    )
    assert resp.status_code == 201
    token = resp.json()["ticket_jwt"]

    # Not staffed yet
    resp = await async_client.post(f"{ticket_url}/consume", params={"ticket_jwt": token}, headers=factory.auth(checker))
    assert resp.status_code == 403

    resp = await async_client.put(
        staff_url,
        headers=factory.auth(owner),
        json=[{"action": "create", "user_id": str(checker.id), "role": "TicketChecker"}],
    )
    assert resp.status_code == 200

    clock.advance(days=1)
    resp = await async_client.post(f"{ticket_url}/consume", params={"ticket_jwt": token}, headers=factory.auth(checker))
    assert resp.status_code == 200
    assert resp.json()["used"] is True

    # Same ticket shown twice at the door
    resp = await async_client.post(f"{ticket_url}/consume", params={"ticket_jwt": token}, headers=factory.auth(checker))
    assert resp.status_code == 409

    # Long after the show the token is dead
    clock.advance(hours=4)
    resp = await async_client.get(f"{ticket_url}/validate", params={"ticket_jwt": token}, headers=factory.auth(owner))
    assert resp.status_code == 401
    assert resp.json()["error"] == "Expired"

    resp = await async_client.get("/api/v1/user/me/tickets", headers=factory.auth(customer))
    assert [t["used"] for t in resp.json()] == [True]
