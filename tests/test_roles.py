"""Tests for the role catalogue, the bridge table and the role endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from boxoffice.services.roles import BridgeRoleService, RoleAssignment, RoleCatalog, RoleKind


@pytest.mark.asyncio
async def test_seed_is_idempotent(db_session):
    catalog = RoleCatalog(db_session)
    assert await catalog.seed() == []
    records = await catalog.all_records()
    assert {r.name for r in records} == {kind.value for kind in RoleKind}
    for record in records:
        assert await catalog.get_kind(record.id) is RoleKind(record.name)


@pytest.mark.asyncio
async def test_register_duplicate_is_not_an_error(factory, db_session):
    user = await factory.user()
    theatre = await factory.theatre()
    record = await RoleCatalog(db_session).get_record(RoleKind.TICKET_CHECKER)
    assignment = RoleAssignment(user.id, record.id, theatre.id)
    bridge = BridgeRoleService(db_session)

    await bridge.register_roles([assignment, assignment])
    await bridge.register_roles([assignment])

    rows = await bridge.get_roles(user_id=user.id)
    assert len(rows) == 1
    assert await bridge.has_role(user.id, theatre.id, record.id)


@pytest.mark.asyncio
async def test_unregister_batch_and_filters(factory, db_session):
    user = await factory.user()
    theatre = await factory.theatre()
    catalog = RoleCatalog(db_session)
    checker = await catalog.get_record(RoleKind.TICKET_CHECKER)
    manager = await catalog.get_record(RoleKind.TICKET_MANAGER)
    bridge = BridgeRoleService(db_session)
    await bridge.register_roles(
        [
            RoleAssignment(user.id, checker.id, theatre.id),
            RoleAssignment(user.id, manager.id, theatre.id),
        ]
    )

    removed = await bridge.unregister_roles_batch(
        [
            RoleAssignment(user.id, checker.id, theatre.id),
            RoleAssignment(user.id, checker.id, uuid.uuid4()),
        ]
    )
    assert removed == 1
    assert await bridge.unregister_roles(user_id=user.id, theatre_id=theatre.id) == 1
    assert await bridge.get_roles(user_id=user.id) == []


@pytest.mark.asyncio
async def test_list_role_catalogue(async_client: AsyncClient, factory):
    user = await factory.user()
    resp = await async_client.get("/api/v1/roles", headers=factory.auth(user))
    assert resp.status_code == 200
    assert {r["name"] for r in resp.json()} == {kind.value for kind in RoleKind}


@pytest.mark.asyncio
async def test_owner_grants_and_revokes_roles(async_client: AsyncClient, factory):
    owner = await factory.user()
    staff = await factory.user()
    theatre = await factory.theatre()
    await factory.grant(owner, theatre, RoleKind.THEATRE_OWNER)
    url = f"/api/v1/theatre/{theatre.id}/role"

    resp = await async_client.put(
        f"{url}/update",
        headers=factory.auth(owner),
        json=[
            {"action": "create", "user_id": str(staff.id), "role": "TicketChecker"},
            {"action": "create", "user_id": str(staff.id), "role": "TicketChecker"},
        ],
    )
    assert resp.status_code == 200
    assert resp.json() == {"created": 1, "deleted": 0}

    listing = (await async_client.get(f"{url}/all", headers=factory.auth(owner))).json()
    assert {"user_id": str(staff.id), "role": "TicketChecker", "theatre_id": str(theatre.id)} in listing

    resp = await async_client.put(
        f"{url}/update",
        headers=factory.auth(owner),
        json=[{"action": "delete", "user_id": str(staff.id), "role": "TicketChecker"}],
    )
    assert resp.json() == {"created": 0, "deleted": 1}


@pytest.mark.asyncio
async def test_cannot_change_own_roles(async_client: AsyncClient, factory):
    manager = await factory.user()
    theatre = await factory.theatre()
    await factory.grant(manager, theatre, RoleKind.USER_MANAGER)

    resp = await async_client.put(
        f"/api/v1/theatre/{theatre.id}/role/update",
        headers=factory.auth(manager),
        json=[{"action": "create", "user_id": str(manager.id), "role": "TheatreOwner"}],
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "InsufficientPermission"


@pytest.mark.asyncio
async def test_superuser_may_change_own_roles(async_client: AsyncClient, factory):
    admin = await factory.user(superuser=True)
    theatre = await factory.theatre()
    resp = await async_client.put(
        f"/api/v1/theatre/{theatre.id}/role/update",
        headers=factory.auth(admin),
        json=[{"action": "create", "user_id": str(admin.id), "role": "TheatreOwner"}],
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_plain_user_cannot_list_assignments(async_client: AsyncClient, factory):
    user = await factory.user()
    theatre = await factory.theatre()
    resp = await async_client.get(f"/api/v1/theatre/{theatre.id}/role/all", headers=factory.auth(user))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_unknown_theatre_is_not_found_before_forbidden(async_client: AsyncClient, factory):
    user = await factory.user()
    resp = await async_client.get(f"/api/v1/theatre/{uuid.uuid4()}/role/all", headers=factory.auth(user))
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


@pytest.mark.asyncio
async def test_grant_to_unknown_user_is_not_found(async_client: AsyncClient, factory):
    owner = await factory.user()
    theatre = await factory.theatre()
    await factory.grant(owner, theatre, RoleKind.THEATRE_OWNER)
    resp = await async_client.put(
        f"/api/v1/theatre/{theatre.id}/role/update",
        headers=factory.auth(owner),
        json=[{"action": "create", "user_id": str(uuid.uuid4()), "role": "TicketChecker"}],
    )
    assert resp.status_code == 404
