"""
Role catalogue and theatre-scoped role assignment endpoints.

Assignments in a theatre may be listed and changed by its TheatreOwner
or UserManager staff (or a superuser).  Nobody but a superuser may
change their own assignments.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.api.v1.deps import get_current_user, get_db, get_permission_resolver, get_theatre
from boxoffice.core.exceptions import InsufficientPermissionError, NotFoundError
from boxoffice.db.repository import fetch_one
from boxoffice.models.role import TheatreRole
from boxoffice.models.theatre import Theatre
from boxoffice.models.user import User
from boxoffice.schemas.role import (
    RoleAction,
    RoleAssignmentRead,
    RoleRead,
    RoleUpdateResult,
    UserRoleChange,
)
from boxoffice.services.permissions import ScopedPermissionResolver
from boxoffice.services.roles import BridgeRoleService, RoleAssignment, RoleCatalog, RoleKind

router = APIRouter(tags=["roles"])
theatre_router = APIRouter(prefix="/theatre/{theatre_id}/role", tags=["roles"])
logger = logging.getLogger(__name__)

STAFF_ADMIN_ROLES = frozenset({RoleKind.THEATRE_OWNER, RoleKind.USER_MANAGER})


@router.get("/roles", response_model=list[RoleRead])
async def list_roles(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TheatreRole]:
    """Role records known to this installation."""
    return list(await RoleCatalog(db).all_records())


@theatre_router.get("/all", response_model=list[RoleAssignmentRead])
async def get_all_roles(
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    resolver: ScopedPermissionResolver = Depends(get_permission_resolver),
    db: AsyncSession = Depends(get_db),
) -> list[RoleAssignmentRead]:
    """Every role assignment within the theatre."""
    await resolver.authorize_any(user, theatre.id, STAFF_ADMIN_ROLES)

    kinds = {record.id: RoleKind.from_name(record.name) for record in await RoleCatalog(db).all_records()}
    rows = await BridgeRoleService(db).get_roles(theatre_id=theatre.id)
    return [
        RoleAssignmentRead(user_id=row.user_id, role=kind, theatre_id=row.theatre_id)
        for row in rows
        if (kind := kinds.get(row.role_id)) is not None
    ]


@theatre_router.put("/update", response_model=RoleUpdateResult)
async def update_roles_batch(
    batch: list[UserRoleChange],
    user: User = Depends(get_current_user),
    theatre: Theatre = Depends(get_theatre),
    resolver: ScopedPermissionResolver = Depends(get_permission_resolver),
    db: AsyncSession = Depends(get_db),
) -> RoleUpdateResult:
    """Grant and revoke role assignments in one batch."""
    await resolver.authorize_any(user, theatre.id, STAFF_ADMIN_ROLES)
    if not user.is_super_user and any(change.user_id == user.id for change in batch):
        raise InsufficientPermissionError("You cannot change your own roles")

    catalog = RoleCatalog(db)
    role_ids = {}
    for kind in {change.role for change in batch}:
        record = await catalog.get_record(kind)
        if record is None:
            raise NotFoundError(f"Role {kind.value} is not available")
        role_ids[kind] = record.id

    for target_id in {c.user_id for c in batch if c.action is RoleAction.CREATE}:
        if await fetch_one(db, User, id=target_id) is None:
            raise NotFoundError("User not found")

    to_create = [
        RoleAssignment(c.user_id, role_ids[c.role], theatre.id)
        for c in batch
        if c.action is RoleAction.CREATE
    ]
    to_delete = [
        RoleAssignment(c.user_id, role_ids[c.role], theatre.id)
        for c in batch
        if c.action is RoleAction.DELETE
    ]

    bridge = BridgeRoleService(db)
    created = await bridge.register_roles(to_create)
    deleted = await bridge.unregister_roles_batch(to_delete)
    logger.info(
        "User %s updated roles in theatre %s (+%d / -%d)",
        user.id,
        theatre.id,
        len(created),
        deleted,
    )
    return RoleUpdateResult(created=len(created), deleted=deleted)
