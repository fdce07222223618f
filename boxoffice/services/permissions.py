"""
Theatre-scoped authorization.

A superuser passes every check.  Everyone else needs role assignments in
the theatre being acted on, combined either with OR (``Combinator.ANY``)
or AND (``Combinator.ALL``).  Callers enforce the self-modification
guard on role changes before asking the resolver.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.core.exceptions import InsufficientPermissionError
from boxoffice.models.user import User
from boxoffice.services.roles import BridgeRoleService, RoleCatalog, RoleKind


class Combinator(str, Enum):
    ANY = "any"
    ALL = "all"


class ScopedPermissionResolver:
    def __init__(self, db: AsyncSession) -> None:
        self.catalog = RoleCatalog(db)
        self.bridge = BridgeRoleService(db)

    async def holds(self, user: User, theatre_id: uuid.UUID, kind: RoleKind) -> bool:
        # An unseeded role kind simply never matches.
        record = await self.catalog.get_record(kind)
        if record is None:
            return False
        return await self.bridge.has_role(user.id, theatre_id, record.id)

    async def check(
        self,
        user: User,
        theatre_id: uuid.UUID,
        required: Iterable[RoleKind],
        combinator: Combinator = Combinator.ANY,
    ) -> bool:
        if user.is_super_user:
            return True
        kinds = list(dict.fromkeys(required))
        if not kinds:
            return False

        if combinator is Combinator.ANY:
            for kind in kinds:
                if await self.holds(user, theatre_id, kind):
                    return True
            return False

        for kind in kinds:
            if not await self.holds(user, theatre_id, kind):
                return False
        return True

    async def authorize(
        self,
        user: User,
        theatre_id: uuid.UUID,
        required: Iterable[RoleKind],
        combinator: Combinator = Combinator.ANY,
    ) -> None:
        if not await self.check(user, theatre_id, required, combinator):
            raise InsufficientPermissionError()

    async def authorize_any(
        self, user: User, theatre_id: uuid.UUID, required: Iterable[RoleKind]
    ) -> None:
        await self.authorize(user, theatre_id, required, Combinator.ANY)

    async def authorize_all(
        self, user: User, theatre_id: uuid.UUID, required: Iterable[RoleKind]
    ) -> None:
        await self.authorize(user, theatre_id, required, Combinator.ALL)
