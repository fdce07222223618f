"""
Role catalog and the user/role/theatre bridge table.

``RoleKind`` is the closed set of staff capabilities.  The ``theatre_roles``
table only maps each kind onto a stored id; a row whose name does not
match a ``RoleKind`` is ignored.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.models.role import TheatreRole, UserTheatreRole


class RoleKind(str, Enum):
    THEATRE_OWNER = "TheatreOwner"
    TICKET_MANAGER = "TicketManager"
    TICKET_CHECKER = "TicketChecker"
    USER_MANAGER = "UserManager"
    SCREENINGS_MANAGER = "ScreeningsManager"

    @classmethod
    def from_name(cls, name: str) -> RoleKind | None:
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class RoleAssignment:
    user_id: uuid.UUID
    role_id: uuid.UUID
    theatre_id: uuid.UUID


class RoleCatalog:
    """Resolves ``RoleKind`` values to their stored ``TheatreRole`` rows."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_record(self, kind: RoleKind) -> TheatreRole | None:
        result = await self.db.execute(
            select(TheatreRole).where(TheatreRole.name == kind.value).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_kind(self, role_id: uuid.UUID) -> RoleKind | None:
        result = await self.db.execute(select(TheatreRole.name).where(TheatreRole.id == role_id))
        name = result.scalar_one_or_none()
        return RoleKind.from_name(name) if name is not None else None

    async def all_records(self) -> Sequence[TheatreRole]:
        result = await self.db.execute(select(TheatreRole).order_by(TheatreRole.name))
        return result.scalars().all()

    async def seed(self) -> list[RoleKind]:
        """Insert a record for every kind missing one; returns the kinds added."""
        result = await self.db.execute(select(TheatreRole.name))
        existing = set(result.scalars().all())
        added = [kind for kind in RoleKind if kind.value not in existing]
        self.db.add_all(TheatreRole(name=kind.value) for kind in added)
        await self.db.commit()
        return added


class BridgeRoleService:
    """The ``users_theatre_roles`` bridge table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def register_roles(self, assignments: Iterable[RoleAssignment]) -> list[RoleAssignment]:
        """Insert assignments, skipping ones that already exist.

        Relies on the composite primary key with ``ON CONFLICT DO NOTHING``
        instead of a read-then-insert round trip.
        """
        rows = list(dict.fromkeys(assignments))
        if not rows:
            return []
        dialect = self.db.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = (
            insert(UserTheatreRole)
            .values(
                [
                    {"user_id": a.user_id, "role_id": a.role_id, "theatre_id": a.theatre_id}
                    for a in rows
                ]
            )
            .on_conflict_do_nothing(index_elements=["user_id", "role_id", "theatre_id"])
        )
        await self.db.execute(stmt)
        await self.db.commit()
        return rows

    async def unregister_roles(
        self,
        user_id: uuid.UUID | None = None,
        theatre_id: uuid.UUID | None = None,
        role_id: uuid.UUID | None = None,
    ) -> int:
        stmt = delete(UserTheatreRole)
        if user_id is not None:
            stmt = stmt.where(UserTheatreRole.user_id == user_id)
        if theatre_id is not None:
            stmt = stmt.where(UserTheatreRole.theatre_id == theatre_id)
        if role_id is not None:
            stmt = stmt.where(UserTheatreRole.role_id == role_id)
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount

    async def unregister_roles_batch(self, assignments: Iterable[RoleAssignment]) -> int:
        clauses = [
            and_(
                UserTheatreRole.user_id == a.user_id,
                UserTheatreRole.role_id == a.role_id,
                UserTheatreRole.theatre_id == a.theatre_id,
            )
            for a in assignments
        ]
        if not clauses:
            return 0
        result = await self.db.execute(delete(UserTheatreRole).where(or_(*clauses)))
        await self.db.commit()
        return result.rowcount

    async def get_roles(
        self,
        user_id: uuid.UUID | None = None,
        theatre_id: uuid.UUID | None = None,
        role_id: uuid.UUID | None = None,
    ) -> Sequence[UserTheatreRole]:
        stmt = select(UserTheatreRole)
        if user_id is not None:
            stmt = stmt.where(UserTheatreRole.user_id == user_id)
        if theatre_id is not None:
            stmt = stmt.where(UserTheatreRole.theatre_id == theatre_id)
        if role_id is not None:
            stmt = stmt.where(UserTheatreRole.role_id == role_id)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def has_role(self, user_id: uuid.UUID, theatre_id: uuid.UUID, role_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(UserTheatreRole.user_id)
            .where(
                UserTheatreRole.user_id == user_id,
                UserTheatreRole.theatre_id == theatre_id,
                UserTheatreRole.role_id == role_id,
            )
            .limit(1)
        )
        return result.first() is not None
