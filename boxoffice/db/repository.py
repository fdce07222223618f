"""
Generic equality-filtered reads and soft deletes.

Every read goes through here so models carrying an ``is_deleted``
tombstone are filtered the same way everywhere.
"""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


def filtered(model: type[ModelT], **filters: Any) -> Select[tuple[ModelT]]:
    """``SELECT model WHERE col = value ...`` honoring soft deletes."""
    stmt = select(model).filter_by(**filters)
    if hasattr(model, "is_deleted"):
        stmt = stmt.where(model.is_deleted.is_(False))  # type: ignore[attr-defined]
    return stmt


async def fetch_one(db: AsyncSession, model: type[ModelT], **filters: Any) -> ModelT | None:
    result = await db.execute(filtered(model, **filters).limit(1))
    return result.scalar_one_or_none()


async def soft_delete(db: AsyncSession, model: type[ModelT], **filters: Any) -> int:
    """Flip ``is_deleted`` on matching live rows; returns the affected count."""
    stmt = (
        update(model)
        .filter_by(**filters)
        .where(model.is_deleted.is_(False))  # type: ignore[attr-defined]
        .values(is_deleted=True)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount
