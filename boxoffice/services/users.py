"""
Account lifecycle: registration, login, email activation and soft delete.
"""

from __future__ import annotations

import uuid

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.core.exceptions import (
    ConflictError,
    EmailNotVerifiedError,
    InvalidError,
    NotFoundError,
)
from boxoffice.core.security import get_password_hash, verify_password
from boxoffice.db.repository import fetch_one, filtered, soft_delete as soft_delete_rows
from boxoffice.models.user import User
from boxoffice.schemas.user import UserCreate


class UserService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        return await fetch_one(self.db, User, id=user_id)

    async def get_by_email_or_username(self, email: str, username: str) -> User | None:
        result = await self.db.execute(
            filtered(User).where(or_(User.email == email, User.username == username)).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_pending_activation(self, email: str) -> User | None:
        """Live, not yet activated account with this email address."""
        result = await self.db.execute(
            filtered(User, email=email).where(User.is_activated.is_(False)).limit(1)
        )
        return result.scalar_one_or_none()

    async def register(self, body: UserCreate) -> User:
        """Create an unactivated account; duplicate email or username is a conflict."""
        if await self.get_by_email_or_username(body.email, body.username) is not None:
            raise ConflictError("User already registered")

        user = User(
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            username=body.username,
            password_hash=get_password_hash(body.password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration (or the address
            # belongs to a soft-deleted account).
            await self.db.rollback()
            raise ConflictError("User already registered") from exc
        await self.db.refresh(user)
        return user

    async def authenticate(self, login: str, password: str) -> User:
        """Resolve *login* (email or username) and check the password."""
        login = login.strip()
        user = await self.get_by_email_or_username(login.lower(), login)
        if user is None:
            raise InvalidError("Incorrect login or password")
        if not user.is_activated:
            raise EmailNotVerifiedError()
        if user.password_hash is None:
            raise ConflictError("Account is linked to an external login provider")
        if not verify_password(password, user.password_hash):
            raise InvalidError("Incorrect login or password")
        return user

    async def activate(self, user_id: uuid.UUID) -> bool:
        """Flip ``is_activated`` once; returns False when it was already set."""
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.is_activated.is_(False), User.is_deleted.is_(False))
            .values(is_activated=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(user)
        return result.rowcount == 1

    async def soft_delete(self, user_id: uuid.UUID) -> None:
        if await soft_delete_rows(self.db, User, id=user_id) == 0:
            raise NotFoundError("User not found")

