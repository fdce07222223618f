"""
Shared test fixtures for the BoxOffice test suite.

Every test gets a fresh in-memory SQLite database (aiosqlite), a frozen
clock it can move forward and a mail queue that records instead of
sending.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MAIL_ENABLED"] = "false"
os.environ["JWT_USER_SECRET"] = "test-user-secret"
os.environ["JWT_EMAIL_SECRET"] = "test-email-secret"
os.environ["JWT_TICKET_SECRET"] = "test-ticket-secret"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from boxoffice.api.v1.deps import get_clock, get_db, get_mailer
from boxoffice.core.security import TokenCodec, get_password_hash
from boxoffice.db.base import Base
from boxoffice.main import app
from boxoffice.models.theatre import Theatre, TheatreScreening, TicketType
from boxoffice.models.user import User
from boxoffice.services.mailer import MailDispatchQueue
from boxoffice.services.roles import BridgeRoleService, RoleAssignment, RoleCatalog, RoleKind

PASSWORD = "correct-horse-battery"
# One hash for every fixture user keeps bcrypt out of the hot path.
PASSWORD_HASH = get_password_hash(PASSWORD)


class FrozenClock:
    """Injectable clock that only moves when a test tells it to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class Factory:
    """Builds rows directly in the test database."""

    password = PASSWORD

    def __init__(self, db: AsyncSession, codec: TokenCodec, clock: FrozenClock) -> None:
        self.db = db
        self.codec = codec
        self.clock = clock
        self._seq = 0

    async def user(self, *, activated: bool = True, superuser: bool = False, **fields) -> User:
        self._seq += 1
        user = User(
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"User{self._seq}"),
            email=fields.pop("email", f"user{self._seq}@example.com"),
            username=fields.pop("username", f"testuser{self._seq:04d}"),
            password_hash=fields.pop("password_hash", PASSWORD_HASH),
            is_activated=activated,
            is_super_user=superuser,
            **fields,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def theatre(self, name: str = "Grand") -> Theatre:
        theatre = Theatre(name=name)
        self.db.add(theatre)
        await self.db.commit()
        await self.db.refresh(theatre)
        return theatre

    async def screening(self, theatre: Theatre, starts_in: timedelta = timedelta(days=1)) -> TheatreScreening:
        screening = TheatreScreening(theatre_id=theatre.id, starting_time=self.clock() + starts_in)
        self.db.add(screening)
        await self.db.commit()
        await self.db.refresh(screening)
        return screening

    async def ticket_type(self, theatre: Theatre) -> TicketType:
        ticket_type = TicketType(theatre_id=theatre.id, type="Adult", price=12.5)
        self.db.add(ticket_type)
        await self.db.commit()
        await self.db.refresh(ticket_type)
        return ticket_type

    async def grant(self, user: User, theatre: Theatre, *kinds: RoleKind) -> None:
        catalog = RoleCatalog(self.db)
        assignments = []
        for kind in kinds:
            record = await catalog.get_record(kind)
            assignments.append(RoleAssignment(user.id, record.id, theatre.id))
        await BridgeRoleService(self.db).register_roles(assignments)

    def auth(self, user: User) -> dict[str, str]:
        return {"Authorization": self.codec.issue_auth(user.id)}


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with every table created and roles seeded."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await RoleCatalog(session).seed()

    yield factory
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2030, 6, 1, 18, 0, tzinfo=timezone.utc))


@pytest.fixture
def codec(clock: FrozenClock) -> TokenCodec:
    return TokenCodec.from_settings(clock)


@pytest.fixture
def outbox() -> list:
    return []


@pytest.fixture
async def mailer(outbox: list) -> AsyncGenerator[MailDispatchQueue, None]:
    queue = MailDispatchQueue(outbox.append, maxsize=16)
    await queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
def factory(db_session: AsyncSession, codec: TokenCodec, clock: FrozenClock) -> Factory:
    return Factory(db_session, codec, clock)


@pytest.fixture
async def async_client(session_factory, clock, mailer) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
