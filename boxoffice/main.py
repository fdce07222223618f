"""
BoxOffice — application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `services/`, `api/`, `models/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from boxoffice.api.v1.api import api_router
from boxoffice.core.config import settings
from boxoffice.core.exceptions import register_exception_handlers
from boxoffice.core.rate_limit import limiter
from boxoffice.core.security import get_password_hash
from boxoffice.db.base import Base
from boxoffice.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from boxoffice.models.role import TheatreRole, UserTheatreRole  # noqa: F401
from boxoffice.models.theatre import Theatre, TheatreScreening, TicketType  # noqa: F401
from boxoffice.models.ticket import Ticket  # noqa: F401
from boxoffice.models.user import User
from boxoffice.services.mailer import MailDispatchQueue, SmtpTransport, logging_transport
from boxoffice.services.roles import RoleCatalog

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_superuser() -> None:
    """Create the first superuser account unless it already exists."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.email == settings.FIRST_SUPERUSER_EMAIL)
        )
        if result.scalar_one_or_none() is not None:
            return
        admin = User(
            first_name="System",
            last_name="Administrator",
            email=settings.FIRST_SUPERUSER_EMAIL,
            username="administrator",
            password_hash=get_password_hash(settings.FIRST_SUPERUSER_PASSWORD),
            is_super_user=True,
            is_activated=True,
        )
        session.add(admin)
        await session.commit()
        logger.info(
            "Default superuser created: %s (password: <redacted>)",
            settings.FIRST_SUPERUSER_EMAIL,
        )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    async with async_session_factory() as session:
        added = await RoleCatalog(session).seed()
    if added:
        logger.info("Seeded roles: %s", ", ".join(kind.value for kind in added))

    await seed_superuser()

    transport = SmtpTransport.from_settings() if settings.MAIL_ENABLED else logging_transport
    app.state.mailer = MailDispatchQueue(transport, settings.MAIL_QUEUE_SIZE)
    await app.state.mailer.start()

    logger.info("BoxOffice v%s started", settings.VERSION)
    yield
    await app.state.mailer.stop()
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Theatre ticketing: accounts, staff roles and ticket redemption",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # slowapi looks the limiter up on app state
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
