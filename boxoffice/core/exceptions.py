"""
Domain error taxonomy and global exception handlers.

Core components raise ``BoxOfficeError`` subclasses and never log or
swallow them; the handlers below turn them into JSON responses and keep
stack traces away from clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class BoxOfficeError(Exception):
    """Base class for every error the core components raise."""

    status_code = 500
    code = "ServerError"
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidError(BoxOfficeError):
    status_code = 400
    code = "Invalid"
    default_detail = "Invalid data supplied"


class ExpiredError(BoxOfficeError):
    status_code = 401
    code = "Expired"
    default_detail = "Token or ticket has expired"


class NoAuthError(BoxOfficeError):
    status_code = 401
    code = "NoAuth"
    default_detail = "Authentication required"


class EmailNotVerifiedError(BoxOfficeError):
    status_code = 401
    code = "EmailNotVerified"
    default_detail = "Email address is not verified"


class InsufficientPermissionError(BoxOfficeError):
    status_code = 403
    code = "InsufficientPermission"
    default_detail = "Insufficient permission"


class TicketLimitReachedError(InsufficientPermissionError):
    code = "TicketLimitReached"
    default_detail = "Ticket limit for this screening reached"


class NotFoundError(BoxOfficeError):
    status_code = 404
    code = "NotFound"
    default_detail = "Resource not found"


class ConflictError(BoxOfficeError):
    status_code = 409
    code = "Conflict"
    default_detail = "Conflict with existing state"


class ServerError(BoxOfficeError):
    pass


async def _boxoffice_error_handler(_request: Request, exc: BoxOfficeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Server error: %s", exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.code, "success": False},
        headers=headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "error": "Conflict", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "error": "ServerError", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": "ServerError", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(BoxOfficeError, _boxoffice_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
