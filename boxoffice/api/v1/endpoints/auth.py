"""
Auth endpoints — registration, email verification and login.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request

from boxoffice.api.v1.deps import get_mailer, get_token_codec, get_user_service
from boxoffice.core.config import settings
from boxoffice.core.exceptions import ServerError
from boxoffice.core.rate_limit import limiter
from boxoffice.core.security import TokenCodec, TokenKind
from boxoffice.models.user import User
from boxoffice.schemas.common import MessageResponse
from boxoffice.schemas.token import AuthToken
from boxoffice.schemas.user import LoginRequest, UserCreate, UserRead, VerificationResend
from boxoffice.services.mailer import MailDispatchQueue, build_verification_message
from boxoffice.services.users import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserRead, status_code=201)
async def register_user(
    body: UserCreate,
    users: UserService = Depends(get_user_service),
    codec: TokenCodec = Depends(get_token_codec),
    mailer: MailDispatchQueue = Depends(get_mailer),
) -> User:
    """Create an unactivated account and mail it a verification link.

    The account exists once this returns even if the mail could not be
    queued; the link can be requested again through ``/verify/resend``.
    """
    user = await users.register(body)
    logger.info("Registered user %s", user.id)

    email_key = codec.issue_email(user.id)
    try:
        await mailer.queue_mail(build_verification_message(user, email_key))
    except ServerError as exc:
        logger.error("Verification mail for user %s not queued: %s", user.id, exc.detail)
    return user


@router.post("/verify/resend", response_model=MessageResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def resend_verification(
    request: Request,
    body: VerificationResend,
    users: UserService = Depends(get_user_service),
    codec: TokenCodec = Depends(get_token_codec),
    mailer: MailDispatchQueue = Depends(get_mailer),
) -> MessageResponse:
    """Mail a fresh verification link to an account that is not yet activated."""
    user = await users.get_pending_activation(body.email)
    if user is not None:
        await mailer.queue_mail(build_verification_message(user, codec.issue_email(user.id)))
        logger.info("Re-sent verification mail to user %s", user.id)
    # Same answer whether or not the address is known.
    return MessageResponse(message="If the account awaits verification, a new link has been sent")


@router.get("/verify", response_model=MessageResponse)
async def verify_email(
    email_key: str = Query(min_length=1),
    users: UserService = Depends(get_user_service),
    codec: TokenCodec = Depends(get_token_codec),
) -> MessageResponse:
    """Activate the account named by an email verification token."""
    claims = codec.verify(TokenKind.EMAIL, email_key)
    if await users.activate(claims.ref_id):
        logger.info("Activated user %s", claims.ref_id)
        return MessageResponse(message="Email verified")
    return MessageResponse(message="Email already verified")


@router.post("/login", response_model=AuthToken)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_user(
    request: Request,
    body: LoginRequest,
    users: UserService = Depends(get_user_service),
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthToken:
    """Exchange login (email or username) and password for an auth token."""
    user = await users.authenticate(body.login, body.password)
    token = codec.issue_auth(user.id)
    claims = codec.verify(TokenKind.AUTH, token)
    return AuthToken(token=token, expires_at=datetime.fromtimestamp(claims.exp, tz=timezone.utc))
