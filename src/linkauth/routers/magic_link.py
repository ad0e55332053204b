"""Magic link (passwordless) authentication endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from linkauth.database import get_db
from linkauth.dependencies import get_email_service, get_session_service, get_token_store
from linkauth.errors import (
    DownstreamError,
    InvalidTokenError,
    TokenIssueError,
    ValidationFailedError,
)
from linkauth.models.user import User
from linkauth.schemas.auth import (
    MagicLinkRequest,
    MessageResponse,
    TokenValidResponse,
    UserResponse,
)
from linkauth.services.authenticator import AuthFailure, MagicLinkCredentials, authenticate
from linkauth.services.email_service import EmailService
from linkauth.services.session_service import SessionService
from linkauth.services.token_store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["magic-link"])

RESET_PASSWORD_TYPE = "reset-password"
MAX_USERNAME_SUFFIX = 100


def request_origin(request: Request) -> str:
    """Scheme, host and root path the request was made against."""
    return str(request.base_url).rstrip("/")


async def find_or_provision_user(db: AsyncSession, email: str) -> User:
    """Return the user owning ``email``, creating a password-less one if needed.

    New accounts take the local part of the address as username, with a
    numeric suffix when that name is already taken.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    base = email.split("@", 1)[0]
    username = base
    for suffix in range(2, MAX_USERNAME_SUFFIX + 2):
        taken = await db.execute(select(User.id).where(User.username == username))
        if taken.scalar_one_or_none() is None:
            break
        username = f"{base}-{suffix}"
    else:
        raise TokenIssueError(f"No free username derived from '{base}'")

    user = User(username=username, email=email, password=None, is_admin=False)
    db.add(user)
    await db.flush()
    logger.info(f"Provisioned magic-link account {user.id}")
    return user


@router.post(
    "/magic-link",
    response_model=MessageResponse,
    summary="Send magic link email",
)
async def send_magic_link(
    payload: MagicLinkRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[TokenStore, Depends(get_token_store)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    """Send a magic link to the given email.

    - Creates an account for unknown addresses
    - Stores a 15 minute single-use token
    - Fails with 500 if the email cannot be sent, since the link would be lost
    """
    try:
        user = await find_or_provision_user(db, payload.email)
        issued = await store.issue_magic_link(user.id)
        await db.commit()
    except (SQLAlchemyError, TokenIssueError) as e:
        logger.error(f"Magic link creation failed: {e}")
        raise DownstreamError("Failed to create magic link")

    sent = await run_in_threadpool(
        email_service.send_magic_link,
        user.email,
        issued.token,
        request_origin(request),
    )
    if not sent:
        raise DownstreamError("Failed to send magic link email")

    return MessageResponse(message="Magic link sent to your email")


@router.get(
    "/verify",
    summary="Verify a magic link or probe a password reset link",
)
async def verify(
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[TokenStore, Depends(get_token_store)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
    token: Annotated[str | None, Query()] = None,
    link_type: Annotated[str | None, Query(alias="type")] = None,
):
    """Verify a token from an emailed link.

    With ``type=reset-password`` the password reset token is only checked,
    not consumed, so the user can still submit a new password with it.
    Otherwise the magic link is consumed and a session established.
    """
    if not token:
        raise ValidationFailedError("Invalid token")

    if link_type == RESET_PASSWORD_TYPE:
        reset = await store.validate_password_reset_token(token)
        if reset is None:
            raise InvalidTokenError()
        return TokenValidResponse(token=token)

    try:
        outcome = await authenticate(db, MagicLinkCredentials(token=token), store)
        if isinstance(outcome, AuthFailure):
            raise InvalidTokenError()

        await sessions.establish(outcome, request, response)
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Token verification failed: {e}")
        raise DownstreamError("Failed to verify token")

    return UserResponse.model_validate(outcome)
