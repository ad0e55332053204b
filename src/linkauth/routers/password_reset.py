"""Password reset endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from linkauth.database import get_db
from linkauth.dependencies import get_email_service, get_session_service, get_token_store
from linkauth.errors import DownstreamError, InvalidTokenError, TokenIssueError
from linkauth.models.user import User
from linkauth.routers.magic_link import request_origin
from linkauth.schemas.auth import (
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
)
from linkauth.services.email_service import EmailService
from linkauth.services.password_service import get_password_service
from linkauth.services.session_service import SessionService
from linkauth.services.token_store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["password-reset"])

FORGOT_PASSWORD_MESSAGE = "If an account exists with that email, a password reset link has been sent"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Send password reset email",
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[TokenStore, Depends(get_token_store)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    """Send a password reset email.

    - Answers identically whether or not the address belongs to an account
    - Issues a 1 hour reset token for existing accounts
    - Delivery failures are logged, never reported to the caller
    """
    try:
        result = await db.execute(select(User).where(User.email == payload.email))
        user = result.scalar_one_or_none()

        if user:
            issued = await store.issue_password_reset_token(user.id)
            await db.commit()

            sent = await run_in_threadpool(
                email_service.send_password_reset,
                user.email,
                issued.token,
                request_origin(request),
            )
            if not sent:
                logger.warning(f"Password reset email for user {user.id} was not delivered")
    except (SQLAlchemyError, TokenIssueError) as e:
        logger.error(f"Forgot password failed: {e}")
        raise DownstreamError("Failed to process request")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with token",
)
async def reset_password(
    payload: ResetPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[TokenStore, Depends(get_token_store)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> MessageResponse:
    """Reset a user's password using a reset token.

    - Checks the token is live without consuming it
    - Stores the new password hash
    - Consumes the token in the same transaction; losing a concurrent
      consumption rolls the password change back
    - Revokes the user's existing sessions
    """
    reset = await store.validate_password_reset_token(payload.token)
    if reset is None:
        raise InvalidTokenError(INVALID_RESET_TOKEN)

    user = await db.get(User, reset.user_id)
    if user is None:
        raise InvalidTokenError(INVALID_RESET_TOKEN)

    user.password = await get_password_service().hash_password_async(payload.password)

    if not await store.consume_password_reset_token(payload.token):
        await db.rollback()
        raise InvalidTokenError(INVALID_RESET_TOKEN)

    await sessions.revoke_user_sessions(user.id)
    await db.commit()

    logger.info(f"Password reset for user {user.id}")
    return MessageResponse(message="Password successfully reset")
