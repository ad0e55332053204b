"""Username/password authentication and session endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.database import get_db
from linkauth.dependencies import get_current_user, get_session_service
from linkauth.errors import ValidationFailedError
from linkauth.models.user import User
from linkauth.schemas.auth import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from linkauth.services.authenticator import AuthFailure, PasswordCredentials, authenticate
from linkauth.services.password_service import get_password_service
from linkauth.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

USERNAME_TAKEN = "Username already exists"


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new account",
)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
):
    """Create a new user account and sign it in.

    - Rejects a taken username with the plain text ``Username already exists``
    - Hashes the password if one is supplied
    - Establishes a session for the new user
    """
    result = await db.execute(select(User).where(User.username == payload.username))
    if result.scalar_one_or_none():
        return PlainTextResponse(USERNAME_TAKEN, status_code=status.HTTP_400_BAD_REQUEST)

    result = await db.execute(select(User).where(User.email == payload.email))
    if result.scalar_one_or_none():
        raise ValidationFailedError("Email already exists")

    password_hash = None
    if payload.password:
        password_hash = await get_password_service().hash_password_async(payload.password)

    user = User(
        username=payload.username,
        email=payload.email,
        password=password_hash,
        is_admin=False,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race against a concurrent registration
        await db.rollback()
        return PlainTextResponse(USERNAME_TAKEN, status_code=status.HTTP_400_BAD_REQUEST)

    await sessions.establish(user, request, response)
    await db.commit()

    logger.info(f"Registered user {user.id}")
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=UserResponse,
    summary="Sign in with username and password",
)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
):
    """Sign in with username and password.

    An unknown user, an account without a password and a wrong password
    all produce the same empty 401.
    """
    outcome = await authenticate(
        db, PasswordCredentials(username=payload.username, password=payload.password)
    )
    if isinstance(outcome, AuthFailure):
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)

    await sessions.establish(outcome, request, response)
    await db.commit()
    return UserResponse.model_validate(outcome)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Sign out",
)
async def logout(
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> MessageResponse:
    """Destroy the current session. Succeeds even without one."""
    await sessions.destroy(request, response)
    await db.commit()
    return MessageResponse(message="Logged out")


@router.get(
    "/user",
    response_model=UserResponse,
    summary="Get current user",
)
async def current_user(
    user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Return the user behind the session cookie."""
    return UserResponse.model_validate(user)
