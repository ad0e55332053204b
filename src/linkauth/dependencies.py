"""FastAPI dependencies for authentication."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.config import AuthSettings
from linkauth.database import get_db
from linkauth.errors import ForbiddenError, UnauthorizedError
from linkauth.models.user import User
from linkauth.services.email_service import EmailService
from linkauth.services.session_service import SessionService
from linkauth.services.token_store import TokenStore


def get_app_settings(request: Request) -> AuthSettings:
    """Settings the running application was created with."""
    return request.app.state.settings


def get_email_service(
    request: Request,
    settings: Annotated[AuthSettings, Depends(get_app_settings)],
) -> EmailService:
    """Email service, built once per application."""
    service = getattr(request.app.state, "email_service", None)
    if service is None:
        service = EmailService(settings)
        request.app.state.email_service = service
    return service


def get_token_store(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[AuthSettings, Depends(get_app_settings)],
) -> TokenStore:
    return TokenStore(db, settings)


def get_session_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[AuthSettings, Depends(get_app_settings)],
) -> SessionService:
    return SessionService(db, settings)


async def get_current_user_optional(
    request: Request,
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> User | None:
    """Get the current user if authenticated, None otherwise.

    Reuses the user resolved by the access control middleware when it ran.
    """
    if hasattr(request.state, "user"):
        return request.state.user
    return await sessions.current_user(request)


async def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get the currently authenticated user.

    Raises:
        UnauthorizedError: If the request carries no live session
    """
    if user is None:
        raise UnauthorizedError()
    return user


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, requiring admin privilege.

    Raises:
        ForbiddenError: If the user is not an admin
    """
    if not user.is_admin:
        raise ForbiddenError()
    return user
