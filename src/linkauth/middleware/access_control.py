"""Per-request access control.

Every request path is classified against a fixed route table before any
handler runs:

- public routes are served without a session;
- admin routes (everything under ``/api/admin/``) need a session whose user has ``is_admin``;
- everything else needs a session.

Public routes are matched exactly. Prefix matching is only used for the
admin tier, where a wider match can only restrict access.
"""

import logging
from enum import Enum

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from linkauth.errors import message_response
from linkauth.services.session_service import SessionService

logger = logging.getLogger(__name__)

PUBLIC_ROUTES = frozenset(
    {
        "/api/login",
        "/api/register",
        "/api/magic-link",
        "/api/verify",
        "/api/forgot-password",
        "/api/reset-password",
        "/api/logout",
        "/health",
        "/api/docs",
        "/api/openapi.json",
    }
)

ADMIN_PREFIX = "/api/admin/"


class Access(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    ADMIN = "admin"


def classify(path: str) -> Access:
    """Return the access tier of a request path."""
    if path in PUBLIC_ROUTES:
        return Access.PUBLIC
    if path.startswith(ADMIN_PREFIX):
        return Access.ADMIN
    return Access.PROTECTED


class AccessControlMiddleware(BaseHTTPMiddleware):
    """Reject requests that lack the session or privilege their route needs.

    The resolved user is stored on ``request.state.user`` so handlers do not
    resolve the session a second time.
    """

    async def dispatch(self, request: Request, call_next):
        # CORS preflight carries no cookies
        if request.method == "OPTIONS":
            return await call_next(request)

        access = classify(request.url.path)
        if access is Access.PUBLIC:
            return await call_next(request)

        user = await self._resolve_user(request)
        request.state.user = user

        if user is None:
            logger.debug(f"401 {request.method} {request.url.path}: no session")
            return message_response(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

        if access is Access.ADMIN and not user.is_admin:
            logger.info(f"403 {request.method} {request.url.path}: user {user.id} is not an admin")
            return message_response(status.HTTP_403_FORBIDDEN, "Forbidden")

        return await call_next(request)

    async def _resolve_user(self, request: Request):
        app_state = request.app.state
        async with app_state.session_factory() as db:
            user = await SessionService(db, app_state.settings).current_user(request)
            await db.commit()
        return user
