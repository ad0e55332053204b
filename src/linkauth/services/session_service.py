"""Server-side session management.

A session is an opaque random value held in an HTTP-only cookie. Only its
SHA-256 digest is stored, together with the owning user id and an absolute
expiry.
"""

import logging
from datetime import datetime, timedelta

from fastapi import Request, Response
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.config import AuthSettings, get_settings
from linkauth.models.session import Session
from linkauth.models.user import User
from linkauth.services.password_service import get_password_service
from linkauth.services.token_store import Clock, utcnow

logger = logging.getLogger(__name__)


class SessionService:
    """Establish, resolve and destroy cookie-backed sessions.

    Args:
        db: Database session the service operates in
        settings: Cookie name, lifetime and security flags
        clock: Source of "now"; defaults to the server's UTC clock
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: AuthSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.password_service = get_password_service()

    @property
    def cookie_name(self) -> str:
        return self.settings.session_cookie_name

    async def establish(self, user: User, request: Request, response: Response) -> str:
        """Create a session for ``user`` and set the session cookie.

        A session already carried by the request is revoked first, so a
        login never keeps a pre-authentication session id alive.

        Returns:
            The opaque session value placed in the cookie
        """
        previous = request.cookies.get(self.cookie_name)
        if previous:
            await self.revoke(previous)

        now = self.clock()
        value = self.password_service.generate_token()
        session = Session(
            id=self.password_service.hash_token(value),
            user_id=user.id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            created_at=now,
            expires_at=now + timedelta(seconds=self.settings.session_max_age_seconds),
            last_used_at=now,
        )
        self.db.add(session)
        await self.db.flush()

        response.set_cookie(
            key=self.cookie_name,
            value=value,
            max_age=self.settings.session_max_age_seconds,
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
            path="/",
        )
        logger.info(f"Session established for user {user.id}")
        return value

    async def resolve(self, value: str | None) -> User | None:
        """Resolve a cookie value to its user.

        Missing, unknown, expired and revoked sessions, and sessions whose
        user no longer exists, all resolve to None.
        """
        if not value:
            return None

        now = self.clock()
        session_id = self.password_service.hash_token(value)
        result = await self.db.execute(
            select(User)
            .join(Session, Session.user_id == User.id)
            .where(
                Session.id == session_id,
                Session.revoked_at.is_(None),
                Session.expires_at > now,
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            return None

        await self.db.execute(
            update(Session)
            .where(Session.id == session_id)
            .values(last_used_at=now)
            .execution_options(synchronize_session=False)
        )
        return user

    async def current_user(self, request: Request) -> User | None:
        """The user behind the request's session cookie, if any."""
        return await self.resolve(request.cookies.get(self.cookie_name))

    async def destroy(self, request: Request, response: Response) -> None:
        """Revoke the request's session and clear the cookie. Idempotent."""
        value = request.cookies.get(self.cookie_name)
        if value:
            await self.revoke(value)

        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
        )

    async def revoke(self, value: str) -> bool:
        """Revoke the session behind a cookie value; True if one was live."""
        result = await self.db.execute(
            update(Session)
            .where(
                Session.id == self.password_service.hash_token(value),
                Session.revoked_at.is_(None),
            )
            .values(revoked_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def revoke_user_sessions(self, user_id: int) -> int:
        """Revoke every live session of a user. Returns the number revoked."""
        result = await self.db.execute(
            update(Session)
            .where(Session.user_id == user_id, Session.revoked_at.is_(None))
            .values(revoked_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"Revoked {result.rowcount} session(s) for user {user_id}")
        return result.rowcount

    async def count_active(self) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Session)
            .where(Session.revoked_at.is_(None), Session.expires_at > self.clock())
        )
        return result.scalar_one()

    async def purge(self, before: datetime | None = None) -> int:
        """Delete expired or revoked sessions. Returns the number deleted."""
        cutoff = before or self.clock()
        result = await self.db.execute(
            delete(Session)
            .where(or_(Session.expires_at <= cutoff, Session.revoked_at.is_not(None)))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
