"""Single-use token storage for magic links and password resets.

Both token kinds share one contract:

- a token is valid while ``used`` is false and ``expires_at`` lies in the
  future according to the server clock;
- consuming a token is a single conditional ``UPDATE ... RETURNING`` so that
  two concurrent requests carrying the same token can never both succeed.

Magic links are consumed by validation itself. Password reset tokens are
probed without side effects and consumed separately once the password has
actually changed.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.config import AuthSettings, get_settings
from linkauth.errors import TokenIssueError
from linkauth.models.tokens import MagicLink, PasswordResetToken
from linkauth.models.user import User
from linkauth.services.password_service import get_password_service

logger = logging.getLogger(__name__)

MAX_ISSUE_ATTEMPTS = 3

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued token. ``token`` is the only copy of the plaintext."""

    token: str
    expires_at: datetime


class TokenStore:
    """Issue, validate and consume single-use tokens.

    Args:
        db: Database session the store operates in
        settings: Supplies token lifetimes
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

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    async def issue_magic_link(self, user_id: int) -> IssuedToken:
        """Issue a magic link valid for ``magic_link_expire_minutes``."""
        lifetime = timedelta(minutes=self.settings.magic_link_expire_minutes)
        return await self._issue(MagicLink, user_id, lifetime)

    async def issue_password_reset_token(self, user_id: int) -> IssuedToken:
        """Issue a password reset token valid for ``password_reset_expire_minutes``."""
        lifetime = timedelta(minutes=self.settings.password_reset_expire_minutes)
        return await self._issue(PasswordResetToken, user_id, lifetime)

    async def _issue(
        self,
        model: type[MagicLink] | type[PasswordResetToken],
        user_id: int,
        lifetime: timedelta,
    ) -> IssuedToken:
        expires_at = self.clock() + lifetime

        for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
            token = self.password_service.generate_token()
            row = model(
                token=self.password_service.hash_token(token),
                user_id=user_id,
                expires_at=expires_at,
                used=False,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(row)
                    await self.db.flush()
            except IntegrityError:
                logger.warning(
                    f"{model.__tablename__}: token collision for user {user_id} "
                    f"(attempt {attempt}/{MAX_ISSUE_ATTEMPTS})"
                )
                continue

            logger.debug(f"{model.__tablename__}: issued token for user {user_id}")
            return IssuedToken(token=token, expires_at=expires_at)

        raise TokenIssueError(f"Could not issue a unique {model.__tablename__} token")

    # ------------------------------------------------------------------
    # Magic links
    # ------------------------------------------------------------------

    async def validate_magic_link(self, token: str | None) -> User | None:
        """Validate and consume a magic link.

        The match and the consumption are one statement, so of several
        concurrent calls with the same token at most one returns the user.
        The consumption is committed before returning; it stands even if the
        caller fails afterwards.

        Returns:
            The owning user, or None for unknown, used or expired tokens
        """
        user_id = await self._consume(MagicLink, token)
        await self.db.commit()

        if user_id is None:
            return None

        return await self.db.get(User, user_id)

    # ------------------------------------------------------------------
    # Password resets
    # ------------------------------------------------------------------

    async def validate_password_reset_token(
        self, token: str | None
    ) -> PasswordResetToken | None:
        """Return the reset token row if it is unused and unexpired.

        Read only: probing a reset link never consumes it.
        """
        if not token:
            return None

        result = await self.db.execute(
            select(PasswordResetToken).where(
                PasswordResetToken.token == self.password_service.hash_token(token),
                PasswordResetToken.used.is_(False),
                PasswordResetToken.expires_at > self.clock(),
            )
        )
        return result.scalar_one_or_none()

    async def consume_password_reset_token(self, token: str | None) -> bool:
        """Mark a reset token used.

        Does not commit; the caller commits it together with the password
        change.

        Returns:
            True if this call consumed the token
        """
        return await self._consume(PasswordResetToken, token) is not None

    # ------------------------------------------------------------------

    async def _consume(
        self,
        model: type[MagicLink] | type[PasswordResetToken],
        token: str | None,
    ) -> int | None:
        """Flip ``used`` on a live token; returns its user id if this call won."""
        if not token:
            return None

        stmt = (
            update(model)
            .where(
                model.token == self.password_service.hash_token(token),
                model.used.is_(False),
                model.expires_at > self.clock(),
            )
            .values(used=True)
            .returning(model.user_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
