"""Authentication methods and their explicit dispatch.

Each method is a small credentials type; ``authenticate`` turns any of them
into either a ``User`` or an ``AuthFailure``. The failure reason is for the
server log only. Callers must answer every failure the same way.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.models.user import User
from linkauth.services.password_service import get_password_service
from linkauth.services.token_store import TokenStore

logger = logging.getLogger(__name__)

# Well-formed stored hash that matches no password; checked when there is no
# real hash so every password failure costs one KDF run
DUMMY_PASSWORD_HASH = f"{'0' * 128}.{'0' * 32}"


class FailureReason(str, Enum):
    UNKNOWN_USER = "unknown_user"
    NO_PASSWORD = "no_password"
    BAD_PASSWORD = "bad_password"
    INVALID_TOKEN = "invalid_token"


@dataclass(frozen=True)
class PasswordCredentials:
    username: str
    password: str


@dataclass(frozen=True)
class MagicLinkCredentials:
    token: str


Credentials = PasswordCredentials | MagicLinkCredentials


@dataclass(frozen=True)
class AuthFailure:
    reason: FailureReason


async def authenticate_password(
    db: AsyncSession, credentials: PasswordCredentials
) -> User | AuthFailure:
    """Check a username/password pair."""
    result = await db.execute(select(User).where(User.username == credentials.username))
    user = result.scalar_one_or_none()

    password_service = get_password_service()

    if user is None or not user.password:
        await password_service.verify_password_async(credentials.password, DUMMY_PASSWORD_HASH)
        reason = FailureReason.UNKNOWN_USER if user is None else FailureReason.NO_PASSWORD
        return AuthFailure(reason)

    if not await password_service.verify_password_async(credentials.password, user.password):
        return AuthFailure(FailureReason.BAD_PASSWORD)

    return user


async def authenticate_magic_link(
    db: AsyncSession, credentials: MagicLinkCredentials, store: TokenStore | None = None
) -> User | AuthFailure:
    """Validate and consume a magic link token."""
    store = store or TokenStore(db)
    user = await store.validate_magic_link(credentials.token)
    if user is None:
        return AuthFailure(FailureReason.INVALID_TOKEN)
    return user


async def authenticate(
    db: AsyncSession,
    credentials: Credentials,
    store: TokenStore | None = None,
) -> User | AuthFailure:
    """Dispatch ``credentials`` to the matching authentication method."""
    if isinstance(credentials, PasswordCredentials):
        outcome = await authenticate_password(db, credentials)
    elif isinstance(credentials, MagicLinkCredentials):
        outcome = await authenticate_magic_link(db, credentials, store)
    else:
        raise TypeError(f"Unsupported credentials type: {type(credentials).__name__}")

    if isinstance(outcome, AuthFailure):
        logger.debug(f"{type(credentials).__name__} rejected: {outcome.reason.value}")
    return outcome
