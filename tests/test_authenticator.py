"""Tests for authentication dispatch."""

import pytest
import pytest_asyncio

from conftest import PASSWORD, add_user
from linkauth.services.authenticator import (
    DUMMY_PASSWORD_HASH,
    AuthFailure,
    FailureReason,
    MagicLinkCredentials,
    PasswordCredentials,
    authenticate,
)
from linkauth.services.password_service import PasswordService, get_password_service
from linkauth.services.token_store import TokenStore


@pytest_asyncio.fixture
async def users(session_factory):
    await add_user(session_factory)
    await add_user(session_factory, username="nopass", email="nopass@example.com", password=None)


@pytest.fixture
def kdf_calls(monkeypatch):
    """Record every stored hash a password is verified against."""
    calls = []
    original = PasswordService.verify_password

    def recording(self, password, password_hash):
        calls.append(password_hash)
        return original(self, password, password_hash)

    monkeypatch.setattr(PasswordService, "verify_password", recording)
    return calls


class TestPasswordCredentials:
    """Tests for username/password authentication."""

    @pytest.mark.asyncio
    async def test_success(self, db, users):
        outcome = await authenticate(db, PasswordCredentials("alice", PASSWORD))
        assert outcome.username == "alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username, password, reason",
        [
            ("ghost", PASSWORD, FailureReason.UNKNOWN_USER),
            ("nopass", PASSWORD, FailureReason.NO_PASSWORD),
            ("alice", "wrong-password", FailureReason.BAD_PASSWORD),
        ],
    )
    async def test_every_failure_runs_the_kdf_once(
        self, db, users, kdf_calls, username, password, reason
    ):
        outcome = await authenticate(db, PasswordCredentials(username, password))

        assert outcome == AuthFailure(reason)
        assert len(kdf_calls) == 1

    @pytest.mark.asyncio
    async def test_missing_hash_is_checked_against_placeholder(self, db, users, kdf_calls):
        await authenticate(db, PasswordCredentials("ghost", PASSWORD))
        assert kdf_calls == [DUMMY_PASSWORD_HASH]

    def test_placeholder_matches_nothing(self):
        service = get_password_service()
        assert service.verify_password("", DUMMY_PASSWORD_HASH) is False
        assert service.verify_password(PASSWORD, DUMMY_PASSWORD_HASH) is False


class TestMagicLinkCredentials:
    """Tests for magic link authentication."""

    @pytest.mark.asyncio
    async def test_success_then_invalid(self, session_factory, settings, users):
        async with session_factory() as session:
            user_id = (await authenticate(session, PasswordCredentials("alice", PASSWORD))).id
            issued = await TokenStore(session, settings).issue_magic_link(user_id)
            await session.commit()

        async with session_factory() as session:
            store = TokenStore(session, settings)
            first = await authenticate(session, MagicLinkCredentials(issued.token), store)
            second = await authenticate(session, MagicLinkCredentials(issued.token), store)

        assert first.id == user_id
        assert second == AuthFailure(FailureReason.INVALID_TOKEN)

    @pytest.mark.asyncio
    async def test_unsupported_credentials(self, db):
        with pytest.raises(TypeError):
            await authenticate(db, object())
