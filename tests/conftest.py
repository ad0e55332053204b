"""Test fixtures."""

import re
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from linkauth.config import AuthSettings
from linkauth.database import create_engine, create_session_factory, init_db
from linkauth.main import create_app
from linkauth.models.user import User
from linkauth.services.email_service import EmailService
from linkauth.services.password_service import get_password_service

TOKEN_IN_URL = re.compile(r"token=([0-9a-f]{64})")

PASSWORD = "correct-horse-battery"


class RecordingEmailService(EmailService):
    """Email service that keeps every message instead of delivering it."""

    def __init__(self, settings: AuthSettings) -> None:
        super().__init__(settings)
        self.outbox: list[dict] = []
        self.deliver = True

    def send(self, to_email, subject, text_body, html_body) -> bool:
        if not self.deliver:
            return False
        self.outbox.append(
            {"to": to_email, "subject": subject, "text": text_body, "html": html_body}
        )
        return True

    def last_token(self) -> str:
        match = TOKEN_IN_URL.search(self.outbox[-1]["text"])
        assert match, "no token link in the last email"
        return match.group(1)


class FixedClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def settings():
    """In-memory database, console email, no .env lookup."""
    return AuthSettings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        create_tables=False,
        email_transport="console",
        log_level="WARNING",
    )


@pytest.fixture
def clock():
    return FixedClock()


@pytest_asyncio.fixture
async def session_factory(settings):
    """Session factory on a fresh in-memory database."""
    engine = create_engine(settings)
    await init_db(engine)

    yield create_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(settings):
    """Application with tables created and emails recorded."""
    application = create_app(settings)
    # ASGITransport does not run the lifespan
    await init_db(application.state.engine)
    application.state.email_service = RecordingEmailService(settings)

    yield application

    await application.state.engine.dispose()


@pytest.fixture
def mailer(app) -> RecordingEmailService:
    return app.state.email_service


@pytest_asyncio.fixture
async def client(app):
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def add_user(
    session_factory,
    username: str = "alice",
    email: str = "alice@example.com",
    password: str | None = PASSWORD,
    is_admin: bool = False,
) -> User:
    """Insert a user directly, bypassing the API."""
    password_hash = get_password_service().hash_password(password) if password else None
    async with session_factory() as session:
        user = User(username=username, email=email, password=password_hash, is_admin=is_admin)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def alice(app):
    return await add_user(app.state.session_factory)


@pytest_asyncio.fixture
async def signed_in(client, alice):
    """Client holding a live session for alice."""
    response = await client.post(
        "/api/login", json={"username": "alice", "password": PASSWORD}
    )
    assert response.status_code == 200
    return client


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
