"""Tests for the linkauth CLI."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner
from sqlalchemy import select

from linkauth.cli import cli, run_with_db
from linkauth.config import AuthSettings
from linkauth.models.session import Session
from linkauth.models.user import User


@pytest.fixture
def cli_settings(tmp_path):
    return AuthSettings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
    )


@pytest.fixture
def invoke(cli_settings):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, ["--json", *args], obj={"settings": cli_settings})

    return _invoke


@pytest.fixture
def database(invoke, cli_settings):
    """Initialized database holding one regular user."""
    assert invoke("init-db").exit_code == 0

    async def seed(db):
        db.add(User(username="alice", email="alice@example.com", password=None))

    run_with_db(cli_settings, seed)
    return cli_settings


def load_user(settings, username):
    async def fetch(db):
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one()

    return run_with_db(settings, fetch)


class TestInitDb:
    def test_init_db(self, invoke):
        result = invoke("init-db")

        assert result.exit_code == 0
        output = json.loads(result.output)
        assert output["success"] is True
        assert output["message"] == "Database initialized"


class TestAdminPrivilege:
    """Tests for promote and demote."""

    def test_promote_and_demote(self, invoke, database):
        result = invoke("promote", "alice")
        assert result.exit_code == 0
        assert json.loads(result.output)["data"] == {"username": "alice", "is_admin": True}
        assert load_user(database, "alice").is_admin is True

        result = invoke("demote", "alice")
        assert result.exit_code == 0
        assert load_user(database, "alice").is_admin is False

    def test_unknown_user(self, invoke, database):
        result = invoke("promote", "ghost")

        assert result.exit_code == 1
        output = json.loads(result.output)
        assert output["success"] is False
        assert output["error"]["code"] == "USER_NOT_FOUND"


class TestUsers:
    def test_lists_users(self, invoke, database):
        result = invoke("users")

        assert result.exit_code == 0
        rows = json.loads(result.output)["data"]
        assert [row["username"] for row in rows] == ["alice"]
        assert rows[0]["password"] == "magic-link only"
        assert rows[0]["is_admin"] is False


class TestPurgeSessions:
    def test_purges_dead_sessions(self, invoke, database):
        now = datetime.now(timezone.utc)

        async def seed(db):
            user_id = (await db.execute(select(User.id))).scalar_one()
            db.add(Session(id="a" * 64, user_id=user_id, expires_at=now - timedelta(hours=1)))
            db.add(Session(id="b" * 64, user_id=user_id, expires_at=now + timedelta(hours=1)))
            db.add(
                Session(
                    id="c" * 64,
                    user_id=user_id,
                    expires_at=now + timedelta(hours=1),
                    revoked_at=now,
                )
            )

        run_with_db(database, seed)

        result = invoke("purge-sessions")

        assert result.exit_code == 0
        assert json.loads(result.output)["data"] == {"deleted": 2}

        async def remaining(db):
            return [row.id for row in (await db.execute(select(Session))).scalars()]

        assert run_with_db(database, remaining) == ["b" * 64]
