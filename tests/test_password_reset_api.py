"""Tests for the forgot/reset password flow."""

import pytest

from conftest import PASSWORD

COOKIE = "linkauth.sid"
NEW_PASSWORD = "a-brand-new-password"
FORGOT_MESSAGE = "If an account exists with that email, a password reset link has been sent"


async def request_reset(client, mailer, email: str = "alice@example.com") -> str:
    response = await client.post("/api/forgot-password", json={"email": email})
    assert response.status_code == 200
    return mailer.last_token()


def probe(client, token):
    return client.get("/api/verify", params={"token": token, "type": "reset-password"})


class TestForgotPassword:
    """Tests for POST /api/forgot-password."""

    @pytest.mark.asyncio
    async def test_sends_reset_link(self, client, mailer, alice):
        token = await request_reset(client, mailer)

        message = mailer.outbox[-1]
        assert message["to"] == "alice@example.com"
        assert message["subject"] == "Reset your password"
        assert f"http://test/verify?token={token}&type=reset-password" in message["text"]

    @pytest.mark.asyncio
    async def test_same_answer_for_unknown_address(self, client, mailer, alice):
        known = await client.post("/api/forgot-password", json={"email": "alice@example.com"})
        unknown = await client.post("/api/forgot-password", json={"email": "ghost@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {"message": FORGOT_MESSAGE}
        assert [message["to"] for message in mailer.outbox] == ["alice@example.com"]

    @pytest.mark.asyncio
    async def test_delivery_failure_is_not_disclosed(self, client, mailer, alice):
        mailer.deliver = False

        response = await client.post("/api/forgot-password", json={"email": "alice@example.com"})

        assert response.status_code == 200
        assert response.json() == {"message": FORGOT_MESSAGE}


class TestProbeResetToken:
    """Tests for GET /api/verify?type=reset-password."""

    @pytest.mark.asyncio
    async def test_probe_does_not_consume(self, client, mailer, alice):
        token = await request_reset(client, mailer)

        for _ in range(2):
            response = await probe(client, token)
            assert response.status_code == 200
            assert response.json() == {"message": "Token valid", "token": token}

        assert COOKIE not in response.cookies

    @pytest.mark.asyncio
    async def test_unknown_token(self, client):
        response = await probe(client, "0" * 64)

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid or expired token"}


class TestResetPassword:
    """Tests for POST /api/reset-password."""

    @pytest.mark.asyncio
    async def test_reset(self, client, mailer, alice):
        token = await request_reset(client, mailer)

        response = await client.post(
            "/api/reset-password", json={"token": token, "password": NEW_PASSWORD}
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Password successfully reset"}

        old = await client.post("/api/login", json={"username": "alice", "password": PASSWORD})
        assert old.status_code == 401
        new = await client.post("/api/login", json={"username": "alice", "password": NEW_PASSWORD})
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_token_is_single_use(self, client, mailer, alice):
        token = await request_reset(client, mailer)
        first = await client.post(
            "/api/reset-password", json={"token": token, "password": NEW_PASSWORD}
        )
        assert first.status_code == 200

        second = await client.post(
            "/api/reset-password", json={"token": token, "password": "yet-another-password"}
        )
        assert second.status_code == 400
        assert second.json() == {"message": "Invalid or expired reset token"}

        assert (await probe(client, token)).status_code == 400

        login = await client.post(
            "/api/login", json={"username": "alice", "password": NEW_PASSWORD}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_reset_revokes_sessions(self, signed_in, mailer):
        token = await request_reset(signed_in, mailer)

        response = await signed_in.post(
            "/api/reset-password", json={"token": token, "password": NEW_PASSWORD}
        )

        assert response.status_code == 200
        assert (await signed_in.get("/api/user")).status_code == 401

    @pytest.mark.asyncio
    async def test_reset_does_not_sign_in(self, client, mailer, alice):
        token = await request_reset(client, mailer)

        response = await client.post(
            "/api/reset-password", json={"token": token, "password": NEW_PASSWORD}
        )

        assert COOKIE not in response.cookies
        assert (await client.get("/api/user")).status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_token(self, client):
        response = await client.post(
            "/api/reset-password", json={"token": "0" * 64, "password": NEW_PASSWORD}
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid or expired reset token"}

    @pytest.mark.asyncio
    async def test_short_password_keeps_token(self, client, mailer, alice):
        token = await request_reset(client, mailer)

        response = await client.post(
            "/api/reset-password", json={"token": token, "password": "short"}
        )

        assert response.status_code == 400
        assert (await probe(client, token)).status_code == 200

    @pytest.mark.asyncio
    async def test_magic_link_is_not_a_reset_token(self, client, mailer, alice):
        await client.post("/api/magic-link", json={"email": "alice@example.com"})
        link_token = mailer.last_token()

        response = await client.post(
            "/api/reset-password", json={"token": link_token, "password": NEW_PASSWORD}
        )

        assert response.status_code == 400
        assert (await client.get("/api/verify", params={"token": link_token})).status_code == 200
