"""Tests for password hashing and token helpers."""

import hashlib

import pytest

from linkauth.services.password_service import PasswordService, get_password_service


@pytest.fixture
def service():
    return PasswordService()


class TestHashPassword:
    """Tests for the scrypt stored form."""

    def test_stored_form(self, service):
        """Stored form is 64 derived bytes and 16 salt bytes, hex, dot separated."""
        stored = service.hash_password("s3cret-password")

        derived, salt = stored.split(".")
        assert len(derived) == 128
        assert len(salt) == 32
        int(derived, 16)
        int(salt, 16)

    def test_salt_is_random(self, service):
        assert service.hash_password("same") != service.hash_password("same")

    def test_compatible_derivation(self, service):
        """The hex salt string itself is the scrypt salt."""
        stored = service.hash_password("pw")
        derived, salt = stored.split(".")

        expected = hashlib.scrypt(
            b"pw", salt=salt.encode(), n=16384, r=8, p=1, maxmem=64 * 1024 * 1024, dklen=64
        )
        assert derived == expected.hex()


class TestVerifyPassword:
    """Tests for password verification."""

    def test_round_trip(self, service):
        stored = service.hash_password("s3cret-password")
        assert service.verify_password("s3cret-password", stored) is True

    def test_wrong_password(self, service):
        stored = service.hash_password("s3cret-password")
        assert service.verify_password("s3cret-passwore", stored) is False

    @pytest.mark.parametrize(
        "stored",
        [None, "", "nodot", ".abcd", "abcd.", "zz-not-hex.0011", "abcd.ef01"],
    )
    def test_malformed_stored_form(self, service, stored):
        """Malformed stored values never match and never raise."""
        assert service.verify_password("anything", stored) is False

    @pytest.mark.asyncio
    async def test_async_variants(self, service):
        stored = await service.hash_password_async("threadpool")
        assert await service.verify_password_async("threadpool", stored) is True
        assert await service.verify_password_async("other", stored) is False


class TestTokens:
    """Tests for token generation and hashing."""

    def test_generate_token(self, service):
        token = service.generate_token()
        assert len(token) == 64
        int(token, 16)
        assert service.generate_token() != token

    def test_generate_token_length(self, service):
        assert len(service.generate_token(16)) == 32

    def test_hash_token(self, service):
        assert service.hash_token("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_singleton(self):
        assert get_password_service() is get_password_service()
