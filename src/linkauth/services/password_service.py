"""Password hashing and verification service."""

import hashlib
import hmac
import secrets

from starlette.concurrency import run_in_threadpool

# scrypt parameters; changing them invalidates every stored password
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_BYTES = 16


class PasswordService:
    """Service for password hashing and secure token generation.

    Passwords are stored as ``derivedHex.saltHex`` where the derived key is
    scrypt over the password with a per-call random salt.
    """

    def _derive(self, password: str, salt: str) -> bytes:
        return hashlib.scrypt(
            password.encode("utf-8"),
            salt=salt.encode("utf-8"),
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
            maxmem=64 * 1024 * 1024,
            dklen=KEY_LENGTH,
        )

    def hash_password(self, password: str) -> str:
        """Hash a password using scrypt.

        Args:
            password: Plain text password

        Returns:
            Stored form ``derivedHex.saltHex``
        """
        salt = secrets.token_hex(SALT_BYTES)
        return f"{self._derive(password, salt).hex()}.{salt}"

    def verify_password(self, password: str, password_hash: str | None) -> bool:
        """Verify a password against its stored form.

        Uses constant-time comparison. A malformed stored form is treated as
        a mismatch.

        Args:
            password: Plain text password
            password_hash: Stored form to verify against

        Returns:
            True if password matches
        """
        if not password_hash:
            return False

        hashed, sep, salt = password_hash.partition(".")
        if not sep or not hashed or not salt:
            return False

        try:
            expected = bytes.fromhex(hashed)
        except ValueError:
            return False

        supplied = self._derive(password, salt)
        return hmac.compare_digest(expected, supplied)

    async def hash_password_async(self, password: str) -> str:
        """Hash off the event loop; scrypt is deliberately slow."""
        return await run_in_threadpool(self.hash_password, password)

    async def verify_password_async(self, password: str, password_hash: str | None) -> bool:
        return await run_in_threadpool(self.verify_password, password, password_hash)

    def generate_token(self, length: int = 32) -> str:
        """Generate a cryptographically secure token.

        Args:
            length: Number of random bytes (the token is hex, twice as long)

        Returns:
            Hex encoded token
        """
        return secrets.token_hex(length)

    def hash_token(self, token: str) -> str:
        """Hash a token using SHA-256.

        Used as the storage key for magic links, reset tokens and session ids.

        Args:
            token: The token to hash

        Returns:
            Hex-encoded SHA-256 hash
        """
        return hashlib.sha256(token.encode()).hexdigest()


# Singleton instance
_password_service: PasswordService | None = None


def get_password_service() -> PasswordService:
    """Get the password service singleton."""
    global _password_service
    if _password_service is None:
        _password_service = PasswordService()
    return _password_service
