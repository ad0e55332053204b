"""Auth service business logic."""

from linkauth.services.password_service import PasswordService
from linkauth.services.token_store import TokenStore
from linkauth.services.session_service import SessionService
from linkauth.services.email_service import EmailService

__all__ = [
    "PasswordService",
    "TokenStore",
    "SessionService",
    "EmailService",
]
