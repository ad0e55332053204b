"""SQLAlchemy models for the auth service."""

from linkauth.models.user import User
from linkauth.models.session import Session
from linkauth.models.tokens import MagicLink, PasswordResetToken

__all__ = [
    "User",
    "Session",
    "MagicLink",
    "PasswordResetToken",
]
