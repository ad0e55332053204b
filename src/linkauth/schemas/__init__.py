"""Pydantic schemas for request/response validation."""

from linkauth.schemas.auth import (
    AdminStatsResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MagicLinkRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenValidResponse,
    UserResponse,
)

__all__ = [
    "AdminStatsResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "MagicLinkRequest",
    "MessageResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenValidResponse",
    "UserResponse",
]
