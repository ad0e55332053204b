"""Pydantic schemas for auth service request/response validation."""

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator


# =============================================================================
# Common Response Schemas
# =============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class TokenValidResponse(BaseModel):
    """Acknowledgement that a password reset link is still live."""

    message: str = "Token valid"
    token: str


# =============================================================================
# User Schemas
# =============================================================================


class UserResponse(BaseModel):
    """User information response. Never carries the password."""

    id: int
    username: str
    email: str
    is_admin: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_admin", "isAdmin"),
        serialization_alias="isAdmin",
    )

    model_config = {"from_attributes": True, "populate_by_name": True}


# =============================================================================
# Auth Schemas (Username/Password)
# =============================================================================


class RegisterRequest(BaseModel):
    """Registration request. Without a password the account is magic-link only."""

    username: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str | None = Field(default=None, min_length=8, max_length=128)

    @field_validator("password", mode="before")
    @classmethod
    def empty_password_is_none(cls, value):
        """An empty password means a magic-link only account."""
        return value or None


class LoginRequest(BaseModel):
    """Username/password login request."""

    username: str
    password: str


# =============================================================================
# Magic Link Schemas
# =============================================================================


class MagicLinkRequest(BaseModel):
    """Request to send magic link."""

    email: EmailStr


# =============================================================================
# Password Reset Schemas
# =============================================================================


class ForgotPasswordRequest(BaseModel):
    """Request to send password reset email."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request to reset password with token."""

    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)


# =============================================================================
# Admin Schemas
# =============================================================================


class AdminStatsResponse(BaseModel):
    message: str = "Admin only stats"
    users: int
    active_sessions: int
