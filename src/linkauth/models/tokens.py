"""Single-use token models: magic links and password resets."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from linkauth.database import Base


class _SingleUseToken:
    """Columns shared by every single-use token table.

    ``token`` holds the SHA-256 digest of the value sent by email. A row is
    valid while ``used`` is false and ``expires_at`` is in the future. Rows
    are never deleted.
    """

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class MagicLink(_SingleUseToken, Base):
    """Magic link for passwordless authentication.

    Consumed on the first successful validation.
    """

    __tablename__ = "magic_links"

    def __repr__(self) -> str:
        return f"<MagicLink {self.id} user_id={self.user_id} used={self.used}>"


class PasswordResetToken(_SingleUseToken, Base):
    """Password reset token.

    Probing a reset link does not consume it; the token is marked used only
    once the new password has been stored.
    """

    __tablename__ = "password_reset_tokens"

    def __repr__(self) -> str:
        return f"<PasswordResetToken {self.id} user_id={self.user_id} used={self.used}>"
