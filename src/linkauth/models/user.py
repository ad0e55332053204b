"""User model for authentication."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from linkauth.database import Base


class User(Base):
    """User account model.

    Supports two authentication methods:
    - Username/password
    - Magic links (``password`` stays null for magic-link-only accounts)

    ``is_admin`` is never written through the HTTP API.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    def __repr__(self) -> str:
        return f"<User {self.id} username={self.username}>"
