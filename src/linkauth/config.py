"""Configuration settings for the linkauth service.

Loads settings from environment variables (prefixed ``LINKAUTH_``) with
validation.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class AuthSettings(BaseSettings):
    """Auth service configuration."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./linkauth.db"
    create_tables: bool = True

    # Server configuration
    port: int = 5000
    environment: str = "development"
    base_url: str = ""  # e.g., https://app.example.com; request origin when empty

    # Sessions
    session_cookie_name: str = "linkauth.sid"
    session_max_age_hours: int = 24

    # Token expiration
    magic_link_expire_minutes: int = 15
    password_reset_expire_minutes: int = 60

    # Email delivery: "console", "smtp" or "sendgrid"
    email_transport: str = "console"
    email_from: str = "no-reply@localhost"
    email_from_name: str = "linkauth"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    sendgrid_api_key: str = ""

    # CORS
    cors_origins: str = ""  # Comma-separated list

    # Logging
    log_level: str = "INFO"
    debug_requests: bool = False

    class Config:
        env_prefix = "LINKAUTH_"
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        """Secure cookies are only issued in production."""
        return self.environment.lower() == "production"

    @property
    def async_database_url(self) -> str:
        """Database URL with an async driver selected."""
        url = self.database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return url

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_hours * 60 * 60

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> AuthSettings:
    """Get cached settings instance."""
    return AuthSettings()
