"""Application configuration management."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_DEFAULT_SECRET_KEY = "change-this-in-production-use-secure-random-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    APP_NAME: str = "Download Portal"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # Must explicitly set to "production" in prod deployments

    # API
    API_PREFIX: str = "/api"

    # Session signing
    SECRET_KEY: str = INSECURE_DEFAULT_SECRET_KEY
    ALGORITHM: str = "HS256"

    # Session cookie
    SESSION_COOKIE_NAME: str = "session"
    SESSION_COOKIE_MAX_AGE_SECONDS: int | None = None  # None = browser-session cookie
    COOKIE_SECURE: bool | None = None  # Auto-detected from ENVIRONMENT
    COOKIE_SAMESITE: str = "lax"
    COOKIE_DOMAIN: str | None = None

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data.db"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if v and not v.startswith(("postgresql", "sqlite")):
            raise ValueError("DATABASE_URL must be a PostgreSQL or SQLite connection string")
        return v

    # Files served by /downloads, relative paths in the catalog resolve against it
    DOWNLOADS_DIR: Path = Path("downloads")

    # Contact mail (optional - leave MAIL_API_KEY empty to disable /email)
    MAIL_API_KEY: str = ""
    MAIL_API_URL: str = "https://api.resend.com/emails"
    MAIL_FROM: str = "Download Portal <noreply@example.com>"
    MAIL_TO: str = "owner@example.com"
    MAIL_SUBJECT_PREFIX: str = "Download Portal"
    MAIL_TIMEOUT_SECONDS: float = 10.0

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS_ORIGINS from JSON string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, treat as comma-separated
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "10/minute"

    # Prometheus metrics at /metrics
    EXPOSE_METRICS: bool = True

    @model_validator(mode="after")
    def set_computed_defaults(self) -> "Settings":
        """Set computed defaults based on other settings."""
        if self.COOKIE_SECURE is None:
            # Secure cookies only in production (requires HTTPS)
            object.__setattr__(self, "COOKIE_SECURE", self.ENVIRONMENT == "production")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


def _validate_production_secrets(s: Settings) -> None:
    """
    Fail hard if production uses a weak or placeholder session key.

    The session key signs every session cookie; a guessable key lets anyone
    mint a session for any user.
    """
    if not s.is_production:
        return

    placeholder_patterns = ["change", "replace", "your-", "example", "placeholder", "default", "test"]

    issues = []
    if not s.SECRET_KEY or s.SECRET_KEY == INSECURE_DEFAULT_SECRET_KEY:
        issues.append("SECRET_KEY: using hardcoded default")
    elif len(s.SECRET_KEY) < 32:
        issues.append(f"SECRET_KEY: {len(s.SECRET_KEY)} chars (minimum 32)")
    else:
        lowered = s.SECRET_KEY.lower()
        for pattern in placeholder_patterns:
            if pattern in lowered:
                issues.append(f"SECRET_KEY: contains placeholder pattern '{pattern}'")
                break

    if issues:
        raise RuntimeError(
            "FATAL: Production deployment blocked - insecure secrets detected!\n"
            f"  {chr(10).join('- ' + v for v in issues)}\n"
            "Generate a secure value with:\n"
            '  python -c "import secrets; print(secrets.token_urlsafe(48))"'
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance with validation."""
    s = Settings()
    _validate_production_secrets(s)
    return s


settings = get_settings()
