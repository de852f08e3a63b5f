"""Application configuration via environment variables."""

from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    database_url: str = "sqlite+aiosqlite:///./blogstats.db"
    api_secret_key: str = "change-me"
    api_host: str = "0.0.0.0"
    api_port: int = 8788
    cors_origins: str = "*"
    environment: str = "development"

    # Session tracking
    session_timeout_minutes: int = 30
    visitor_cookie_max_age_days: int = 365
    session_conflict_retries: int = 2

    # Stats
    active_window_minutes: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    INSECURE_SECRETS: ClassVar[set[str]] = {"change-me", "change-me-in-production", "secret", ""}

    @property
    def secure_cookies(self) -> bool:
        return self.environment == "production"

    def validate_production(self) -> None:
        """Raise if running in production with an insecure default secret key."""
        if self.environment == "production" and self.api_secret_key in self.INSECURE_SECRETS:
            raise RuntimeError(
                "API_SECRET_KEY must be changed from default in production. "
                'Generate one: python -c "import secrets; print(secrets.token_hex(32))"'
            )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
