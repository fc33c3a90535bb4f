"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Holiday Lights Showcase"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - loaded from environment

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    # Authentication (tokens are issued by the identity provider)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Ledger storage
    # "memory" keeps everything in-process (tests, local demos)
    # "sql" uses DATABASE_URL through SQLAlchemy async
    LEDGER_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./holiday_lights.db"
    DATABASE_ECHO: bool = False

    @field_validator("LEDGER_BACKEND")
    @classmethod
    def validate_ledger_backend(cls, v: str) -> str:
        """Only the known ledger backends are accepted."""
        backend = v.strip().lower()
        if backend not in ("memory", "sql"):
            raise ValueError("LEDGER_BACKEND must be 'memory' or 'sql'")
        return backend

    # Voting rules
    MAX_VOTES_PER_ADDRESS: int = 10
    MAX_PHOTOS: int = 10

    # Contention handling for vote transactions
    VOTE_MAX_RETRIES: int = 5
    VOTE_RETRY_BACKOFF_SECONDS: float = 0.01

    # Azure OpenAI (festive description suggestions)
    AZURE_OPENAI_ENDPOINT: str | None = None
    AZURE_OPENAI_DEPLOYMENT: str = "gpt-4o-mini"
    AZURE_OPENAI_API_KEY: str | None = None
    AZURE_OPENAI_API_VERSION: str = "2024-06-01"
    DESCRIPTION_TIMEOUT_SECONDS: float = 15.0

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
