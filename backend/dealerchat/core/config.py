"""Centralized application settings using pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
# Look for .env in the backend directory or project root
env_path = Path(__file__).parent.parent.parent / ".env"
if not env_path.exists():
    # Try project root
    env_path = Path(__file__).parent.parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)


class Settings(BaseSettings):
    """Environment-aware configuration (DB URLs, broker settings, integrations)."""

    # Application settings
    app_name: str = "Dealership Assistant"
    log_level: str = "INFO"

    # Required by both the API and the worker process; no defaults on purpose
    database_url: str | None = Field(
        default=None,
        description="Primary relational store connection URL",
    )
    redis_url: str | None = Field(
        default=None,
        description="Durable job queue backend (Redis) connection URL",
    )

    # Celery settings (fall back to redis_url)
    celery_broker_url: str | None = None
    celery_result_url: str | None = None

    # Job layer
    job_retention_seconds: int = Field(
        default=7 * 24 * 3600,
        description="How long finished job results and progress stay pollable",
    )
    broker_visibility_timeout: int = Field(
        default=3600,
        description="Seconds before an unacknowledged job is redelivered",
    )
    watchdog_interval_seconds: float = 30.0

    # CRM (DealerSocket)
    crm_api_url: str | None = None
    crm_api_key: str | None = None
    crm_timeout_seconds: float = 10.0

    # Notifications
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None
    sendgrid_api_key: str | None = None
    sendgrid_from_email: str | None = None

    # CORS settings - stored as string, converted to list via property
    cors_origins_raw: str | None = Field(
        default=None,
        validation_alias="CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins",
        exclude=True,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore",  # Ignore extra env vars not defined in model
        populate_by_name=True,  # Allow both field name and alias
    )

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string to list."""
        if self.cors_origins_raw is None or not self.cors_origins_raw.strip():
            return ["http://localhost:3000"]
        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]
        return origins or ["http://localhost:3000"]

    @property
    def broker_url(self) -> str | None:
        return self.celery_broker_url or self.redis_url

    @property
    def result_backend_url(self) -> str | None:
        return self.celery_result_url or self.redis_url

    def missing_required(self) -> list[str]:
        """Names of the required addresses that are not configured."""
        missing = []
        if not self.redis_url:
            missing.append("REDIS_URL")
        if not self.database_url:
            missing.append("DATABASE_URL")
        return missing

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v: str | None) -> str | None:
        """Fix Heroku DATABASE_URL format (postgres:// -> postgresql+psycopg://)."""
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+psycopg://", 1)
        return v or None

    @field_validator("redis_url", "celery_broker_url", "celery_result_url", mode="before")
    @classmethod
    def blank_as_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Provide singleton-like access for dependency injection."""
    return Settings()
