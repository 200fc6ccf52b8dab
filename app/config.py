"""
Revi Audit — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Revi Audit platform."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Gemini LLM (report generation)
    # ------------------------------------------------------------------ #
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL_PRIMARY: str = "gemini-2.5-pro"
    GEMINI_MODEL_FALLBACK: str = "gemini-2.5-flash"
    GEMINI_MODEL_STABLE: str = "gemini-2.0-flash"
    GEMINI_MAX_OUTPUT_TOKENS: int = 8192

    # ------------------------------------------------------------------ #
    # Database – Cloud SQL via Unix socket or plain URL
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    DB_USER: str = "audit_user"
    DB_PASSWORD: str = ""
    DB_NAME: str = "audit"
    CLOUD_SQL_INSTANCE_CONNECTION: str = ""
    CLOUD_SQL_USE_UNIX_SOCKET: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE_SECONDS: int = 1800

    # ------------------------------------------------------------------ #
    # Redis – company lookup cache
    # ------------------------------------------------------------------ #
    REDIS_URL: str = "redis://localhost:6379/0"
    COMPANY_CACHE_TTL_SECONDS: int = 300

    # ------------------------------------------------------------------ #
    # Email (Resend)
    # ------------------------------------------------------------------ #
    RESEND_API_KEY: str = ""
    FROM_EMAIL: str = "noreply@audit.com"
    AGENCY_EMAIL: str = ""

    # ------------------------------------------------------------------ #
    # Google Cloud Storage – company logos
    # ------------------------------------------------------------------ #
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""

    # ------------------------------------------------------------------ #
    # Survey behaviour
    # ------------------------------------------------------------------ #
    # How several conditionals on one question combine: "all" requires every
    # rule to agree, "any" shows the question when one rule allows it.
    CONDITIONAL_COMBINATION: str = "all"

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 120.0

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @field_validator("CONDITIONAL_COMBINATION")
    @classmethod
    def _combination_must_be_known(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("all", "any"):
            raise ValueError(
                f"CONDITIONAL_COMBINATION must be 'all' or 'any', got {v!r}"
            )
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime.  Import this function anywhere you
    need access to configuration::

        from app.config import get_settings
        settings = get_settings()
    """
    return Settings()  # type: ignore[call-arg]
