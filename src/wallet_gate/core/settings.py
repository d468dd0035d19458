"""Application settings and configuration.

This module defines all configuration options for the Wallet Gate service.
Settings are loaded from environment variables with sensible defaults.
"""

from datetime import timedelta
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOCAL_ENVIRONMENTS = frozenset({"local", "development", "test"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    The signing key is read once at startup and never rotated in-process.
    """

    # Application metadata
    app_name: str = Field(default="Wallet Gate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="local", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session tokens
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_ttl_minutes: int = Field(default=60 * 24 * 7, ge=1, alias="SESSION_TTL_MINUTES")
    session_cookie_name: str = Field(default="access_token", alias="SESSION_COOKIE_NAME")

    # Nonce registry
    nonce_ttl_seconds: int = Field(default=120, ge=1, alias="NONCE_TTL_SECONDS")
    nonce_backend: Literal["memory", "redis"] = Field(default="memory", alias="NONCE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    nonce_sweep_interval_seconds: float = Field(
        default=60.0,
        ge=0.0,
        alias="NONCE_SWEEP_INTERVAL_SECONDS",
    )
    anonymous_identity: str = Field(default="anonymous", alias="ANONYMOUS_IDENTITY")

    # Sign-in message checks
    siwe_domain: str | None = Field(default=None, alias="SIWE_DOMAIN")

    # CORS configuration for the web frontend (cookies require credentials)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalise the log level name."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Invalid LOG_LEVEL. Must be one of: {allowed}")
        return v_upper

    @property
    def is_local(self) -> bool:
        """Return True when running on a developer machine or under tests."""
        return self.environment.lower() in _LOCAL_ENVIRONMENTS

    @property
    def cookie_secure(self) -> bool:
        """Session cookies carry the Secure flag on every non-local deployment."""
        return not self.is_local

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(minutes=self.session_ttl_minutes)

    @property
    def nonce_ttl(self) -> timedelta:
        return timedelta(seconds=self.nonce_ttl_seconds)


settings = Settings()  # type: ignore[call-arg]
