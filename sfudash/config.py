"""Centralized configuration for the SFU dashboard backend.

Uses Pydantic BaseSettings with environment variable loading and validation.
All SFUDASH_* environment variables are validated at import time.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {"env_prefix": "SFUDASH_", "case_sensitive": False, "extra": "ignore"}

    # Logging
    log_format: str = Field(default="text", description="Log format: text or json")
    log_level: str = Field(default="INFO", description="Python log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")  # noqa: S104
    port: int = Field(default=8000, ge=1, le=65535, description="Server bind port")

    # CORS
    cors_origins: str = Field(default="*", description="Comma-separated CORS origins")

    # Rate limiting
    rate_limit: str = Field(
        default="60/minute",
        description="Rate limit for operator proxy routes. Set to 'none' to disable.",
    )

    # Upstream signaling API
    sora_api_url: str = Field(
        default="http://127.0.0.1:3000/", description="SFU signaling API endpoint"
    )
    upstream_timeout: float = Field(
        default=10.0, gt=0, description="Upstream request timeout in seconds"
    )

    # Auth webhook
    auth_channel_prefix: str = Field(
        default="",
        description="Only channel ids with this prefix are allowed (empty = any channel id)",
    )
    project_name: str = Field(
        default="sfu-dashboard", description="Project tag returned in auth event_metadata"
    )

    # Push stream
    heartbeat_interval: float = Field(
        default=15.0, gt=0, description="Seconds between keepalive comments"
    )
    stream_queue_size: int = Field(
        default=200, ge=1, description="Pending frames buffered per stream connection"
    )

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            msg = f"SFUDASH_LOG_FORMAT must be 'text' or 'json', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        import logging

        v = v.upper()
        if not hasattr(logging, v):
            msg = f"SFUDASH_LOG_LEVEL must be a valid Python log level, got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("sora_api_url")
    @classmethod
    def validate_sora_api_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            msg = f"SFUDASH_SORA_API_URL must be an http(s) URL, got '{v}'"
            raise ValueError(msg)
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        """Return parsed list of CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def rate_limit_enabled(self) -> bool:
        return self.rate_limit.strip().lower() != "none"


# Singleton, validated at import time.
settings = Settings()
