"""
Client configuration using Pydantic v2 Settings.

Settings are read from ``CLOUDLOG_*`` environment variables, with nested
groups separated by ``__`` (for example ``CLOUDLOG_CORE__API_URL``).
"""

from __future__ import annotations

import socket

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

DEFAULT_API_URL = "https://api0401.bdp.anexia-it.com"
DEFAULT_BROKERS = "kafka0401.bdp.anexia-it.com:8443"


class CoreSettings(BaseModel):
    """Transport endpoints, timeouts and internal toggles."""

    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the CloudLog HTTP ingestion API",
    )
    brokers: str = Field(
        default=DEFAULT_BROKERS,
        description="Comma-separated Kafka bootstrap servers",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Timeout applied to each outbound HTTP request",
    )
    drain_timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Default time flush() waits for outstanding deliveries",
    )
    source_host: str | None = Field(
        default=None,
        description="Override for cloudlog_source_host (defaults to the host name)",
    )
    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit WARN diagnostics for internal, non-delivery errors",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )
    atexit_drain_enabled: bool = Field(
        default=True,
        description="Flush registered synchronous clients at interpreter exit",
    )
    atexit_drain_timeout_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Per-client flush timeout used at interpreter exit",
    )

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("api_url must not be empty")
        return value

    def resolve_source_host(self) -> str:
        if self.source_host:
            return self.source_host
        return socket.gethostname()


class CloudLogSettings(BaseSettings):
    """Top-level settings model."""

    core: CoreSettings = Field(default_factory=CoreSettings)

    model_config = SettingsConfigDict(
        env_prefix="CLOUDLOG_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
