"""
Transport configuration models.

Both models are frozen and reject unknown keys. Validation failures are
surfaced as ``ConfigurationError`` by ``parse_config`` so construction of a
client fails fast and synchronously.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError, configuration_error_from_validation

ConfigT = TypeVar("ConfigT", bound=BaseModel)


def _require_non_empty(value: str | None, what: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"missing {what}")
    return str(value)


class HttpTransportConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    index: str
    token: str
    api_url: str | None = None

    @field_validator("index", mode="before")
    @classmethod
    def _check_index(cls, value: Any) -> str:
        return _require_non_empty(value, "index")

    @field_validator("token", mode="before")
    @classmethod
    def _check_token(cls, value: Any) -> str:
        return _require_non_empty(value, "token")

    def endpoint(self, default_api_url: str) -> str:
        base = (self.api_url or default_api_url).rstrip("/")
        return f"{base}/v1/index/{self.index}/data"


class KafkaTransportConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    index: str
    ca_file: Path
    cert_file: Path
    key_file: Path
    key_password: str = Field(default="")
    brokers: str | None = None

    @field_validator("index", mode="before")
    @classmethod
    def _check_index(cls, value: Any) -> str:
        return _require_non_empty(value, "index")

    def check_files(self) -> None:
        """Raise ``ConfigurationError`` for the first missing credential file."""
        for label, path in (
            ("ca file", self.ca_file),
            ("certificate file", self.cert_file),
            ("key file", self.key_file),
        ):
            if not path.is_file():
                raise ConfigurationError(
                    f"{label} not found at: {path}",
                    transport="kafka",
                    field=label.replace(" ", "_"),
                )


def parse_config(
    model: type[ConfigT],
    config: ConfigT | dict[str, Any] | None = None,
    *,
    transport: str,
    **kwargs: Any,
) -> ConfigT:
    """Build a config model from an instance, a mapping, or keyword arguments."""
    if isinstance(config, model):
        if kwargs:
            data = config.model_dump()
            data.update(kwargs)
            config = data  # type: ignore[assignment]
        else:
            return config
    data = dict(config or {})  # type: ignore[arg-type]
    data.update(kwargs)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise configuration_error_from_validation(exc, transport=transport) from exc
