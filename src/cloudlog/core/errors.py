"""
Error types raised by the CloudLog client.

Only configuration problems are ever raised to callers. Malformed events
and failed deliveries are absorbed by the pipeline and reported through
``cloudlog.core.diagnostics``.
"""

from __future__ import annotations

from typing import Any


class CloudLogError(Exception):
    """Base class for all CloudLog client errors."""

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


class ConfigurationError(CloudLogError, ValueError):
    """Invalid client configuration, raised synchronously at construction."""


def configuration_error_from_validation(
    exc: Exception,
    *,
    transport: str,
) -> ConfigurationError:
    """Translate a pydantic ``ValidationError`` into a ``ConfigurationError``.

    The first reported issue becomes the message so callers see e.g.
    ``missing token`` instead of the full pydantic report.
    """
    errors = getattr(exc, "errors", None)
    message = str(exc)
    field: str | None = None
    if callable(errors):
        try:
            issues = errors()
        except Exception:
            issues = []
        if issues:
            first = issues[0]
            loc = first.get("loc") or ()
            field = ".".join(str(part) for part in loc) or None
            message = str(first.get("msg", message))
            # pydantic prefixes custom validator messages
            if message.startswith("Value error, "):
                message = message[len("Value error, ") :]
    return ConfigurationError(message, cause=exc, transport=transport, field=field)
