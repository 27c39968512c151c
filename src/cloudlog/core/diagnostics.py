"""
Internal diagnostics sink for non-fatal client errors.

Diagnostics are written as one JSON object per line to ``sys.stderr``.
``warn`` is opt-in via ``CLOUDLOG_CORE__INTERNAL_LOGGING_ENABLED`` and is
used for noisy internal conditions; ``error`` is always emitted and is the
sink for failed deliveries. Neither function ever raises.
"""

from __future__ import annotations

import sys
import threading
import time
from typing import Any, Callable

import orjson

# Cached on first use; tests reset it to None between cases
_internal_logging_enabled: bool | None = None

_write_lock = threading.Lock()
_writer: Callable[[str], None] | None = None


def _is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import CloudLogSettings

            _internal_logging_enabled = bool(
                CloudLogSettings().core.internal_logging_enabled
            )
        except Exception:
            _internal_logging_enabled = False
    return _internal_logging_enabled


def set_writer(writer: Callable[[str], None] | None) -> None:
    """Redirect diagnostics lines (``None`` restores stderr)."""
    global _writer
    _writer = writer


def _safe_text(value: Any) -> str:
    try:
        text = str(value)
    except Exception:
        text = f"<unprintable {type(value).__name__}>"
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    record: dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "component": component,
        "message": message,
    }
    record.update(fields)
    try:
        line = orjson.dumps(record, default=str).decode("utf-8")
    except TypeError:
        # Lone surrogates or oversized ints; degrade every value to safe text
        reduced: dict[str, Any] = {
            _safe_text(key): _safe_text(value) for key, value in record.items()
        }
        if isinstance(record["ts"], float):
            reduced["ts"] = record["ts"]
        line = orjson.dumps(reduced).decode("utf-8")
    try:
        with _write_lock:
            if _writer is not None:
                _writer(line)
            else:
                sys.stderr.write(line + "\n")
                sys.stderr.flush()
    except Exception:
        # Diagnostics must never break the caller
        pass


def warn(component: str, message: str, **fields: Any) -> None:
    """Emit a WARN diagnostic when internal logging is enabled."""
    if not _is_enabled():
        return
    _emit("WARN", component, message, fields)


def error(component: str, message: str, **fields: Any) -> None:
    """Emit an ERROR diagnostic unconditionally."""
    _emit("ERROR", component, message, fields)
