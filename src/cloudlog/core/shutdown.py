"""Best-effort flush of synchronous clients at interpreter exit.

Clients register themselves in a WeakSet so registration never keeps a
client alive. The atexit handler closes every registered client with a
bounded timeout and never raises.
"""

from __future__ import annotations

import atexit
import weakref
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..client import Client


# Module-level state
_shutdown_in_progress: bool = False
_registered_clients: weakref.WeakSet[Any] = weakref.WeakSet()


def _get_shutdown_settings() -> dict[str, Any]:
    """Get shutdown settings from CloudLogSettings, with fallback defaults."""
    try:
        from .settings import CloudLogSettings

        settings = CloudLogSettings()
        return {
            "atexit_drain_enabled": settings.core.atexit_drain_enabled,
            "atexit_drain_timeout_seconds": settings.core.atexit_drain_timeout_seconds,
        }
    except Exception:  # pragma: no cover - defensive fallback
        return {
            "atexit_drain_enabled": True,
            "atexit_drain_timeout_seconds": 2.0,
        }


def register_client(client: Client) -> None:
    """Register a client for automatic close on exit."""
    _registered_clients.add(client)


def unregister_client(client: Client) -> None:
    """Unregister a client, typically after an explicit close()."""
    _registered_clients.discard(client)


def _close_single_client(client: Any, timeout: float) -> None:
    try:
        client.close(timeout)
    except Exception:
        pass  # Best effort - don't crash on exit


def _atexit_handler() -> None:
    """Close all registered clients; called by atexit and should never raise."""
    global _shutdown_in_progress

    if _shutdown_in_progress:
        return

    settings = _get_shutdown_settings()
    if not settings["atexit_drain_enabled"]:
        return

    _shutdown_in_progress = True
    timeout = settings["atexit_drain_timeout_seconds"]

    # Snapshot the clients (WeakSet iteration can fail if GC runs)
    try:
        clients = list(_registered_clients)
    except Exception:  # pragma: no cover - rare GC race
        return

    for client in clients:
        _close_single_client(client, timeout)


atexit.register(_atexit_handler)
