"""
CloudLog client: push free-form events to a CloudLog index.

Example:
    from cloudlog import Client

    with Client.over_http("my-index", "my-token") as client:
        client.push_event("Something happened")
        client.push_events(['{"message": "structured", "count": 5}'])
        client.flush()
"""

from __future__ import annotations

from ._version import __version__
from .client import (
    DEFAULT_HTTP_CLIENT_TYPE,
    DEFAULT_KAFKA_CLIENT_TYPE,
    AsyncClient,
    Client,
    ClientIdentity,
)
from .core.errors import CloudLogError, ConfigurationError
from .core.normalizer import normalize
from .core.payload import PushPayload, batch
from .core.settings import CloudLogSettings
from .transports import DeliveryResult

__all__ = [
    "AsyncClient",
    "Client",
    "ClientIdentity",
    "CloudLogError",
    "CloudLogSettings",
    "ConfigurationError",
    "DEFAULT_HTTP_CLIENT_TYPE",
    "DEFAULT_KAFKA_CLIENT_TYPE",
    "DeliveryResult",
    "PushPayload",
    "batch",
    "normalize",
    "__version__",
    "VERSION",
]

# Version info for compatibility
VERSION = __version__
