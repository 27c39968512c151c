"""
Record normalization for raw CloudLog events.

Turns one raw event string into a flat record and injects the metadata
fields the ingestion API expects. Parsing is attempted once; anything that
is not a JSON object is wrapped as ``{"message": raw}``.
"""

from __future__ import annotations

import json
import time
from typing import Any

Record = dict[str, Any]

MESSAGE_FIELD = "message"
TIMESTAMP_FIELD = "timestamp"
CLIENT_TYPE_FIELD = "cloudlog_client_type"
SOURCE_HOST_FIELD = "cloudlog_source_host"

# Identity metadata is always owned by the client, never by the caller
IDENTITY_FIELDS: tuple[str, ...] = (CLIENT_TYPE_FIELD, SOURCE_HOST_FIELD)


def current_timestamp_ms() -> int:
    """Unix epoch time in milliseconds."""
    return time.time_ns() // 1_000_000


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def parse_structured(raw: str | None) -> Record | None:
    """Return the JSON object encoded in ``raw``, or ``None``.

    ``None`` covers empty input, invalid JSON and JSON whose top-level value
    is not an object (arrays, strings, numbers, null).
    """
    if not raw:
        return None
    # Cheap pre-check; only object text can produce a record
    if not raw.lstrip().startswith("{"):
        return None
    try:
        # Integers of any width stay exact; NaN and Infinity are not JSON
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def normalize(
    raw: str | None,
    timestamp: int,
    client_type: str,
    source_host: str,
) -> Record:
    """Normalize a raw event into a record carrying client metadata.

    - Structured input keeps every caller field except the identity
      fields, which are replaced with ``client_type``/``source_host``.
    - A caller ``timestamp`` wins unless it is missing or ``null``.
    - Unstructured input becomes ``{"message": raw}``.
    """
    record = parse_structured(raw)
    if record is None:
        record = {MESSAGE_FIELD: raw if raw is not None else ""}
    else:
        for key in IDENTITY_FIELDS:
            record.pop(key, None)

    if record.get(TIMESTAMP_FIELD) is None:
        record[TIMESTAMP_FIELD] = timestamp
    record[CLIENT_TYPE_FIELD] = client_type
    record[SOURCE_HOST_FIELD] = source_host
    return record


def normalize_all(
    raws: list[str] | tuple[str, ...],
    *,
    timestamp: int,
    client_type: str,
    source_host: str,
) -> list[Record]:
    return [normalize(raw, timestamp, client_type, source_host) for raw in raws]
