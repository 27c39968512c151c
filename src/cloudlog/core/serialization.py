"""
JSON serialization helpers built on orjson.

Payloads are encoded straight to bytes. orjson rejects two kinds of value
a parsed record can legitimately hold: strings with lone surrogates and
integers wider than 64 bits. Such a record is re-encoded with the standard
library encoder in ASCII mode, which escapes surrogates as ``\\udXXX`` and
writes big integers exactly, so one odd record never sinks a payload.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import orjson

from .errors import CloudLogError


@dataclass
class SerializedView:
    """Encoded JSON bytes ready to hand to a transport."""

    data: bytes

    def __bytes__(self) -> bytes:  # convenience
        return self.data

    def __len__(self) -> int:
        return len(self.data)


def _encode(value: Any) -> bytes:
    try:
        return orjson.dumps(value)
    except TypeError as e:
        try:
            return json.dumps(
                value, ensure_ascii=True, allow_nan=False, separators=(",", ":")
            ).encode("ascii")
        except (TypeError, ValueError) as fallback_error:
            raise CloudLogError(
                "Serialization failed", cause=fallback_error, reason=str(e)
            ) from fallback_error


def serialize_mapping_to_json_bytes(payload: Mapping[str, Any]) -> SerializedView:
    """Serialize a mapping to UTF-8 JSON bytes, preserving key order."""
    return SerializedView(data=_encode(payload))


def serialize_records_envelope(
    key: str, records: Iterable[Mapping[str, Any]]
) -> SerializedView:
    """Serialize ``{key: [record, ...]}`` encoding each record on its own."""
    parts = [_encode(record) for record in records]
    data = b"".join((_encode(key), b":[", b",".join(parts), b"]"))
    return SerializedView(data=b"{" + data + b"}")
