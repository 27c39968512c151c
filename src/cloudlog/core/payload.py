"""
Push payload assembly.

A push payload is the unit handed to a transport: the ordered records of
one push call, serialized as ``{"records": [...]}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .normalizer import Record
from .serialization import (
    SerializedView,
    serialize_mapping_to_json_bytes,
    serialize_records_envelope,
)


@dataclass(frozen=True)
class PushPayload:
    records: tuple[Record, ...]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def to_json_bytes(self) -> SerializedView:
        return serialize_records_envelope("records", self.records)

    def iter_record_bytes(self) -> Iterator[SerializedView]:
        """Serialize records one at a time (one broker message each)."""
        for record in self.records:
            yield serialize_mapping_to_json_bytes(record)


def batch(records: Iterable[Record]) -> PushPayload:
    """Assemble records into a payload, keeping their order."""
    return PushPayload(records=tuple(records))
