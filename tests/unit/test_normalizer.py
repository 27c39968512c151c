from __future__ import annotations

import json

import pytest

from cloudlog.core.normalizer import (
    CLIENT_TYPE_FIELD,
    SOURCE_HOST_FIELD,
    current_timestamp_ms,
    normalize,
    normalize_all,
    parse_structured,
)

TS = 1_700_000_000_123
CT = "python-client-http"
HOST = "test-host"


class TestParseStructured:
    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "Something",
            "[1, 2, 3]",
            '"just a string"',
            "42",
            "null",
            "{not json",
            '{"message": "unterminated"',
            "   ",
            '{"n": NaN}',
            '{"n": -Infinity}',
        ],
    )
    def test_non_objects_yield_none(self, raw: str) -> None:
        assert parse_structured(raw) is None

    def test_none_input_yields_none(self) -> None:
        assert parse_structured(None) is None

    def test_object_is_returned(self) -> None:
        assert parse_structured('  {"a": 1, "b": [true]}') == {"a": 1, "b": [True]}


class TestNormalize:
    @pytest.mark.critical
    def test_plain_text_becomes_message_record(self) -> None:
        record = normalize("Something", TS, CT, HOST)

        assert record == {
            "message": "Something",
            "timestamp": TS,
            CLIENT_TYPE_FIELD: CT,
            SOURCE_HOST_FIELD: HOST,
        }

    def test_empty_string_is_kept_as_message(self) -> None:
        record = normalize("", TS, CT, HOST)

        assert record["message"] == ""
        assert len(record) == 4

    def test_none_is_treated_as_empty_message(self) -> None:
        assert normalize(None, TS, CT, HOST)["message"] == ""

    def test_json_array_is_wrapped_verbatim(self) -> None:
        record = normalize("[1,2]", TS, CT, HOST)

        assert record["message"] == "[1,2]"

    @pytest.mark.critical
    @pytest.mark.security
    def test_structured_event_identity_is_overwritten(self) -> None:
        raw = json.dumps(
            {
                "message": "Something",
                "cloudlog_client_type": "SomeType",
                "cloudlog_source_host": "SomeHost",
                "extra": "data",
                "count": 5,
            }
        )

        record = normalize(raw, TS, CT, HOST)

        assert len(record) == 6
        assert record["message"] == "Something"
        assert record["extra"] == "data"
        assert record["count"] == 5
        assert record["timestamp"] == TS
        assert record[CLIENT_TYPE_FIELD] == CT
        assert record[SOURCE_HOST_FIELD] == HOST

    def test_caller_timestamp_is_preserved(self) -> None:
        raw = '{"message":"Something","timestamp":"1669816693"}'

        record = normalize(raw, TS, CT, HOST)

        assert record["timestamp"] == "1669816693"
        assert len(record) == 4

    def test_null_timestamp_is_replaced(self) -> None:
        record = normalize('{"timestamp": null}', TS, CT, HOST)

        assert record["timestamp"] == TS

    def test_structured_event_without_message_is_not_given_one(self) -> None:
        record = normalize('{"level": "info"}', TS, CT, HOST)

        assert "message" not in record
        assert record["level"] == "info"

    def test_nested_values_survive(self) -> None:
        record = normalize('{"ctx": {"user": {"id": 7}}, "tags": ["a"]}', TS, CT, HOST)

        assert record["ctx"] == {"user": {"id": 7}}
        assert record["tags"] == ["a"]

    def test_wide_integers_are_kept_exact(self) -> None:
        record = normalize(
            '{"n": 123456789012345678901234567890, "m": -18446744073709551617}',
            TS,
            CT,
            HOST,
        )

        assert record["n"] == 123456789012345678901234567890
        assert isinstance(record["n"], int)
        assert record["m"] == -18446744073709551617

    def test_lone_surrogate_text_is_kept_as_message(self) -> None:
        record = normalize("bad \ud800 event", TS, CT, HOST)

        assert record["message"] == "bad \ud800 event"

    def test_caller_field_order_is_kept(self) -> None:
        record = normalize('{"z": 1, "a": 2}', TS, CT, HOST)

        assert list(record)[:2] == ["z", "a"]

    def test_different_client_types_only_change_label(self) -> None:
        raw = '{"message": "x", "n": 1}'

        first = normalize(raw, TS, "type-a", HOST)
        second = normalize(raw, TS, "type-b", HOST)

        diff = {k for k in first if first[k] != second[k]}
        assert diff == {CLIENT_TYPE_FIELD}


def test_normalize_all_shares_timestamp_and_order() -> None:
    records = normalize_all(
        ["one", '{"message": "two"}', "three"],
        timestamp=TS,
        client_type=CT,
        source_host=HOST,
    )

    assert [r["message"] for r in records] == ["one", "two", "three"]
    assert {r["timestamp"] for r in records} == {TS}


def test_current_timestamp_is_epoch_milliseconds() -> None:
    import time

    before = int(time.time() * 1000)
    ts = current_timestamp_ms()
    after = int(time.time() * 1000)

    assert isinstance(ts, int)
    assert before - 1 <= ts <= after + 1
