from __future__ import annotations

import json

import pytest

import cloudlog.core.diagnostics as diag


def test_error_is_always_emitted(captured_diagnostics: list[dict]) -> None:
    diag.error("http-sender", "failed to deliver events", status_code=500)

    assert captured_diagnostics == [
        {
            "ts": captured_diagnostics[0]["ts"],
            "level": "ERROR",
            "component": "http-sender",
            "message": "failed to deliver events",
            "status_code": 500,
        }
    ]


def test_warn_is_silent_by_default(captured_diagnostics: list[dict]) -> None:
    diag.warn("client", "flush timed out")

    assert captured_diagnostics == []


def test_warn_emits_when_enabled(
    monkeypatch: pytest.MonkeyPatch, captured_diagnostics: list[dict]
) -> None:
    monkeypatch.setenv("CLOUDLOG_CORE__INTERNAL_LOGGING_ENABLED", "true")

    diag.warn("client", "flush timed out", timeout_seconds=0.1)

    assert captured_diagnostics[0]["level"] == "WARN"
    assert captured_diagnostics[0]["timeout_seconds"] == 0.1


def test_default_writer_is_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    diag.error("client", "boom", error=ValueError("x"))

    err = capsys.readouterr().err.strip()
    line = json.loads(err)
    assert line["message"] == "boom"
    assert line["error"] == "x"


def test_broken_writer_never_raises() -> None:
    def _broken(line: str) -> None:
        raise OSError("closed")

    diag.set_writer(_broken)

    diag.error("client", "boom")


def test_unencodable_fields_still_produce_a_json_line(
    captured_diagnostics: list[dict],
) -> None:
    diag.error(
        'sender "x"',
        'bad "quoted" event',
        body="bad \ud800 text",
        n=2**80,
    )

    assert len(captured_diagnostics) == 1
    line = captured_diagnostics[0]
    assert line["level"] == "ERROR"
    assert line["component"] == 'sender "x"'
    assert line["message"] == 'bad "quoted" event'
    assert line["body"] == "bad \\ud800 text"
    assert line["n"] == str(2**80)
    assert isinstance(line["ts"], float)
