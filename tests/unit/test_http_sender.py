from __future__ import annotations

import json
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from cloudlog.core.config import HttpTransportConfig
from cloudlog.core.payload import batch
from cloudlog.transports import DeliveryResult, Sender
from cloudlog.transports.http import HttpSender

API = "https://logs.example.com"


def _sender(handler: Any, **kwargs: Any) -> tuple[HttpSender, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sender = HttpSender(
        HttpTransportConfig(index="SomeIndex", token="SomeToken", **kwargs),
        default_api_url=API,
        client=client,
    )
    return sender, client


@pytest.mark.asyncio
async def test_posts_records_to_index_endpoint() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201)

    sender, client = _sender(handler)
    result = await sender.send(batch([{"message": "a"}, {"message": "b"}]))
    await client.aclose()

    assert result == DeliveryResult(ok=True, records=2, status_code=201)
    assert len(requests) == 1
    req = requests[0]
    assert req.method == "POST"
    assert str(req.url) == f"{API}/v1/index/SomeIndex/data"
    assert req.headers["Authorization"] == "SomeToken"
    assert req.headers["Content-Type"] == "application/json"
    assert json.loads(req.content) == {
        "records": [{"message": "a"}, {"message": "b"}]
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [201, 202])
async def test_accepted_statuses_succeed(status: int) -> None:
    sender, client = _sender(lambda request: httpx.Response(status))

    result = await sender.send(batch([{"message": "a"}]))
    await client.aclose()

    assert result.ok is True
    assert await sender.health_check() is True


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [200, 204, 400, 401, 500, 503])
async def test_other_statuses_fail_and_report(
    status: int, captured_diagnostics: list[dict]
) -> None:
    sender, client = _sender(lambda request: httpx.Response(status, text="nope"))

    result = await sender.send(batch([{"message": "a"}]))
    await client.aclose()

    assert result.ok is False
    assert result.status_code == status
    assert len(captured_diagnostics) == 1
    diag = captured_diagnostics[0]
    assert diag["level"] == "ERROR"
    assert diag["component"] == "http-sender"
    assert diag["status_code"] == status
    assert diag["body"] == "nope"
    assert await sender.health_check() is False


@pytest.mark.asyncio
async def test_transport_exception_is_absorbed() -> None:
    errors: list[dict[str, Any]] = []

    def _error(component: str, message: str, **fields: Any) -> None:
        errors.append({"component": component, "message": message, **fields})

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    sender, client = _sender(handler)
    with patch("cloudlog.core.diagnostics.error", side_effect=_error):
        result = await sender.send(batch([{"message": "a"}]))
    await client.aclose()

    assert result.ok is False
    assert result.status_code is None
    assert errors
    assert errors[0]["component"] == "http-sender"
    assert "boom" in errors[0]["error"]


@pytest.mark.asyncio
async def test_unserializable_payload_is_a_delivery_failure(
    captured_diagnostics: list[dict],
) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201)

    sender, client = _sender(handler)
    result = await sender.send(batch([{"message": object()}]))
    await client.aclose()

    assert result.ok is False
    assert calls == []
    assert captured_diagnostics[0]["message"] == "payload serialization failed"


def test_api_url_override_and_trailing_slash() -> None:
    sender = HttpSender(
        HttpTransportConfig(index="idx", token="t", api_url="https://other.example/"),
        default_api_url=API,
    )

    assert sender.url == "https://other.example/v1/index/idx/data"


@pytest.mark.asyncio
async def test_stop_closes_only_owned_client() -> None:
    external = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(201))
    )
    sender = HttpSender(
        HttpTransportConfig(index="idx", token="t"),
        default_api_url=API,
        client=external,
    )
    await sender.stop()
    assert external.is_closed is False
    await external.aclose()

    owned = HttpSender(HttpTransportConfig(index="idx", token="t"), default_api_url=API)
    await owned.start()
    inner = owned._client
    assert inner is not None
    await owned.stop()
    assert inner.is_closed is True


def test_http_sender_satisfies_protocol() -> None:
    sender = HttpSender(HttpTransportConfig(index="i", token="t"), default_api_url=API)

    assert isinstance(sender, Sender)
