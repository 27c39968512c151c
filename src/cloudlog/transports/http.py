"""
HTTP transport posting push payloads to the CloudLog ingestion API.

One ``POST {api_url}/v1/index/{index}/data`` per payload over a shared
``httpx.AsyncClient``. No retries: a non-accepted status or a transport
error is reported through diagnostics and returned as a failed result.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..core import diagnostics
from ..core.config import HttpTransportConfig
from ..core.errors import CloudLogError
from ..core.payload import PushPayload
from . import ACCEPTED_STATUS_CODES, DeliveryResult

__all__ = ["HttpSender"]


class HttpSender:
    """Posts JSON payloads to a CloudLog index."""

    name = "http"

    def __init__(
        self,
        config: HttpTransportConfig,
        *,
        default_api_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._url = config.endpoint(default_api_url)
        self._timeout = timeout_seconds
        self._headers: dict[str, str] = {
            "Authorization": config.token,
            "Content-Type": "application/json",
        }
        self._client = client
        # Only close clients created here
        self._owns_client = client is None
        self._last_status: int | None = None
        self._last_error: str | None = None

    @property
    def url(self) -> str:
        return self._url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def start(self) -> None:
        self._get_client()

    async def stop(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, payload: PushPayload) -> DeliveryResult:
        records = len(payload)
        try:
            body = bytes(payload.to_json_bytes())
        except CloudLogError as exc:
            return self._failed(records, "payload serialization failed", error=str(exc))

        try:
            resp = await self._get_client().post(
                self._url, content=body, headers=self._headers
            )
        except (httpx.HTTPError, OSError) as exc:
            return self._failed(
                records,
                "exception while delivering events",
                error=f"{type(exc).__name__}: {exc}",
            )

        self._last_status = resp.status_code
        if resp.status_code not in ACCEPTED_STATUS_CODES:
            snippet: str | None
            try:
                snippet = resp.text[:256]
            except Exception:
                snippet = None
            return self._failed(
                records,
                "failed to deliver events",
                status_code=resp.status_code,
                body=snippet,
            )
        self._last_error = None
        return DeliveryResult(ok=True, records=records, status_code=resp.status_code)

    def _failed(
        self,
        records: int,
        message: str,
        *,
        status_code: int | None = None,
        error: str | None = None,
        **fields: Any,
    ) -> DeliveryResult:
        self._last_error = error or f"status {status_code}"
        diagnostics.error(
            "http-sender",
            message,
            endpoint=self._url,
            index=self._config.index,
            records=records,
            status_code=status_code,
            error=error,
            **fields,
        )
        return DeliveryResult(
            ok=False, records=records, status_code=status_code, error=self._last_error
        )

    async def health_check(self) -> bool:
        return (
            self._last_error is None
            and self._last_status is not None
            and self._last_status in ACCEPTED_STATUS_CODES
        )
