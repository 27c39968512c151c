"""
Client facades for pushing events to CloudLog.

``AsyncClient`` is used from asyncio code: push methods schedule a task on
the running loop and return it immediately. ``Client`` serves threaded
code: it owns a background event loop and returns
``concurrent.futures.Future`` objects.

Both normalize events synchronously in the caller, dispatch one delivery
per push call and track it until completion so ``flush()`` can wait for
outstanding work with a bounded timeout.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import dataclasses
import threading
import time
import types
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Coroutine, Iterable

import httpx

from .core import diagnostics
from .core.config import HttpTransportConfig, KafkaTransportConfig, parse_config
from .core.inflight import InFlightTracker
from .core.normalizer import current_timestamp_ms, normalize_all
from .core.payload import PushPayload, batch
from .core.settings import CloudLogSettings
from .core.shutdown import register_client, unregister_client
from .metrics.metrics import MetricsCollector
from .transports import DeliveryResult, Sender
from .transports.http import HttpSender
from .transports.kafka import KafkaSender, ProducerFactory

__all__ = [
    "AsyncClient",
    "Client",
    "ClientIdentity",
    "DEFAULT_HTTP_CLIENT_TYPE",
    "DEFAULT_KAFKA_CLIENT_TYPE",
]

DEFAULT_HTTP_CLIENT_TYPE = "python-client-http"
DEFAULT_KAFKA_CLIENT_TYPE = "python-client-kafka"


@dataclass(frozen=True)
class ClientIdentity:
    """Metadata stamped onto every record a client sends."""

    index: str
    client_type: str
    source_host: str


def _http_components(
    index: str,
    token: str,
    *,
    api_url: str | None,
    http_client: httpx.AsyncClient | None,
    settings: CloudLogSettings,
) -> tuple[ClientIdentity, HttpSender]:
    cfg = parse_config(
        HttpTransportConfig,
        transport="http",
        index=index,
        token=token,
        api_url=api_url,
    )
    sender = HttpSender(
        cfg,
        default_api_url=settings.core.api_url,
        timeout_seconds=settings.core.request_timeout_seconds,
        client=http_client,
    )
    identity = ClientIdentity(
        index=cfg.index,
        client_type=DEFAULT_HTTP_CLIENT_TYPE,
        source_host=settings.core.resolve_source_host(),
    )
    return identity, sender


def _kafka_components(
    index: str,
    ca_file: str | Path,
    cert_file: str | Path,
    key_file: str | Path,
    key_password: str,
    *,
    brokers: str | None,
    producer_factory: ProducerFactory | None,
    settings: CloudLogSettings,
) -> tuple[ClientIdentity, KafkaSender]:
    cfg = parse_config(
        KafkaTransportConfig,
        transport="kafka",
        index=index,
        ca_file=ca_file,
        cert_file=cert_file,
        key_file=key_file,
        key_password=key_password,
        brokers=brokers,
    )
    cfg.check_files()
    sender = KafkaSender(
        cfg,
        default_brokers=settings.core.brokers,
        producer_factory=producer_factory,
    )
    identity = ClientIdentity(
        index=cfg.index,
        client_type=DEFAULT_KAFKA_CLIENT_TYPE,
        source_host=settings.core.resolve_source_host(),
    )
    return identity, sender


class _ClientBase:
    """State and delivery logic shared by the sync and async facades."""

    def __init__(
        self,
        identity: ClientIdentity,
        sender: Sender,
        *,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._settings = settings or CloudLogSettings()
        self._identity = identity
        self._sender = sender
        self._metrics = metrics or MetricsCollector(
            enabled=self._settings.core.enable_metrics
        )
        self._tracker = InFlightTracker()
        self._closed = False

    @property
    def identity(self) -> ClientIdentity:
        return self._identity

    @property
    def client_type(self) -> str:
        return self._identity.client_type

    @property
    def sender(self) -> Sender:
        return self._sender

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def in_flight(self) -> int:
        return self._tracker.count

    @property
    def closed(self) -> bool:
        return self._closed

    def set_client_type(self, client_type: str) -> None:
        """Change the label used for events pushed from now on."""
        self._identity = dataclasses.replace(self._identity, client_type=client_type)

    def _prepare(self, raws: Iterable[str]) -> PushPayload:
        if self._closed:
            raise RuntimeError("Client is closed")
        if isinstance(raws, str):
            raise TypeError("push_events() expects a sequence of events, not a str")
        identity = self._identity
        records = normalize_all(
            list(raws),
            timestamp=current_timestamp_ms(),
            client_type=identity.client_type,
            source_host=identity.source_host,
        )
        self._metrics.record_events_pushed(len(records))
        return batch(records)

    async def _deliver(self, payload: PushPayload) -> DeliveryResult:
        started = time.perf_counter()
        try:
            result = await self._sender.send(payload)
        except Exception as exc:  # noqa: BLE001
            # Senders report failures as results; this guards sender bugs
            diagnostics.error(
                "client",
                "unexpected delivery error",
                transport=getattr(self._sender, "name", type(self._sender).__name__),
                error=f"{type(exc).__name__}: {exc}",
            )
            result = DeliveryResult(ok=False, records=len(payload), error=str(exc))
        try:
            self._metrics.record_delivery(
                ok=result.ok,
                records=result.records,
                duration_seconds=time.perf_counter() - started,
            )
        except Exception as exc:  # noqa: BLE001
            diagnostics.warn("client", "metrics recording failed", error=str(exc))
        return result

    def _resolve_timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return self._settings.core.drain_timeout_seconds
        return timeout

    def _after_drain(self, drained: bool, timeout: float) -> bool:
        if not drained:
            self._metrics.record_drain_timeout()
            diagnostics.warn(
                "client",
                "flush timed out; abandoning outstanding deliveries",
                timeout_seconds=timeout,
                index=self._identity.index,
            )
        return drained


class AsyncClient(_ClientBase):
    """CloudLog client for asyncio applications.

    Example:
        async with AsyncClient.over_http("my-index", "token") as client:
            client.push_event('{"message": "hello"}')
            await client.flush()
    """

    def __init__(
        self,
        identity: ClientIdentity,
        sender: Sender,
        *,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        super().__init__(identity, sender, settings=settings, metrics=metrics)
        # Keep references so pending deliveries are not garbage collected
        self._tasks: set[asyncio.Task[DeliveryResult]] = set()

    @classmethod
    def over_http(
        cls,
        index: str,
        token: str,
        *,
        api_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> AsyncClient:
        settings = settings or CloudLogSettings()
        identity, sender = _http_components(
            index, token, api_url=api_url, http_client=http_client, settings=settings
        )
        return cls(identity, sender, settings=settings, metrics=metrics)

    @classmethod
    def over_kafka(
        cls,
        index: str,
        ca_file: str | Path,
        cert_file: str | Path,
        key_file: str | Path,
        key_password: str = "",
        *,
        brokers: str | None = None,
        producer_factory: ProducerFactory | None = None,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> AsyncClient:
        settings = settings or CloudLogSettings()
        identity, sender = _kafka_components(
            index,
            ca_file,
            cert_file,
            key_file,
            key_password,
            brokers=brokers,
            producer_factory=producer_factory,
            settings=settings,
        )
        return cls(identity, sender, settings=settings, metrics=metrics)

    def push_event(self, raw: str) -> asyncio.Future[DeliveryResult]:
        """Send one event; see ``push_events``."""
        return self.push_events([raw])

    def push_events(self, raws: Iterable[str]) -> asyncio.Future[DeliveryResult]:
        """Send several events as one payload without waiting for delivery.

        Must be called with a running event loop. The returned task may be
        awaited for the ``DeliveryResult`` but never raises on delivery
        failure.
        """
        loop = asyncio.get_running_loop()
        payload = self._prepare(raws)
        if not payload.records:
            done: asyncio.Future[DeliveryResult] = loop.create_future()
            done.set_result(DeliveryResult(ok=True, records=0))
            return done
        lease = self._tracker.acquire()
        task = loop.create_task(self._deliver(payload))
        # Release only after the handle itself is done
        task.add_done_callback(lambda _t: lease.release())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def flush(self, timeout: float | None = None) -> bool:
        """Wait until outstanding deliveries finish or ``timeout`` elapses.

        Returns ``False`` on timeout; the deliveries keep running but are
        no longer counted.
        """
        timeout = self._resolve_timeout(timeout)
        drained = await self._tracker.adrain(timeout)
        return self._after_drain(drained, timeout)

    async def aclose(self, timeout: float | None = None) -> bool:
        """Flush and release transport resources."""
        if self._closed:
            return True
        self._closed = True
        drained = await self.flush(timeout)
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        try:
            await self._sender.stop()
        except Exception as exc:  # noqa: BLE001
            diagnostics.warn("client", "transport stop failed", error=str(exc))
        return drained

    async def __aenter__(self) -> AsyncClient:
        await self._sender.start()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()


class Client(_ClientBase):
    """CloudLog client for synchronous code.

    Deliveries run on a private event loop in a daemon thread. The client
    is flushed and closed at interpreter exit if ``close()`` was not
    called.
    """

    def __init__(
        self,
        identity: ClientIdentity,
        sender: Sender,
        *,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        super().__init__(identity, sender, settings=settings, metrics=metrics)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="cloudlog-client", daemon=True
        )
        self._thread.start()
        register_client(self)

    @classmethod
    def over_http(
        cls,
        index: str,
        token: str,
        *,
        api_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> Client:
        settings = settings or CloudLogSettings()
        identity, sender = _http_components(
            index, token, api_url=api_url, http_client=http_client, settings=settings
        )
        return cls(identity, sender, settings=settings, metrics=metrics)

    @classmethod
    def over_kafka(
        cls,
        index: str,
        ca_file: str | Path,
        cert_file: str | Path,
        key_file: str | Path,
        key_password: str = "",
        *,
        brokers: str | None = None,
        producer_factory: ProducerFactory | None = None,
        settings: CloudLogSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> Client:
        settings = settings or CloudLogSettings()
        identity, sender = _kafka_components(
            index,
            ca_file,
            cert_file,
            key_file,
            key_password,
            brokers=brokers,
            producer_factory=producer_factory,
            settings=settings,
        )
        return cls(identity, sender, settings=settings, metrics=metrics)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future[Any]:
        try:
            return asyncio.run_coroutine_threadsafe(coro, self._loop)
        except RuntimeError:
            coro.close()
            raise

    def push_event(self, raw: str) -> concurrent.futures.Future[DeliveryResult]:
        """Send one event; see ``push_events``."""
        return self.push_events([raw])

    def push_events(
        self, raws: Iterable[str]
    ) -> concurrent.futures.Future[DeliveryResult]:
        """Send several events as one payload without waiting for delivery."""
        payload = self._prepare(raws)
        if not payload.records:
            done: concurrent.futures.Future[DeliveryResult] = concurrent.futures.Future()
            done.set_result(DeliveryResult(ok=True, records=0))
            return done
        lease = self._tracker.acquire()
        try:
            future = self._submit(self._deliver(payload))
        except RuntimeError:
            lease.release()
            raise
        # Release only after the handle itself is done
        future.add_done_callback(lambda _f: lease.release())
        return future

    def flush(self, timeout: float | None = None) -> bool:
        """Block until outstanding deliveries finish or ``timeout`` elapses."""
        timeout = self._resolve_timeout(timeout)
        drained = self._tracker.drain(timeout)
        return self._after_drain(drained, timeout)

    def close(self, timeout: float | None = None) -> bool:
        """Flush, stop the transport and shut down the background loop."""
        if self._closed:
            return True
        self._closed = True
        unregister_client(self)
        drained = self.flush(timeout)
        try:
            self._submit(self._shutdown_loop()).result(
                timeout=self._settings.core.request_timeout_seconds
            )
        except Exception as exc:  # noqa: BLE001
            diagnostics.warn("client", "transport stop failed", error=str(exc))
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=1.0)
        if not self._thread.is_alive():
            self._loop.close()
        return drained

    async def _shutdown_loop(self) -> None:
        current = asyncio.current_task()
        pending = [t for t in asyncio.all_tasks() if t is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self._sender.stop()

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        self.close()
