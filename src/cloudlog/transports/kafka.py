"""
Kafka transport for the legacy broker-based CloudLog ingestion.

Each record of a payload is published as its own message to the topic
named after the index, over an SSL connection authenticated with a
CA/certificate/key triple. The producer is started lazily on first use.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError, ProducerClosed
from aiokafka.helpers import create_ssl_context

from ..core import diagnostics
from ..core.config import KafkaTransportConfig
from ..core.errors import CloudLogError
from ..core.payload import PushPayload
from . import DeliveryResult

__all__ = ["KafkaSender"]

ProducerFactory = Callable[..., Any]


class KafkaSender:
    """Publishes one message per record via ``AIOKafkaProducer``."""

    name = "kafka"

    def __init__(
        self,
        config: KafkaTransportConfig,
        *,
        default_brokers: str,
        producer_factory: ProducerFactory | None = None,
    ) -> None:
        self._config = config
        self._brokers = config.brokers or default_brokers
        self._producer_factory = producer_factory or self._default_producer
        self._producer: Any | None = None
        self._start_lock: asyncio.Lock | None = None

    @property
    def topic(self) -> str:
        return self._config.index

    def _default_producer(self, **kwargs: Any) -> AIOKafkaProducer:
        ssl_context = create_ssl_context(
            cafile=str(self._config.ca_file),
            certfile=str(self._config.cert_file),
            keyfile=str(self._config.key_file),
            password=self._config.key_password or None,
        )
        return AIOKafkaProducer(ssl_context=ssl_context, **kwargs)

    async def start(self) -> None:
        if self._producer is not None:
            return
        if self._start_lock is None:
            self._start_lock = asyncio.Lock()
        async with self._start_lock:
            if self._producer is not None:
                return
            producer = self._producer_factory(
                bootstrap_servers=self._brokers,
                security_protocol="SSL",
                acks="all",
                compression_type="gzip",
            )
            await producer.start()
            self._producer = producer

    async def stop(self) -> None:
        producer, self._producer = self._producer, None
        if producer is not None:
            await producer.stop()

    async def send(self, payload: PushPayload) -> DeliveryResult:
        records = len(payload)
        try:
            await self.start()
        except (KafkaError, OSError) as exc:
            diagnostics.error(
                "kafka-sender",
                "failed to start producer",
                brokers=self._brokers,
                error=f"{type(exc).__name__}: {exc}",
            )
            return DeliveryResult(ok=False, records=records, error=str(exc))

        try:
            messages = [bytes(view) for view in payload.iter_record_bytes()]
        except CloudLogError as exc:
            diagnostics.error(
                "kafka-sender",
                "payload serialization failed",
                topic=self.topic,
                error=str(exc),
            )
            return DeliveryResult(ok=False, records=records, error=str(exc))

        outcomes = await asyncio.gather(
            *(self._publish(message) for message in messages),
            return_exceptions=True,
        )
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        for exc in failures:
            diagnostics.error(
                "kafka-sender",
                "failed to deliver event",
                topic=self.topic,
                error=f"{type(exc).__name__}: {exc}",
            )
        if failures:
            return DeliveryResult(
                ok=False,
                records=records,
                error=f"{len(failures)} of {records} messages failed",
            )
        return DeliveryResult(ok=True, records=records)

    async def _publish(self, message: bytes) -> None:
        producer = self._producer
        if producer is None:
            # stop() ran after this payload was scheduled
            raise ProducerClosed()
        await producer.send_and_wait(self.topic, value=message)
