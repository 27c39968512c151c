"""
Delivery metrics for the CloudLog client.

Implements a minimal set of Prometheus-compatible counters and a latency
histogram.

Design goals:
- Zero global state; each client owns its collector and registry
- Safe no-op exporters when metrics are disabled, while still tracking
  in-memory counters for tests
- Callable from the caller's thread and the delivery loop alike
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class DeliveryMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    events_pushed: int = 0
    deliveries_succeeded: int = 0
    deliveries_failed: int = 0
    records_dropped: int = 0
    drain_timeouts: int = 0


class MetricsCollector:
    """Client-scoped metrics collector."""

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = DeliveryMetrics()

        self._c_events: Any | None = None
        self._c_deliveries: Any | None = None
        self._c_drain_timeouts: Any | None = None
        self._h_delivery_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across clients
            self._registry = CollectorRegistry()
            self._c_events = Counter(
                "cloudlog_events_pushed_total",
                "Total number of events handed to the client",
                registry=self._registry,
            )
            self._c_deliveries = Counter(
                "cloudlog_deliveries_total",
                "Total number of delivery attempts by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_drain_timeouts = Counter(
                "cloudlog_drain_timeouts_total",
                "Number of flush calls that timed out",
                registry=self._registry,
            )
            self._h_delivery_latency = Histogram(
                "cloudlog_delivery_seconds",
                "Latency of a single delivery attempt",
                buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_events_pushed(self, count: int) -> None:
        with self._lock:
            self._state.events_pushed += count
        if self._c_events is not None:
            self._c_events.inc(count)

    def record_delivery(
        self,
        *,
        ok: bool,
        records: int,
        duration_seconds: float | None = None,
    ) -> None:
        with self._lock:
            if ok:
                self._state.deliveries_succeeded += 1
            else:
                self._state.deliveries_failed += 1
                self._state.records_dropped += records
        if not self._enabled:
            return
        if self._c_deliveries is not None:
            self._c_deliveries.labels(outcome="success" if ok else "failure").inc()
        if duration_seconds is not None and self._h_delivery_latency is not None:
            self._h_delivery_latency.observe(duration_seconds)

    def record_drain_timeout(self) -> None:
        with self._lock:
            self._state.drain_timeouts += 1
        if self._c_drain_timeouts is not None:
            self._c_drain_timeouts.inc()

    def snapshot(self) -> DeliveryMetrics:
        with self._lock:
            return DeliveryMetrics(
                events_pushed=self._state.events_pushed,
                deliveries_succeeded=self._state.deliveries_succeeded,
                deliveries_failed=self._state.deliveries_failed,
                records_dropped=self._state.records_dropped,
                drain_timeouts=self._state.drain_timeouts,
            )
