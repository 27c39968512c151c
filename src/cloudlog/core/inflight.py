"""
In-flight delivery tracking and the flush barrier.

``InFlightTracker`` counts deliveries that have been dispatched but not yet
completed. Every dispatch holds an ``InFlightLease``; releasing it is the
only way to decrement the count and it happens at most once per lease.

``drain()`` waits on a condition variable until the count reaches zero or
the timeout elapses. A timed-out drain resets the count to zero and starts
a new generation: leases from older generations still complete in the
background, but their release no longer touches the count.
"""

from __future__ import annotations

import asyncio
import threading
import time
import types


class InFlightLease:
    """Handle for one dispatched delivery."""

    __slots__ = ("_tracker", "_generation", "_released")

    def __init__(self, tracker: InFlightTracker, generation: int) -> None:
        self._tracker = tracker
        self._generation = generation
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def generation(self) -> int:
        return self._generation

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._tracker._release(self._generation)

    def __enter__(self) -> InFlightLease:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        self.release()


class InFlightTracker:
    """Thread-safe counter of outstanding deliveries with a drain barrier."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._count = 0
        self._generation = 0
        self._resets = 0

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    @property
    def resets(self) -> int:
        """Number of drains that gave up and reset the count."""
        with self._cond:
            return self._resets

    def acquire(self) -> InFlightLease:
        with self._cond:
            self._count += 1
            return InFlightLease(self, self._generation)

    def _release(self, generation: int) -> None:
        with self._cond:
            if generation != self._generation:
                # Abandoned by a timed-out drain
                return
            self._count -= 1
            if self._count <= 0:
                self._count = 0
                self._cond.notify_all()

    def drain(self, timeout: float | None = None) -> bool:
        """Block until nothing is in flight.

        Returns ``True`` when the count reached zero, ``False`` when the
        timeout elapsed first. In the latter case the count is reset to zero
        and outstanding deliveries are left running.
        """
        deadline = None if timeout is None else time.monotonic() + max(0.0, timeout)
        with self._cond:
            while self._count > 0:
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._count = 0
                    self._generation += 1
                    self._resets += 1
                    self._cond.notify_all()
                    return False
                self._cond.wait(remaining)
            return True

    async def adrain(self, timeout: float | None = None) -> bool:
        """``drain()`` for coroutines; waits in a worker thread."""
        if self.count == 0:
            return True
        return await asyncio.to_thread(self.drain, timeout)
