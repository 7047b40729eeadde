"""
Admission control for inbound requests.

The controller caps the number of concurrently admitted requests. When
queueing is enabled and the cap is reached, requests wait in a strict FIFO
queue until a slot is released, the queue timeout fires, or the service
shuts down. Each waiting request is a ``QueueEntry`` whose future is
resolved exactly once: the first state transition wins and any later one
is a no-op.
"""

import asyncio
import time
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Deque, Dict, Optional

from shared.errors import ServiceUnavailableError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class QueueTimeoutError(ServiceUnavailableError):
    """A queued request waited longer than the queue timeout."""

    def __init__(self, waited_seconds: float):
        super().__init__(
            "Request timed out in queue",
            {"waited_ms": int(round(waited_seconds * 1000))},
        )


class AdmissionClosedError(ServiceUnavailableError):
    """The controller is shutting down and no longer admits requests."""

    def __init__(self):
        super().__init__("Service is shutting down")


class EntryState(str, Enum):
    WAITING = "waiting"
    ADMITTED = "admitted"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(eq=False)
class QueueEntry:
    """A request waiting for an admission slot."""

    future: "asyncio.Future[None]"
    enqueued_at: float
    position: int
    state: EntryState = EntryState.WAITING
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def waiting(self) -> bool:
        return self.state is EntryState.WAITING

    def transition(self, state: EntryState) -> bool:
        """Leave WAITING for ``state``. Returns False if already settled."""
        if self.state is not EntryState.WAITING:
            return False
        self.state = state
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        return True


@dataclass(frozen=True)
class AdmissionTicket:
    """Proof of admission, with queue diagnostics for queued requests."""

    queued: bool = False
    position: int = 0
    wait_seconds: float = 0.0

    @property
    def wait_ms(self) -> int:
        return int(round(self.wait_seconds * 1000))

    def headers(self) -> Dict[str, str]:
        if not self.queued:
            return {}
        return {
            "X-Queue-Position": str(self.position),
            "X-Queue-Wait-Time": str(self.wait_ms),
        }


class AdmissionController:
    """Bounded concurrency with an optional FIFO wait queue."""

    def __init__(
        self,
        *,
        max_concurrent: int = 1000,
        queue_timeout: float = 30.0,
        enabled: bool = False,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if queue_timeout <= 0:
            raise ValueError("queue_timeout must be positive")

        self.max_concurrent = max_concurrent
        self.queue_timeout = queue_timeout
        self.enabled = enabled
        self.metrics = metrics
        self.logger = get_logger("catalog.admission")
        self._clock = clock
        self._active = 0
        self._queue: Deque[QueueEntry] = deque()
        self._closed = False

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def queue_depth(self) -> int:
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> AdmissionTicket:
        """
        Wait for an admission slot.

        Raises QueueTimeoutError if the request waits past the queue
        timeout and AdmissionClosedError once the controller is shut down.
        """
        if self._closed:
            self._record_event("rejected")
            raise AdmissionClosedError()

        if not self.enabled or (self._active < self.max_concurrent and not self._queue):
            self._active += 1
            self._record_event("admitted")
            self._update_gauges()
            return AdmissionTicket()

        loop = asyncio.get_running_loop()
        entry = QueueEntry(
            future=loop.create_future(),
            enqueued_at=self._clock(),
            position=len(self._queue) + 1,
        )
        self._queue.append(entry)
        entry.timer = loop.call_later(self.queue_timeout, self._expire, entry)
        self._record_event("queued")
        self._update_gauges()
        self.logger.info(
            "Request queued",
            position=entry.position,
            active=self._active,
            max_concurrent=self.max_concurrent,
        )

        try:
            await entry.future
        except asyncio.CancelledError:
            if entry.transition(EntryState.CANCELLED):
                self._discard(entry)
                self._record_event("cancelled")
            elif entry.state is EntryState.ADMITTED:
                # Promoted just before the caller went away; hand the slot on.
                self.release()
            raise

        waited = self._clock() - entry.enqueued_at
        if self.metrics:
            self.metrics.observe_histogram("admission_wait_seconds", waited)
        return AdmissionTicket(queued=True, position=entry.position, wait_seconds=waited)

    def release(self) -> None:
        """Free one slot and promote the next live queued request, if any."""
        if self._active > 0:
            self._active -= 1
        self._drain()
        self._update_gauges()

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[AdmissionTicket]:
        ticket = await self.acquire()
        try:
            yield ticket
        finally:
            self.release()

    def shutdown(self) -> int:
        """Reject all queued requests and refuse new ones. Returns the number rejected."""
        self._closed = True
        rejected = 0
        while self._queue:
            entry = self._queue.popleft()
            if entry.transition(EntryState.REJECTED):
                entry.future.set_exception(AdmissionClosedError())
                rejected += 1
        if rejected:
            self._record_event("rejected", rejected)
            self.logger.warning("Rejected queued requests at shutdown", count=rejected)
        self._update_gauges()
        return rejected

    def snapshot(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "active": self._active,
            "queued": len(self._queue),
            "max_concurrent": self.max_concurrent,
            "queue_timeout_seconds": self.queue_timeout,
            "closed": self._closed,
        }

    def _drain(self) -> None:
        while self._queue and self._active < self.max_concurrent:
            entry = self._queue.popleft()
            if not entry.waiting:
                continue

            waited = self._clock() - entry.enqueued_at
            if waited > self.queue_timeout:
                self._time_out(entry, waited)
                continue

            entry.transition(EntryState.ADMITTED)
            self._active += 1
            entry.future.set_result(None)
            self._record_event("promoted")
            self.logger.debug("Queued request admitted", position=entry.position, waited_ms=int(waited * 1000))
            return

    def _expire(self, entry: QueueEntry) -> None:
        if not entry.waiting:
            return
        self._discard(entry)
        self._time_out(entry, self._clock() - entry.enqueued_at)
        self._update_gauges()

    def _time_out(self, entry: QueueEntry, waited: float) -> None:
        if entry.transition(EntryState.TIMED_OUT):
            entry.future.set_exception(QueueTimeoutError(waited))
            self._record_event("timed_out")
            self.logger.warning("Queued request timed out", position=entry.position, waited_ms=int(waited * 1000))

    def _discard(self, entry: QueueEntry) -> None:
        try:
            self._queue.remove(entry)
        except ValueError:
            pass

    def _record_event(self, event: str, count: int = 1) -> None:
        if not self.metrics:
            return
        for _ in range(count):
            self.metrics.increment_counter("admission_events_total", event=event)

    def _update_gauges(self) -> None:
        if not self.metrics:
            return
        self.metrics.set_gauge("admission_active_requests", self._active)
        self.metrics.set_gauge("admission_queue_depth", len(self._queue))
