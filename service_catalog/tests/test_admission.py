"""
Unit tests for the admission controller.
"""

import asyncio

import pytest

from service_catalog.app.admission.controller import (
    AdmissionClosedError,
    AdmissionController,
    AdmissionTicket,
    EntryState,
    QueueEntry,
    QueueTimeoutError,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


async def settle():
    """Let queued tasks run up to their next suspension point."""
    for _ in range(3):
        await asyncio.sleep(0)


class TestAdmissionController:
    """Test cases for admission and queueing."""

    @pytest.mark.asyncio
    async def test_disabled_queue_admits_everything(self):
        controller = AdmissionController(max_concurrent=1, enabled=False)
        tickets = [await controller.acquire() for _ in range(3)]
        assert controller.active_count == 3
        assert controller.queue_depth == 0
        assert all(ticket.headers() == {} for ticket in tickets)

    @pytest.mark.asyncio
    async def test_request_over_capacity_waits_for_release(self):
        controller = AdmissionController(max_concurrent=2, enabled=True)
        await controller.acquire()
        await controller.acquire()

        waiter = asyncio.create_task(controller.acquire())
        await settle()
        assert not waiter.done()
        assert controller.queue_depth == 1
        assert controller.active_count == 2

        controller.release()
        ticket = await asyncio.wait_for(waiter, timeout=1)

        assert ticket.queued
        assert ticket.position == 1
        assert controller.active_count == 2
        assert controller.queue_depth == 0

    @pytest.mark.asyncio
    async def test_one_release_promotes_exactly_the_oldest(self):
        controller = AdmissionController(max_concurrent=1, enabled=True)
        await controller.acquire()

        waiters = []
        for _ in range(3):
            waiters.append(asyncio.create_task(controller.acquire()))
            await settle()

        controller.release()
        first = await asyncio.wait_for(waiters[0], timeout=1)
        await settle()

        assert first.position == 1
        assert not waiters[1].done()
        assert not waiters[2].done()
        assert controller.queue_depth == 2

        controller.release()
        second = await asyncio.wait_for(waiters[1], timeout=1)
        assert second.position == 2

        controller.shutdown()
        with pytest.raises(AdmissionClosedError):
            await waiters[2]

    @pytest.mark.asyncio
    async def test_queued_request_times_out(self):
        controller = AdmissionController(max_concurrent=1, queue_timeout=0.05, enabled=True)
        await controller.acquire()

        waiter = asyncio.create_task(controller.acquire())
        with pytest.raises(QueueTimeoutError) as exc_info:
            await asyncio.wait_for(waiter, timeout=1)

        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Request timed out in queue"
        assert controller.queue_depth == 0
        assert controller.active_count == 1

    @pytest.mark.asyncio
    async def test_expired_head_is_skipped_on_release(self):
        clock = FakeClock()
        controller = AdmissionController(max_concurrent=1, queue_timeout=30, enabled=True, clock=clock)
        await controller.acquire()

        stale = asyncio.create_task(controller.acquire())
        await settle()
        clock.now = 20.0
        fresh = asyncio.create_task(controller.acquire())
        await settle()

        clock.now = 31.0
        controller.release()

        with pytest.raises(QueueTimeoutError):
            await stale
        ticket = await asyncio.wait_for(fresh, timeout=1)
        assert ticket.headers() == {"X-Queue-Position": "2", "X-Queue-Wait-Time": "11000"}
        assert controller.active_count == 1
        assert controller.queue_depth == 0

    @pytest.mark.asyncio
    async def test_shutdown_rejects_queue_and_new_requests(self):
        controller = AdmissionController(max_concurrent=1, enabled=True)
        await controller.acquire()
        waiters = [asyncio.create_task(controller.acquire()) for _ in range(2)]
        await settle()

        assert controller.shutdown() == 2

        for waiter in waiters:
            with pytest.raises(AdmissionClosedError):
                await waiter
        with pytest.raises(AdmissionClosedError):
            await controller.acquire()
        assert controller.queue_depth == 0
        assert controller.snapshot()["closed"] is True

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_queue(self):
        controller = AdmissionController(max_concurrent=1, enabled=True)
        await controller.acquire()
        waiter = asyncio.create_task(controller.acquire())
        await settle()

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert controller.queue_depth == 0
        controller.release()
        assert controller.active_count == 0

    @pytest.mark.asyncio
    async def test_promotion_cancels_timeout(self):
        controller = AdmissionController(max_concurrent=1, queue_timeout=0.05, enabled=True)
        await controller.acquire()
        waiter = asyncio.create_task(controller.acquire())
        await settle()
        entry = controller._queue[0]

        controller.release()
        await asyncio.wait_for(waiter, timeout=1)
        await asyncio.sleep(0.1)

        assert entry.state is EntryState.ADMITTED
        assert entry.timer is None
        assert controller.active_count == 1

    @pytest.mark.asyncio
    async def test_admit_context_releases_on_error(self):
        controller = AdmissionController(max_concurrent=1, enabled=True)
        with pytest.raises(RuntimeError):
            async with controller.admit():
                assert controller.active_count == 1
                raise RuntimeError("handler failed")
        assert controller.active_count == 0

    @pytest.mark.asyncio
    async def test_release_never_goes_negative(self):
        controller = AdmissionController(max_concurrent=1, enabled=True)
        controller.release()
        assert controller.active_count == 0

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            AdmissionController(max_concurrent=0)
        with pytest.raises(ValueError):
            AdmissionController(queue_timeout=0)


class TestQueueEntry:
    """Test cases for the single authoritative state transition."""

    @pytest.mark.asyncio
    async def test_first_transition_wins(self):
        entry = QueueEntry(future=asyncio.get_running_loop().create_future(), enqueued_at=0.0, position=1)
        assert entry.transition(EntryState.ADMITTED) is True
        assert entry.transition(EntryState.TIMED_OUT) is False
        assert entry.state is EntryState.ADMITTED

    def test_ticket_headers(self):
        assert AdmissionTicket().headers() == {}
        ticket = AdmissionTicket(queued=True, position=3, wait_seconds=0.2504)
        assert ticket.headers() == {"X-Queue-Position": "3", "X-Queue-Wait-Time": "250"}
