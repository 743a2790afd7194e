"""
Tests for the progress broadcaster.

Dependencies: pytest, csv_migrator.application.progress_broadcaster
System role: Progress fan-out verification
"""

import asyncio

import pytest

from csv_migrator.application.progress_broadcaster import ProgressBroadcaster
from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.boundary.db.CRUD.job_crud import job_crud
from csv_migrator.boundary.db.models import JobStatus
from csv_migrator.core.progress import build_progress_event


def _event(job_id="job-1", processed=0, total=100, status="RUNNING"):
    return build_progress_event(job_id, processed, total, status)


class TestProgressBroadcasterEmit:
    """Test delivery to subscribers."""

    @pytest.mark.asyncio
    async def test_emit_should_reach_every_subscriber(self):
        broadcaster = ProgressBroadcaster()
        first, second = broadcaster.subscribe(), broadcaster.subscribe()

        # Act
        delivered = broadcaster.emit(_event(processed=10))

        # Assert
        assert delivered == 2
        assert (await first.get()).percentage == 10
        assert (await second.get()).percentage == 10

    @pytest.mark.asyncio
    async def test_emit_without_subscribers_should_be_noop(self):
        assert ProgressBroadcaster().emit(_event()) == 0

    @pytest.mark.asyncio
    async def test_full_subscriber_should_be_dropped_alone(self):
        """Test a slow observer is detached without affecting the others."""
        broadcaster = ProgressBroadcaster(queue_size=1)
        slow, fast = broadcaster.subscribe(), broadcaster.subscribe()
        broadcaster.emit(_event(processed=10))
        await fast.get()

        # Act
        delivered = broadcaster.emit(_event(processed=20))

        # Assert
        assert delivered == 1
        assert slow.closed is True
        assert broadcaster.subscriber_count == 1
        assert (await fast.get()).percentage == 20

    @pytest.mark.asyncio
    async def test_closed_subscriber_should_stop_receiving(self):
        broadcaster = ProgressBroadcaster()
        subscription = broadcaster.subscribe()

        subscription.close()
        subscription.close()

        assert broadcaster.emit(_event()) == 0
        assert broadcaster.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_late_subscriber_should_not_see_earlier_events(self):
        broadcaster = ProgressBroadcaster()
        broadcaster.emit(_event(processed=10))

        subscription = broadcaster.subscribe()

        assert subscription.pending() == 0


class TestProgressBroadcasterClamp:
    """Test per-job monotonic percentages."""

    @pytest.mark.asyncio
    async def test_lower_percentage_should_be_clamped(self):
        broadcaster = ProgressBroadcaster()
        subscription = broadcaster.subscribe()

        # Act
        broadcaster.emit(_event(processed=60))
        broadcaster.emit(_event(processed=20))

        # Assert
        assert (await subscription.get()).percentage == 60
        assert (await subscription.get()).percentage == 60

    @pytest.mark.asyncio
    async def test_clamp_should_be_per_job(self):
        broadcaster = ProgressBroadcaster()
        subscription = broadcaster.subscribe()

        broadcaster.emit(_event("job-1", processed=60))
        broadcaster.emit(_event("job-2", processed=20))

        await subscription.get()
        assert (await subscription.get()).percentage == 20

    @pytest.mark.asyncio
    async def test_terminal_event_should_reset_high_water(self):
        broadcaster = ProgressBroadcaster()
        subscription = broadcaster.subscribe()

        broadcaster.emit(_event(processed=80))
        broadcaster.emit(_event(processed=80, status="FAILED"))
        broadcaster.emit(_event(processed=0, status="PENDING"))

        events = [await subscription.get() for _ in range(3)]
        assert [event.percentage for event in events] == [80, 80, 0]


class TestProgressBroadcasterPoll:
    """Test re-derivation from the job store."""

    @pytest.mark.asyncio
    async def test_poll_once_should_emit_in_progress_jobs(self, session_factory):
        queue = JobQueue(session_factory)
        waiting = await queue.add("a.csv", "/data/a.csv", "a" * 64)
        running = await queue.add("b.csv", "/data/b.csv", "b" * 64)
        done = await queue.add("c.csv", "/data/c.csv", "c" * 64)
        async with session_factory() as session:
            await job_crud.update_by_id(session, running.id, total_rows=200, processed_rows=50)
            await job_crud.update_by_id(session, done.id, status=JobStatus.COMPLETED)
            await session.commit()
        broadcaster = ProgressBroadcaster(session_factory)
        subscription = broadcaster.subscribe()

        # Act
        count = await broadcaster.poll_once()

        # Assert
        assert count == 2
        events = {event.job_id: event for event in [await subscription.get(), await subscription.get()]}
        assert events[str(running.id)].percentage == 25
        assert events[str(waiting.id)].status == "PENDING"

    @pytest.mark.asyncio
    async def test_poll_once_without_store_should_be_noop(self):
        assert await ProgressBroadcaster().poll_once() == 0

    @pytest.mark.asyncio
    async def test_start_and_stop_should_detach_subscribers(self, session_factory):
        broadcaster = ProgressBroadcaster(session_factory, poll_interval=0.01)
        subscription = broadcaster.subscribe()

        # Act
        broadcaster.start()
        await asyncio.sleep(0.05)
        await broadcaster.stop()

        # Assert
        assert subscription.closed is True
        assert broadcaster.subscriber_count == 0
