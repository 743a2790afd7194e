"""
Progress broadcaster.

Best-effort fan-out of progress events to connected observers. Each observer
holds its own bounded ``Subscription`` queue; an observer that cannot keep
up or whose connection failed is dropped without affecting the others.
There is no replay: an observer only sees events emitted after it
subscribed. A background poll re-derives progress from the job store for
all waiting and running jobs, so observers converge even after missed events.

Dependencies: asyncio, sqlalchemy, csv_migrator.boundary.db.CRUD, csv_migrator.core.progress
System role: Real-time progress channel for WebSocket clients
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from csv_migrator.boundary.db.CRUD.job_crud import job_crud
from csv_migrator.boundary.db.models.job_model import TERMINAL_STATUSES
from csv_migrator.core.progress import build_progress_event
from csv_migrator.models.progress import ProgressEvent

logger = logging.getLogger(__name__)

_TERMINAL_VALUES = frozenset(status.value for status in TERMINAL_STATUSES)


class Subscription:
    """One observer's handle on the broadcast channel."""

    def __init__(self, broadcaster: "ProgressBroadcaster", maxsize: int) -> None:
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def offer(self, event: ProgressEvent) -> bool:
        """Queue an event without waiting. False when the observer is full or closed."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> ProgressEvent:
        """Wait for the next event."""
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Detach from the broadcaster. Idempotent."""
        if not self.closed:
            self.closed = True
            self._broadcaster.unsubscribe(self)


class ProgressBroadcaster:
    """
    Broadcast channel with independent subscriber handles.

    Percentages are clamped per job so observers never see progress move
    backwards, including across retries that recount skipped chunks.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        poll_interval: float = 5.0,
        queue_size: int = 100,
    ) -> None:
        self._session_factory = session_factory
        self.poll_interval = poll_interval
        self.queue_size = queue_size
        self._subscribers: set[Subscription] = set()
        self._high_water: dict[str, int] = {}
        self._poll_task: asyncio.Task | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a new observer."""
        subscription = Subscription(self, self.queue_size)
        self._subscribers.add(subscription)
        logger.debug(f"{__name__}:subscribe - {len(self._subscribers)} subscribers")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove an observer. Unknown handles are ignored."""
        subscription.closed = True
        self._subscribers.discard(subscription)

    def emit(self, event: ProgressEvent) -> int:
        """
        Deliver an event to every connected observer.

        Args:
            event: Progress event

        Returns:
            int: Number of observers the event reached
        """
        event = self._clamp(event)
        delivered = 0
        for subscription in list(self._subscribers):
            if subscription.offer(event):
                delivered += 1
            else:
                logger.info(f"{__name__}:emit - Dropping unresponsive subscriber")
                self.unsubscribe(subscription)
        return delivered

    def _clamp(self, event: ProgressEvent) -> ProgressEvent:
        previous = self._high_water.get(event.job_id, 0)
        if event.percentage < previous:
            event = event.model_copy(update={"percentage": previous})
        if event.status in _TERMINAL_VALUES:
            self._high_water.pop(event.job_id, None)
        else:
            self._high_water[event.job_id] = event.percentage
        return event

    async def poll_once(self) -> int:
        """
        Re-emit progress for every waiting or running job from durable counters.

        Returns:
            int: Number of jobs re-emitted
        """
        if self._session_factory is None:
            return 0
        async with self._session_factory() as session:
            jobs = await job_crud.get_in_progress(session)
        for job in jobs:
            self.emit(
                build_progress_event(job.id, job.processed_rows, job.total_rows, job.status.value)
            )
        return len(jobs)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            if not self._subscribers:
                continue
            try:
                await self.poll_once()
            except Exception:
                logger.exception(f"{__name__}:_poll_loop - Progress poll failed")

    def start(self) -> None:
        """Start the background progress poll. No-op when running."""
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.create_task(self._poll_loop(), name="progress-poll")

    async def stop(self) -> None:
        """Stop the background poll and detach all observers."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        for subscription in list(self._subscribers):
            self.unsubscribe(subscription)

