"""Bounded, drop-on-full queue of click events.

The redirect path is the producer and must never wait on analytics, so the
only way in is :meth:`ClickQueue.try_enqueue`, which returns immediately.
When the buffer is full the event is discarded and counted; losing clicks
under load is preferred over slowing redirects down.

::

    redirect ──try_enqueue()──▶ [ e1 | e2 | ... | eN ] ──dequeue()──▶ worker 1..K
                 │ full/closed
                 ▼
              dropped += 1, warning logged, returns False
"""

import asyncio
import logging

from prometheus_client import Counter, Gauge

from shortener.schemas import ClickEvent

__all__ = ["ClickQueue"]

logger = logging.getLogger(__name__)

CLICK_EVENTS_ENQUEUED_TOTAL = Counter(
    "shortener_click_events_enqueued_total",
    "Click events accepted into the in-memory queue",
)
CLICK_EVENTS_DROPPED_TOTAL = Counter(
    "shortener_click_events_dropped_total",
    "Click events discarded because the queue was full or closed",
    ["reason"],
)
CLICK_QUEUE_DEPTH = Gauge(
    "shortener_click_queue_depth",
    "Click events currently waiting in the in-memory queue",
)


class ClickQueue:
    """Fixed-capacity FIFO shared by one producer side and many consumers."""

    def __init__(self, capacity: int = 1000):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._queue: asyncio.Queue[ClickEvent] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self._enqueued = 0
        self._dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def enqueued(self) -> int:
        return self._enqueued

    @property
    def dropped(self) -> int:
        return self._dropped

    def try_enqueue(self, event: ClickEvent) -> bool:
        """Offer ``event`` without waiting. ``False`` means it was dropped."""
        if self._closed:
            self._record_drop(event, "closed")
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._record_drop(event, "full")
            return False

        self._enqueued += 1
        CLICK_EVENTS_ENQUEUED_TOTAL.inc()
        CLICK_QUEUE_DEPTH.set(self._queue.qsize())
        return True

    async def dequeue(self) -> ClickEvent:
        """Wait for the next event. Callers must pair this with :meth:`task_done`."""
        event = await self._queue.get()
        CLICK_QUEUE_DEPTH.set(self._queue.qsize())
        return event

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every accepted event has been dequeued and marked done."""
        await self._queue.join()

    def close(self) -> None:
        """Stop accepting events. Events already queued are still delivered."""
        if not self._closed:
            self._closed = True
            logger.info(f"Click queue closed with {self.size} event(s) pending")

    def _record_drop(self, event: ClickEvent, reason: str) -> None:
        self._dropped += 1
        CLICK_EVENTS_DROPPED_TOTAL.labels(reason=reason).inc()
        logger.warning(
            f"Click queue is {reason}, dropping click event for link {event.link_id} "
            f"(dropped so far: {self._dropped})"
        )
