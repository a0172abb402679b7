"""Click worker pool: drains the click queue into the durable click store.

A fixed number of independent consumer tasks share one :class:`ClickQueue`.
Each task handles one event at a time, start to finish, in its own session:

::

    ┌────────────┐   dequeue   ┌──────────────┐   INSERT   ┌──────────┐
    │ ClickQueue │────────────▶│ click-worker │───────────▶│ clicks   │
    └────────────┘             │   1..N       │            └──────────┘
                               └──────┬───────┘
                                      │ failure
                                      ▼
                         log ClickPersistFailure, move on

Persist failures are logged with the link id, user agent and ip and never
retried or requeued. Shutdown closes the queue, gives in-flight work a grace
period to drain, then cancels whatever is left.
"""

import asyncio
import logging

from prometheus_client import Counter, Histogram
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.click_queue import ClickQueue
from shortener.enums import RequestStatus
from shortener.errors import ClickPersistFailure
from shortener.models import IP_ADDRESS_MAX_LENGTH, USER_AGENT_MAX_LENGTH, Click
from shortener.repository import ClickRepository
from shortener.schemas import ClickEvent

__all__ = ["ClickWorkerPool", "to_click"]

logger = logging.getLogger(__name__)

CLICKS_PROCESSED_TOTAL = Counter(
    "shortener_clicks_processed_total",
    "Click events processed by the worker pool",
    ["status"],
)
CLICK_PERSIST_DURATION = Histogram(
    "shortener_click_persist_duration_seconds",
    "Time taken to persist one click",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)


def to_click(event: ClickEvent) -> Click:
    return Click(
        link_id=event.link_id,
        timestamp=event.timestamp,
        user_agent=event.user_agent[:USER_AGENT_MAX_LENGTH],
        ip_address=event.ip_address[:IP_ADDRESS_MAX_LENGTH],
    )


class ClickWorkerPool:
    def __init__(
        self,
        queue: ClickQueue,
        session_factory: async_sessionmaker[AsyncSession],
        worker_count: int = 5,
    ):
        if worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {worker_count}")
        self._queue = queue
        self._session_factory = session_factory
        self._worker_count = worker_count
        self._tasks: list[asyncio.Task] = []
        self._persisted = 0
        self._failed = 0

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    @property
    def persisted(self) -> int:
        return self._persisted

    @property
    def failed(self) -> int:
        return self._failed

    def start(self) -> None:
        """Start the workers. Calling it twice is a no-op."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._run(worker_id), name=f"click-worker-{worker_id}")
            for worker_id in range(1, self._worker_count + 1)
        ]
        logger.info(
            f"{self._worker_count} click worker(s) started on a queue of capacity {self._queue.capacity}"
        )

    async def stop(self, grace_seconds: float = 5.0) -> None:
        """Close the queue, wait up to ``grace_seconds`` for it to drain, then cancel the workers."""
        self._queue.close()
        if not self._tasks:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Click workers did not drain within {grace_seconds}s, "
                f"abandoning {self._queue.size} queued event(s)"
            )

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info(f"Click workers stopped ({self._persisted} persisted, {self._failed} failed)")

    async def _run(self, worker_id: int) -> None:
        logger.debug(f"click-worker-{worker_id} waiting for events")
        while True:
            event = await self._queue.dequeue()
            try:
                await self._persist(event)
            except ClickPersistFailure as exc:
                self._failed += 1
                CLICKS_PROCESSED_TOTAL.labels(status=RequestStatus.ERROR).inc()
                logger.error(f"click-worker-{worker_id}: {exc}")
            else:
                self._persisted += 1
                CLICKS_PROCESSED_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
            finally:
                self._queue.task_done()

    async def _persist(self, event: ClickEvent) -> None:
        with CLICK_PERSIST_DURATION.time():
            try:
                async with self._session_factory() as session:
                    await ClickRepository(session).create(to_click(event))
            except Exception as exc:
                raise ClickPersistFailure(
                    event.link_id, event.user_agent, event.ip_address, str(exc)
                ) from exc
