"""Click worker pool tests: draining, failure isolation and shutdown."""

import asyncio
import logging

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.click_queue import ClickQueue
from shortener.click_workers import ClickWorkerPool, to_click
from shortener.models import Click, Link
from shortener.schemas import ClickEvent


async def _count_clicks(session_factory: async_sessionmaker[AsyncSession], link_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(Click.id)).where(Click.link_id == link_id))
        return int(result.scalar_one())


def test_worker_count_must_be_positive(session_factory) -> None:
    with pytest.raises(ValueError):
        ClickWorkerPool(ClickQueue(capacity=1), session_factory, worker_count=0)


def test_to_click_truncates_long_fields() -> None:
    click = to_click(ClickEvent(link_id=1, user_agent="x" * 500, ip_address="1" * 80))
    assert len(click.user_agent) == 255
    assert len(click.ip_address) == 50
    assert click.link_id == 1


@pytest.mark.asyncio
async def test_all_events_below_capacity_are_persisted(
    session_factory: async_sessionmaker[AsyncSession], link: Link
) -> None:
    queue = ClickQueue(capacity=50)
    pool = ClickWorkerPool(queue, session_factory, worker_count=4)
    pool.start()

    for i in range(20):
        assert queue.try_enqueue(ClickEvent(link_id=link.id, user_agent=f"agent-{i}", ip_address="10.0.0.1"))

    await pool.stop(grace_seconds=10)

    assert queue.dropped == 0
    assert pool.persisted == 20
    assert await _count_clicks(session_factory, link.id) == 20


@pytest.mark.asyncio
async def test_persist_failure_does_not_stop_worker(
    session_factory: async_sessionmaker[AsyncSession], link: Link, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.ERROR, logger="shortener.click_workers")
    queue = ClickQueue(capacity=10)
    pool = ClickWorkerPool(queue, session_factory, worker_count=1)
    pool.start()

    # link 9999 does not exist: the foreign key rejects the insert
    queue.try_enqueue(ClickEvent(link_id=9999, user_agent="broken-agent", ip_address="192.0.2.1"))
    queue.try_enqueue(ClickEvent(link_id=link.id, user_agent="ok", ip_address="10.0.0.1"))
    queue.try_enqueue(ClickEvent(link_id=link.id, user_agent="ok", ip_address="10.0.0.2"))

    await asyncio.wait_for(queue.join(), timeout=10)

    assert pool.failed == 1
    assert pool.persisted == 2
    assert pool.running
    assert await _count_clicks(session_factory, link.id) == 2

    failure_logs = [r.getMessage() for r in caplog.records if "failed to record click" in r.getMessage()]
    assert len(failure_logs) == 1
    assert "9999" in failure_logs[0]
    assert "broken-agent" in failure_logs[0]
    assert "192.0.2.1" in failure_logs[0]

    await pool.stop(grace_seconds=1)


@pytest.mark.asyncio
async def test_stop_closes_queue_and_stops_workers(session_factory: async_sessionmaker[AsyncSession]) -> None:
    queue = ClickQueue(capacity=10)
    pool = ClickWorkerPool(queue, session_factory, worker_count=3)
    pool.start()
    assert pool.running

    await pool.stop(grace_seconds=1)

    assert not pool.running
    assert queue.closed
    assert queue.try_enqueue(ClickEvent(link_id=1)) is False


@pytest.mark.asyncio
async def test_stop_abandons_work_after_grace_period(
    session_factory: async_sessionmaker[AsyncSession], monkeypatch: pytest.MonkeyPatch
) -> None:
    never = asyncio.Event()

    async def stuck_persist(self, event: ClickEvent) -> None:
        await never.wait()

    monkeypatch.setattr(ClickWorkerPool, "_persist", stuck_persist)
    queue = ClickQueue(capacity=10)
    pool = ClickWorkerPool(queue, session_factory, worker_count=1)
    pool.start()
    queue.try_enqueue(ClickEvent(link_id=1))
    queue.try_enqueue(ClickEvent(link_id=2))
    await asyncio.sleep(0.01)

    await asyncio.wait_for(pool.stop(grace_seconds=0.1), timeout=5)

    assert not pool.running
    assert pool.persisted == 0
    assert queue.size == 1
