"""Shared pytest fixtures for API, database and click pipeline tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortener.config import AnalyticsSettings, DatabaseSettings, MonitorSettings, Settings
from shortener.database import build_engine, build_session_factory, close_db, init_db
from shortener.dependencies import ServiceManager, get_service_manager
from shortener.main import app
from shortener.models import Link


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database=DatabaseSettings(name=str(tmp_path / "test.db")),
        analytics=AnalyticsSettings(buffer_size=100, worker_count=3, shutdown_grace_seconds=2),
        monitor=MonitorSettings(enabled=False),
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(settings.database)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def link(db_session: AsyncSession) -> Link:
    link = Link(short_code="abc123", long_url="https://www.example.com")
    db_session.add(link)
    await db_session.commit()
    await db_session.refresh(link)
    return link


@pytest_asyncio.fixture
async def manager(settings: Settings) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager()
    await manager.initialize(settings)
    manager.start()
    yield manager
    await manager.cleanup()


@pytest_asyncio.fixture
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_service_manager() -> ServiceManager:
        return manager

    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
