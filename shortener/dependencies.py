"""Dependency injection with a shared service manager.

This module owns every long-lived resource of the running service (engine,
session factory, click queue, click worker pool, URL monitor, logger) and
exposes them to the API endpoints through FastAPI dependencies, so nothing
is created per request except the database session.
"""

import logging
import time
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortener.click_queue import ClickQueue
from shortener.click_workers import ClickWorkerPool
from shortener.config import Settings, get_settings
from shortener.database import build_engine, build_session_factory, close_db, init_db
from shortener.link_service import LinkService
from shortener.monitor import UrlMonitor

LOGGER_NAME = "urlshortener"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stream handler to the root logger and the service logger."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    return logger


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Holds shared resources for the lifetime of the process.

    ``initialize()`` builds everything, ``start()`` launches the background
    tasks (click workers, URL monitor) and ``cleanup()`` shuts them down in
    the order the click pipeline needs: stop producers, close the queue,
    drain with a grace period, dispose the engine.
    """

    def __init__(self) -> None:
        self._initialized = False
        self._started = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, settings: Settings | None = None) -> None:
        """Initialize shared resources once."""
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = setup_logging(self.settings.log_level)
        self.engine: AsyncEngine = build_engine(self.settings.database)
        self.session_factory: async_sessionmaker[AsyncSession] = build_session_factory(self.engine)
        await init_db(self.engine)

        analytics = self.settings.analytics
        self.click_queue = ClickQueue(capacity=analytics.buffer_size)
        self.click_pool = ClickWorkerPool(
            self.click_queue,
            self.session_factory,
            worker_count=analytics.worker_count,
        )

        monitor = self.settings.monitor
        self.url_monitor = UrlMonitor(
            self.session_factory,
            interval_seconds=monitor.interval_seconds,
            probe_timeout=monitor.probe_timeout_seconds,
            max_concurrent_probes=monitor.max_concurrent_probes,
        )
        self._initialized = True
        self.logger.info(
            f"Configuration loaded: port={self.settings.server.port}, "
            f"database={self.settings.database.sqlalchemy_url}, "
            f"click buffer={analytics.buffer_size}, click workers={analytics.worker_count}, "
            f"monitor interval={monitor.interval_minutes}min"
        )

    def start(self) -> None:
        """Start click workers and, if enabled, the URL monitor."""
        if self._started:
            return
        self.click_pool.start()
        if self.settings.monitor.enabled:
            self.url_monitor.start()
        self._started = True

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await self.url_monitor.stop()
        await self.click_pool.stop(self.settings.analytics.shutdown_grace_seconds)
        if self.click_queue.dropped:
            self.logger.warning(f"{self.click_queue.dropped} click event(s) were dropped while running")
        await close_db(self.engine)
        self._initialized = False
        self._started = False


# Process-wide instance used by the FastAPI app
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Request context with tracking and shared resource access.

    Attributes:
        database: Async database session (only per-request resource)
        service_manager: Service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())
    tags: list[str] = field(default_factory=list)

    @property
    def click_queue(self) -> ClickQueue:
        return self.service_manager.click_queue

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger carrying this request's identifiers."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_db(
    manager: ServiceManager = Depends(get_service_manager),
) -> AsyncGenerator[AsyncSession, None]:
    async with manager.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")

    return RequestContext(
        database=db,
        service_manager=manager,
        user_agent=user_agent,
        client_ip=client_ip,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkService:
    return LinkService.from_context(ctx)
