"""Periodic reachability monitor for link destinations.

Every tick the monitor loads all links, sends a ``HEAD`` to each ``long_url``
and compares the result with the last state it saw for that link:

::

    UNKNOWN ──probe──▶ ACCESSIBLE ◀──probe──▶ INACCESSIBLE
       │                                           ▲
       └───────────────────probe───────────────────┘

    first observation      → record it, log the initial state
    later, same state      → nothing
    later, different state → log a change notification

State lives in memory only and is lost on restart. A 200-399 response is
accessible; any other status, a transport error or a timeout is not.
"""

import asyncio
import logging

import httpx
from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.enums import LinkState
from shortener.errors import ProbeFailure
from shortener.models import Link
from shortener.repository import LinkRepository

__all__ = ["UrlMonitor"]

logger = logging.getLogger(__name__)

MONITOR_PROBES_TOTAL = Counter(
    "shortener_monitor_probes_total",
    "Destination probes issued by the URL monitor",
    ["state"],
)
MONITOR_STATE_CHANGES_TOTAL = Counter(
    "shortener_monitor_state_changes_total",
    "Link destination state changes detected by the URL monitor",
)


class UrlMonitor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval_seconds: float = 300.0,
        probe_timeout: float = 5.0,
        max_concurrent_probes: int = 10,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._session_factory = session_factory
        self._interval_seconds = interval_seconds
        self._probe_timeout = probe_timeout
        self._semaphore = asyncio.Semaphore(max_concurrent_probes)
        self._client = http_client
        self._owns_client = http_client is None
        self._known_states: dict[int, LinkState] = {}
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    def state_of(self, link_id: int) -> LinkState:
        return self._known_states.get(link_id, LinkState.UNKNOWN)

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self.run(), name="url-monitor")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def run(self) -> None:
        """Check immediately, then once per interval until cancelled."""
        logger.info(f"Starting URL monitor with an interval of {self._interval_seconds}s")
        while True:
            try:
                await self.check_urls()
            except Exception:
                logger.exception("URL status verification failed, retrying on the next interval")
            await asyncio.sleep(self._interval_seconds)

    async def check_urls(self) -> None:
        """Run one tick: probe every link and report state changes."""
        logger.info("Starting URL status verification")
        try:
            async with self._session_factory() as session:
                links = await LinkRepository(session).find_all()
        except Exception as exc:
            logger.error(f"Could not load links for monitoring, skipping this tick: {exc}")
            return

        await asyncio.gather(*(self._check_link(link) for link in links))
        logger.info(f"URL status verification completed for {len(links)} link(s)")

    async def _check_link(self, link: Link) -> None:
        async with self._semaphore:
            accessible = await self.is_url_accessible(link.long_url)
        current = LinkState.from_probe(accessible)
        MONITOR_PROBES_TOTAL.labels(state=current).inc()

        async with self._lock:
            previous = self._known_states.get(link.id, LinkState.UNKNOWN)
            self._known_states[link.id] = current

        if previous is LinkState.UNKNOWN:
            logger.info(f"Initial state for link {link.short_code} ({link.long_url}): {current}")
        elif previous is not current:
            MONITOR_STATE_CHANGES_TOTAL.inc()
            logger.warning(
                f"[NOTIFICATION] Link {link.short_code} ({link.long_url}) changed from {previous} to {current}"
            )

    async def is_url_accessible(self, url: str) -> bool:
        try:
            # overall deadline; the httpx timeout only bounds each connect/read step
            async with asyncio.timeout(self._probe_timeout):
                response = await self._get_client().head(url, timeout=self._probe_timeout)
        except TimeoutError:
            logger.warning(str(ProbeFailure(url, f"no response within {self._probe_timeout}s")))
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(str(ProbeFailure(url, f"{type(exc).__name__}: {exc}")))
            return False
        return 200 <= response.status_code < 400

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=False)
        return self._client
