"""Link Service Layer - Core Business Logic

This module provides the service layer for link creation, lookup and statistics,
including random short-code generation with bounded collision retry.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────┐
    │                    Service Layer                         │
    │  ┌─────────────────┐        ┌─────────────────────────┐  │
    │  │  Link Service   │        │   Code Generator        │  │
    │  │                 │        │                         │  │
    │  │ • Create links  │───────▶│ • 62-symbol alphabet    │  │
    │  │ • Lookup links  │        │ • CSPRNG, no modulo bias│  │
    │  │ • Link stats    │        │ • Fixed length (6)      │  │
    │  └────────┬────────┘        └─────────────────────────┘  │
    └───────────┼──────────────────────────────────────────────┘
                ▼
    ┌─────────────────────┐
    │   Link Store        │
    │   (LinkRepository)  │
    └─────────────────────┘

Link Creation Flow
------------------
::
    ┌─────────────┐
    │ create_link │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Generate     │◀──────────────┐
    │ candidate    │               │
    └──────┬──────┘               │
           ▼                      │ collision
    ┌─────────────┐   exists      │ (attempt < 5)
    │ Exists in    │──────────────┘
    │ Link Store?  │
    └──────┬──────┘
           │ absent
           ▼
    ┌─────────────┐  IntegrityError (race) → treated as collision
    │ INSERT link  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return Link  │
    └─────────────┘

    5 collisions → ShortCodeGenerationFailed
    any other DB error → StorageError (no retry)

Usage Examples
=============

```python
service = LinkService(LinkRepository(session))
link = await service.create_link("https://example.com/some/long/path")
link, clicks = await service.get_link_stats(link.short_code)
```
"""

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from nanoid import generate
from prometheus_client import Counter, Histogram
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shortener.enums import RequestStatus
from shortener.errors import ShortCodeGenerationFailed, ShortCodeNotFound, StorageError
from shortener.models import Link
from shortener.repository import LinkRepository

if TYPE_CHECKING:
    from shortener.dependencies import RequestContext

__all__ = [
    "ALPHABET",
    "MAX_GENERATION_ATTEMPTS",
    "SHORT_CODE_LENGTH",
    "LinkService",
    "generate_short_code",
]


# ============================================================================
# CONSTANTS
# ============================================================================

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SHORT_CODE_LENGTH = 6
MAX_GENERATION_ATTEMPTS = 5


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shortener_link_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_CREATION_DURATION = Histogram(
    "shortener_link_creation_duration_seconds",
    "Time taken to create links",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
SHORT_CODE_COLLISIONS_TOTAL = Counter(
    "shortener_short_code_collisions_total",
    "Generated short codes that already existed in the link store",
)
LINK_LOOKUP_REQUESTS_TOTAL = Counter(
    "shortener_link_lookup_requests_total",
    "Total link lookups by short code",
    ["status"],
)


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    """Return ``length`` characters drawn uniformly from ``ALPHABET``.

    nanoid reads ``os.urandom`` and masks each byte to the next power of two,
    discarding draws outside the alphabet, so every symbol is equally likely.
    """
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================

class LinkService:
    """Creates, resolves and reports on short links.

    The service holds no state of its own beyond the repository it was given,
    so one instance per request (or per CLI invocation) is the norm.

    Example:
        >>> service = LinkService.from_context(ctx)
        >>> link = await service.create_link("https://example.com")
        >>> print(f"Shortened: {link.short_code}")
    """

    def __init__(self, links: LinkRepository, logger: logging.Logger | logging.LoggerAdapter | None = None):
        self._links = links
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        """Factory method to create the service from a RequestContext."""
        return cls(LinkRepository(ctx.database), ctx.logger)

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_link(self, long_url: str) -> Link:
        """Persist ``long_url`` under a freshly generated, unique short code.

        ``long_url`` must already be validated by the caller.

        Raises:
            ShortCodeGenerationFailed: every attempt collided with an existing code.
            StorageError: the link store failed for any reason other than a collision.
        """
        start_time = time.perf_counter()
        try:
            link = await self._create_with_retry(long_url)
        except ShortCodeGenerationFailed:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.COLLISION_EXHAUSTED).inc()
            raise
        except StorageError:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise
        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Link created: {link.short_code} -> {link.long_url}")
        return link

    async def create_links(self, long_urls: Sequence[str]) -> list[Link | Exception]:
        """Create one link per URL, in order.

        Failures do not stop the batch; the exception takes the place of the
        link in the result list.
        """
        results: list[Link | Exception] = []
        for long_url in long_urls:
            try:
                results.append(await self.create_link(long_url))
            except (ShortCodeGenerationFailed, StorageError) as exc:
                results.append(exc)
        return results

    async def get_link_by_short_code(self, short_code: str) -> Link:
        """Exact-match lookup.

        Raises:
            ShortCodeNotFound: no link has this code.
            StorageError: the link store failed.
        """
        try:
            link = await self._links.find_by_short_code(short_code)
        except SQLAlchemyError as exc:
            LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link lookup failed for {short_code}: {exc}")
            raise StorageError("find_by_short_code", str(exc)) from exc

        if link is None:
            LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise ShortCodeNotFound(short_code)

        LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return link

    async def get_link_stats(self, short_code: str) -> tuple[Link, int]:
        """Return the link and the number of clicks recorded against it."""
        link = await self.get_link_by_short_code(short_code)
        try:
            total_clicks = await self._links.count_clicks_by_link_id(link.id)
        except SQLAlchemyError as exc:
            self._logger.error(f"Click count failed for {short_code} (link {link.id}): {exc}")
            raise StorageError("count_clicks_by_link_id", str(exc)) from exc
        return link, total_clicks

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _create_with_retry(self, long_url: str) -> Link:
        for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
            short_code = generate_short_code(SHORT_CODE_LENGTH)

            try:
                taken = await self._links.exists(short_code)
            except SQLAlchemyError as exc:
                self._logger.error(f"Existence check failed for {short_code}: {exc}")
                raise StorageError("find_by_short_code", str(exc)) from exc

            if not taken:
                link = await self._insert(short_code, long_url)
                if link is not None:
                    return link

            SHORT_CODE_COLLISIONS_TOTAL.inc()
            self._logger.warning(
                f"Short code '{short_code}' already exists, retrying generation "
                f"({attempt}/{MAX_GENERATION_ATTEMPTS})"
            )

        raise ShortCodeGenerationFailed(MAX_GENERATION_ATTEMPTS)

    async def _insert(self, short_code: str, long_url: str) -> Link | None:
        """Insert the link; ``None`` means another writer took the code first."""
        try:
            return await self._links.create(Link(short_code=short_code, long_url=long_url))
        except IntegrityError:
            await self._links.rollback()
            return None
        except SQLAlchemyError as exc:
            await self._links.rollback()
            self._logger.error(f"Link insert failed for {short_code}: {exc}")
            raise StorageError("create", str(exc)) from exc
