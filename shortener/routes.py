"""FastAPI route definitions for the URL shortener REST API.

This module provides all HTTP endpoints with dependency injection, mapping of
service errors to status codes, and the producer side of the click pipeline.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /links
        ├─ LinkCreate (request body)
        └─ LinkResponse (201) or 422/500/503

    GET  /links/:short_code/stats
        └─ LinkStats (200) or 404

    GET  /:short_code
        └─ 302 Redirect or 404

Redirect Flow Diagram
=====================
::
    ┌─────────────┐
    │ GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐   ShortCodeNotFound
    │ Link lookup │──────────────────────▶ 404
    └──────┬──────┘
           ▼
    ┌─────────────┐   queue full
    │ try_enqueue │──────────────────────▶ drop + warn (redirect anyway)
    │ ClickEvent  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ 302 to      │
    │ long_url    │
    └─────────────┘

Key Behaviours
===============
- The redirect never waits for click persistence.
- ShortCodeNotFound → 404, ShortCodeGenerationFailed → 503, StorageError → 500.
- Route order matters: ``/health`` and ``/links/...`` are matched before ``/{short_code}``.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from shortener.dependencies import RequestContext, get_link_service, get_request_context
from shortener.errors import ShortCodeGenerationFailed, ShortCodeNotFound, StorageError
from shortener.link_service import LinkService
from shortener.schemas import ClickEvent, HealthResponse, LinkCreate, LinkResponse, LinkStats

__all__ = ["router"]

router = APIRouter()

NOT_FOUND_DETAIL = "Short URL not found"


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    return HealthResponse()


@router.post("/links", response_model=LinkResponse, status_code=201, tags=["links"])
async def create_link(
    payload: LinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    ctx.add_tag("link_creation")
    ctx.logger.info(f"Link creation requested: {payload.long_url}")

    try:
        link = await service.create_link(payload.long_url)
    except ShortCodeGenerationFailed as exc:
        ctx.logger.warning(f"Link creation failed: {exc}")
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except StorageError as exc:
        ctx.logger.error(f"Link creation failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to create short link") from exc

    ctx.logger.info(f"Link created: {link.short_code} in {ctx.get_duration():.1f}ms")
    return LinkResponse(
        short_code=link.short_code,
        long_url=link.long_url,
        full_short_url=f"{ctx.settings.server.base_url.rstrip('/')}/{link.short_code}",
    )


@router.get("/links/{short_code}/stats", response_model=LinkStats, tags=["links"])
async def get_link_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkStats:
    try:
        link, total_clicks = await service.get_link_stats(short_code)
    except ShortCodeNotFound as exc:
        ctx.logger.warning(f"Stats not found for short code: {short_code}")
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    except StorageError as exc:
        ctx.logger.error(f"Stats failed for {short_code}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc

    return LinkStats(
        short_code=link.short_code,
        long_url=link.long_url,
        total_clicks=total_clicks,
        created_at=link.created_at,
    )


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_link(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")

    try:
        link = await service.get_link_by_short_code(short_code)
    except ShortCodeNotFound as exc:
        ctx.logger.warning(f"Redirect failed - short code not found: {short_code}")
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    except StorageError as exc:
        ctx.logger.error(f"Redirect failed for {short_code}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc

    ctx.click_queue.try_enqueue(
        ClickEvent(
            link_id=link.id,
            user_agent=ctx.user_agent or "",
            ip_address=ctx.client_ip or "",
        )
    )
    return RedirectResponse(url=link.long_url, status_code=302)
