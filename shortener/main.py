"""FastAPI application entry point for the URL shortener service.

This module configures and initializes the FastAPI application with middleware,
lifecycle management for the click pipeline and URL monitor, and route registration.

Application Lifecycle Diagram
===========================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ init db,     │
    │ click queue, │
    │ workers,     │
    │ monitor      │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ stop monitor │
    │ close queue  │
    │ drain (grace)│
    │ dispose db   │
    └──────────────┘

How to Use
===========
**Step 1 — Run**::
    shortener run-server
    # or: uvicorn shortener.main:app --port 8080

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8080/links \
         -H "Content-Type: application/json" \
         -d '{"long_url": "https://example.com"}'

    curl -i http://localhost:8080/<short_code>
    curl http://localhost:8080/links/<short_code>/stats

Key Behaviours
===============
- Tables are created automatically on startup.
- Click workers and the URL monitor run on the server's event loop.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shortener import __version__
from shortener.dependencies import _service_manager
from shortener.routes import router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    _service_manager.start()
    yield
    # Shutdown
    await _service_manager.cleanup()


def create_app() -> FastAPI:
    app = FastAPI(
        title="url-shortener",
        version=__version__,
        description="URL shortener with asynchronous click analytics",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()
