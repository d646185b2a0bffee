"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, creates the workspace directories
and builds one :class:`~readlater.scraper.pipeline.ScrapePipeline` shared by
all requests via ``request.app.state.pipeline``.  On shutdown the pipeline
closes its HTTP client and the shared headless browser.

Routers
-------
    /api/scrape          URL -> extracted article (with localized images)
    /api/ingest          pasted / uploaded content -> sanitized HTML
    /images/{file}       content-addressed image store
    /health              liveness and browser status
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from readlater import __version__
from readlater.config import settings
from readlater.log import configure_logging, get_logger
from readlater.scraper.pipeline import ScrapePipeline

from readlater.api.routers import images as images_router
from readlater.api.routers import ingest as ingest_router
from readlater.api.routers import scrape as scrape_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the scrape pipeline on startup and tear it down on shutdown."""
    configure_logging(settings.log_level, settings.environment)
    settings.ensure_workspace()
    pipeline = ScrapePipeline()
    app.state.pipeline = pipeline
    logger.info("service_started", images_dir=str(settings.images_dir))
    try:
        yield
    finally:
        await pipeline.shutdown()
        logger.info("service_stopped")


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="ReadLater Collector API",
        description=(
            "Saves web articles for later reading: fetches a page (plain HTTP "
            "or headless browser), extracts the readable content, stores its "
            "images locally, and sanitizes pasted or uploaded content."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scrape_router.router, prefix="/api", tags=["scrape"])
    app.include_router(ingest_router.router, prefix="/api/ingest", tags=["ingest"])
    app.include_router(images_router.router, prefix=settings.image_url_prefix, tags=["images"])

    @app.get("/health", tags=["health"])
    def health(request: Request) -> dict[str, Any]:
        pipeline = request.app.state.pipeline
        return {"status": "ok", "browser": pipeline.browser.is_running}

    return app


# Module-level instance used by uvicorn:
#   uvicorn readlater.api.app:app --reload
app = create_app()
