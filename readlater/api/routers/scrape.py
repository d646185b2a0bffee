"""Scrape endpoint.

Routes
------
POST /api/scrape    Body: {"url": "https://...", "downloadImages": true, "renderMode": "auto"}

Failures return ``{"error", "title": "extraction failed", "content": "", "images": []}``
with a non-2xx status so clients can always render a "failed to retrieve" state.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from readlater.errors import ExtractError, FetchError, FetchErrorKind
from readlater.log import get_logger
from readlater.scraper.models import RenderPreference

logger = get_logger(__name__)

router = APIRouter()

FAILED_TITLE = "extraction failed"


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ScrapeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    download_images: bool = Field(True, alias="downloadImages")
    render_mode: RenderPreference = Field(RenderPreference.AUTO, alias="renderMode")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def failure_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "title": FAILED_TITLE, "content": "", "images": []},
    )


def _status_for(exc: Exception) -> int:
    if isinstance(exc, FetchError):
        return 504 if exc.kind is FetchErrorKind.TIMEOUT else 502
    if isinstance(exc, ExtractError):
        return 422
    return 500


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/scrape")
async def scrape_endpoint(body: ScrapeRequest, request: Request) -> Any:
    """Fetch a URL and return its readable content and localized images."""
    try:
        parsed = urlparse(body.url)
    except ValueError:
        return failure_response(400, f"Invalid URL: {body.url!r}")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return failure_response(400, f"Invalid URL: {body.url!r}")

    pipeline = request.app.state.pipeline
    try:
        result = await pipeline.scrape(
            body.url,
            download_images=body.download_images,
            render_mode=body.render_mode,
        )
    except (FetchError, ExtractError) as exc:
        logger.error("scrape_failed", url=body.url, error=str(exc), kind=exc.kind.value)
        return failure_response(_status_for(exc), str(exc))
    except Exception as exc:
        logger.exception("scrape_crashed", url=body.url)
        return failure_response(500, f"Unexpected error: {exc}")
    return result.to_dict()
