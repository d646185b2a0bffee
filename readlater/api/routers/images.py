"""Serves localized images from the content-addressed store.

Routes
------
GET /images/{hash}.{ext}

Stored images never change once written, so responses are cacheable forever.
"""

from __future__ import annotations

import re

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from readlater.config import settings

router = APIRouter()

_FILENAME_RE = re.compile(r"^[0-9a-f]{32}\.(jpg|png|gif|webp|svg)$")
_MEDIA_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}
CACHE_CONTROL = "public, max-age=31536000, immutable"


@router.get("/{filename}")
def get_image(filename: str) -> FileResponse:
    match = _FILENAME_RE.match(filename)
    if match is None:
        raise HTTPException(status_code=404, detail="Image not found")
    path = settings.images_dir / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(
        path,
        media_type=_MEDIA_TYPES[match.group(1)],
        headers={"Cache-Control": CACHE_CONTROL},
    )
