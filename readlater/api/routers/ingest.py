"""Ingestion endpoints for pasted and uploaded content.

Routes
------
POST /api/ingest          Body: {"text": "...", "binary": "<base64>", "hintedFormat": "markdown"}
POST /api/ingest/upload   Multipart file upload, optional ``format`` form field
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

from fastapi import APIRouter, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from readlater.ingest import ContentFormat, format_from_hint, ingest

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class IngestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    binary: Optional[str] = Field(None, description="Base64-encoded file content")
    hinted_format: Optional[ContentFormat] = Field(None, alias="hintedFormat")


class IngestResponse(BaseModel):
    sanitizedHtml: str
    detectedFormat: ContentFormat


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=IngestResponse)
def ingest_endpoint(body: IngestRequest) -> dict[str, Any]:
    """Detect the format of pasted content and return sanitized HTML."""
    if body.text is None and body.binary is None:
        raise HTTPException(status_code=422, detail="Provide either 'text' or 'binary'.")

    binary = None
    if body.binary is not None:
        try:
            binary = base64.b64decode(body.binary, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(status_code=422, detail=f"Invalid base64 payload: {exc}") from exc

    result = ingest(text=body.text, binary=binary, hinted_format=body.hinted_format)
    return result.to_dict()


@router.post("/upload", response_model=IngestResponse)
async def ingest_upload_endpoint(
    file: UploadFile,
    format: Optional[ContentFormat] = Form(None),
) -> dict[str, Any]:
    """Upload a file; its extension or MIME type hints the format unless ``format`` is given."""
    data = await file.read()
    if not data:
        raise HTTPException(status_code=422, detail="Uploaded file is empty.")
    hint = format or format_from_hint(file.filename, file.content_type)
    result = await run_in_threadpool(ingest, binary=data, hinted_format=hint)
    return result.to_dict()
