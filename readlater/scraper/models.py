"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class FetchMode(str, Enum):
    """How the raw HTML was obtained."""

    LIGHTWEIGHT = "lightweight"
    RENDERED = "rendered"


class RenderPreference(str, Enum):
    """Caller override for the render strategy."""

    AUTO = "auto"
    FORCE = "force"
    DISABLE = "disable"


@dataclass(frozen=True)
class FetchResult:
    """The raw response for a single page fetch."""

    url: str
    final_url: str
    html: str
    status_code: int
    content_type: str
    mode: FetchMode


@dataclass(frozen=True)
class BinaryResult:
    """The body of a binary (image) fetch, already size-checked."""

    url: str
    data: bytes
    content_type: str
    status_code: int


@dataclass(frozen=True)
class ImageRef:
    """One ``<img>`` found in the content region."""

    original_url: str
    content_hash: str
    alt_text: str = ""
    title_text: str = ""
    downloaded: bool = False
    local_path: Optional[str] = None
    local_url: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalUrl": self.original_url,
            "localPath": self.local_path,
            "localUrl": self.local_url,
            "altText": self.alt_text,
            "titleText": self.title_text,
            "downloaded": self.downloaded,
            "contentType": self.content_type,
            "sizeBytes": self.size_bytes,
            "contentHash": self.content_hash,
            "error": self.error,
        }


@dataclass(frozen=True)
class ExtractedContent:
    """Cleaned, readable content extracted from one HTML document."""

    title: str
    content: str
    plain_text: str
    structured_text: str
    images: List[ImageRef] = field(default_factory=list)
    description: str = ""
    author: Optional[str] = None
    site_name: Optional[str] = None
    published_date: Optional[str] = None
    excerpt: str = ""

    @property
    def text_length(self) -> int:
        return len(self.plain_text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "plainText": self.plain_text,
            "structuredText": self.structured_text,
            "images": [image.to_dict() for image in self.images],
            "description": self.description,
            "author": self.author,
            "siteName": self.site_name,
            "publishedDate": self.published_date,
            "excerpt": self.excerpt,
        }


@dataclass(frozen=True)
class ScrapeResult:
    """Final output of one pipeline run, as returned to the caller."""

    url: str
    fetch_mode: FetchMode
    content: ExtractedContent
    source_type: str = "other"
    escalated: bool = False

    @property
    def image_count(self) -> int:
        return len(self.content.images)

    @property
    def downloaded_image_count(self) -> int:
        return sum(1 for image in self.content.images if image.downloaded)

    def to_dict(self) -> dict[str, Any]:
        payload = self.content.to_dict()
        payload.update(
            {
                "imageCount": self.image_count,
                "downloadedImageCount": self.downloaded_image_count,
                "url": self.url,
                "fetchMode": self.fetch_mode.value,
                "sourceType": self.source_type,
                "escalated": self.escalated,
            }
        )
        return payload
