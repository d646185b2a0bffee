"""Image localization into a content-addressed store.

Every ``<img>`` in a cleaned content region is resolved to an absolute URL,
downloaded once, and stored as ``<md5(url)><ext>``.  The ``src`` attribute is
then pointed at the locally served copy.  Per-image failures are recorded on
the returned :class:`ImageRef` and never abort the extraction.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import tempfile
from pathlib import Path
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import Tag

from readlater.config import settings
from readlater.errors import FetchError, ImageError
from readlater.log import get_logger
from readlater.scraper.extractor import CleanedRegion
from readlater.scraper.fetcher import Fetcher, origin_of
from readlater.scraper.models import ImageRef

logger = get_logger(__name__)

# content-type -> stored file extension
IMAGE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}
_TYPES_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def url_hash(url: str) -> str:
    """Content address of an image: the MD5 of its resolved URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def resolve_image_url(src: str, base_url: str) -> str:
    """Resolve an ``<img src>`` value against the page URL.

    Handles absolute URLs, protocol-relative ``//host/path`` (takes the page
    scheme), root-relative ``/path`` and ordinary relative paths.  A value
    that cannot be parsed comes back as written; its download then fails.
    """
    src = src.strip()
    try:
        if urlparse(src).scheme:
            return src
        if src.startswith("//"):
            scheme = urlparse(base_url).scheme or "https"
            return f"{scheme}:{src}"
        return urljoin(base_url, src)
    except ValueError:
        return src


class ImageStore:
    """A directory of images named by the hash of their source URL.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so readers never see a partial file and
    two requests storing the same image simply overwrite identical bytes.
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = Path(root) if root is not None else settings.images_dir

    def find(self, content_hash: str) -> Optional[Path]:
        """Return the stored file for *content_hash*, whatever its extension."""
        for ext in _TYPES_BY_EXTENSION:
            candidate = self.root / f"{content_hash}{ext}"
            if candidate.is_file():
                return candidate
        return None

    def path_for(self, content_hash: str, ext: str) -> Path:
        return self.root / f"{content_hash}{ext}"

    def _write_sync(self, content_hash: str, ext: str, data: bytes) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.path_for(content_hash, ext)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{content_hash}.", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return target

    async def write(self, content_hash: str, ext: str, data: bytes) -> Path:
        return await asyncio.to_thread(self._write_sync, content_hash, ext, data)


class ImageLocalizer:
    """Download the images of a content region and rewrite their ``src``."""

    def __init__(
        self,
        fetcher: Fetcher,
        store: Optional[ImageStore] = None,
        *,
        max_bytes: Optional[int] = None,
        concurrency: Optional[int] = None,
        url_prefix: Optional[str] = None,
    ) -> None:
        self.fetcher = fetcher
        self.store = store or ImageStore()
        self.max_bytes = settings.max_image_bytes if max_bytes is None else max_bytes
        self.concurrency = max(1, settings.image_concurrency if concurrency is None else concurrency)
        self.url_prefix = (settings.image_url_prefix if url_prefix is None else url_prefix).rstrip("/")

    def _local_url(self, path: Path) -> str:
        return f"{self.url_prefix}/{path.name}"

    async def localize(
        self, region: CleanedRegion, base_url: str, *, download: bool = True
    ) -> List[ImageRef]:
        """Localize every downloadable ``<img>`` in *region*.

        Results come back in document order.  With ``download=False`` the
        images are only listed; nothing is fetched or rewritten.
        """
        targets = []
        for img in region.images():
            src = str(img.get("src") or "").strip()
            if not src or src.startswith("data:"):
                continue
            targets.append((img, resolve_image_url(src, base_url)))

        if not download:
            return [self._describe(img, url) for img, url in targets]

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(img: Tag, url: str) -> ImageRef:
            async with semaphore:
                return await self._localize_one(img, url, base_url)

        refs = await asyncio.gather(*(_bounded(img, url) for img, url in targets))
        if refs:
            logger.info(
                "images_localized",
                url=base_url,
                total=len(refs),
                downloaded=sum(1 for ref in refs if ref.downloaded),
            )
        return list(refs)

    def _describe(self, img: Tag, url: str, **fields) -> ImageRef:
        return ImageRef(
            original_url=url,
            content_hash=url_hash(url),
            alt_text=str(img.get("alt") or ""),
            title_text=str(img.get("title") or ""),
            **fields,
        )

    def _stamp_local(self, img: Tag, url: str, path: Path) -> str:
        local_url = self._local_url(path)
        img["src"] = local_url
        img["data-original-src"] = url
        return local_url

    async def _localize_one(self, img: Tag, url: str, base_url: str) -> ImageRef:
        content_hash = url_hash(url)

        cached = self.store.find(content_hash)
        if cached is not None:
            logger.debug("image_cache_hit", image_url=url, path=str(cached))
            return self._describe(
                img,
                url,
                downloaded=True,
                local_path=str(cached),
                local_url=self._stamp_local(img, url, cached),
                content_type=_TYPES_BY_EXTENSION.get(cached.suffix),
                size_bytes=cached.stat().st_size,
            )

        try:
            result = await self.fetcher.fetch_binary(
                url,
                referer=origin_of(base_url) or None,
                max_bytes=self.max_bytes,
                allowed_types=IMAGE_EXTENSIONS.keys(),
            )
            if not result.data:
                raise ImageError("Empty image body")
            ext = IMAGE_EXTENSIONS[result.content_type]
            path = await self.store.write(content_hash, ext, result.data)
        except (FetchError, ImageError, OSError) as exc:
            logger.warning("image_download_failed", image_url=url, error=str(exc))
            img["data-download-failed"] = "true"
            return self._describe(img, url, error=str(exc))

        return self._describe(
            img,
            url,
            downloaded=True,
            local_path=str(path),
            local_url=self._stamp_local(img, url, path),
            content_type=result.content_type,
            size_bytes=len(result.data),
        )
