"""The scrape pipeline: strategy -> fetch -> extract -> localize images.

An ``auto`` request that starts lightweight may escalate to a rendered fetch
exactly once, either because the lightweight fetch failed or because the
extracted text came out shorter than ``min_content_chars``.
"""

from __future__ import annotations

from typing import Optional

from readlater.config import Settings, settings as default_settings
from readlater.errors import FetchError
from readlater.log import get_logger
from readlater.scraper.browser import BrowserManager
from readlater.scraper.classify import classify_source
from readlater.scraper.extractor import CleanedRegion, ContentExtractor
from readlater.scraper.fetcher import Fetcher
from readlater.scraper.images import ImageLocalizer, ImageStore
from readlater.scraper.models import FetchMode, FetchResult, RenderPreference, ScrapeResult
from readlater.scraper.strategy import decide, may_escalate

logger = get_logger(__name__)


class ScrapePipeline:
    """Wire the scraper components together for one URL at a time.

    The pipeline owns the shared :class:`BrowserManager`; call
    :meth:`shutdown` when the process stops.
    """

    def __init__(
        self,
        *,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[ContentExtractor] = None,
        localizer: Optional[ImageLocalizer] = None,
        browser: Optional[BrowserManager] = None,
        config: Settings = default_settings,
    ) -> None:
        self.settings = config
        self.browser = browser if browser is not None else BrowserManager()
        self.fetcher = fetcher or Fetcher(self.browser, config=config)
        self.extractor = extractor or ContentExtractor(min_content_chars=config.min_content_chars)
        self.localizer = localizer or ImageLocalizer(
            self.fetcher,
            ImageStore(config.images_dir),
            max_bytes=config.max_image_bytes,
            concurrency=config.image_concurrency,
            url_prefix=config.image_url_prefix,
        )

    async def _fetch_and_extract(
        self, url: str, mode: FetchMode, download_images: bool
    ) -> tuple[FetchResult, CleanedRegion]:
        fetched = await self.fetcher.fetch(url, mode, allow_images=download_images)
        region = self.extractor.extract_region(fetched.html, fetched.final_url)
        return fetched, region

    async def scrape(
        self,
        url: str,
        *,
        download_images: bool = True,
        render_mode: RenderPreference | str = RenderPreference.AUTO,
    ) -> ScrapeResult:
        """Fetch *url* and return its readable content.

        Raises :class:`FetchError` when no fetch mode could retrieve the page
        and :class:`ExtractError` when the HTML could not be parsed.
        """
        preference = RenderPreference(render_mode)
        mode = decide(url, preference)
        escalated = False
        logger.info("scrape_started", url=url, mode=mode.value, preference=preference.value)

        try:
            fetched, region = await self._fetch_and_extract(url, mode, download_images)
        except FetchError as exc:
            if not may_escalate(preference, mode):
                raise
            logger.info("escalating_to_rendered", url=url, reason="fetch_failed", error=str(exc))
            escalated = True
            fetched, region = await self._fetch_and_extract(url, FetchMode.RENDERED, download_images)
        else:
            if region.text_length < self.settings.min_content_chars and may_escalate(preference, mode):
                logger.info(
                    "escalating_to_rendered",
                    url=url,
                    reason="thin_content",
                    chars=region.text_length,
                )
                try:
                    fetched, region = await self._fetch_and_extract(
                        url, FetchMode.RENDERED, download_images
                    )
                    escalated = True
                except FetchError as exc:
                    # The thin lightweight result is still better than nothing.
                    logger.warning("rendered_fallback_failed", url=url, error=str(exc))

        images = await self.localizer.localize(region, fetched.final_url, download=download_images)
        content = region.to_content(images)
        result = ScrapeResult(
            url=url,
            fetch_mode=fetched.mode,
            content=content,
            source_type=classify_source(fetched.final_url, content.title),
            escalated=escalated,
        )
        logger.info(
            "scrape_complete",
            url=url,
            mode=fetched.mode.value,
            chars=content.text_length,
            images=result.image_count,
            escalated=escalated,
        )
        return result

    async def shutdown(self) -> None:
        await self.fetcher.aclose()
        await self.browser.shutdown()
