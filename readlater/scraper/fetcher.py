"""Page and image fetching.

Two page modes share one contract, ``fetch(url, mode) -> FetchResult``:

* **lightweight**: a single ``httpx`` GET with browser-like headers.
* **rendered**: a headless Chromium page from the shared
  :class:`~readlater.scraper.browser.BrowserManager`, scrolled to trigger
  lazy loading and with "read more" toggles expanded.

Every failure is raised as :class:`~readlater.errors.FetchError` carrying one
of ``timeout``, ``http_status``, ``network`` or ``aborted``.
"""

from __future__ import annotations

from typing import Any, Collection, Optional
from urllib.parse import urlparse

import httpx
from playwright.async_api import Error as PlaywrightError, Page, Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from readlater.config import Settings, settings as default_settings
from readlater.errors import FetchError, FetchErrorKind
from readlater.log import get_logger
from readlater.scraper.browser import BrowserManager
from readlater.scraper.models import BinaryResult, FetchMode, FetchResult

logger = get_logger(__name__)

_TEXT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
_IMAGE_ACCEPT = "image/webp,image/png,image/svg+xml,image/*,*/*;q=0.8"

_BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "stylesheet", "media"})

_RENDER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"macOS"',
}
_VIEWPORT = {"width": 1280, "height": 720}

# Hide the automation flag some anti-bot scripts look for.
_STEALTH_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"

_SCROLL_PAUSE_MS = 500
_SCROLL_STEP_JS = """
() => {
  window.scrollBy(0, window.innerHeight);
  const body = document.body;
  const height = body ? body.scrollHeight : 0;
  return [height, window.innerHeight + window.scrollY >= height - 2];
}
"""

# Visible labels of "expand / read more" toggles, several languages.
EXPAND_VOCABULARY = (
    "展开全文", "阅读全文", "展开阅读全文", "查看全文", "显示全部", "展开",
    "read more", "show more", "see more", "continue reading", "expand",
    "voir plus", "lire la suite", "mehr anzeigen", "weiterlesen",
    "leer más", "ver más", "続きを読む", "もっと見る", "더보기",
)
_MAX_EXPAND_CLICKS = 5
_EXPAND_JS = """
([words, maxClicks]) => {
  const candidates = document.querySelectorAll(
    'button, a, span, div[role="button"], [class*="expand"], [class*="more"]'
  );
  let clicked = 0;
  for (const el of candidates) {
    const text = (el.innerText || '').trim().toLowerCase();
    if (!text || text.length > 40) continue;
    if (!words.some((w) => text.includes(w))) continue;
    if (el.tagName === 'A') {
      const href = el.getAttribute('href') || '';
      if (href && !href.startsWith('#') && !href.startsWith('javascript')) continue;
    }
    try { el.click(); clicked += 1; } catch (e) { continue; }
    if (clicked >= maxClicks) break;
  }
  return clicked;
}
"""


def _media_type(header: Optional[str]) -> str:
    """``"image/JPEG; charset=x"`` -> ``"image/jpeg"``."""
    return (header or "").split(";")[0].strip().lower()


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}" if parsed.scheme and parsed.netloc else ""


class Fetcher:
    """Retrieve raw HTML (and image bytes) for the extraction pipeline."""

    def __init__(
        self,
        browser: Optional[BrowserManager] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        config: Settings = default_settings,
    ) -> None:
        self.browser = browser
        self.settings = config
        self._client = client
        self._owns_client = client is None

    # ------------------------------------------------------------------
    # HTTP client
    # ------------------------------------------------------------------
    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _headers(self, accept: str, referer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": accept,
            "Accept-Language": self.settings.accept_language,
        }
        if referer:
            headers["Referer"] = referer
        return headers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def fetch(self, url: str, mode: FetchMode, *, allow_images: bool = False) -> FetchResult:
        """Fetch *url* in *mode* and return its HTML."""
        if mode is FetchMode.RENDERED:
            return await self._fetch_rendered(url, allow_images=allow_images)
        return await self._fetch_lightweight(url)

    async def fetch_binary(
        self,
        url: str,
        *,
        referer: Optional[str] = None,
        max_bytes: Optional[int] = None,
        allowed_types: Optional[Collection[str]] = None,
    ) -> BinaryResult:
        """Download a binary payload, enforcing type and size limits.

        The content type is checked from the headers before the body is read,
        and the download stops as soon as more than *max_bytes* arrive.  Both
        rejections are ``aborted`` fetch errors.
        """
        limit = self.settings.max_image_bytes if max_bytes is None else max_bytes
        headers = self._headers(_IMAGE_ACCEPT, referer=referer)
        try:
            async with self.client.stream(
                "GET", url, headers=headers, timeout=self.settings.image_timeout
            ) as response:
                if not response.is_success:
                    raise FetchError(
                        FetchErrorKind.HTTP_STATUS,
                        f"HTTP {response.status_code} for {url}",
                        url=url,
                        status=response.status_code,
                    )
                content_type = _media_type(response.headers.get("content-type"))
                if allowed_types is not None and content_type not in allowed_types:
                    raise FetchError(
                        FetchErrorKind.ABORTED,
                        f"Unsupported content type {content_type or '(none)'}",
                        url=url,
                        status=response.status_code,
                    )
                declared = response.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > limit:
                    raise FetchError(
                        FetchErrorKind.ABORTED,
                        f"Declared size {declared} exceeds {limit} bytes",
                        url=url,
                        status=response.status_code,
                    )
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > limit:
                        raise FetchError(
                            FetchErrorKind.ABORTED,
                            f"Payload exceeds {limit} bytes",
                            url=url,
                            status=response.status_code,
                        )
        except httpx.TimeoutException as exc:
            raise FetchError(FetchErrorKind.TIMEOUT, f"Timed out fetching {url}", url=url) from exc
        except httpx.RequestError as exc:
            raise FetchError(FetchErrorKind.NETWORK, f"Network error for {url}: {exc}", url=url) from exc
        except (httpx.InvalidURL, UnicodeError) as exc:
            raise FetchError(FetchErrorKind.NETWORK, f"Invalid URL {url!r}: {exc}", url=url) from exc

        return BinaryResult(
            url=url,
            data=bytes(body),
            content_type=content_type,
            status_code=response.status_code,
        )

    # ------------------------------------------------------------------
    # Lightweight mode
    # ------------------------------------------------------------------
    async def _fetch_lightweight(self, url: str) -> FetchResult:
        try:
            response = await self.client.get(
                url,
                headers=self._headers(_TEXT_ACCEPT),
                timeout=self.settings.text_timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchError(FetchErrorKind.TIMEOUT, f"Timed out fetching {url}", url=url) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchError(
                FetchErrorKind.HTTP_STATUS, f"HTTP {status} for {url}", url=url, status=status
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError(FetchErrorKind.NETWORK, f"Network error for {url}: {exc}", url=url) from exc
        except (httpx.InvalidURL, UnicodeError) as exc:
            raise FetchError(FetchErrorKind.NETWORK, f"Invalid URL {url!r}: {exc}", url=url) from exc

        logger.info("fetch_complete", url=url, mode="lightweight", status=response.status_code)
        return FetchResult(
            url=url,
            final_url=str(response.url),
            html=response.text,
            status_code=response.status_code,
            content_type=_media_type(response.headers.get("content-type")),
            mode=FetchMode.LIGHTWEIGHT,
        )

    # ------------------------------------------------------------------
    # Rendered mode
    # ------------------------------------------------------------------
    def _context_options(self) -> dict[str, Any]:
        return {
            "user_agent": self.settings.user_agent,
            "viewport": _VIEWPORT,
            "extra_http_headers": {**_RENDER_HEADERS, "Accept-Language": self.settings.accept_language},
            "java_script_enabled": True,
        }

    async def _fetch_rendered(self, url: str, *, allow_images: bool) -> FetchResult:
        if self.browser is None:
            raise FetchError(FetchErrorKind.ABORTED, "Rendered fetch requested without a browser", url=url)

        blocked = _BLOCKED_RESOURCE_TYPES - {"image"} if allow_images else _BLOCKED_RESOURCE_TYPES
        timeout_ms = self.settings.navigation_timeout * 1000

        async def _filter_resources(route: Route) -> None:
            if route.request.resource_type in blocked:
                await route.abort()
            else:
                await route.continue_()

        try:
            async with self.browser.page(**self._context_options()) as page:
                await page.add_init_script(_STEALTH_SCRIPT)
                await page.route("**/*", _filter_resources)
                page.set_default_navigation_timeout(timeout_ms)

                response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                status = response.status if response is not None else 200
                if response is not None and not response.ok:
                    raise FetchError(
                        FetchErrorKind.HTTP_STATUS, f"HTTP {status} for {url}", url=url, status=status
                    )
                if self.settings.settle_delay > 0:
                    await page.wait_for_timeout(self.settings.settle_delay * 1000)
                await self._scroll_to_load(page)
                await self._expand_collapsed(page)

                html = await page.content()
                final_url = page.url
                content_type = "text/html"
                if response is not None:
                    content_type = _media_type(response.headers.get("content-type")) or content_type
        except PlaywrightTimeoutError as exc:
            raise FetchError(FetchErrorKind.TIMEOUT, f"Timed out rendering {url}", url=url) from exc
        except PlaywrightError as exc:
            raise FetchError(FetchErrorKind.NETWORK, f"Browser error for {url}: {exc}", url=url) from exc

        logger.info("fetch_complete", url=url, mode="rendered", status=status)
        return FetchResult(
            url=url,
            final_url=final_url,
            html=html,
            status_code=status,
            content_type=content_type,
            mode=FetchMode.RENDERED,
        )

    async def _scroll_to_load(self, page: Page) -> None:
        """Scroll a viewport at a time until the page stops growing."""
        previous_height = -1
        for iteration in range(self.settings.max_scroll_iterations):
            height, at_bottom = await page.evaluate(_SCROLL_STEP_JS)
            await page.wait_for_timeout(_SCROLL_PAUSE_MS)
            if at_bottom and height == previous_height:
                logger.debug("scroll_settled", iterations=iteration + 1)
                return
            previous_height = height

    async def _expand_collapsed(self, page: Page) -> None:
        clicked = await page.evaluate(_EXPAND_JS, [list(EXPAND_VOCABULARY), _MAX_EXPAND_CLICKS])
        if clicked:
            logger.debug("expanded_sections", clicks=clicked)
            await page.wait_for_timeout(_SCROLL_PAUSE_MS * 2)
