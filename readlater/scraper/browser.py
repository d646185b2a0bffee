"""Shared headless-browser handle for rendered fetches.

One Chromium process serves every rendered fetch.  It is launched lazily on
the first :meth:`BrowserManager.acquire`, reused across calls, closed by an
idle reaper after a quiet period, and torn down by :meth:`shutdown`.
Concurrent callers that arrive while the browser is starting all await the
same launch task, so only one process is ever spawned.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import Browser, Error as PlaywrightError, Page, async_playwright

from readlater.config import settings
from readlater.errors import FetchError, FetchErrorKind
from readlater.log import get_logger

logger = get_logger(__name__)

_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

Launcher = Callable[[], Awaitable[Browser]]


class BrowserManager:
    """Owns the lifecycle of the single shared browser instance."""

    def __init__(
        self,
        *,
        headless: Optional[bool] = None,
        idle_timeout: Optional[float] = None,
        launcher: Optional[Launcher] = None,
    ) -> None:
        self.headless = settings.headless if headless is None else headless
        self.idle_timeout = settings.browser_idle_timeout if idle_timeout is None else idle_timeout
        self._launcher = launcher
        self._playwright: Any = None
        self._browser: Optional[Browser] = None
        self._launching: Optional[asyncio.Task[Browser]] = None
        self._idle_task: Optional[asyncio.Task[None]] = None
        self._closing: set[asyncio.Future[None]] = set()
        self._active = 0
        self._closed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def active_pages(self) -> int:
        return self._active

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def _default_launch(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.headless, args=_LAUNCH_ARGS)

    async def _launch(self) -> Browser:
        logger.info("browser_launching", headless=self.headless)
        try:
            browser = await (self._launcher or self._default_launch)()
        except PlaywrightError as exc:
            raise FetchError(FetchErrorKind.ABORTED, f"Could not launch browser: {exc}") from exc
        self._browser = browser
        logger.info("browser_launched")
        return browser

    async def _ensure_browser(self) -> Browser:
        if self._browser is not None and self._browser.is_connected():
            return self._browser
        if self._launching is None or self._launching.done():
            self._launching = asyncio.ensure_future(self._launch())
        launching = self._launching
        try:
            # shield: one caller giving up must not cancel the launch for others
            return await asyncio.shield(launching)
        finally:
            if launching.done() and self._launching is launching:
                self._launching = None

    async def acquire(self) -> Browser:
        """Return the shared browser, launching it if needed."""
        if self._closed:
            raise FetchError(FetchErrorKind.ABORTED, "Browser manager has been shut down")
        self._cancel_idle_timer()
        self._active += 1
        try:
            return await self._ensure_browser()
        except BaseException:
            self.release()
            raise

    def release(self) -> None:
        """Give back a browser obtained from :meth:`acquire`."""
        self._active = max(0, self._active - 1)
        if self._active == 0:
            self._schedule_idle_timer()

    async def shutdown(self) -> None:
        """Close the browser and Playwright driver.  Safe to call twice."""
        self._closed = True
        self._cancel_idle_timer()
        if self._closing:
            await asyncio.gather(*self._closing)
        if self._launching is not None and not self._launching.done():
            try:
                await self._launching
            except FetchError as exc:
                logger.warning("browser_launch_failed_during_shutdown", error=str(exc))
        await self._close_browser()
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("browser_shutdown")

    async def _close_browser(self) -> None:
        browser, self._browser = self._browser, None
        if browser is not None:
            await browser.close()

    # ------------------------------------------------------------------
    # Idle reaper
    # ------------------------------------------------------------------
    def _schedule_idle_timer(self) -> None:
        if self.idle_timeout <= 0 or self._browser is None or self._closed:
            return
        self._cancel_idle_timer()
        self._idle_task = asyncio.get_running_loop().create_task(self._reap_when_idle())

    def _cancel_idle_timer(self) -> None:
        if self._idle_task is not None and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None

    async def _reap_when_idle(self) -> None:
        await asyncio.sleep(self.idle_timeout)
        if self._active == 0:
            logger.info("browser_idle_reaped", idle_seconds=self.idle_timeout)
            # An acquire() arriving mid-close cancels this task, not the close.
            closing = asyncio.ensure_future(self._close_browser())
            self._closing.add(closing)
            closing.add_done_callback(self._closing.discard)
            await asyncio.shield(closing)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def page(self, **context_options: Any) -> AsyncIterator[Page]:
        """Yield a fresh page in its own browser context.

        The page and its context are closed on every exit path; the shared
        browser stays up.
        """
        browser = await self.acquire()
        context = None
        page = None
        try:
            context = await browser.new_context(**context_options)
            page = await context.new_page()
            yield page
        finally:
            for closable in (page, context):
                if closable is None:
                    continue
                try:
                    await closable.close()
                except PlaywrightError as exc:
                    logger.warning("browser_page_close_failed", error=str(exc))
            self.release()
