"""Page handles for the extraction engine.

Coverage collection is a per-page session, so two extractions must never
run on the same page at the same time. Two providers implement that:

- :class:`PagePool` keeps up to ``size`` independently owned pages and
  checks one out per extraction. A page whose browser state is unknown
  after a failure is closed instead of being returned.
- :class:`FreshPageProvider` opens a new browser context per extraction
  and closes it afterwards.

Both are used the same way::

    async with provider.page() as page:
        css = await extract_css_from_page(page, url)

:class:`BrowserSession` launches Chromium with Playwright and builds the
provider selected by the settings.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Union

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .config import Settings
from .errors import BrowserProtocolError, NavigationError

LOGGER = logging.getLogger(__name__)


class PageProvider(Protocol):
    def page(self) -> Any:  # async context manager yielding a Page
        ...

    async def close(self) -> None:
        ...


async def _close_quietly(target: Union[Page, BrowserContext]) -> None:
    try:
        await target.close()
    except PlaywrightError as exc:
        LOGGER.debug("Closing %s failed: %s", type(target).__name__, exc)


class PagePool:
    """Pool of reusable pages, one per concurrent extraction.

    ``size=1`` serializes all extractions on a single page.
    """

    def __init__(self, browser: Browser, size: int = 2):
        if size < 1:
            raise ValueError(f"Page pool size must be >= 1, got {size}")
        self.size = size
        self._browser = browser
        self._slots = asyncio.Semaphore(size)
        self._idle: List[Page] = []
        self._closed = False

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        if self._closed:
            raise RuntimeError("Page pool is closed")
        async with self._slots:
            page = await self._checkout()
            try:
                yield page
            except NavigationError:
                # The target answered with an error status; the page is fine
                await self._release(page)
                raise
            except BaseException:
                LOGGER.info("Discarding page after failed extraction")
                await _close_quietly(page)
                raise
            else:
                await self._release(page)

    async def _checkout(self) -> Page:
        while self._idle:
            page = self._idle.pop()
            if not page.is_closed():
                return page
        try:
            return await self._browser.new_page()
        except PlaywrightError as exc:
            raise BrowserProtocolError(f"Could not open a browser page: {exc}") from exc

    async def _release(self, page: Page) -> None:
        if self._closed or page.is_closed():
            await _close_quietly(page)
            return
        self._idle.append(page)

    async def close(self) -> None:
        self._closed = True
        idle, self._idle = self._idle, []
        for page in idle:
            await _close_quietly(page)


class FreshPageProvider:
    """Opens a new context and page per extraction, closed afterwards."""

    def __init__(self, browser: Browser):
        self._browser = browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        try:
            context = await self._browser.new_context()
            page = await context.new_page()
        except PlaywrightError as exc:
            raise BrowserProtocolError(f"Could not open a browser page: {exc}") from exc
        try:
            yield page
        finally:
            await _close_quietly(context)

    async def close(self) -> None:
        return None


def build_page_provider(browser: Browser, settings: Settings) -> PageProvider:
    if settings.page_policy == "fresh":
        return FreshPageProvider(browser)
    return PagePool(browser, size=settings.page_pool_size)


def launch_options(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for ``chromium.launch``."""
    options: Dict[str, Any] = {"headless": settings.headless}
    if settings.executable_path:
        options["executable_path"] = settings.executable_path
    if settings.browser_args:
        options["args"] = list(settings.browser_args)
    return options


class BrowserSession:
    """Owns the Playwright driver, the browser and its page provider."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pages: Optional[PageProvider] = None
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def start(self) -> PageProvider:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                **launch_options(self.settings)
            )
        except PlaywrightError as exc:
            await self._playwright.stop()
            self._playwright = None
            raise BrowserProtocolError(f"Could not launch Chromium: {exc}") from exc

        self.pages = build_page_provider(self._browser, self.settings)
        LOGGER.info(
            "Browser launched (%s page policy, headless=%s)",
            self.settings.page_policy,
            self.settings.headless,
        )
        return self.pages

    async def close(self) -> None:
        if self.pages is not None:
            await self.pages.close()
            self.pages = None
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                LOGGER.debug("Closing browser failed: %s", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> PageProvider:
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
