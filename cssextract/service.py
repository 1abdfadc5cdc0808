"""Request dispatcher: normalize, consult the cache, extract, store."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from .cache import CssCache
from .config import Settings
from .errors import InvalidUrlError
from .extraction import ExtractOptions, extract_css_from_page
from .fetch import fetch_stylesheet
from .pages import PageProvider
from .urls import is_stylesheet_url, is_url, normalize_url

LOGGER = logging.getLogger(__name__)

StylesheetFetcher = Callable[..., Awaitable[str]]


class CssService:
    """Serves extracted CSS for a URL through a bounded result cache.

    Failed extractions never populate the cache and are not retried.
    """

    def __init__(
        self,
        pages: PageProvider,
        *,
        settings: Optional[Settings] = None,
        cache: Optional[CssCache] = None,
        fetcher: StylesheetFetcher = fetch_stylesheet,
    ):
        self.settings = settings or Settings()
        self.pages = pages
        self.cache = cache or CssCache(
            max_entries=self.settings.cache_max_entries,
            max_age=self.settings.cache_max_age,
        )
        self._fetcher = fetcher

    def normalize(self, raw_url: str) -> str:
        """Normalized cache key for ``raw_url``.

        Raises:
            InvalidUrlError: If the URL is not a well-formed absolute URL.
        """
        url = normalize_url(raw_url, strip_www=self.settings.strip_www)
        if not is_url(url):
            raise InvalidUrlError(raw_url)
        return url

    async def get_css(
        self, raw_url: str, *, options: Optional[ExtractOptions] = None
    ) -> str:
        url = self.normalize(raw_url)

        cached = self.cache.get(url)
        if cached is not None:
            LOGGER.info("Cache hit: %s", url)
            return cached

        if is_stylesheet_url(url):
            css = await self._fetcher(url, timeout=self.settings.fetch_timeout)
        else:
            LOGGER.info("Extracting CSS: %s", url)
            async with self.pages.page() as page:
                css = await extract_css_from_page(
                    page, url, options or self.settings.extract_options()
                )

        self.cache.set(url, css)
        LOGGER.info("Cached %d characters of CSS for %s", len(css), url)
        return css

    async def close(self) -> None:
        self.cache.clear()
