"""Extract every CSS rule a web page uses.

The page is rendered in headless Chromium and CSS is collected from three
sources: stylesheet coverage, stylesheets built through the CSSOM API,
and inline ``style`` attributes. The result is a single stylesheet.

Example usage:

    from cssextract import extract_css, extract_css_async

    # One-shot extraction
    css = await extract_css_async("https://example.com")
    print(css)

    # Synchronous
    css = extract_css("https://example.com")

    # Long-running service with a page pool and result cache
    from cssextract import BrowserSession, CssService, load_settings

    settings = load_settings()
    async with BrowserSession(settings) as pages:
        service = CssService(pages, settings=settings)
        css = await service.get_css("https://example.com")
"""

from __future__ import annotations

import asyncio
from typing import Optional

from .cache import CssCache
from .config import Settings, SettingsOverrides, apply_overrides, load_settings
from .errors import (
    BrowserProtocolError,
    CssExtractionError,
    ExtractionTimeout,
    InvalidUrlError,
    NavigationError,
    StylesheetFetchError,
)
from .extraction import ExtractOptions, MergePolicy, extract_css_from_page, merge_css
from .fetch import fetch_stylesheet
from .hashing import synthetic_selector
from .pages import BrowserSession, FreshPageProvider, PagePool
from .service import CssService
from .urls import is_stylesheet_url, is_url, normalize_url

__all__ = [
    # One-shot API
    "extract_css",
    "extract_css_async",
    # Engine
    "ExtractOptions",
    "MergePolicy",
    "extract_css_from_page",
    "merge_css",
    "synthetic_selector",
    # Service
    "CssCache",
    "CssService",
    "BrowserSession",
    "PagePool",
    "FreshPageProvider",
    "fetch_stylesheet",
    # URLs
    "normalize_url",
    "is_url",
    "is_stylesheet_url",
    # Config
    "Settings",
    "SettingsOverrides",
    "load_settings",
    # Errors
    "CssExtractionError",
    "InvalidUrlError",
    "NavigationError",
    "BrowserProtocolError",
    "ExtractionTimeout",
    "StylesheetFetchError",
    # MCP Server
    "mcp",
]


# Lazy import for mcp to avoid starting FastMCP if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


async def extract_css_async(
    url: str,
    *,
    settings: Optional[Settings] = None,
    overrides: Optional[SettingsOverrides] = None,
) -> str:
    """
    Extract the CSS of a single page.

    Launches a browser for this call only and does not cache. Literal
    ``.css`` URLs are downloaded without a browser.

    Args:
        url: The URL to extract CSS from.
        settings: Optional settings; read from the environment when omitted.
        overrides: Optional overrides applied on top of the settings.

    Returns:
        The merged CSS text.

    Raises:
        InvalidUrlError: If the URL is not a valid absolute URL.
        NavigationError: If the page responded with status >= 400.
        BrowserProtocolError: If the browser failed.
        ExtractionTimeout: If the extraction took too long.
    """
    if settings is None:
        resolved = load_settings(overrides)
    elif overrides is not None:
        resolved = apply_overrides(settings, overrides)
    else:
        resolved = settings
    normalized = normalize_url(url, strip_www=resolved.strip_www)
    if not is_url(normalized):
        raise InvalidUrlError(url)

    if is_stylesheet_url(normalized):
        return await fetch_stylesheet(normalized, timeout=resolved.fetch_timeout)

    async with BrowserSession(resolved) as pages:
        async with pages.page() as page:
            return await extract_css_from_page(
                page, normalized, resolved.extract_options()
            )


def extract_css(
    url: str,
    *,
    settings: Optional[Settings] = None,
    overrides: Optional[SettingsOverrides] = None,
) -> str:
    """Synchronous wrapper for extract_css_async."""
    return asyncio.run(extract_css_async(url, settings=settings, overrides=overrides))
