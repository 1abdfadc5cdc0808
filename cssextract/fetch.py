"""Direct download of literal ``.css`` resources (no browser involved)."""

from __future__ import annotations

import logging

import httpx

from .errors import NavigationError, StylesheetFetchError

LOGGER = logging.getLogger(__name__)


def _get_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"Accept": "text/css,*/*;q=0.1"},
        follow_redirects=True,
        timeout=timeout,
    )


async def fetch_stylesheet(url: str, *, timeout: float = 30.0) -> str:
    """Return the body of the stylesheet at ``url`` unchanged.

    Raises:
        NavigationError: If the server answered with status >= 400.
        StylesheetFetchError: On network errors.
    """
    LOGGER.info("Fetching stylesheet: %s", url)
    try:
        async with _get_client(timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text
    except httpx.HTTPStatusError as exc:
        raise NavigationError(
            url, exc.response.status_code, exc.response.reason_phrase
        ) from exc
    except httpx.RequestError as exc:
        raise StylesheetFetchError(f"Request failed: {exc}", url=url) from exc
