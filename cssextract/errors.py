"""Exceptions raised while extracting CSS from a page.

Every error derives from :class:`CssExtractionError` and can be serialized
with :meth:`CssExtractionError.to_dict`, which is what the HTTP and MCP
surfaces send back to the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CssExtractionError(Exception):
    """Base class for all extraction failures."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        payload: Dict[str, Any] = {
            "name": type(self).__name__,
            "message": str(self),
        }
        if self.url:
            payload["url"] = self.url
        return payload


class InvalidUrlError(CssExtractionError):
    """Raised when the requested URL is not a well-formed absolute URL."""

    def __init__(self, url: str):
        super().__init__("The provided URL is not valid", url=url)


class NavigationError(CssExtractionError):
    """Raised when the target responded with an HTTP status >= 400."""

    def __init__(self, url: str, status: int, status_text: str = ""):
        self.status = status
        self.status_text = status_text
        super().__init__(
            f"There was an error retrieving CSS from {url}.\n"
            f"\tHTTP status code: {status} ({status_text})",
            url=url,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["status"] = self.status
        payload["status_text"] = self.status_text
        return payload


class BrowserProtocolError(CssExtractionError):
    """Raised when the browser automation channel fails.

    The page handle involved is in an unknown state afterwards and must
    not be reused.
    """


class ExtractionTimeout(CssExtractionError):
    """Raised when navigation or in-page evaluation exceeds its bound."""

    def __init__(self, url: str, timeout: Optional[float]):
        self.timeout = timeout
        super().__init__(
            f"Extracting CSS from {url} timed out after {timeout}s", url=url
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["timeout"] = self.timeout
        return payload


class StylesheetFetchError(CssExtractionError):
    """Raised when a literal stylesheet could not be downloaded."""
