"""MCP server exposing CSS extraction as a tool.

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop MCP clients)
    python -m cssextract.mcp_server

    # HTTP (for remote access)
    python -m cssextract.mcp_server --transport http --port 8000

The browser is launched on the first tool call and shared by all later
calls through the configured page provider and result cache.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import List, Optional

from fastmcp import FastMCP

from .config import load_env_files, load_settings
from .errors import CssExtractionError
from .pages import BrowserSession
from .service import CssService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_env_files()

mcp = FastMCP(
    name="CSS Extractor",
    instructions="""
    Extracts every CSS rule a web page uses.

    - extract_css: render a URL in headless Chromium and return the
      merged CSS of its linked stylesheets, <style> blocks, CSS-in-JS
      stylesheets and inline style attributes. URLs ending in .css are
      downloaded as-is. Results are cached per URL for a short time.
    """,
)

_SESSION: Optional[BrowserSession] = None
_SERVICE: Optional[CssService] = None
_SERVICE_LOCK = asyncio.Lock()


async def _get_service() -> CssService:
    global _SESSION, _SERVICE
    async with _SERVICE_LOCK:
        if _SERVICE is None:
            settings = load_settings()
            session = BrowserSession(settings)
            pages = await session.start()
            _SESSION = session
            _SERVICE = CssService(pages, settings=settings)
        return _SERVICE


async def _close_service() -> None:
    """Shut down the browser started by the first tool call, if any."""
    global _SESSION, _SERVICE
    async with _SERVICE_LOCK:
        service, _SERVICE = _SERVICE, None
        session, _SESSION = _SESSION, None
        if service is not None:
            await service.close()
        if session is not None:
            await session.close()
            LOGGER.info("Browser closed")


async def _extract_css_text(url: str) -> str:
    service = await _get_service()
    try:
        return await service.get_css(url)
    except CssExtractionError as exc:
        LOGGER.error("Extraction failed for %s: %s", url, exc)
        return json.dumps({"error": exc.to_dict()}, ensure_ascii=False)


@mcp.tool
async def extract_css(url: str):
    """
    Extract all CSS used by a web page.

    Args:
        url: Absolute URL of the page (or of a .css file)

    Returns:
        The CSS text, or a JSON object {"error": {...}} describing the
        failure (invalid URL, HTTP error status, browser failure, timeout).

    Examples:
        extract_css(url="https://example.com")
        extract_css(url="https://example.com/static/site.css")
    """
    LOGGER.info("Extracting CSS for: %s", url)
    return await _extract_css_text(url)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


async def _serve(transport: str, **transport_kwargs) -> None:
    # The browser belongs to this event loop, so it is closed before it ends
    try:
        await mcp.run_async(transport=transport, **transport_kwargs)
    finally:
        await _close_service()


def main(argv: Optional[List[str]] = None):
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the CSS extractor MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # STDIO transport (default)
    python -m cssextract.mcp_server

    # HTTP transport (for remote access)
    python -m cssextract.mcp_server --transport http --port 8000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args(argv)

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        asyncio.run(_serve("http", host=args.host, port=args.port))
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        asyncio.run(_serve("stdio"))


if __name__ == "__main__":
    main()
