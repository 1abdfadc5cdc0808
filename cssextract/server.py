"""HTTP front end.

``GET /<url>`` returns the CSS of ``<url>`` as ``text/css``::

    curl http://localhost:3000/https://example.com

Invalid URLs get a 406 with ``{"message": ...}``, any other failure a 500
whose JSON body is the serialized error.
"""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .config import Settings, load_settings
from .errors import CssExtractionError, InvalidUrlError
from .pages import BrowserSession
from .service import CssService

LOGGER = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000

# Proxies may merge the "//" after the scheme into a single slash
_COLLAPSED_SCHEME = re.compile(r"^(https?):/(?!/)", re.IGNORECASE)


def target_url(path: str, query: str = "") -> str:
    """Rebuild the requested URL from the request path and query string."""
    url = _COLLAPSED_SCHEME.sub(r"\1://", path)
    if query:
        url = f"{url}?{query}"
    return url


def create_app(
    settings: Optional[Settings] = None,
    *,
    service: Optional[CssService] = None,
) -> FastAPI:
    """Build the app. A given ``service`` is used as-is, no browser is launched."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            app.state.service = service
            yield
            return

        resolved = settings or load_settings()
        session = BrowserSession(resolved)
        pages = await session.start()
        app.state.service = CssService(pages, settings=resolved)
        try:
            yield
        finally:
            await app.state.service.close()
            await session.close()

    app = FastAPI(title="CSS Extractor", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        return {"status": "ok", "cached": len(request.app.state.service.cache)}

    @app.get("/{target:path}")
    async def extract(target: str, request: Request):
        # The path parameter is percent-decoded; the target URL must not be
        raw_path = request.scope.get("raw_path")
        if raw_path:
            target = raw_path.split(b"?", 1)[0].decode("latin-1")[1:]
        raw_url = target_url(target, request.url.query)

        try:
            css = await request.app.state.service.get_css(raw_url)
        except InvalidUrlError as exc:
            return JSONResponse({"message": str(exc)}, status_code=406)
        except CssExtractionError as exc:
            LOGGER.warning("Extraction failed for %s: %s", raw_url, exc)
            return JSONResponse(exc.to_dict(), status_code=500)
        except Exception as exc:
            LOGGER.exception("Unexpected error for %s", raw_url)
            return JSONResponse(
                {"name": type(exc).__name__, "message": str(exc)}, status_code=500
            )

        return Response(content=css, media_type="text/css")

    return app


def run(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    settings: Optional[Settings] = None,
) -> None:
    LOGGER.info("Starting CSS extractor on http://%s:%d/", host, port)
    uvicorn.run(create_app(settings), host=host, port=port)
