"""Shared fakes standing in for Playwright pages, browsers and CDP sessions."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from playwright.async_api import Error as PlaywrightError

from cssextract.extraction import INLINE_STYLES_SCRIPT, PROGRAMMATIC_CSS_SCRIPT


class FakeResponse:
    def __init__(self, status: int, status_text: str = ""):
        self.status = status
        self.status_text = status_text


class FakeCDPSession:
    """Minimal DevTools session: reports stylesheets and serves their text."""

    def __init__(self, page: "FakePage"):
        self.page = page
        self.handlers: Dict[str, List[Any]] = {}
        self.sent: List[str] = []
        self.detached = False

    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, params: Optional[dict] = None) -> None:
        for handler in self.handlers.get(event, []):
            handler(params or {})

    def add_sheets(self, sheets: Sequence[Tuple[str, str]]) -> None:
        for url, text in sheets:
            sheet_id = f"sheet-{len(self.page.sheet_texts)}"
            self.page.sheet_texts[sheet_id] = text
            self.emit(
                "CSS.styleSheetAdded",
                {"header": {"styleSheetId": sheet_id, "sourceURL": url}},
            )

    async def send(self, method: str, params: Optional[dict] = None):
        self.sent.append(method)
        if method in self.page.cdp_fail_on:
            raise PlaywrightError(f"{method} failed")
        if method == "CSS.enable":
            # Sheets of the document already displayed by the page
            self.add_sheets(self.page.stale_sheets)
        if method == "CSS.getStyleSheetText":
            return {"text": self.page.sheet_texts[params["styleSheetId"]]}
        if method == "CSS.stopRuleUsageTracking":
            return {"ruleUsage": []}
        return {}

    async def detach(self) -> None:
        self.detached = True


class FakeContext:
    def __init__(self, page: "FakePage"):
        self.page = page
        self.closed = False

    async def new_cdp_session(self, page: "FakePage") -> FakeCDPSession:
        if page.cdp_error is not None:
            raise page.cdp_error
        session = FakeCDPSession(page)
        page.sessions.append(session)
        return session

    async def new_page(self) -> "FakePage":
        return self.page

    async def close(self) -> None:
        self.closed = True
        self.page.closed = True


class FakePage:
    """Scriptable stand-in for ``playwright.async_api.Page``."""

    def __init__(
        self,
        *,
        status: int = 200,
        status_text: str = "OK",
        sheets: Sequence[Tuple[str, str]] = (),
        stale_sheets: Sequence[Tuple[str, str]] = (),
        programmatic: str = "",
        inline: Sequence[str] = (),
        final_url: Optional[str] = None,
        no_response: bool = False,
        goto_delay: float = 0.0,
        goto_error: Optional[BaseException] = None,
        evaluate_error: Optional[BaseException] = None,
        cdp_error: Optional[BaseException] = None,
        cdp_fail_on: Sequence[str] = (),
    ):
        self.status = status
        self.status_text = status_text
        self.sheets = list(sheets)
        self.stale_sheets = list(stale_sheets)
        self.programmatic = programmatic
        self.inline = list(inline)
        self.final_url = final_url
        self.no_response = no_response
        self.goto_delay = goto_delay
        self.goto_error = goto_error
        self.evaluate_error = evaluate_error
        self.cdp_error = cdp_error
        self.cdp_fail_on = set(cdp_fail_on)

        self.context = FakeContext(self)
        self.url = "about:blank"
        self.sheet_texts: Dict[str, str] = {}
        self.sessions: List[FakeCDPSession] = []
        self.goto_calls: List[Tuple[str, Any, Any]] = []
        self.evaluated: List[str] = []
        self.closed = False

    async def goto(self, url: str, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until, timeout))
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if self.goto_error is not None:
            raise self.goto_error

        self.url = self.final_url or url
        live = [s for s in self.sessions if not s.detached]
        for session in live:
            session.emit("Runtime.executionContextsCleared")
            session.add_sheets(self.sheets)
        if self.no_response:
            return None
        return FakeResponse(self.status, self.status_text)

    async def evaluate(self, script: str):
        self.evaluated.append(script)
        if self.evaluate_error is not None:
            raise self.evaluate_error
        if script == PROGRAMMATIC_CSS_SCRIPT:
            return self.programmatic
        if script == INLINE_STYLES_SCRIPT:
            return list(self.inline)
        raise AssertionError(f"Unexpected script: {script!r}")

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory=FakePage):
        self.page_factory = page_factory
        self.pages: List[FakePage] = []
        self.contexts: List[FakeContext] = []

    async def new_page(self) -> FakePage:
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def new_context(self) -> FakeContext:
        page = self.page_factory()
        self.pages.append(page)
        self.contexts.append(page.context)
        return page.context


class FakePageProvider:
    """Hands out the same fake page and counts checkouts."""

    def __init__(self, page: Optional[FakePage] = None):
        self.current = page or FakePage()
        self.checkouts = 0

    @asynccontextmanager
    async def page(self):
        self.checkouts += 1
        yield self.current

    async def close(self) -> None:
        return None


@pytest.fixture
def make_page():
    return FakePage


@pytest.fixture
def fake_browser():
    return FakeBrowser()


@pytest.fixture
def make_provider():
    return FakePageProvider
