"""CSS coverage collection over a Chromium DevTools session.

Playwright's Python API does not expose CSS coverage, so this module
drives the DevTools ``CSS`` domain directly: every stylesheet the page
attaches while tracking is active is recorded together with its full
text. Stylesheets without a source URL (constructed via the CSSOM API)
are not reported here and have to be collected from the page itself.

Example usage:

    coverage = CssCoverage(page)
    await coverage.start()
    await page.goto(url)
    records = await coverage.stop()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from playwright.async_api import CDPSession, Page
from playwright.async_api import Error as PlaywrightError

from .document import CoverageRecord

LOGGER = logging.getLogger(__name__)


class CssCoverage:
    """Collects the stylesheets a page loads between ``start`` and ``stop``.

    The collected set is reset whenever the page's execution contexts are
    cleared, so a reused page handle never reports stylesheets of the
    document it displayed before the navigation.
    """

    def __init__(self, page: Page):
        self._page = page
        self._session: Optional[CDPSession] = None
        self._source_urls: Dict[str, str] = {}
        self._texts: Dict[str, str] = {}
        self._pending: Set[asyncio.Future] = set()
        self._generation = 0
        self.enabled = False

    async def start(self) -> None:
        if self.enabled:
            raise RuntimeError("CSS coverage is already enabled")

        self._reset()
        session = await self._page.context.new_cdp_session(self._page)
        self._session = session
        session.on("CSS.styleSheetAdded", self._on_style_sheet_added)
        session.on("Runtime.executionContextsCleared", self._on_contexts_cleared)

        await session.send("Runtime.enable")
        await session.send("DOM.enable")
        await session.send("CSS.enable")
        await session.send("CSS.startRuleUsageTracking")
        self.enabled = True

    async def stop(self) -> List[CoverageRecord]:
        """Stop tracking and return records in stylesheet attach order.

        Returns an empty list when coverage was never started.
        """
        if not self.enabled:
            return []
        self.enabled = False

        session = self._session
        try:
            await session.send("CSS.stopRuleUsageTracking")
            if self._pending:
                await asyncio.gather(*list(self._pending))
            await session.send("CSS.disable")
            await session.send("DOM.disable")
        finally:
            await self._detach()

        records = [
            CoverageRecord(source_url=url, css_text=self._texts[sheet_id])
            for sheet_id, url in self._source_urls.items()
            if sheet_id in self._texts
        ]
        LOGGER.debug("CSS coverage collected %d stylesheet(s)", len(records))
        return records

    async def close(self) -> None:
        """Release the DevTools session without collecting anything."""
        self.enabled = False
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._detach()

    def _reset(self) -> None:
        self._source_urls.clear()
        self._texts.clear()
        self._generation += 1

    def _on_contexts_cleared(self, _params: Any = None) -> None:
        self._reset()

    def _on_style_sheet_added(self, params: Dict[str, Any]) -> None:
        header = params.get("header") or {}
        source_url = header.get("sourceURL")
        sheet_id = header.get("styleSheetId")
        if not source_url or not sheet_id:
            return

        self._source_urls[sheet_id] = source_url
        task = asyncio.ensure_future(self._fetch_text(sheet_id, self._generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _fetch_text(self, sheet_id: str, generation: int) -> None:
        session = self._session
        if session is None:
            return
        try:
            response = await session.send(
                "CSS.getStyleSheetText", {"styleSheetId": sheet_id}
            )
        except PlaywrightError as exc:
            # Sheet removed before its text could be read
            LOGGER.debug("Could not read stylesheet %s: %s", sheet_id, exc)
            return
        if generation == self._generation:
            self._texts[sheet_id] = response.get("text", "")

    async def _detach(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.detach()
        except PlaywrightError as exc:
            LOGGER.debug("Detaching DevTools session failed: %s", exc)
