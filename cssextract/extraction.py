"""CSS extraction engine.

Three sources are combined into a single stylesheet:

- CSS coverage: linked stylesheets and ``<style>`` blocks the browser
  attached while loading the page.
- Programmatic stylesheets: sheets without an ``href`` (``<style>`` blocks,
  CSS-in-JS and constructed stylesheets), read through the CSSOM.
- Inline styles: every ``style`` attribute, turned into a rule with a
  synthetic selector (see :mod:`cssextract.hashing`).

Coverage reports ``<style>`` blocks under the page's own URL. Those are
also returned by the programmatic query, so the merge drops them from
the coverage segment unless the merge policy says otherwise.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .coverage import CssCoverage
from .document import CoverageRecord, InlineStyleDeclaration, NavigationOutcome
from .errors import BrowserProtocolError, ExtractionTimeout, NavigationError
from .hashing import inline_rule
from .urls import same_page

LOGGER = logging.getLogger(__name__)

COVERAGE = "coverage"
PROGRAMMATIC = "programmatic"
INLINE = "inline"
SEGMENTS = (COVERAGE, PROGRAMMATIC, INLINE)

SEPARATOR = "\n"
DEFAULT_TIMEOUT = 30.0
DEFAULT_WAIT_UNTIL = "networkidle"

# Rules of every sheet without an href, plus adopted constructed sheets.
# Cross-origin sheets throw on cssRules access and are skipped.
PROGRAMMATIC_CSS_SCRIPT = r"""
() => {
    const sheets = [...document.styleSheets].filter((sheet) => sheet.href === null);
    for (const sheet of document.adoptedStyleSheets || []) {
        if (!sheets.includes(sheet)) {
            sheets.push(sheet);
        }
    }
    return sheets
        .map((sheet) => {
            try {
                return [...sheet.cssRules].map((rule) => rule.cssText).join('\n');
            } catch (e) {
                return '';
            }
        })
        .filter(Boolean)
        .join('\n');
}
"""

INLINE_STYLES_SCRIPT = r"""
() => [...document.querySelectorAll('[style]')]
    .map((element) => element.getAttribute('style'))
    .filter(Boolean)
"""


@dataclass(frozen=True)
class MergePolicy:
    """How the three CSS sources are combined.

    Attributes:
        order: Segment names in output order. Segments left out are not
            emitted.
        include_inline: Collect ``style`` attributes at all.
        exclude_page_coverage: Drop coverage records reported under the
            page's own URL (``<style>`` blocks).
    """

    order: Tuple[str, ...] = (COVERAGE, PROGRAMMATIC, INLINE)
    include_inline: bool = True
    exclude_page_coverage: bool = True

    def __post_init__(self) -> None:
        unknown = [name for name in self.order if name not in SEGMENTS]
        if unknown:
            raise ValueError(f"Unknown CSS segment(s): {', '.join(unknown)}")
        if len(set(self.order)) != len(self.order):
            raise ValueError("CSS segments must not repeat")

    @classmethod
    def default(cls) -> "MergePolicy":
        return cls()

    @classmethod
    def legacy(cls) -> "MergePolicy":
        """Programmatic CSS first, then coverage, without inline styles."""
        return cls(order=(PROGRAMMATIC, COVERAGE), include_inline=False)

    @classmethod
    def from_name(cls, name: str) -> "MergePolicy":
        key = (name or "default").strip().lower()
        if key == "default":
            return cls.default()
        if key == "legacy":
            return cls.legacy()
        raise ValueError(f"Unknown merge policy '{name}' (expected default or legacy)")


@dataclass
class ExtractOptions:
    """Per-call extraction settings."""

    merge_policy: MergePolicy = field(default_factory=MergePolicy.default)
    tolerate_coverage_errors: bool = True
    timeout: Optional[float] = DEFAULT_TIMEOUT
    wait_until: str = DEFAULT_WAIT_UNTIL


def merge_css(
    records: Iterable[CoverageRecord],
    programmatic_css: str,
    declarations: Iterable[InlineStyleDeclaration],
    *,
    page_urls: Sequence[str],
    policy: MergePolicy,
) -> str:
    """Join the three sources in policy order, skipping empty segments."""
    records = list(records)
    if policy.exclude_page_coverage:
        records = [
            record
            for record in records
            if not any(same_page(record.source_url, url) for url in page_urls)
        ]

    segments = {
        COVERAGE: SEPARATOR.join(r.css_text for r in records if r.css_text),
        PROGRAMMATIC: programmatic_css or "",
        INLINE: "",
    }
    if policy.include_inline:
        segments[INLINE] = SEPARATOR.join(
            inline_rule(d.raw_declaration_text) for d in declarations
        )

    return SEPARATOR.join(segments[name] for name in policy.order if segments[name])


async def extract_css_from_page(
    page: Page,
    url: str,
    options: Optional[ExtractOptions] = None,
) -> str:
    """Navigate ``page`` to ``url`` and return every CSS rule it uses.

    Args:
        page: A Playwright page. It may have been used for earlier
            extractions but must not be shared with a concurrent one.
        url: The normalized URL to extract CSS from.
        options: Merge policy, timeout and coverage tolerance.

    Returns:
        The merged CSS text. Pages without any CSS return ``""``.

    Raises:
        NavigationError: If the page responded with status >= 400.
        BrowserProtocolError: If a browser round-trip failed.
        ExtractionTimeout: If the extraction exceeded ``options.timeout``.
    """
    options = options or ExtractOptions()
    if options.timeout is None:
        return await _extract(page, url, options)
    try:
        return await asyncio.wait_for(_extract(page, url, options), options.timeout)
    except asyncio.TimeoutError as exc:
        raise ExtractionTimeout(url, options.timeout) from exc


async def _extract(page: Page, url: str, options: ExtractOptions) -> str:
    policy = options.merge_policy
    coverage = CssCoverage(page)
    try:
        await _start_coverage(coverage, url, options)

        outcome = await _navigate(page, url, options)
        if outcome.failed:
            raise NavigationError(url, outcome.status, outcome.status_text)

        records = await coverage.stop()
        programmatic_css = await page.evaluate(PROGRAMMATIC_CSS_SCRIPT)
        declarations: List[InlineStyleDeclaration] = []
        if policy.include_inline:
            raw = await page.evaluate(INLINE_STYLES_SCRIPT)
            declarations = [InlineStyleDeclaration(text) for text in raw or []]
        final_url = page.url
    except PlaywrightTimeoutError as exc:
        raise ExtractionTimeout(url, options.timeout) from exc
    except PlaywrightError as exc:
        raise BrowserProtocolError(
            f"Browser failed while extracting CSS from {url}: {exc}", url=url
        ) from exc
    finally:
        await coverage.close()

    LOGGER.debug(
        "Extracted %d coverage record(s), %d inline style(s) from %s",
        len(records),
        len(declarations),
        url,
    )
    return merge_css(
        records,
        programmatic_css,
        declarations,
        page_urls=[url, final_url],
        policy=policy,
    )


async def _start_coverage(
    coverage: CssCoverage, url: str, options: ExtractOptions
) -> None:
    try:
        await coverage.start()
    except PlaywrightError as exc:
        if not options.tolerate_coverage_errors:
            raise
        LOGGER.warning("CSS coverage unavailable for %s: %s", url, exc)
        await coverage.close()


async def _navigate(page: Page, url: str, options: ExtractOptions) -> NavigationOutcome:
    # Playwright treats 0 as "no timeout"
    timeout_ms = options.timeout * 1000 if options.timeout else 0
    response = await page.goto(url, wait_until=options.wait_until, timeout=timeout_ms)
    if response is None:
        # Same-document navigation: nothing to judge
        return NavigationOutcome(status=0)
    return NavigationOutcome(status=response.status, status_text=response.status_text)
