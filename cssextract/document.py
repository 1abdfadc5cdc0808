"""Data structures exchanged between the browser and the merge step."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class NavigationOutcome:
    """Main-frame response observed while navigating to a page."""

    status: int
    status_text: str = ""

    @property
    def failed(self) -> bool:
        return self.status >= 400


@dataclass(slots=True, frozen=True)
class CoverageRecord:
    """One stylesheet the browser reported during coverage collection."""

    source_url: str
    css_text: str


@dataclass(slots=True, frozen=True)
class InlineStyleDeclaration:
    """Raw ``style`` attribute text of a single element."""

    raw_declaration_text: str


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """Cached extraction result. Replaced wholesale, never mutated."""

    key: str
    value: str
    inserted_at: float
