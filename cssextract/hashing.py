"""Synthetic selectors for inline ``style`` attributes.

An element such as ``<h1 style="color: red;">`` becomes the rule::

    [x-inline-style-490693] { color: red; }

The 6-digit fragment is derived from the declaration text only, so equal
declarations share a selector and unrelated declarations may collide on
the truncated hash. Collisions are accepted: the selector identifies the
declaration, not the element.
"""

from __future__ import annotations

import hashlib

INLINE_SELECTOR_PREFIX = "x-inline-style-"
FRAGMENT_LENGTH = 6


def hash_string(text: str) -> str:
    """Hex MD5 digest of ``text`` encoded as UTF-8."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def synthetic_selector(declaration: str) -> str:
    """Attribute selector for an inline declaration, e.g. ``[x-inline-style-490693]``."""
    fragment = hash_string(declaration)[-FRAGMENT_LENGTH:]
    return f"[{INLINE_SELECTOR_PREFIX}{fragment}]"


def inline_rule(declaration: str) -> str:
    return f"{synthetic_selector(declaration)} {{ {declaration} }}"
