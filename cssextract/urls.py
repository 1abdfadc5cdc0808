"""URL normalization and validation used to key the result cache."""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit, urlunsplit

from .errors import InvalidUrlError

DEFAULT_PORTS = {"http": 80, "https": 443}
ALLOWED_SCHEMES = frozenset(DEFAULT_PORTS)

# Tracking parameters never change the rendered CSS
_TRACKING_PARAM = re.compile(r"^utm_\w+", re.IGNORECASE)
_HOST_LABEL = re.compile(r"^[\w-]+$")
_DUPLICATE_SLASHES = re.compile(r"/{2,}")


def normalize_url(url: str, *, strip_www: bool = False) -> str:
    """Return the canonical form of ``url``.

    - prepends ``http://`` when no scheme is given
    - lowercases scheme and host, drops default ports
    - collapses duplicate slashes and strips the trailing slash
    - drops the fragment and ``utm_*`` parameters, sorts the query
    - removes a leading ``www.`` only when ``strip_www`` is set

    Normalizing an already normalized URL returns it unchanged.

    Raises:
        InvalidUrlError: If the URL cannot be split (e.g. a bad port).
    """
    candidate = url.strip()
    if candidate.startswith("//"):
        candidate = "http:" + candidate
    elif "://" not in candidate:
        candidate = "http://" + candidate

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidUrlError(url) from exc

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if strip_www and host.startswith("www.") and host.count(".") > 1:
        host = host[4:]
    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = _DUPLICATE_SLASHES.sub("/", parts.path).rstrip("/")

    # Pairs stay exactly as written: the navigated URL must not be re-encoded
    pairs = [
        pair
        for pair in parts.query.split("&")
        if pair and not _TRACKING_PARAM.match(pair.partition("=")[0])
    ]
    pairs.sort(key=lambda pair: pair.partition("=")[0])
    query = "&".join(pairs)

    return urlunsplit((scheme, netloc, path, query, ""))


def is_url(url: str) -> bool:
    """Whether ``url`` is a well-formed absolute http(s) URL."""
    if not url or any(ch.isspace() for ch in url):
        return False
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError:
        return False

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    host = parts.hostname
    if not host:
        return False
    if host == "localhost":
        return True
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass

    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    return all(
        label and _HOST_LABEL.match(label) and not label.startswith("-")
        for label in labels
    )


def is_stylesheet_url(url: str) -> bool:
    """Whether the URL path points at a literal ``.css`` resource."""
    return urlsplit(url).path.lower().endswith(".css")


def same_page(first: str, second: str) -> bool:
    """Compare two URLs by their normalized form."""
    if first == second:
        return True
    try:
        return normalize_url(first) == normalize_url(second)
    except InvalidUrlError:
        return False
