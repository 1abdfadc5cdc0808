"""Runtime settings read from the environment.

Values are read when :func:`load_settings` is called, not at import time,
so ``.env`` files loaded late and monkeypatched variables are honoured.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, List, Optional

from dotenv import load_dotenv

from .cache import DEFAULT_MAX_AGE, DEFAULT_MAX_ENTRIES
from .extraction import DEFAULT_TIMEOUT, DEFAULT_WAIT_UNTIL, ExtractOptions, MergePolicy

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "cssextract"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"

PAGE_POLICIES = ("pool", "fresh")
WAIT_UNTIL_EVENTS = ("load", "domcontentloaded", "networkidle", "commit")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Settings:
    """Service configuration. Defaults match an unconfigured environment."""

    cache_max_entries: int = DEFAULT_MAX_ENTRIES
    cache_max_age: float = DEFAULT_MAX_AGE
    extract_timeout: Optional[float] = DEFAULT_TIMEOUT
    wait_until: str = DEFAULT_WAIT_UNTIL
    merge_policy: str = "default"
    tolerate_coverage_errors: bool = True
    page_policy: str = "pool"
    page_pool_size: int = 2
    strip_www: bool = False
    fetch_timeout: float = 30.0
    headless: bool = True
    executable_path: Optional[str] = None
    browser_args: List[str] = field(default_factory=list)

    def extract_options(self) -> ExtractOptions:
        return ExtractOptions(
            merge_policy=MergePolicy.from_name(self.merge_policy),
            tolerate_coverage_errors=self.tolerate_coverage_errors,
            timeout=self.extract_timeout,
            wait_until=self.wait_until,
        )


@dataclass
class SettingsOverrides:
    """Optional overrides, typically from command-line flags."""

    merge_policy: Optional[str] = None
    extract_timeout: Optional[float] = None
    wait_until: Optional[str] = None
    tolerate_coverage_errors: Optional[bool] = None
    headless: Optional[bool] = None


def load_env_files(
    *,
    cwd: Optional[Path] = None,
    load_env: Callable[[Path], bool] = load_dotenv,
    copy_file: Callable[[Path, Path], object] = shutil.copy,
) -> None:
    """Load ``.env`` from the working directory or the user config dir.

    If neither exists and the project ships a ``.env.example``, it is
    copied to ``~/.config/cssextract/.env`` as a starting point.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    if local_env.is_file():
        load_env(local_env)
        return

    if CONFIG_ENV_FILE.is_file():
        load_env(CONFIG_ENV_FILE)
        return

    example_file = Path(__file__).parent.parent / ".env.example"
    if example_file.is_file():
        try:
            CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            copy_file(example_file, CONFIG_ENV_FILE)
            LOGGER.info("Created config file at %s from .env.example", CONFIG_ENV_FILE)
            load_env(CONFIG_ENV_FILE)
        except OSError as exc:
            LOGGER.warning("Could not create %s: %s", CONFIG_ENV_FILE, exc)


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%r; falling back to %s.", name, raw, default)
        return default
    if value < minimum:
        LOGGER.warning("%s must be >= %d; falling back to %s.", name, minimum, default)
        return default
    return value


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%r; falling back to %s.", name, raw, default)
        return default
    if value <= 0:
        LOGGER.warning("%s must be > 0; falling back to %s.", name, default)
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    LOGGER.warning("Invalid %s=%r; falling back to %s.", name, raw, default)
    return default


def _env_choice(name: str, default: str, choices: tuple) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value not in choices:
        LOGGER.warning(
            "Unknown %s=%r (expected one of %s); falling back to %s.",
            name,
            raw,
            ", ".join(choices),
            default,
        )
        return default
    return value


def load_settings(overrides: Optional[SettingsOverrides] = None) -> Settings:
    """Build :class:`Settings` from environment variables."""
    settings = Settings(
        cache_max_entries=_env_int("CSS_CACHE_MAX_ENTRIES", DEFAULT_MAX_ENTRIES),
        cache_max_age=_env_float("CSS_CACHE_MAX_AGE", DEFAULT_MAX_AGE),
        extract_timeout=_env_float("CSS_EXTRACT_TIMEOUT", DEFAULT_TIMEOUT),
        wait_until=_env_choice("CSS_WAIT_UNTIL", DEFAULT_WAIT_UNTIL, WAIT_UNTIL_EVENTS),
        merge_policy=_env_choice("CSS_MERGE_POLICY", "default", ("default", "legacy")),
        tolerate_coverage_errors=_env_bool("CSS_TOLERATE_COVERAGE_ERRORS", True),
        page_policy=_env_choice("CSS_PAGE_POLICY", "pool", PAGE_POLICIES),
        page_pool_size=_env_int("CSS_PAGE_POOL_SIZE", 2),
        strip_www=_env_bool("CSS_STRIP_WWW", False),
        fetch_timeout=_env_float("CSS_FETCH_TIMEOUT", 30.0),
        headless=_env_bool("BROWSER_HEADLESS", True),
        executable_path=os.getenv("BROWSER_EXECUTABLE_PATH") or None,
        browser_args=(os.getenv("BROWSER_ARGS") or "").split(),
    )
    if overrides:
        settings = apply_overrides(settings, overrides)
    return settings


def apply_overrides(settings: Settings, overrides: SettingsOverrides) -> Settings:
    """Return a copy of ``settings`` with every non-None override applied."""
    changes = {}
    if overrides.merge_policy is not None:
        MergePolicy.from_name(overrides.merge_policy)
        changes["merge_policy"] = overrides.merge_policy.strip().lower()
    if overrides.extract_timeout is not None:
        changes["extract_timeout"] = overrides.extract_timeout
    if overrides.wait_until is not None:
        changes["wait_until"] = overrides.wait_until
    if overrides.tolerate_coverage_errors is not None:
        changes["tolerate_coverage_errors"] = overrides.tolerate_coverage_errors
    if overrides.headless is not None:
        changes["headless"] = overrides.headless
    return replace(settings, **changes)
