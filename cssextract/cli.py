"""Command-line interface for CSS extraction."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import SettingsOverrides, load_env_files, load_settings
from .errors import CssExtractionError, InvalidUrlError
from .server import DEFAULT_HOST, DEFAULT_PORT, run


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _write_output(css: str, output: Optional[str]) -> None:
    """Write CSS to stdout or to a file."""
    if output is None:
        print(css)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(css, encoding="utf-8")
    logging.info("Wrote %s", path)


# =============================================================================
# EXTRACT COMMAND
# =============================================================================


def _parse_extract_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="extract-css",
        description="Extract all CSS used by a web page.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # CSS to stdout
  extract-css https://example.com

  # CSS to file
  extract-css https://example.com -o example.css

  # Programmatic CSS first, no inline styles
  extract-css https://example.com --policy legacy

  # Fail when CSS coverage cannot be started
  extract-css https://example.com --strict-coverage

  # Run the HTTP server
  extract-css serve --port 3000
""",
    )
    parser.add_argument("url", help="URL to extract CSS from")
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--policy",
        choices=["default", "legacy"],
        default=None,
        help="Merge policy (default: CSS_MERGE_POLICY or 'default')",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Extraction timeout in seconds (default: CSS_EXTRACT_TIMEOUT or 30)",
    )
    parser.add_argument(
        "--wait-until",
        choices=["load", "domcontentloaded", "networkidle", "commit"],
        default=None,
        help="Navigation completion event (default: networkidle)",
    )
    parser.add_argument(
        "--strict-coverage",
        action="store_true",
        help="Treat a failure to start CSS coverage as an error",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def _overrides_from_args(args: argparse.Namespace) -> SettingsOverrides:
    return SettingsOverrides(
        merge_policy=args.policy,
        extract_timeout=args.timeout,
        wait_until=args.wait_until,
        tolerate_coverage_errors=False if args.strict_coverage else None,
        headless=False if args.headed else None,
    )


async def _run_extract_async(args: argparse.Namespace) -> int:
    from . import extract_css_async

    settings = load_settings(_overrides_from_args(args))
    logging.info("Extracting CSS: %s", args.url)
    css = await extract_css_async(args.url, settings=settings)
    _write_output(css, args.output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for extract-css."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] == "serve":
        return serve_main(argv[1:])

    args = _parse_extract_args(argv)
    _setup_logging(args.verbose)
    load_env_files()

    try:
        return asyncio.run(_run_extract_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except InvalidUrlError as exc:
        logging.error("%s: %s", exc, args.url)
        return 2
    except CssExtractionError as exc:
        logging.error("Error: %s", exc)
        return 1
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


# =============================================================================
# SERVE COMMAND
# =============================================================================


def _parse_serve_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="extract-css serve",
        description="Serve extracted CSS over HTTP: GET /<url>",
    )
    parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help=f"Host to bind to (default: {DEFAULT_HOST})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to bind to (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def serve_main(argv: Optional[List[str]] = None) -> int:
    args = _parse_serve_args(argv)
    _setup_logging(args.verbose)
    load_env_files()

    try:
        run(host=args.host, port=args.port, settings=load_settings())
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
