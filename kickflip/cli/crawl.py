"""Operator CLI for the batch crawler and the embedding backfill.

Usage::

    python -m kickflip.cli crawl
    python -m kickflip.cli crawl --window-days 14
    python -m kickflip.cli seed

Both commands build the same components as the web app, so they read the
same ``.env`` / ``config/config.yaml`` settings, and print the run summary
as JSON on stdout.  They require a datastore and an embedding key.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Sequence

from kickflip.config.loader import load_settings
from kickflip.config.settings import Settings
from kickflip.utils.logging import configure_logging


def _build_components(app_settings: Settings) -> dict[str, Any]:
    # Deferred so ``--help`` stays fast and free of SDK imports.
    from kickflip.main import _build_all

    return _build_all(app_settings)


async def _run(command: str, args: argparse.Namespace, components: dict[str, Any]) -> int:
    try:
        await components["index"].initialize()
        await components["cache"].initialize()
        if command == "crawl":
            summary = await components["crawler"].run(window_days=args.window_days)
        else:
            summary = await components["backfill"].run()
        print(summary.model_dump_json(indent=2))
        return 0
    finally:
        await components["http_client"].aclose()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m kickflip.cli",
        description="Fill and maintain the Kickflip event index.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Index commands")

    crawl_parser = subparsers.add_parser("crawl", help="Run one batch crawl cycle")
    crawl_parser.add_argument(
        "--window-days",
        type=int,
        default=None,
        dest="window_days",
        help="Days ahead to keep events for (default: CRAWL_WINDOW_DAYS)",
    )

    subparsers.add_parser("seed", help="Embed stored events that have no vector")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, run the chosen command and return the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "crawl" and args.window_days is not None and args.window_days < 0:
        print("Error: --window-days must be zero or positive.", file=sys.stderr)
        return 2

    app_settings = load_settings()
    configure_logging(log_level=app_settings.log_level, json_output=True)

    components = _build_components(app_settings)
    if components["index"] is None:
        print(
            "Error: no backend configured. Set DATASTORE_URL and an embedding key.",
            file=sys.stderr,
        )
        asyncio.run(components["http_client"].aclose())
        return 1

    return asyncio.run(_run(args.command, args, components))


if __name__ == "__main__":
    sys.exit(main())
