"""
Command-line entry point: sync one player's match history and print it.

    python main.py <puuid> [--platform na1] [--window 300]
                   [--cache-backend file|redis] [--pretty]
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from riftsync.adapters.factory import sync_once
from riftsync.config.settings import CACHE_BACKENDS, Settings, get_settings
from riftsync.contracts import Platform
from riftsync.core.errors import CacheIOError, UpstreamError
from riftsync.core.observability import configure_stdlib_json_logging

EXIT_UPSTREAM_ERROR = 2
EXIT_CACHE_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync a player's recent League of Legends match history into the cache."
    )
    parser.add_argument("puuid", help="Riot player PUUID")
    parser.add_argument(
        "--platform",
        type=str.lower,
        choices=[p.value for p in Platform],
        metavar="PLATFORM",
        help="Platform routing value, e.g. na1, euw1, kr",
    )
    parser.add_argument("--window", type=int, help="Match window size (max matches kept)")
    parser.add_argument("--cache-backend", choices=CACHE_BACKENDS, help="Cache store to use")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Settings with command-line flags taking precedence over the environment."""
    overrides: dict[str, Any] = {}
    if args.platform:
        overrides["riot_platform"] = args.platform
    if args.window is not None:
        if args.window < 1:
            raise SystemExit("--window must be >= 1")
        overrides["match_window_size"] = args.window
    if args.cache_backend:
        overrides["cache_backend"] = args.cache_backend
    return settings.model_copy(update=overrides) if overrides else settings


async def run(settings: Settings, puuid: str, *, pretty: bool = False) -> int:
    logger = logging.getLogger(__name__)
    try:
        result = await sync_once(settings, puuid)
    except UpstreamError as e:
        logger.error(f"Sync failed for {puuid}: {e}", extra={"error": e.to_dict()})
        print(json.dumps({"error": e.to_dict()}), file=sys.stderr)
        return EXIT_UPSTREAM_ERROR
    except CacheIOError as e:
        logger.error(f"Sync aborted for {puuid}: {e}", extra={"error": e.to_dict()})
        print(json.dumps({"error": e.to_dict()}), file=sys.stderr)
        return EXIT_CACHE_ERROR

    print(json.dumps(result.to_payload(), indent=2 if pretty else None, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(), args)
    configure_stdlib_json_logging(level=settings.app_log_level)
    return asyncio.run(run(settings, args.puuid, pretty=args.pretty))


if __name__ == "__main__":
    sys.exit(main())
