# src/main.py — v1
"""CLI entry point: status and fallback maintenance commands.

Usage:
    repairsync status
    repairsync fallback list [--session ID]
    repairsync fallback push [--session ID] [--delete]

Configuration comes from .env / environment (see config/settings.py).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from repairsync.config.settings import ConfigurationError, Settings, load_settings
from repairsync.logging.logger import setup_logging
from repairsync.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        args.settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _setup_logging(args.settings, args.verbose)

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="repairsync",
        description=f"repairsync v{__version__} - repair session sync maintenance",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Check object store and fallback directory",
    )
    p_status.set_defaults(func=_cmd_status)

    # --- fallback ---
    p_fallback = subparsers.add_parser(
        "fallback", help="Inspect or replay local fallback artifacts",
    )
    fallback_sub = p_fallback.add_subparsers(dest="fallback_command")

    p_list = fallback_sub.add_parser("list", help="List fallback artifacts")
    p_list.add_argument("--session", default=None, help="Only this session id")
    p_list.set_defaults(func=_cmd_fallback_list)

    p_push = fallback_sub.add_parser(
        "push", help="Upload fallback artifacts to the object store",
    )
    p_push.add_argument("--session", default=None, help="Only this session id")
    p_push.add_argument(
        "--delete", action="store_true",
        help="Delete local files once uploaded",
    )
    p_push.set_defaults(func=_cmd_fallback_push)

    return parser


async def _cmd_status(args: argparse.Namespace) -> int:
    """Check reachability of the configured stores."""
    from repairsync.api.facade import SyncFacade

    facade = SyncFacade.from_settings(args.settings)
    statuses = await facade.status()

    print("\nStore status:")
    for name, status in statuses.items():
        state = "ok" if status.is_configured else "UNAVAILABLE"
        line = f"  {name:15s} {status.backend:7s} {status.bucket}  [{state}]"
        if status.message:
            line += f"  {status.message}"
        print(line)
    return 0 if all(s.is_configured for s in statuses.values()) else 2


async def _cmd_fallback_list(args: argparse.Namespace) -> int:
    """List local fallback artifacts."""
    from repairsync.storage.store_factory import create_fallback_store

    store = create_fallback_store(args.settings)
    artifacts = store.list_artifacts(args.session)

    print(f"\nFallback artifacts in {store.base_dir}:")
    for path in artifacts:
        print(f"  {path.relative_to(store.base_dir)}  ({path.stat().st_size} bytes)")
    print(f"  Total: {len(artifacts)}")
    return 0


async def _cmd_fallback_push(args: argparse.Namespace) -> int:
    """Replay local fallback artifacts to the object store."""
    from repairsync.api.facade import SyncFacade
    from repairsync.sync.replay import FallbackReplayer

    facade = SyncFacade.from_settings(args.settings)
    replayer = FallbackReplayer(facade.fallback_store, facade.publisher)
    results = await replayer.push(session_id=args.session, delete=args.delete)

    print("\nFallback replay:")
    for result in results:
        target = result.location_uri or result.error or ""
        print(f"  {result.status:12s} {result.path.name}  {target}")

    failed = sum(1 for r in results if r.status == "failed")
    done = sum(1 for r in results if r.status in ("uploaded", "deduplicated"))
    print(f"  Uploaded: {done}/{len(results)}")
    return 1 if failed else 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage: LOG_FORMAT to stdout, plus LOG_FILE if set."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
