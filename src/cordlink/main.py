"""
main.py — cordlink Entry Point

Usage:
    python -m cordlink                              # connect with default settings
    python -m cordlink --status idle                # override presence status
    python -m cordlink --log-level DEBUG            # verbose logging
    python -m cordlink --config path/to/config.yaml
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cordlink",
        description="cordlink: push-event gateway bot client",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $CORDLINK_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    parser.add_argument(
        "--status",
        choices=["online", "dnd", "idle", "invisible"],
        default=None,
        help="Presence status sent with Identify (overrides gateway.status)",
    )
    return parser.parse_args(argv)


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it fully, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 1 (after printing a clear message) if:
      - config.yaml has invalid values (Pydantic ValidationError)
      - cross-field problems are found (ConfigError from validate_all())
    """
    from pydantic import ValidationError

    from cordlink.config.settings import ConfigError, load_settings
    from cordlink.observability.logger import get_logger, setup_logging

    # -- Load and parse -------------------------------------------------------
    try:
        settings = load_settings(args.config)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {e['loc'][-1] if e['loc'] else '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\n❌  Config validation failed:\n\n{problems}\n\n"
            f"    Fix config/config.yaml or your .env file and restart.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    except OSError as exc:
        print(
            f"\n❌  Failed to load config: {type(exc).__name__}: {exc}\n",
            file=sys.stderr,
        )
        sys.exit(1)

    # -- Cross-field validation -----------------------------------------------
    try:
        settings.validate_all()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    # -- Logging --------------------------------------------------------------
    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output,
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    log = get_logger("cordlink.main")
    return settings, log


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings, log = bootstrap(args)

    log.info(
        "cordlink.starting",
        intents=settings.gateway.intents,
        api_base=settings.gateway.api_base,
        gateway_version=settings.gateway.gateway_version,
    )

    from cordlink.interfaces.console import run_console

    return await run_console(settings, log, status=args.status)
