"""
observability/logger.py — cordlink Structured Logger

Sets up structlog with:
  - JSON output to rotating log files
  - Human-readable output to console (dev mode) or JSON (prod mode)
  - Consistent fields on every log line: timestamp, level, event, logger

Usage:
    from cordlink.observability.logger import get_logger, setup_logging

    setup_logging(level="DEBUG", json_format=False)   # call once at startup
    log = get_logger(__name__)
    log.info("gateway.hello", heartbeat_interval_ms=41250)
    log.warning("gateway.closed", code=4004, reason="Authentication failed")

The bot token is never passed as a log field.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 10 * 1024 * 1024,   # 10 MB
    backup_count: int = 5,
) -> None:
    """
    Configure structlog and stdlib logging. Call once at application startup.

    Args:
        level:          Log level string: DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory for rotating log files.
        json_format:    If True, console also emits JSON (production mode).
                        If False, console uses coloured human-readable format (dev mode).
        console_output: Whether to emit logs to stdout at all.
        max_bytes:      Max size of each log file before rotation.
        backup_count:   Number of rotated log files to keep.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # ── Shared structlog processors ───────────────────────────────────────────
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # ── File handler (always JSON) ────────────────────────────────────────────
    handlers: list[logging.Handler] = []

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / "cordlink.log",
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    handlers.append(file_handler)

    # ── Console handler (JSON or pretty) ─────────────────────────────────────
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        handlers.append(console_handler)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )

    # websockets logs every frame at DEBUG; keep it out of our output
    logging.getLogger("websockets").setLevel(max(numeric_level, logging.INFO))

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=shared_processors,
    )
    file_handler.setFormatter(file_formatter)

    if console_output:
        if json_format:
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=True)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                foreign_pre_chain=shared_processors,
            )
        )


def get_logger(name: str = "cordlink", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a bound logger with optional initial context values.

    Example:
        log = get_logger(__name__, component="heartbeat")
        log.info("heartbeat.sent")
        # → {"event": "heartbeat.sent", "component": "heartbeat",
        #    "logger": "cordlink.gateway.heartbeat", ...}
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_connection(gateway_url: str) -> None:
    """
    Bind the gateway URL to every log line emitted in this async context.

    Called by GatewayClient.connect() before the reader task is spawned, so
    the task (which copies the current context) inherits the binding.
    """
    structlog.contextvars.bind_contextvars(gateway_url=gateway_url)


def clear_connection() -> None:
    """Clear connection context vars after a disconnect."""
    structlog.contextvars.unbind_contextvars("gateway_url")
