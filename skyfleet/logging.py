"""Logging configuration for Skyfleet.

Structured logging via loguru. As a library, skyfleet keeps its loggers
disabled until the embedding process calls setup_logging.

Example:
    from skyfleet.logging import LogConfig, setup_logging, teardown_logging

    handler_ids = setup_logging(LogConfig(level="DEBUG", file="skyfleet.log"))
    ...
    teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from loguru import logger

logger.disable("skyfleet")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]

_CONTEXT_KEYS = (
    "component", "instance_id", "instance_type", "zone", "capacity_type", "node",
)


def _format_context(record: Any) -> str:
    extra = record.get("extra", {})
    parts = [f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra]
    return f" [{' '.join(parts)}]" if parts else ""


def _formatter(template: str) -> Callable[[Any], str]:
    # Per-sink context; the global patcher belongs to the host application
    def format_record(record: Any) -> str:
        record["extra"]["_ctx"] = _format_context(record)
        return template + "\n{exception}"

    return format_record


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    "<dim>{extra[_ctx]}</dim> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line}{extra[_ctx]} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Args:
        level: Minimum console level.
        file: Optional log file path; the file captures DEBUG and above.
        console: Write to stderr.
        rotation: File rotation threshold.
        retention: Rotated files kept.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Enable skyfleet logging and return handler IDs for cleanup."""
    logger.enable("skyfleet")
    handler_ids: list[int] = []

    if config.console:
        hid = logger.add(
            sys.stderr,
            level=config.level,
            format=_formatter(CONSOLE_FORMAT),
            colorize=True,
            filter="skyfleet",
        )
        handler_ids.append(hid)

    if config.file:
        hid = logger.add(
            config.file,
            level="DEBUG",
            format=_formatter(FILE_FORMAT),
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,  # tracebacks may carry credentials
            enqueue=True,
            filter="skyfleet",
        )
        handler_ids.append(hid)

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers and disable logging."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("skyfleet")
