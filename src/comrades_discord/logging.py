"""Structured logging setup."""

from __future__ import annotations

import logging
import sys

import discord
import structlog
from structlog._config import BoundLoggerLazyProxy

__all__ = ["get_logger", "setup_logging"]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None


def setup_logging(level: str | int = "info", *, json: bool = False) -> None:
    """Configure structlog and route discord.py's stdlib logging at the same level."""
    numeric = _resolve_level(level)
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # the console renderer formats tracebacks itself
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    discord.utils.setup_logging(level=numeric, root=False)


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Logger whose lines carry ``logger=name``."""
    # structlog.get_logger(logger=...) clashes with wrap_logger's ``logger`` parameter,
    # so build the same lazy proxy it would return.
    return BoundLoggerLazyProxy(None, initial_values={"logger": name}, logger_factory_args=())
