"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

import structlog

from collateral_watch.core.config import get_settings


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog with JSON or console renderer.

    Args:
        level: Log level (e.g. "DEBUG"). Falls back to the cached settings if None.
        fmt: Renderer format ("json" or "console"). Falls back to the cached
            settings if None.
        stream: Output stream for the root handler. Defaults to stderr so
            findings printed on stdout stay machine-readable.
    """
    if level is None or fmt is None:
        settings = get_settings()
        level = level or settings.logging.level
        fmt = fmt or settings.logging.format
    log_level = getattr(logging, level.upper(), logging.INFO)
    log_format = fmt

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


@contextmanager
def contract_context(contract_id: str, **extra: object) -> Iterator[None]:
    """Bind ``contract_id`` (and any extras) to every log line in the block.

    Context variables are task-local, so concurrently running contract
    cycles each see only their own binding.
    """
    with structlog.contextvars.bound_contextvars(contract_id=contract_id, **extra):
        yield
