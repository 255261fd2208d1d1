"""structlog configuration for forgectl.

Two output modes:
- Pretty (default): colored console output to stderr
- JSON (--log-format json): structured JSON lines to stderr

Logging is configured once per process. Errors that happen before
:func:`configure_logging` runs are written to raw stderr by the CLI error
handler, which checks :func:`is_logging_configured` first.
"""

from __future__ import annotations

import logging
import sys

import structlog

_LEVELS: dict[str, int] = {
    "silent": logging.CRITICAL + 10,
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

_configured = False


def level_number(level: str) -> int:
    """Map a forge log level name to a stdlib level number."""
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        msg = f"Unknown log level: {level}"
        raise ValueError(msg) from None


def is_logging_configured() -> bool:
    """Whether :func:`configure_logging` has run in this process."""
    return _configured


def configure_logging(
    *,
    level: str = "info",
    log_format: str = "pretty",
    color: bool = False,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        level: Forge log level name (``debug``, ``info``, ``warn``, ...).
        log_format: ``"pretty"`` for the console renderer, ``"json"`` for JSON lines.
        color: Colorize pretty output.
    """
    global _configured

    forge_level = level_number(level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=color)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(max(logging.WARNING, forge_level))

    logging.getLogger("forgectl").setLevel(forge_level)
    # Command modules log under their own names through forgectl.command.get_logger.
    logging.getLogger("forge").setLevel(forge_level)
    logging.getLogger("pip").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _configured = True


def reset_logging() -> None:
    """Forget that logging was configured (tests only)."""
    global _configured
    _configured = False
