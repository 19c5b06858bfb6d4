"""structlog setup shared by the web app and the CLI.

Library modules log through ``logging.getLogger(__name__)``; the web layer
uses ``structlog.get_logger()``. Both end up in the same handlers, where a
``ProcessorFormatter`` runs stdlib records through the structlog pre-chain
and a single renderer, so console and JSON output look the same whichever
API emitted the line.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from bomcheck.config import get_config

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def _timestamped_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering every record as JSON or as coloured console text."""
    if log_format == "json":
        renderers: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_timestamped_chain(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
    log_file: str | Path | None = None,
) -> None:
    """Route structlog and stdlib logging through one set of handlers.

    Args:
        level: Root log level (defaults to LOG_LEVEL)
        log_format: "json" or "text" (defaults to JSON_LOGS)
        log_file: Extra file to append to (defaults to LOG_FILE)

    Safe to call more than once; handlers installed by an earlier call are
    replaced.
    """
    config = get_config()
    level = (level or config.log_level).upper()
    formatter = build_formatter(log_format or config.log_format)

    structlog.configure(
        processors=[
            *_timestamped_chain(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = log_file or config.log_file
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
