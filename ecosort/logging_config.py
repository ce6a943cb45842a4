"""Logging configuration.

Library modules only create module loggers. Applications (the CLI, request
handlers) call setup_logging() once at startup.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "[%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers quieted to WARNING
_SUPPRESSED_LOGGERS = (
    "httpx",
    "httpcore",
    "psycopg",
    "psycopg.pool",
)

_configured = False


def setup_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Install a rich handler on the root logger. Idempotent."""
    global _configured
    if _configured:
        return
    _configured = True

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=[handler],
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
