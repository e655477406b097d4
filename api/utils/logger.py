"""
Structured logging configuration
"""
import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import LoggerFactory

from api.config import settings


def setup_logging(level: Optional[str] = None, console: Optional[bool] = None) -> None:
    """
    Configure stdlib logging and structlog for the API server and the CLI.

    Args:
        level: Log level name, defaults to ``API_LOG_LEVEL``
        console: Render human-readable lines instead of JSON, defaults to ``DEBUG``
    """
    level_name = (level or settings.API_LOG_LEVEL).upper()
    use_console = settings.DEBUG if console is None else console

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name),
        force=True,
    )

    renderer = structlog.dev.ConsoleRenderer() if use_console else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
