"""
Structured logging setup.

All modules log through ``structlog.get_logger(__name__)`` with snake_case
event names and key/value context. Applications call setup_logging() once at
startup to route those events through the standard library logging module.
"""

import logging
from typing import Optional

import structlog

from marketfeed.config.models import LogFormat, LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and standard logging.

    Args:
        config: Logging configuration. Defaults to JSON output at INFO.
    """
    config = config or LoggingConfig()

    if config.format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, config.level.value),
    )

    # Reduce noise from the websocket library's frame-level debug output
    logging.getLogger("websockets").setLevel(logging.WARNING)
