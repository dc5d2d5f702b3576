"""
Structured logging setup.

All modules log through ``structlog.get_logger(__name__)`` with snake_case
event names. Request-scoped fields (request_id, method, path) are merged
in from contextvars bound by the request context middleware.
"""

import logging
import sys
from typing import Optional

import structlog

from riskanalytics.config import settings


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure stdlib logging and the structlog processor chain."""
    level_name = (level or settings.log_level).upper()
    renderer_format = fmt or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if renderer_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
