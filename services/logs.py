from __future__ import annotations

import logging
import os

import structlog

LOG_LEVEL = os.environ.get("MTRACK_LOG_LEVEL", "INFO").upper()

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
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(format="%(message)s", level=(level or LOG_LEVEL).upper())


def get_logger(name: str):
    return structlog.get_logger(name)
