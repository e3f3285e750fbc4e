"""
Structured logging setup.

JSON output outside development, console rendering in development. Loggers are
named under the ``clinica.`` hierarchy, e.g. ``get_logger("clinica.flows")``.
"""

import logging
import sys
from typing import Optional

import structlog

from ..config import get_settings


_configured = False


def setup_logging(level: Optional[str] = None, environment: Optional[str] = None) -> None:
    """Configure structlog on top of the standard logging module."""
    global _configured

    settings = get_settings()
    level = (level or settings.log_level).upper()
    environment = environment or settings.environment

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "development":
        final_processor = structlog.dev.ConsoleRenderer()
    else:
        final_processor = structlog.processors.JSONRenderer(ensure_ascii=False)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final_processor,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    if _configured:
        for existing in list(root_logger.handlers):
            if isinstance(existing.formatter, structlog.stdlib.ProcessorFormatter):
                root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger bound to ``name``."""
    return structlog.get_logger(name)
