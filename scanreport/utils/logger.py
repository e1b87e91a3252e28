"""
Logging configuration for ScanReport.

structlog with JSON output in production and a console renderer in debug.
Export calls bind their artifact name into the context so every event of
one export can be correlated.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from structlog.types import Processor

from scanreport.config import settings

# Imaging and PDF libraries log every chunk and font lookup at DEBUG
NOISY_LOGGERS = ("PIL", "reportlab", "pdfminer", "multipart")


def configure_logging(
    log_level: Optional[str] = None,
    json_format: bool = True
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (defaults to settings.log_level)
        json_format: Whether to output JSON (True) or console format (False)
    """
    level = (log_level or settings.log_level).upper()
    numeric_level = getattr(logging, level, logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str = "scanreport") -> structlog.BoundLogger:
    """Get a structured logger bound to a component name."""
    return structlog.get_logger(name, component=name)


@contextmanager
def export_context(**fields) -> Iterator[None]:
    """Bind export fields (artifact, format) to every log event in the block."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield


configure_logging(
    log_level=settings.log_level,
    json_format=not settings.debug
)
