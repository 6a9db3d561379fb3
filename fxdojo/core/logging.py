import logging
import sys
from typing import Optional, Union

import structlog

# loggers that repeat what the request middleware already records
QUIET_LOGGERS = ("uvicorn.access", "httpx")


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Send structlog and stdlib records to stdout as one JSON line each.

    The API, the Celery worker and the management scripts all call this at
    startup. The level defaults to the LOG_LEVEL setting. Anything bound with
    ``structlog.contextvars`` (the request id, for one) is merged into every
    record, stdlib ones included.
    """
    if level is None:
        from fxdojo.core.config import settings

        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        timestamper,
    ]

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    return structlog.get_logger(name)
