import logging
import sys

import structlog

from groceryindex.config import settings


def configure_logging(level: int | None = None):
    """Configure structlog with JSON rendering and contextvars for request tracing.

    Routes structlog through the stdlib root logger so uvicorn and SQLAlchemy
    output share one stream. Called from the app lifespan and from the
    reconciliation worker entry point.
    """
    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # must stay first
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
