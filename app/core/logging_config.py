"""
structlog setup for the API.

JSON lines in production (or whenever LOG_JSON is set), a readable console
format otherwise. Request-scoped values bound by the middleware and the auth
guard (request_id, account_id, path, client_ip) are merged into every event.

    from app.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Post created", post_id=post.id, slug=post.slug)
"""

import logging
import sys
from typing import Any, Optional

import structlog

from app.core.config import settings

# Libraries whose INFO output is request-level noise
QUIET_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "urllib3", "cloudinary")


def configure_logging(json_logs: Optional[bool] = None, level: Optional[str] = None) -> None:
    if json_logs is None:
        json_logs = settings.is_production or settings.LOG_JSON
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # No colour codes in captured test output
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


configure_logging()
