"""structlog setup shared by both services.

Learn: Request-scoped values (request_id, service, user_id) are bound with
structlog.contextvars by the middleware, so merge_contextvars must stay
first in the processor chain for them to show up on every log line.
"""

import logging

import structlog

from microtodo.config import Settings


def configure_logging(settings: Settings) -> None:
    """Console output in development, JSON lines everywhere else."""
    level = logging.DEBUG if settings.debug else logging.INFO
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
