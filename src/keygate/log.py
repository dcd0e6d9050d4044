"""Logging setup — stdlib logging underneath, structlog on top.

Learn: structlog renders the event, stdlib logging does the I/O, so
uvicorn's own loggers and ours share one handler and one level.
The contextvars processor merges whatever the request-id middleware
bound for the current request into every event, so a log line from the
store carries the same request_id as the request that caused it.
"""

import logging

import structlog


def configure_logging(level: str = "info", json: bool = False) -> None:
    """Configure stdlib logging and structlog for the process."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
