"""structlog configuration.

Called once from the application factory. Modules get loggers with
``structlog.get_logger()`` and log events with key/value context.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """Configure structlog processors and the minimum log level.

    Args:
        level: Minimum level name (e.g., "INFO", "DEBUG").
        json: Render JSON lines instead of the console renderer.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=False,
    )
