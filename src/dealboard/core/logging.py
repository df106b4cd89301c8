"""structlog configuration for the deal board.

Console output in development, JSON lines in production. Every module logs
through ``structlog.get_logger(__name__)`` with dotted event names
(``board.move_applied``) and keyword context. Context bound with
``bind_board_context`` (e.g. a board session id) is merged into every event.
"""

from __future__ import annotations

import logging

import structlog

from src.dealboard.config import Environment, Settings, get_settings


def _board_processors(settings: Settings) -> list:
    """Processor chain: level filter, context, metadata, then a renderer."""
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.ENVIRONMENT == Environment.production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exc_info itself.
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(settings: Settings | None = None) -> None:
    """Configure stdlib logging and structlog for the configured environment."""
    settings = settings or get_settings()

    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

    structlog.configure(
        processors=_board_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_board_context(**context) -> None:
    """Attach context (e.g. ``board_session``) to every subsequent log event."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)
