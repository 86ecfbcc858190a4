"""Structured logging for the RPG combat engine.

structlog renders events for humans while debugging and as JSON lines in
production. Every event carries ``app`` plus whatever the client bound with
:func:`bind_context` (typically ``game_id``, ``encounter_id`` and ``role``),
so one game's turn history can be filtered out of a shared log.

Example:
    >>> from rpg_combat.core.logging import configure_logging, get_logger
    >>> configure_logging(settings)
    >>> logger = get_logger(__name__)
    >>> logger.info("Turn advanced", encounter_id="abc", current_turn=2)
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from rpg_combat.core.config import Settings


APP_NAME = "rpg_combat"


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every event with the application name."""
    event_dict["app"] = APP_NAME
    return event_dict


def enum_values(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Log enum members (statuses, participant types) by their value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def build_processors(*, json_format: bool) -> list[Processor]:
    """Assemble the structlog processor chain.

    Args:
        json_format: Render JSON lines instead of the console format.

    Returns:
        Processors ending in a renderer.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        enum_values,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Unset arguments come from settings: ``log_level`` for the level, and
    JSON output whenever the app is not in debug mode.

    Args:
        settings: Settings to read defaults from. Defaults to the global settings.
        level: Logging level override.
        json_format: Output format override.
        log_file: Optional file that also receives stdlib log records.
    """
    if settings is None:
        from rpg_combat.core.config import get_settings

        settings = get_settings()

    level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.is_production
    numeric_level = getattr(logging, level, logging.INFO)

    structlog.configure(
        processors=build_processors(json_format=json_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # sqlite3 and other libraries log through the standard library
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setLevel(numeric_level)
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logging.getLogger().addHandler(handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, typically with ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind keys included in every later event from this context.

    Example:
        >>> bind_context(game_id="g-1", role="master")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "add_app_context",
    "enum_values",
    "build_processors",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
