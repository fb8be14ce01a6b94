"""structlog configuration for applications embedding orgscope."""

from __future__ import annotations

import logging

import structlog

from orgscope.config import LogFormat, OrgScopeSettings


def configure_logging(settings: OrgScopeSettings | None = None) -> None:
    """Configure structlog with the level and renderer from ``settings``."""
    settings = settings or OrgScopeSettings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.types.Processor
    if settings.log_format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
