"""structlog configuration and log-safe helpers."""

import logging

import structlog

from fundroom.core.config import Settings


def configure_logging(config: Settings) -> None:
    """Configure stdlib logging and structlog once per process.

    JSON lines in production, console rendering everywhere else.

    Args:
        config: Application settings (log level, environment).
    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", level=level)

    renderer: structlog.types.Processor
    if config.is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

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


def mask_email(email: str | None) -> str:
    """Mask an e-mail for logs: keep the first three characters.

    Args:
        email: Address to mask. None or empty yields "none".

    Returns:
        e.g. "adm***" for "admin@example.com".
    """
    if not email:
        return "none"
    return f"{email[:3]}***"
