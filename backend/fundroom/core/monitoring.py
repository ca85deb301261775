"""Error monitoring collaborator.

Unexpected failures at the outer boundaries (entry proxy, catch-all
exception handler, magic-link verification) are reported here with request
metadata only. The default reporter emits structured structlog events; a
deployment can swap in a vendor-backed reporter with ``set_error_reporter``.

Security: context values under secret-looking keys are scrubbed before
they are emitted.
"""

from typing import Any, Protocol

import structlog

_SCRUB_KEYS = frozenset(
    {
        "token",
        "secret",
        "password",
        "checksum",
        "cookie",
        "authorization",
        "access_token",
        "refresh_token",
    }
)
_SCRUBBED = "[scrubbed]"


def scrub_context(context: dict[str, Any]) -> dict[str, Any]:
    """Replace secret-looking values in a flat context dict.

    Args:
        context: Arbitrary key/value metadata.

    Returns:
        Copy of the context with sensitive values replaced.
    """
    return {
        key: _SCRUBBED if key.lower() in _SCRUB_KEYS else value
        for key, value in context.items()
    }


class ErrorReporter(Protocol):
    """What the boundaries need from an error-monitoring service."""

    def report_error(self, exc: BaseException, **context: Any) -> None: ...

    def report_info(self, message: str, **context: Any) -> None: ...


class StructlogErrorReporter:
    """Reporter that writes monitoring events to the structured log."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger("fundroom.monitoring")

    def report_error(self, exc: BaseException, **context: Any) -> None:
        self._logger.error(
            "monitoring.error",
            error_type=type(exc).__name__,
            exc_info=exc,
            **scrub_context(context),
        )

    def report_info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **scrub_context(context))


_reporter: ErrorReporter = StructlogErrorReporter()


def get_error_reporter() -> ErrorReporter:
    """Return the process-wide reporter."""
    return _reporter


def set_error_reporter(reporter: ErrorReporter) -> ErrorReporter:
    """Install a reporter and return the previous one (tests restore it)."""
    global _reporter
    previous = _reporter
    _reporter = reporter
    return previous
