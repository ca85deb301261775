"""Routing decisions returned by the classifier, domain rules and guard.

Every rule function returns exactly one Decision; the entry proxy is the
only place that turns a Decision into ASGI messages.
"""

from dataclasses import dataclass, field
from enum import Enum


class Action(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"
    REWRITE = "rewrite"
    REJECT = "reject"


@dataclass(frozen=True)
class Decision:
    """One routing outcome.

    Attributes:
        action: What to do with the request.
        target: Redirect Location or internal rewrite path.
        status_code: Redirect status, rejection status, or a status that
            overrides the downstream response of a rewrite.
        headers: Extra response headers.
        message: Error text for rejections, rendered as {"error": message}.
        set_cookie: Set-Cookie header value to attach (session renewal).
    """

    action: Action
    target: str | None = None
    status_code: int | None = None
    headers: tuple[tuple[str, str], ...] = field(default=())
    message: str | None = None
    set_cookie: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(Action.ALLOW)

    @classmethod
    def redirect(cls, target: str, status_code: int = 307) -> "Decision":
        return cls(Action.REDIRECT, target=target, status_code=status_code)

    @classmethod
    def rewrite(
        cls,
        target: str,
        *,
        status_code: int | None = None,
        headers: tuple[tuple[str, str], ...] = (),
    ) -> "Decision":
        return cls(
            Action.REWRITE,
            target=target,
            status_code=status_code,
            headers=headers,
        )

    @classmethod
    def reject(cls, status_code: int, message: str) -> "Decision":
        return cls(Action.REJECT, status_code=status_code, message=message)
