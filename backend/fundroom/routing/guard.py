"""Route guard for the primary app host.

Route groups are an ordered table: the first group whose predicate matches
decides which roles may enter and where unauthenticated or unauthorised
callers are sent. Decisions depend only on the path, the query string, the
decoded session and the clock.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from urllib.parse import parse_qs, quote

from fundroom.core.enums import Role
from fundroom.core.session import (
    SessionClaims,
    create_session_token,
    needs_renewal,
    session_cookie_header,
)
from fundroom.routing.decisions import Action, Decision

PUBLIC_PATHS: frozenset[str] = frozenset({"/lp/onboard", "/lp/login", "/signup"})
LOGIN_PATHS: frozenset[str] = frozenset({"/login", "/admin/login", "/lp/login"})
WELCOME_PATH = "/welcome"
VIEWER_REDIRECT_PATH = "/viewer-redirect"
ADMIN_DEFAULT_PATH = "/hub"

# Accounts younger than this land on the welcome page first
NEW_ACCOUNT_WINDOW = timedelta(seconds=10)

_GP_PREFIXES = ("/dashboard", "/settings", "/documents", "/datarooms", "/admin", "/hub")


def _under(prefix: str, path: str) -> bool:
    return path == prefix or path.startswith(f"{prefix}/")


def _is_lp_path(path: str) -> bool:
    return path.startswith("/lp/")


def _is_gp_path(path: str) -> bool:
    if path == "/admin/login":
        return False
    return any(_under(prefix, path) for prefix in _GP_PREFIXES)


@dataclass(frozen=True)
class RouteGroup:
    """Paths sharing one authorization requirement.

    Attributes:
        name: Label for logs and tests.
        matches: Path predicate.
        allowed_roles: Roles admitted once authenticated.
        login_path: Where unauthenticated callers go (with ?next=).
        denied_redirect: Where authenticated callers without a role go.
    """

    name: str
    matches: Callable[[str], bool]
    allowed_roles: frozenset[Role]
    login_path: str
    denied_redirect: str


ROUTE_GROUPS: tuple[RouteGroup, ...] = (
    RouteGroup(
        name="lp",
        matches=_is_lp_path,
        allowed_roles=frozenset({Role.LP, Role.GP}),
        login_path="/lp/login",
        denied_redirect=VIEWER_REDIRECT_PATH,
    ),
    RouteGroup(
        name="gp",
        matches=_is_gp_path,
        allowed_roles=frozenset({Role.GP}),
        login_path="/admin/login",
        denied_redirect="/viewer-portal",
    ),
)


def match_route_group(path: str) -> RouteGroup | None:
    """First route group whose predicate matches, or None."""
    for group in ROUTE_GROUPS:
        if group.matches(path):
            return group
    return None


def _login_redirect(login_path: str, path: str, query: str) -> Decision:
    original = f"{path}?{query}" if query else path
    return Decision.redirect(f"{login_path}?next={quote(original, safe='/')}")


def safe_next_path(value: str | None) -> str | None:
    """Accept a ``next`` value only if it is relative and not a login page.

    Args:
        value: Decoded ``next`` query parameter.

    Returns:
        The value, or None if it could leave the site or loop back to a
        login page.
    """
    if not value or not value.startswith("/"):
        return None
    if value.startswith("//") or value.startswith("/\\"):
        return None
    if "/login" in value:
        return None
    return value


def evaluate_app_request(
    path: str,
    query: str,
    claims: SessionClaims | None,
    now: datetime,
) -> Decision:
    """Decide what happens to a request on the app host.

    Args:
        path: Sanitised path.
        query: Raw query string (without "?").
        claims: Decoded session, or None when unauthenticated.
        now: Current time (aware).

    Returns:
        Decision. Redirects use 307.
    """
    if path == "/":
        return Decision.redirect("/login")

    if path in PUBLIC_PATHS or path.startswith("/view/") or path == VIEWER_REDIRECT_PATH:
        return Decision.allow()

    group = match_route_group(path)
    if group is not None:
        if claims is None:
            return _login_redirect(group.login_path, path, query)
        if claims.role not in group.allowed_roles:
            return Decision.redirect(group.denied_redirect)
        return Decision.allow()

    is_login_page = path in LOGIN_PATHS
    if claims is None:
        if is_login_page:
            return Decision.allow()
        return _login_redirect("/login", path, query)

    params = parse_qs(query, keep_blank_values=True)

    if (
        claims.created_at is not None
        and claims.created_at > now - NEW_ACCOUNT_WINDOW
        and path != WELCOME_PATH
        and "invitation" not in params
    ):
        return Decision.redirect(WELCOME_PATH)

    if is_login_page:
        next_values = params.get("next")
        next_path = safe_next_path(next_values[0] if next_values else None)
        default = ADMIN_DEFAULT_PATH if path == "/admin/login" else VIEWER_REDIRECT_PATH
        return Decision.redirect(next_path or default)

    return Decision.allow()


def with_session_renewal(
    decision: Decision,
    claims: SessionClaims | None,
    now: datetime,
) -> Decision:
    """Attach a re-issued session cookie to allowed requests with old tokens.

    Args:
        decision: Guard decision.
        claims: Decoded session, if any.
        now: Current time.

    Returns:
        The decision, with set_cookie populated when renewal is due.
    """
    if decision.action is not Action.ALLOW or claims is None:
        return decision
    if not needs_renewal(claims, now):
        return decision
    token = create_session_token(claims, now=now)
    return replace(decision, set_cookie=session_cookie_header(token))
