"""Redirect-target and base-URL resolution for sign-in flows."""

from collections.abc import Mapping
from urllib.parse import unquote

from fundroom.core.config import Settings
from fundroom.routing.host import validate_host

DEFAULT_ADMIN_REDIRECT = "/hub"

# Post-verification destinations an admin magic link may carry
ALLOWED_REDIRECT_PREFIXES: tuple[str, ...] = (
    "/hub",
    "/dashboard",
    "/settings",
    "/datarooms",
    "/admin",
)

_FALLBACK_BASE_URL = "http://localhost:8000"
_SCHEMES = frozenset({"http", "https"})
_DOT_SEGMENTS = frozenset({".", ".."})


def _has_dot_segment(value: str) -> bool:
    """Whether the path part holds "." or ".." (also percent-encoded)."""
    path = value.split("?", 1)[0].split("#", 1)[0]
    return any(segment in _DOT_SEGMENTS for segment in unquote(path).split("/"))


def safe_redirect_path(value: str | None) -> str:
    """Clamp a caller-supplied redirect to the allow-list.

    The value must be a same-origin path starting with exactly one "/" and
    sit under one of ALLOWED_REDIRECT_PREFIXES. Anything else (absolute
    URLs, protocol-relative URLs, dot segments, other paths) yields the
    default.

    Args:
        value: ``redirect`` query parameter, possibly None.

    Returns:
        The value when allowed, else DEFAULT_ADMIN_REDIRECT.
    """
    if not value or not value.startswith("/") or value.startswith("//"):
        return DEFAULT_ADMIN_REDIRECT
    if "\\" in value or any(ord(ch) < 0x20 for ch in value):
        return DEFAULT_ADMIN_REDIRECT
    if _has_dot_segment(value):
        return DEFAULT_ADMIN_REDIRECT
    for prefix in ALLOWED_REDIRECT_PREFIXES:
        if value == prefix or value.startswith((f"{prefix}/", f"{prefix}?")):
            return value
    return DEFAULT_ADMIN_REDIRECT


def _first(value: str | None) -> str | None:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def _scheme(value: str | None, default: str) -> str:
    scheme = (_first(value) or "").lower()
    return scheme if scheme in _SCHEMES else default


def resolve_base_url(config: Settings, headers: Mapping[str, str]) -> str:
    """Absolute base URL for links sent by e-mail.

    Precedence:
    1. ``app_url`` setting.
    2. ``x-forwarded-host`` with ``x-forwarded-proto`` (default https).
    3. ``host`` with ``x-forwarded-proto`` (default http in development,
       https elsewhere).
    4. http://localhost:8000.

    Header hosts that fail host validation are skipped.

    Args:
        config: Application settings.
        headers: Request headers (case-insensitive mapping).

    Returns:
        Base URL without a trailing slash.
    """
    if config.app_url:
        return config.app_url.rstrip("/")

    proto = headers.get("x-forwarded-proto")

    forwarded_host = _first(headers.get("x-forwarded-host"))
    if forwarded_host and validate_host(forwarded_host):
        return f"{_scheme(proto, 'https')}://{forwarded_host}"

    host = headers.get("host")
    if host and validate_host(host):
        default = "http" if config.environment == "development" else "https"
        return f"{_scheme(proto, default)}://{host}"

    return _FALLBACK_BASE_URL
