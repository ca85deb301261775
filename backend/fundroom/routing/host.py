"""Host classification for the entry proxy.

Pure functions over the Host header, the request path and settings:
- validate_host / get_client_ip / validate_client_ip: early rejection
- sanitize_path: path normalisation before any rule sees the path
- is_custom_domain / is_infrastructure_host: tenant vs. platform hosts
- classify_request: one RouteKind per request, first match wins
"""

import re
from collections.abc import Mapping
from enum import Enum
from urllib.parse import unquote, urlsplit

from fundroom.core.config import Settings
from fundroom.routing.constants import (
    ANALYTICS_PREFIX,
    BLOCKED_PATHNAMES,
    BYPASS_PATHS,
    BYPASS_PREFIXES,
    GUARD_EXEMPT_PREFIXES,
    INFRASTRUCTURE_HOST_PATTERNS,
)

_MAX_HOST_LENGTH = 253
_HOST_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-.]*[a-zA-Z0-9]$|^[a-zA-Z0-9]$")
_IPV4_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_IPV6_RE = re.compile(r"^[a-fA-F0-9:]+$")
_DOT_RUN_RE = re.compile(r"\.{2,}")
_SLASH_RUN_RE = re.compile(r"/+")
_UNSAFE_PATH_CHARS_RE = re.compile(r"[<>'\"]")


class RouteKind(str, Enum):
    ANALYTICS = "analytics"
    WEBHOOK = "webhook"
    DOMAIN = "domain"
    APP = "app"
    PASSTHROUGH = "passthrough"


def strip_port(host: str) -> str:
    """Drop a trailing ``:port`` from a Host header value."""
    return host.split(":", 1)[0]


def validate_host(host: str | None) -> bool:
    """Check a Host header against the hostname grammar.

    Alphanumerics, hyphens and dots; starts and ends alphanumeric (or is a
    single alphanumeric character); at most 253 characters. The port is
    ignored.

    Args:
        host: Raw Host header, possibly None.

    Returns:
        True if the host is acceptable.
    """
    if not host:
        return False
    clean = strip_port(host)
    if len(clean) > _MAX_HOST_LENGTH:
        return False
    return _HOST_RE.match(clean) is not None


def get_client_ip(headers: Mapping[str, str]) -> str | None:
    """Client IP: first x-forwarded-for entry, else x-real-ip, else None."""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip() or None
    return None


def validate_client_ip(ip: str) -> bool:
    """Accept IPv4 dotted quads and IPv6 hex/colon forms."""
    return _IPV4_RE.match(ip) is not None or _IPV6_RE.match(ip) is not None


def sanitize_path(path: str) -> str:
    """Normalise a request path before classification.

    Removes runs of two or more dots, collapses repeated slashes,
    percent-decodes, then strips NUL bytes, angle brackets and quotes.

    Args:
        path: Raw (still percent-encoded) request path.

    Returns:
        Sanitised path.
    """
    sanitized = _DOT_RUN_RE.sub("", path)
    sanitized = _SLASH_RUN_RE.sub("/", sanitized)
    sanitized = unquote(sanitized).replace("\x00", "")
    sanitized = _UNSAFE_PATH_CHARS_RE.sub("", sanitized)
    return sanitized or "/"


def is_bypass_path(path: str) -> bool:
    """Paths served without dispatch (API, static assets, health)."""
    return path in BYPASS_PATHS or path.startswith(BYPASS_PREFIXES)


def is_blocked_path(path: str) -> bool:
    """Exact match against the blocked scanner paths (tenant domains)."""
    return path in BLOCKED_PATHNAMES


def is_blocked_view_path(path: str) -> bool:
    """Probe paths anywhere in a /view/ path, or any literal dot."""
    return "." in path or any(blocked in path for blocked in BLOCKED_PATHNAMES)


def _app_host(config: Settings) -> str:
    if not config.app_url:
        return ""
    return (urlsplit(config.app_url).hostname or "").lower()


def _matches_infrastructure_pattern(host: str, config: Settings) -> bool:
    patterns = (*INFRASTRUCTURE_HOST_PATTERNS, *config.infrastructure_host_suffixes)
    return any(host == p or host.endswith(p) for p in patterns)


def is_signup_host(host: str, config: Settings) -> bool:
    """``app.<platform>``: the self-serve signup host."""
    return strip_port(host).lower() == f"app.{config.platform_domain}"


def is_login_portal_host(host: str, config: Settings) -> bool:
    """``app.login.<platform>``: the administrator login host."""
    return strip_port(host).lower() == f"app.login.{config.platform_domain}"


def is_infrastructure_host(host: str, config: Settings) -> bool:
    """Platform or hosting hosts that must never be rewritten to a tenant.

    Covers preview/hosting suffixes, the bare platform domain and its
    ``www.`` form, and the canonical application host.
    """
    clean = strip_port(host).lower()
    if _matches_infrastructure_pattern(clean, config):
        return True
    platform = config.platform_domain
    if clean in (platform, f"www.{platform}"):
        return True
    app_host = _app_host(config)
    return bool(app_host) and clean == app_host


def is_custom_domain(host: str, config: Settings) -> bool:
    """Whether a host is routed through the domain rules.

    In development only ``.local`` hosts count. Elsewhere: hosting
    suffixes and the bare platform domain are not custom, platform
    subdomains are (the domain rules route them), the canonical app host
    is not, and everything else is a tenant domain.

    Args:
        host: Host header value.
        config: Application settings.

    Returns:
        True if the domain rules should handle the request.
    """
    clean = strip_port(host).lower()

    if config.environment == "development":
        return ".local" in clean

    if _matches_infrastructure_pattern(clean, config):
        return False

    platform = config.platform_domain
    if clean in (platform, f"www.{platform}"):
        return False

    if clean.endswith(f".{platform}"):
        return True

    app_host = _app_host(config)
    if app_host and clean == app_host:
        return False

    return True


def is_webhook_host(host: str, config: Settings) -> bool:
    clean = strip_port(host).lower()
    return clean in {h.lower() for h in config.webhook_hosts}


def classify_request(host: str, path: str, config: Settings) -> RouteKind:
    """Pick the handler for a request. First match wins.

    Args:
        host: Validated Host header.
        path: Sanitised path.
        config: Application settings.

    Returns:
        RouteKind for the entry proxy to dispatch on.
    """
    if path.startswith(ANALYTICS_PREFIX):
        return RouteKind.ANALYTICS
    if is_webhook_host(host, config):
        return RouteKind.WEBHOOK
    if is_custom_domain(host, config):
        return RouteKind.DOMAIN
    if not path.startswith(GUARD_EXEMPT_PREFIXES):
        return RouteKind.APP
    return RouteKind.PASSTHROUGH
