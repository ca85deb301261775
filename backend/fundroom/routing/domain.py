"""Domain rules for tenant custom domains and platform subdomains."""

from fundroom.core.config import Settings
from fundroom.routing.constants import (
    LEGACY_ROOT_REDIRECTS,
    NOT_FOUND_PATH,
    TENANT_VIEW_PREFIX,
)
from fundroom.routing.decisions import Decision
from fundroom.routing.host import (
    is_blocked_path,
    is_infrastructure_host,
    is_login_portal_host,
    is_signup_host,
    strip_port,
)

NOINDEX_HEADER = ("X-Robots-Tag", "noindex")


def resolve_domain_request(host: str, path: str, config: Settings) -> Decision:
    """Route a request that arrived on a custom or platform subdomain.

    Order:
    1. Signup host: "/" redirects to /signup, anything else passes.
    2. Login portal host: "/" redirects to /admin/login, anything else passes.
    3. Infrastructure hosts always pass.
    4. Tenant root: legacy redirect table, else the platform marketing site.
    5. Tenant non-root: blocked scanner paths and dotted paths rewrite to the
       404 page; everything else rewrites to the tenant view route.

    Args:
        host: Validated Host header.
        path: Sanitised path.
        config: Application settings.

    Returns:
        Decision for the entry proxy.
    """
    if is_signup_host(host, config):
        return Decision.redirect("/signup") if path == "/" else Decision.allow()

    if is_login_portal_host(host, config):
        return Decision.redirect("/admin/login") if path == "/" else Decision.allow()

    if is_infrastructure_host(host, config):
        return Decision.allow()

    hostname = strip_port(host).lower()

    if path == "/":
        target = LEGACY_ROOT_REDIRECTS.get(hostname, config.platform_url)
        return Decision.redirect(target)

    if is_blocked_path(path) or "." in path:
        return Decision.rewrite(NOT_FOUND_PATH, status_code=404)

    return Decision.rewrite(
        f"{TENANT_VIEW_PREFIX}/{hostname}{path}",
        headers=(NOINDEX_HEADER,),
    )
