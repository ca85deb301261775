"""Fixed routing tables."""

# Probe paths that always resolve to 404 on tenant domains and view routes
BLOCKED_PATHNAMES: tuple[str, ...] = (
    "/phpmyadmin",
    "/server-status",
    "/wordpress",
    "/_all_dbs",
    "/wp-json",
)

# Hosts that are never tenant domains (exact host or suffix match)
INFRASTRUCTURE_HOST_PATTERNS: tuple[str, ...] = (
    "localhost",
    ".vercel.app",
    ".replit.app",
    ".replit.dev",
    ".repl.co",
)

# Legacy tenant root redirects, exact host match. Targets starting with "/"
# stay on the requesting host.
LEGACY_ROOT_REDIRECTS: dict[str, str] = {
    "guide.permithealth.com": "https://guide.permithealth.com/faq",
    "fund.tradeair.in": "https://tradeair.in/sv-fm-inbound",
    "docs.pashupaticapital.com": "https://www.pashupaticapital.com/",
    "partners.braxtech.net": "https://partners.braxtech.net/investors",
    "dataroom.bermudafranchisegroup.com": "/login",
    "bermudafranchisegroup.com": "/login",
    "www.bermudafranchisegroup.com": "/login",
}

# Paths the entry proxy never dispatches (host and client IP still checked)
BYPASS_PREFIXES: tuple[str, ...] = (
    "/api/",
    "/static/",
    "/_next/",
)
BYPASS_PATHS: frozenset[str] = frozenset(
    {
        "/favicon.ico",
        "/health",
        "/sitemap.xml",
        "/manifest.json",
        "/sw.js",
    }
)

# Path prefixes that skip the app guard (own access control downstream)
GUARD_EXEMPT_PREFIXES: tuple[str, ...] = ("/view/", "/verify", "/unsubscribe")

ANALYTICS_PREFIX = "/ingest/"
WEBHOOK_REWRITE_PREFIX = "/api/webhooks/incoming"
NOT_FOUND_PATH = "/404"
TENANT_VIEW_PREFIX = "/view/domains"
