"""API router aggregator.

API routers are mounted under /api by create_app(); page-level routing
targets (viewer redirect, tenant views, 404) are mounted at the root.
"""

from fastapi import APIRouter

from fundroom.api.v1 import auth_admin, auth_link, pages, session, webhooks

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

_AUTH_PREFIX = "/auth"

router.include_router(auth_admin.router, prefix=_AUTH_PREFIX, tags=["auth"])
router.include_router(auth_link.router, prefix=_AUTH_PREFIX, tags=["auth"])
router.include_router(session.router, prefix=_AUTH_PREFIX, tags=["auth"])

# =============================================================================
# Webhooks
# =============================================================================

router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# =============================================================================
# Page routing targets (mounted without the /api prefix)
# =============================================================================

pages_router = pages.router
