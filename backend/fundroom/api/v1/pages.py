"""Routing targets outside the /api prefix.

Endpoints:
- GET /viewer-redirect: send a signed-in user to their portal
- GET /view/domains/{host}/{path}: tenant view rewrite target
- GET /404: not-found page target
"""

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from fundroom.api.deps import OptionalSession
from fundroom.core.enums import LoginPortal, Role
from fundroom.core.errors import NotFoundError
from fundroom.core.responses import DataResponse

router = APIRouter()


@router.get("/viewer-redirect")
async def viewer_redirect(claims: OptionalSession) -> RedirectResponse:
    """Portal landing for signed-in users.

    Administrators who signed in through the admin portal go to the hub,
    other signed-in users to the viewer portal, everyone else to /login.
    """
    if claims is None:
        target = "/login"
    elif claims.role is Role.GP and claims.login_portal is LoginPortal.ADMIN:
        target = "/hub"
    else:
        target = "/viewer-portal"
    return RedirectResponse(url=target, status_code=307)


@router.get("/view/domains/{host}/{path:path}")
async def tenant_view(host: str, path: str) -> DataResponse[dict]:
    """Resolved tenant view descriptor.

    Page rendering happens in the portal UI; this returns what the rewrite
    resolved to.
    """
    return DataResponse(data={"domain": host, "slug": path})


@router.get("/404")
async def not_found_page() -> None:
    raise NotFoundError("Page")
