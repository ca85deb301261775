"""Session endpoints.

Endpoints:
- GET /auth/session: decoded claims of the current session
- POST /auth/logout: clear the session cookie
"""

from fastapi import APIRouter
from starlette.responses import Response

from fundroom.api.deps import ApiRateLimit, CurrentSession
from fundroom.core.responses import DataResponse
from fundroom.core.session import clear_session_cookie

router = APIRouter()


@router.get("/session")
async def get_current_session(
    _limit: ApiRateLimit,
    claims: CurrentSession,
) -> DataResponse[dict]:
    """Return the caller's session claims, or 401.

    Rate limit: api tier (100 per minute per IP).
    """
    return DataResponse(
        data=claims.model_dump(
            by_alias=True,
            mode="json",
            include={
                "id",
                "email",
                "name",
                "picture",
                "role",
                "login_portal",
                "created_at",
                "exp",
            },
        )
    )


@router.post("/logout")
async def logout(response: Response) -> DataResponse[dict]:
    """Clear the session cookie.

    No session required. Cookie attributes match set_session_cookie() so
    the browser deletes it.
    """
    clear_session_cookie(response)
    return DataResponse(data={"message": "Signed out"})
