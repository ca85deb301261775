"""Tests for page routing targets mounted outside /api."""

from fundroom.core.enums import LoginPortal, Role
from tests.conftest import create_test_session_token

_COOKIE = "fundroom.session-token"


class TestViewerRedirect:
    """Tests for GET /viewer-redirect."""

    async def test_anonymous_to_login(self, client):
        response = await client.get("/viewer-redirect")
        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    async def test_admin_portal_gp_to_hub(self, client):
        client.cookies.set(
            _COOKIE,
            create_test_session_token(role=Role.GP, login_portal=LoginPortal.ADMIN),
        )
        response = await client.get("/viewer-redirect")
        assert response.headers["location"] == "/hub"

    async def test_visitor_portal_gp_to_viewer_portal(self, client):
        """GP role alone is not enough; the session must come from the admin portal."""
        client.cookies.set(
            _COOKIE,
            create_test_session_token(role=Role.GP, login_portal=LoginPortal.VISITOR),
        )
        response = await client.get("/viewer-redirect")
        assert response.headers["location"] == "/viewer-portal"

    async def test_visitor_to_viewer_portal(self, client):
        client.cookies.set(_COOKIE, create_test_session_token())
        response = await client.get("/viewer-redirect")
        assert response.headers["location"] == "/viewer-portal"


class TestNotFoundPage:
    """Tests for GET /404."""

    async def test_not_found_envelope(self, client):
        response = await client.get("/404")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
