"""
Tests for the role authorization predicate and the route guards built on it.
"""

from types import SimpleNamespace

from app.core.permissions import authorize
from app.models import Role


class TestAuthorize:
    """Tests for authorize()."""

    def test_anonymous_denied(self):
        decision = authorize(None, Role.ADMIN)
        assert decision.allowed is False
        assert decision.reason == "Authentication required"

    def test_subscriber_denied_admin(self):
        decision = authorize(SimpleNamespace(role=Role.SUBSCRIBER), Role.ADMIN)
        assert decision.allowed is False
        assert decision.reason == "Insufficient privileges"

    def test_admin_allowed(self):
        assert authorize(SimpleNamespace(role=Role.ADMIN), Role.ADMIN).allowed is True

    def test_role_given_as_string(self):
        assert authorize(SimpleNamespace(role="ADMIN"), Role.ADMIN).allowed is True


class TestRouteGuards:
    """Admin routes answer 401 to anonymous callers and 403 to subscribers."""

    def test_anonymous_gets_401(self, client):
        response = client.get("/api/admin/users")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHENTICATED"

    def test_subscriber_gets_403(self, client, subscriber_headers):
        response = client.get("/api/admin/users", headers=subscriber_headers)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INSUFFICIENT_PRIVILEGES"

    def test_admin_allowed(self, client, admin_headers):
        response = client.get("/api/admin/users", headers=admin_headers)
        assert response.status_code == 200

    def test_expired_session_row_rejected(self, client, admin, issue_token, test_session):
        """A valid JWT whose session row has been deleted is refused."""
        from sqlmodel import delete
        from app.models import LoginSession

        token = issue_token(admin)
        test_session.execute(delete(LoginSession))
        test_session.commit()

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_garbage_token_rejected(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
