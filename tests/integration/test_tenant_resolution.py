"""
Integration tests for tenant resolution over HTTP.

Tests host-based routing, the default tenant, unknown and inactive tenants,
and unreachable tenant databases.
"""

from vetcore.models import TenantStatus

from tests.conftest import ACME_HOST
from tests.fixtures.factories import create_tenant


class TestHealth:
    """Test the unauthenticated health endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["default_db_connected"] is True
        assert "X-Request-ID" in response.headers

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "VetPractice Core API"


class TestHostRouting:
    """Test which tenant a Host header selects."""

    def test_unknown_subdomain_is_404(self, client):
        response = client.get("/api/v1/auth/me", headers={"Host": "ghost.localhost"})

        assert response.status_code == 404
        assert response.json()["error"] == "Tenant not found"

    def test_inactive_tenant_is_404(self, client, owner_db):
        create_tenant(owner_db, subdomain="dormant", db_name="dormant", status=TenantStatus.SUSPENDED)

        response = client.get("/api/v1/auth/me", headers={"Host": "dormant.localhost"})

        assert response.status_code == 404
        assert response.json()["error"] == "Tenant not found"

    def test_default_host_uses_default_connection(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_known_tenant_reaches_handler(self, client, acme_db):
        response = client.get("/api/v1/auth/me", headers={"Host": ACME_HOST})

        assert response.status_code == 401

    def test_connection_is_cached(self, client, acme_db, manager):
        client.get("/api/v1/auth/me", headers={"Host": ACME_HOST})
        client.get("/api/v1/auth/me", headers={"Host": "ACME.localhost:8000"})

        stats = manager.active_connections()
        assert [entry.key for entry in stats] == ["acme"]
        assert stats[0].hits == 1

    def test_tenant_header_ignored_without_owner_token(self, client):
        response = client.get("/api/v1/auth/me", headers={"X-Tenant-Identifier": "ghost"})

        assert response.status_code == 401


class TestUnreachableTenant:
    """Test tenants whose database cannot be opened."""

    def test_unreachable_database_is_503(self, client, owner_db, manager):
        create_tenant(owner_db, subdomain="broken", db_name="missing-directory/broken")

        response = client.get("/api/v1/auth/me", headers={"Host": "broken.localhost"})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        assert response.json()["error"] == "Service temporarily unavailable"
        assert manager.active_connections() == []
