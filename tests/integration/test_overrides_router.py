"""
Integration tests for permission override management.
"""

from vetcore.dependencies import get_app_notifier
from vetcore.main import app
from vetcore.models import PermissionOverride

from tests.fixtures.factories import create_override, create_practice, create_user

OVERRIDES = "/api/v1/overrides"


def override_payload(user_id: int, **overrides) -> dict:
    data = {
        "user_id": user_id,
        "resource": "billing",
        "action": "READ",
        "granted": True,
        "reason": "Covering the front desk this week",
    }
    data.update(overrides)
    return data


class TestCreateOverride:
    """Test POST /api/v1/overrides."""

    def test_create(self, client, acme_db, admin_user, client_user, session_headers):
        response = client.post(OVERRIDES, json=override_payload(client_user.id), headers=session_headers(admin_user))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["resource"] == "billing"
        assert data["action"] == "READ"
        assert data["status"] == "active"
        assert data["practice_id"] == 5
        assert data["created_by"] == admin_user.id

    def test_names_are_normalized(self, client, acme_db, admin_user, client_user, session_headers):
        response = client.post(
            OVERRIDES,
            json=override_payload(client_user.id, resource="Invoices", action="read"),
            headers=session_headers(admin_user),
        )

        assert response.status_code == 201
        assert response.json()["data"]["resource"] == "invoices"

    def test_non_admin_is_denied(self, client, acme_db, client_user, session_headers):
        response = client.post(OVERRIDES, json=override_payload(client_user.id), headers=session_headers(client_user))

        assert response.status_code == 403
        assert acme_db.query(PermissionOverride).count() == 0

    def test_unknown_user(self, client, acme_db, admin_user, session_headers):
        response = client.post(OVERRIDES, json=override_payload(9999), headers=session_headers(admin_user))

        assert response.status_code == 404

    def test_user_of_other_practice(self, client, acme_db, admin_user, other_practice, session_headers):
        outsider = create_user(acme_db, email="outsider@acme.test", practice_id=other_practice.id)

        response = client.post(OVERRIDES, json=override_payload(outsider.id), headers=session_headers(admin_user))

        assert response.status_code == 404

    def test_invalid_resource(self, client, acme_db, admin_user, client_user, session_headers):
        response = client.post(
            OVERRIDES,
            json=override_payload(client_user.id, resource="spaceships"),
            headers=session_headers(admin_user),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"

    def test_short_reason(self, client, acme_db, admin_user, client_user, session_headers):
        response = client.post(
            OVERRIDES,
            json=override_payload(client_user.id, reason="because"),
            headers=session_headers(admin_user),
        )

        assert response.status_code == 400


class TestRevokeOverride:
    """Test POST /api/v1/overrides/{id}/revoke."""

    def test_revoke_then_conflict(self, client, acme_db, practice, admin_user, client_user, session_headers):
        override = create_override(acme_db, client_user, practice.id)
        headers = session_headers(admin_user)

        first = client.post(f"{OVERRIDES}/{override.id}/revoke", headers=headers)
        second = client.post(f"{OVERRIDES}/{override.id}/revoke", headers=headers)

        assert first.status_code == 200
        assert first.json()["data"]["status"] == "revoked"
        assert first.json()["data"]["revoked_by"] == admin_user.id
        assert second.status_code == 409

    def test_override_of_other_practice_not_found(
        self, client, acme_db, admin_user, other_practice, session_headers
    ):
        outsider = create_user(acme_db, email="outsider@acme.test", practice_id=other_practice.id)
        override = create_override(acme_db, outsider, other_practice.id)

        response = client.post(f"{OVERRIDES}/{override.id}/revoke", headers=session_headers(admin_user))

        assert response.status_code == 404


class TestListOverrides:
    """Test GET /api/v1/overrides."""

    def test_list_scoped_to_practice(self, client, acme_db, practice, admin_user, client_user, session_headers):
        create_override(acme_db, client_user, practice.id)
        third = create_practice(acme_db, name="Valley Vets", id=7)
        outsider = create_user(acme_db, email="outsider@acme.test", practice_id=third.id)
        create_override(acme_db, outsider, third.id)

        response = client.get(OVERRIDES, headers=session_headers(admin_user))

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total_items"] == 1
        assert data["data"][0]["user_id"] == client_user.id

    def test_active_only_hides_revoked(self, client, acme_db, practice, admin_user, client_user, session_headers):
        override = create_override(acme_db, client_user, practice.id)
        headers = session_headers(admin_user)
        client.post(f"{OVERRIDES}/{override.id}/revoke", headers=headers)

        response = client.get(f"{OVERRIDES}?active_only=true", headers=headers)

        assert response.json()["data"] == []

    def test_list_for_user(self, client, acme_db, practice, admin_user, client_user, session_headers):
        create_override(acme_db, client_user, practice.id, resource="billing")
        create_override(acme_db, client_user, practice.id, resource="invoices")

        response = client.get(f"{OVERRIDES}/users/{client_user.id}", headers=session_headers(admin_user))

        assert {item["resource"] for item in response.json()["data"]} == {"billing", "invoices"}


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def publish(self, event, payload, practice_id=None, tenant=None):
        self.events.append((event, practice_id, tenant))


class TestNotifications:
    """Test that override events carry the tenant they came from."""

    def test_create_and_revoke_publish_tenant(self, client, acme_db, admin_user, client_user, session_headers):
        notifier = RecordingNotifier()
        app.dependency_overrides[get_app_notifier] = lambda: notifier
        headers = session_headers(admin_user)

        created = client.post(OVERRIDES, json=override_payload(client_user.id), headers=headers)
        client.post(f"{OVERRIDES}/{created.json()['data']['id']}/revoke", headers=headers)

        assert notifier.events == [("override.created", 5, "acme"), ("override.revoked", 5, "acme")]
