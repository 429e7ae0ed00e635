"""
Unit tests for the permission evaluator.

Runs against a prepared tenant database (system roles and categories
seeded) with an injected clock.
"""

from datetime import datetime, timedelta

import pytest

from vetcore.models import OverrideStatus, PermissionCategory, Role
from vetcore.services import rbac_service
from vetcore.services.permission_evaluator import (
    ALL_PRACTICES,
    Allowed,
    Denied,
    EvaluationError,
    PermissionEvaluator,
)

from tests.fixtures.factories import (
    assign_role,
    create_override,
    create_practice,
    create_role,
    create_user,
    grant_practice_access,
)

NOW = datetime(2026, 10, 18, 12, 0, 0)


@pytest.fixture
def evaluator(tenant_db):
    return PermissionEvaluator(tenant_db, clock=lambda: NOW)


@pytest.fixture
def practice(tenant_db):
    return create_practice(tenant_db, id=5)


@pytest.fixture
def client_user(tenant_db, practice):
    return create_user(tenant_db, email="client@example.com", role="CLIENT", practice_id=practice.id)


class TestBasics:
    """Test the fixed parts of the evaluation order."""

    def test_no_user_is_denied(self, evaluator):
        assert isinstance(evaluator.evaluate(None, "billing", "READ"), Denied)

    def test_static_role_grant(self, evaluator, tenant_db, practice):
        receptionist = create_user(tenant_db, email="desk@example.com", role="RECEPTIONIST", practice_id=practice.id)
        assert evaluator.has_permission(receptionist, "billing", "READ") is True

    def test_no_grant_is_denied(self, evaluator, client_user):
        decision = evaluator.evaluate(client_user, "billing", "READ")
        assert isinstance(decision, Denied)
        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_super_admin_is_allowed_everything(self, evaluator, tenant_db, practice):
        admin = create_user(tenant_db, email="root@example.com", role="SUPER_ADMIN", practice_id=practice.id)
        assert evaluator.has_permission(admin, "audit_logs", "DELETE") is True

    def test_super_admin_ignores_deny_override(self, evaluator, tenant_db, practice):
        admin = create_user(tenant_db, email="root@example.com", role="SUPER_ADMIN", practice_id=practice.id)
        create_override(tenant_db, admin, practice.id, resource="billing", action="READ", granted=False)

        assert evaluator.has_permission(admin, "billing", "READ") is True

    def test_assigned_super_admin_role(self, evaluator, tenant_db, client_user):
        super_role = tenant_db.query(Role).filter_by(name="SUPER_ADMIN").one()
        assign_role(tenant_db, client_user, super_role)

        assert evaluator.is_super_admin(client_user) is True
        assert evaluator.has_permission(client_user, "system_settings", "UPDATE") is True

    def test_unknown_resource_is_an_error(self, evaluator, client_user):
        decision = evaluator.evaluate(client_user, "spaceships", "READ")
        assert isinstance(decision, EvaluationError)
        assert evaluator.has_permission(client_user, "spaceships", "READ") is False


class TestOverrides:
    """Test per-user overrides."""

    def test_grant_override(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, granted=True)

        decision = evaluator.evaluate(client_user, "billing", "READ", practice_id=practice.id)

        assert isinstance(decision, Allowed)

    def test_override_is_scoped_to_its_practice(self, evaluator, tenant_db, client_user, practice):
        other = create_practice(tenant_db, id=6)
        create_override(tenant_db, client_user, practice.id, granted=True)

        assert evaluator.has_permission(client_user, "billing", "READ", practice_id=other.id) is False

    def test_override_is_exact_match_only(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, resource="billing", action="READ", granted=True)

        assert evaluator.has_permission(client_user, "billing", "UPDATE", practice_id=practice.id) is False

    def test_deny_override_beats_role_grant(self, evaluator, tenant_db, practice):
        receptionist = create_user(tenant_db, email="desk@example.com", role="RECEPTIONIST", practice_id=practice.id)
        create_override(tenant_db, receptionist, practice.id, granted=False)

        assert evaluator.has_permission(receptionist, "billing", "READ") is False

    def test_expired_override_is_ignored(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, granted=True, expires_at=NOW - timedelta(minutes=1))

        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_future_expiry_still_applies(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, granted=True, expires_at=NOW + timedelta(days=1))

        assert evaluator.has_permission(client_user, "billing", "READ") is True

    def test_revoked_override_is_ignored(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, granted=True, status=OverrideStatus.REVOKED)

        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_most_recent_override_wins(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, granted=True, created_at=NOW - timedelta(hours=2))
        create_override(tenant_db, client_user, practice.id, granted=False, created_at=NOW - timedelta(hours=1))

        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_older_override_applies_when_newer_expired(self, evaluator, tenant_db, client_user, practice):
        create_override(tenant_db, client_user, practice.id, granted=True, created_at=NOW - timedelta(hours=2))
        create_override(
            tenant_db,
            client_user,
            practice.id,
            granted=False,
            created_at=NOW - timedelta(hours=1),
            expires_at=NOW - timedelta(minutes=5),
        )

        assert evaluator.has_permission(client_user, "billing", "READ") is True

    def test_revocation_is_seen_by_the_next_check(self, evaluator, tenant_db, client_user, practice):
        override = create_override(tenant_db, client_user, practice.id, granted=True)
        assert evaluator.has_permission(client_user, "billing", "READ") is True

        rbac_service.revoke_override(tenant_db, override, revoked_by=None)

        assert evaluator.has_permission(client_user, "billing", "READ") is False


class TestDynamicRoles:
    """Test custom roles, categories and malformed role data."""

    def test_custom_role_grants(self, evaluator, tenant_db, client_user, practice):
        role = create_role(tenant_db, permissions=[{"resource": "billing", "action": "MANAGE"}], practice_id=practice.id)
        assign_role(tenant_db, client_user, role)

        assert evaluator.has_permission(client_user, "billing", "READ") is True

    def test_inactive_assignment_grants_nothing(self, evaluator, tenant_db, client_user, practice):
        role = create_role(tenant_db, permissions=[{"resource": "billing", "action": "READ"}], practice_id=practice.id)
        assign_role(tenant_db, client_user, role, is_active=False)

        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_inactive_role_grants_nothing(self, evaluator, tenant_db, client_user, practice):
        role = create_role(
            tenant_db,
            permissions=[{"resource": "billing", "action": "READ"}],
            practice_id=practice.id,
            is_active=False,
        )
        assign_role(tenant_db, client_user, role)

        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_role_of_another_practice_does_not_apply(self, evaluator, tenant_db, client_user, practice):
        other = create_practice(tenant_db, id=6)
        role = create_role(tenant_db, permissions=[{"resource": "billing", "action": "READ"}], practice_id=other.id)
        assign_role(tenant_db, client_user, role)

        assert evaluator.has_permission(client_user, "billing", "READ", practice_id=practice.id) is False
        assert evaluator.has_permission(client_user, "billing", "READ", practice_id=other.id) is True

    def test_denied_entry_does_not_veto(self, evaluator, tenant_db, practice):
        receptionist = create_user(tenant_db, email="desk@example.com", role="RECEPTIONIST", practice_id=practice.id)
        role = create_role(
            tenant_db,
            permissions=[{"resource": "billing", "action": "READ", "granted": False}],
            practice_id=practice.id,
        )
        assign_role(tenant_db, receptionist, role)

        assert evaluator.has_permission(receptionist, "billing", "READ") is True

    def test_inactive_category_disables_dynamic_grants(self, evaluator, tenant_db, client_user, practice):
        role = create_role(tenant_db, permissions=[{"resource": "billing", "action": "READ"}], practice_id=practice.id)
        assign_role(tenant_db, client_user, role)
        financial = tenant_db.query(PermissionCategory).filter_by(name="Billing & Finance").one()

        rbac_service.set_category_active(tenant_db, financial, False)
        assert evaluator.has_permission(client_user, "billing", "READ") is False

        rbac_service.set_category_active(tenant_db, financial, True)
        assert evaluator.has_permission(client_user, "billing", "READ") is True

    def test_inactive_category_keeps_static_grants(self, evaluator, tenant_db, practice):
        receptionist = create_user(tenant_db, email="desk@example.com", role="RECEPTIONIST", practice_id=practice.id)
        financial = tenant_db.query(PermissionCategory).filter_by(name="Billing & Finance").one()
        rbac_service.set_category_active(tenant_db, financial, False)

        assert evaluator.has_permission(receptionist, "billing", "READ") is True

    def test_malformed_role_json_fails_closed(self, evaluator, tenant_db, client_user, practice):
        role = create_role(tenant_db, permissions={"resource": "billing"}, practice_id=practice.id)
        assign_role(tenant_db, client_user, role)

        decision = evaluator.evaluate(client_user, "billing", "READ")

        assert isinstance(decision, EvaluationError)
        assert evaluator.has_permission(client_user, "billing", "READ") is False

    def test_unknown_resource_in_role_fails_closed(self, evaluator, tenant_db, client_user, practice):
        role = create_role(tenant_db, permissions=[{"resource": "spaceships", "action": "READ"}], practice_id=practice.id)
        assign_role(tenant_db, client_user, role)

        assert isinstance(evaluator.evaluate(client_user, "pets", "CREATE"), EvaluationError)


class TestConditions:
    """Test record-level conditions on static grants."""

    def test_client_reads_own_invoice(self, evaluator, client_user):
        context = {"clientId": client_user.id}
        assert evaluator.has_permission(client_user, "invoices", "READ", context=context) is True

    def test_client_cannot_read_other_invoice(self, evaluator, client_user):
        context = {"clientId": client_user.id + 100}
        assert evaluator.has_permission(client_user, "invoices", "READ", context=context) is False


class TestDerivedQueries:
    """Test admin, switching and accessible-practice queries."""

    def test_practice_admin(self, evaluator, tenant_db, practice, client_user):
        admin = create_user(tenant_db, email="admin@example.com", role="PRACTICE_ADMINISTRATOR", practice_id=practice.id)

        assert evaluator.is_practice_admin(admin) is True
        assert evaluator.is_practice_admin(client_user) is False

    def test_practice_admin_by_assigned_role(self, evaluator, tenant_db, client_user):
        admin_role = tenant_db.query(Role).filter_by(name="PRACTICE_ADMIN").one()
        assign_role(tenant_db, client_user, admin_role)

        assert evaluator.is_practice_admin(client_user) is True

    def test_super_admin_accesses_all_practices(self, evaluator, tenant_db, practice):
        admin = create_user(tenant_db, email="root@example.com", role="SUPER_ADMIN", practice_id=practice.id)

        assert evaluator.get_accessible_practices(admin) == [ALL_PRACTICES]
        assert evaluator.can_switch_practices(admin) is True

    def test_administrator_accessible_practices(self, evaluator, tenant_db, practice):
        other = create_practice(tenant_db, id=6)
        administrator = create_user(tenant_db, email="multi@example.com", role="ADMINISTRATOR", practice_id=practice.id)
        grant_practice_access(tenant_db, administrator, other.id)

        assert evaluator.get_accessible_practices(administrator) == [5, 6]
        assert evaluator.can_switch_practices(administrator) is True

    def test_regular_user_home_practice_only(self, evaluator, client_user):
        assert evaluator.get_accessible_practices(client_user) == [5]
        assert evaluator.can_switch_practices(client_user) is False

    def test_practice_scoped_role_adds_practice(self, evaluator, tenant_db, client_user):
        other = create_practice(tenant_db, id=6)
        role = create_role(tenant_db, permissions=[], practice_id=other.id)
        assign_role(tenant_db, client_user, role)

        assert evaluator.get_accessible_practices(client_user) == [5, 6]
