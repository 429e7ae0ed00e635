"""
Unit tests for role, override and category management.
"""

from datetime import datetime, timedelta

import pytest

from vetcore.errors import PermissionDenied
from vetcore.models import OverrideStatus, PermissionCategory, Role, UserRole
from vetcore.services import rbac_service
from vetcore.services.permission_catalog import PermissionGrant, ResourceCategory, SystemRole

from tests.fixtures.factories import create_override, create_practice, create_role, create_user


class TestSeeding:
    """Test system role and category seeding."""

    def test_system_roles_seeded_once(self, tenant_db):
        assert tenant_db.query(Role).filter(Role.is_system_defined).count() == len(SystemRole)

        assert rbac_service.seed_system_roles(tenant_db) == 0
        assert tenant_db.query(Role).filter(Role.is_system_defined).count() == len(SystemRole)

    def test_system_role_permissions_stored(self, tenant_db):
        receptionist = tenant_db.query(Role).filter_by(name="RECEPTIONIST").one()

        assert {"resource": "billing", "action": "MANAGE", "granted": True} in receptionist.permissions

    def test_categories_seeded_once(self, tenant_db):
        assert tenant_db.query(PermissionCategory).count() == len(ResourceCategory)
        assert rbac_service.seed_permission_categories(tenant_db) == 0


class TestCustomRoles:
    """Test custom role lifecycle."""

    def test_create_and_list(self, tenant_db):
        practice = create_practice(tenant_db)
        role = rbac_service.create_custom_role(
            tenant_db,
            practice_id=practice.id,
            name="FRONT_DESK_LEAD",
            display_name="Front Desk Lead",
            permissions=[PermissionGrant(resource="billing", action="READ")],
        )

        roles = rbac_service.list_roles(tenant_db, practice.id)

        assert role in roles
        assert role.permissions == [{"resource": "billing", "action": "READ", "granted": True}]

    def test_other_practice_roles_not_listed(self, tenant_db):
        practice = create_practice(tenant_db, id=5)
        other = create_practice(tenant_db, id=6)
        foreign = create_role(tenant_db, name="FOREIGN", practice_id=other.id)

        assert foreign not in rbac_service.list_roles(tenant_db, practice.id)
        assert rbac_service.get_visible_role(tenant_db, foreign.id, practice.id) is None

    def test_deactivate(self, tenant_db):
        role = create_role(tenant_db, practice_id=create_practice(tenant_db).id)

        rbac_service.deactivate_custom_role(tenant_db, role)

        assert role.is_active is False


class TestAssignments:
    """Test role assignment and revocation."""

    def test_assign_is_idempotent(self, tenant_db):
        practice = create_practice(tenant_db)
        user = create_user(tenant_db, practice_id=practice.id)
        role = create_role(tenant_db, practice_id=practice.id)

        first = rbac_service.assign_role(tenant_db, user, role, assigned_by=None)
        second = rbac_service.assign_role(tenant_db, user, role, assigned_by=None)

        assert first.id == second.id
        assert tenant_db.query(UserRole).count() == 1

    def test_revoke(self, tenant_db):
        practice = create_practice(tenant_db)
        user = create_user(tenant_db, practice_id=practice.id)
        role = create_role(tenant_db, practice_id=practice.id)
        assignment = rbac_service.assign_role(tenant_db, user, role, assigned_by=None)

        assert rbac_service.revoke_role(tenant_db, user.id, role.id, revoked_by=99) == 1
        assert assignment.is_active is False
        assert assignment.revoked_by == 99
        assert rbac_service.revoke_role(tenant_db, user.id, role.id, revoked_by=99) == 0

    def test_super_admin_role_needs_super_admin_assigner(self, tenant_db):
        practice = create_practice(tenant_db)
        user = create_user(tenant_db, practice_id=practice.id)
        super_admin = tenant_db.query(Role).filter_by(name=SystemRole.SUPER_ADMIN.value).one()

        with pytest.raises(PermissionDenied):
            rbac_service.assign_role(tenant_db, user, super_admin, assigned_by=7)
        assert tenant_db.query(UserRole).count() == 0

        assignment = rbac_service.assign_role(tenant_db, user, super_admin, assigned_by=1, assigner_is_super_admin=True)
        assert assignment.role_id == super_admin.id



class TestOverrides:
    """Test override creation and revocation."""

    def test_create_normalizes_names(self, tenant_db):
        practice = create_practice(tenant_db)
        user = create_user(tenant_db, practice_id=practice.id)

        override = rbac_service.create_override(
            tenant_db,
            user=user,
            resource="Billing",
            action="read",
            granted=True,
            reason="Covering reception on Saturday",
            practice_id=practice.id,
            created_by=None,
        )

        assert override.resource == "billing"
        assert override.action == "READ"
        assert override.status == OverrideStatus.ACTIVE.value
        assert override.user_email == user.email

    def test_revoke_is_terminal(self, tenant_db):
        practice = create_practice(tenant_db)
        user = create_user(tenant_db, practice_id=practice.id)
        override = create_override(tenant_db, user, practice.id)

        assert rbac_service.revoke_override(tenant_db, override, revoked_by=1) is True
        assert override.effective_status() is OverrideStatus.REVOKED
        assert rbac_service.revoke_override(tenant_db, override, revoked_by=1) is False

    def test_expired_cannot_be_revoked(self, tenant_db):
        practice = create_practice(tenant_db)
        user = create_user(tenant_db, practice_id=practice.id)
        override = create_override(tenant_db, user, practice.id, expires_at=datetime.utcnow() - timedelta(days=1))

        assert override.effective_status() is OverrideStatus.EXPIRED
        assert rbac_service.revoke_override(tenant_db, override, revoked_by=1) is False
        assert override.status == OverrideStatus.ACTIVE.value


class TestCategories:
    """Test category activation."""

    def test_toggle_is_idempotent(self, tenant_db):
        category = tenant_db.query(PermissionCategory).first()

        assert rbac_service.set_category_active(tenant_db, category, True) is False
        assert rbac_service.set_category_active(tenant_db, category, False) is True
        assert rbac_service.set_category_active(tenant_db, category, False) is False
        assert category.is_active is False


class TestLookups:
    """Test practice-scoped user lookup."""

    def test_user_of_practice(self, tenant_db):
        practice = create_practice(tenant_db, id=5)
        user = create_user(tenant_db, practice_id=practice.id)

        assert rbac_service.get_practice_user(tenant_db, user.id, 5) is user

    def test_user_of_other_practice(self, tenant_db):
        create_practice(tenant_db, id=5)
        other = create_practice(tenant_db, id=6)
        user = create_user(tenant_db, practice_id=other.id)

        assert rbac_service.get_practice_user(tenant_db, user.id, 5) is None

    def test_user_working_in_practice(self, tenant_db):
        create_practice(tenant_db, id=5)
        other = create_practice(tenant_db, id=6)
        user = create_user(tenant_db, practice_id=other.id, current_practice_id=5)

        assert rbac_service.get_practice_user(tenant_db, user.id, 5) is user
