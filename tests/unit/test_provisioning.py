"""
Unit tests for tenant provisioning and owner bootstrap.
"""

import uuid

import pytest
from sqlalchemy.orm import sessionmaker

from vetcore.config import get_settings
from vetcore.config_schema import OwnerConfig
from vetcore.errors import ConnectionUnavailable
from vetcore.models import OwnerUser, Role, Tenant, TenantStatus, User, verify_password
from vetcore.schemas.tenants import TenantCreate
from vetcore.services.connection_manager import TenantConnectionManager, build_engine
from vetcore.services.provisioning import (
    TENANT_ADMIN_ROLE,
    bootstrap_owner,
    deactivate_tenant,
    provision_tenant,
)
from vetcore.services.tenant_resolver import TenantDescriptor

from tests.fixtures.factories import create_owner_user, create_tenant


def tenant_payload(**overrides) -> TenantCreate:
    data = {
        "name": "Globex Animal Hospital",
        "subdomain": "globex",
        "db_name": f"globex_{uuid.uuid4().hex[:8]}",
        "db_user": "vet",
        "db_password": "secret",
        "admin_email": "Admin@Globex.test",
        "admin_name": "Globex Admin",
        "admin_password": "a-long-password",
    }
    data.update(overrides)
    return TenantCreate(**data)


class TestProvisionTenant:
    """Test building a tenant database from the registry row."""

    def test_provisions_active_tenant(self, owner_db):
        template = get_settings().tenant_url_template

        tenant = provision_tenant(owner_db, tenant_payload(), template)

        assert tenant.status == TenantStatus.ACTIVE.value

        engine = build_engine(TenantDescriptor.from_tenant(tenant, template).url)
        db = sessionmaker(bind=engine)()
        try:
            admin = db.query(User).one()
            assert admin.email == "admin@globex.test"
            assert admin.role == TENANT_ADMIN_ROLE.value
            assert admin.practice_id is not None
            assert verify_password("a-long-password", admin.password_hash)
            assert db.query(Role).filter(Role.is_system_defined).count() > 0
        finally:
            db.close()
            engine.dispose()

    def test_failed_provision_removes_the_row(self, owner_db):
        template = get_settings().tenant_url_template
        payload = tenant_payload(db_name="missing-directory/globex")

        with pytest.raises(ConnectionUnavailable):
            provision_tenant(owner_db, payload, template)

        assert owner_db.query(Tenant).filter_by(subdomain="globex").first() is None


class TestTenantCreateValidation:
    """Test subdomain rules on the provisioning payload."""

    def test_subdomain_is_lowercased(self):
        assert tenant_payload(subdomain="Globex").subdomain == "globex"

    @pytest.mark.parametrize("subdomain", ["www", "-globex", "glo_bex", "globex.com"])
    def test_invalid_subdomains(self, subdomain):
        with pytest.raises(ValueError):
            tenant_payload(subdomain=subdomain)

    def test_short_admin_password_rejected(self):
        with pytest.raises(ValueError):
            tenant_payload(admin_password="short")


class TestDeactivateTenant:
    """Test soft deactivation."""

    def test_deactivate_closes_connection(self, owner_db):
        tenant = create_tenant(owner_db, subdomain="acme")
        manager = TenantConnectionManager(retry_backoff=0)
        closed = []
        manager.close_tenant = lambda key: closed.append(key) or True

        assert deactivate_tenant(owner_db, tenant, manager) is True
        assert tenant.status == TenantStatus.INACTIVE.value
        assert closed == ["acme"]

        assert deactivate_tenant(owner_db, tenant, manager) is False


class TestBootstrapOwner:
    """Test first-owner creation."""

    def test_creates_default_owner(self, owner_db):
        owner = bootstrap_owner(owner_db, OwnerConfig())

        assert owner.username == "owner"
        assert verify_password("owner", owner.password_hash)

    def test_uses_configured_password(self, owner_db):
        owner = bootstrap_owner(owner_db, OwnerConfig(bootstrap_username="root", bootstrap_password="s3cret-pass"))

        assert owner.username == "root"
        assert verify_password("s3cret-pass", owner.password_hash)

    def test_noop_when_owner_exists(self, owner_db):
        create_owner_user(owner_db, username="existing")

        assert bootstrap_owner(owner_db, OwnerConfig()) is None
        assert owner_db.query(OwnerUser).count() == 1
