### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Tenant Provisioning Service -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Tenant Provisioning Service

Creates tenants end to end: the owner registry row, the tenant schema, the
system roles and permission categories, the first practice and its
administrator. Deactivation is a status change plus closing the cached
connection; tenant databases are never dropped here.
"""

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vetcore.config_schema import OwnerConfig
from vetcore.database import create_tenant_schema
from vetcore.errors import ConnectionUnavailable
from vetcore.models import OwnerUser, Practice, Tenant, TenantStatus, User, hash_password
from vetcore.schemas.tenants import TenantCreate
from vetcore.services.connection_manager import TenantConnectionManager, build_engine
from vetcore.services.permission_catalog import SystemRole
from vetcore.services.rbac_service import seed_permission_categories, seed_system_roles
from vetcore.services.tenant_resolver import TenantDescriptor
from vetcore.utils import setup_logger

logger = setup_logger("vetcore.tenancy")

DEFAULT_OWNER_PASSWORD = "owner"

TENANT_ADMIN_ROLE = SystemRole.PRACTICE_ADMINISTRATOR


def prepare_tenant_database(tenant_engine: Engine) -> None:
    """Create the tenant tables and seed system roles and categories (idempotent)"""
    create_tenant_schema(tenant_engine)
    db = sessionmaker(bind=tenant_engine)()
    try:
        seed_system_roles(db)
        seed_permission_categories(db)
    finally:
        db.close()


def _seed_first_practice(tenant_engine: Engine, data: TenantCreate) -> None:
    db = sessionmaker(bind=tenant_engine)()
    try:
        practice = Practice(name=data.practice_name or data.name)
        db.add(practice)
        db.flush()
        db.add(
            User(
                email=data.admin_email.strip().lower(),
                name=data.admin_name,
                password_hash=hash_password(data.admin_password),
                role=TENANT_ADMIN_ROLE.value,
                practice_id=practice.id,
                current_practice_id=practice.id,
            )
        )
        db.commit()
    finally:
        db.close()


def provision_tenant(owner_db: Session, data: TenantCreate, url_template: str) -> Tenant:
    """
    Register a tenant and build its database.

    The registry row stays PENDING until the schema and seed data are in
    place; if the tenant database cannot be prepared the row is removed
    again so the subdomain can be reused.

    Raises:
        ConnectionUnavailable: the tenant database could not be prepared
    """
    tenant = Tenant(
        name=data.name,
        subdomain=data.subdomain,
        custom_domain=data.custom_domain,
        db_name=data.db_name,
        db_host=data.db_host,
        db_port=data.db_port,
        db_user=data.db_user,
        db_password=data.db_password,
        storage_path=data.storage_path,
        plan=data.plan.value,
        settings=data.settings,
        status=TenantStatus.PENDING.value,
    )
    owner_db.add(tenant)
    owner_db.commit()
    owner_db.refresh(tenant)

    descriptor = TenantDescriptor.from_tenant(tenant, url_template)
    tenant_engine = build_engine(descriptor.url, pool_size=1)
    try:
        prepare_tenant_database(tenant_engine)
        _seed_first_practice(tenant_engine, data)
    except SQLAlchemyError as e:
        logger.error(f"Provisioning failed for tenant '{tenant.subdomain}': {e!s}")
        owner_db.delete(tenant)
        owner_db.commit()
        raise ConnectionUnavailable(descriptor.key, reason=f"Provisioning failed: {e!s}") from e
    finally:
        tenant_engine.dispose()

    tenant.status = TenantStatus.ACTIVE.value
    owner_db.commit()
    owner_db.refresh(tenant)
    logger.info(f"Provisioned tenant '{tenant.subdomain}' (id={tenant.id})")
    return tenant


def deactivate_tenant(owner_db: Session, tenant: Tenant, manager: TenantConnectionManager) -> bool:
    """
    Soft-deactivate a tenant and drop its cached connection.

    Returns False if the tenant was already inactive.
    """
    if tenant.status == TenantStatus.INACTIVE.value:
        return False
    tenant.status = TenantStatus.INACTIVE.value
    owner_db.commit()
    manager.close_tenant(tenant.subdomain.lower())
    logger.info(f"Deactivated tenant '{tenant.subdomain}'")
    return True


def bootstrap_owner(owner_db: Session, owner_config: OwnerConfig) -> OwnerUser | None:
    """Create the first owner user from config when none exists"""
    if owner_db.query(OwnerUser).count():
        return None

    password = owner_config.bootstrap_password or DEFAULT_OWNER_PASSWORD
    owner = OwnerUser(
        username=owner_config.bootstrap_username,
        email=owner_config.bootstrap_email,
        name=owner_config.bootstrap_username,
        password_hash=hash_password(password),
    )
    owner_db.add(owner)
    owner_db.commit()
    owner_db.refresh(owner)

    if owner_config.bootstrap_password is None:
        logger.warning(
            f"Created owner '{owner.username}' with the default password - change it before going live"
        )
    else:
        logger.info(f"Created owner '{owner.username}' from configuration")
    return owner
