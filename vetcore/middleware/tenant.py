### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Tenant Resolution Dependencies -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Tenant Resolution Dependencies

Request path: host (or the explicit tenant header, for owner tokens only)
-> TenantContext -> pooled TenantDatabase -> per-request Session.

The resolved tenant is stored on request.state for access logging.
"""

from collections.abc import Generator

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from vetcore.config import get_settings
from vetcore.config_schema import TenancyConfig
from vetcore.database import get_owner_db
from vetcore.dependencies import get_manager, get_tenancy_config
from vetcore.errors import ConnectionUnavailable
from vetcore.middleware.owner_auth import bearer_scheme, verify_owner_token
from vetcore.services.connection_manager import (
    TenantConnectionManager,
    TenantDatabase,
    get_default_connection,
)
from vetcore.services.tenant_resolver import TenantContext, resolve_tenant_from_request
from vetcore.utils import setup_logger

logger = setup_logger("vetcore.tenancy")


async def get_tenant_context(
    request: Request,
    owner_db: Session = Depends(get_owner_db),
    tenancy: TenancyConfig = Depends(get_tenancy_config),
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> TenantContext:
    """
    Resolve the tenant for this request.

    Raises:
        TenantNotFound: identifier present but unknown or inactive (404)
    """
    settings = get_settings()

    allow_header = False
    if request.headers.get(settings.tenant_header) and bearer is not None:
        allow_header = verify_owner_token(bearer.credentials, owner_db) is not None

    context = resolve_tenant_from_request(
        request,
        owner_db,
        tenancy,
        settings.tenant_url_template,
        header_name=settings.tenant_header,
        allow_header=allow_header,
    )
    request.state.tenant = context
    request.state.tenant_subdomain = context.subdomain
    return context


async def get_tenant_database(
    context: TenantContext = Depends(get_tenant_context),
    manager: TenantConnectionManager = Depends(get_manager),
) -> TenantDatabase:
    """
    Pooled database handle for the resolved tenant.

    Raises:
        ConnectionUnavailable: tenant database unreachable after the retry (503)
    """
    if context.is_default:
        return get_default_connection()
    return await manager.get_connection_for_tenant(context.descriptor)


def get_tenant_db(
    database: TenantDatabase = Depends(get_tenant_database),
    manager: TenantConnectionManager = Depends(get_manager),
) -> Generator[Session, None, None]:
    """
    Session on the tenant database, closed after the request.

    A connection-level failure inside the handler evicts the cached handle
    so the next request reconnects, and surfaces as a 503.
    """
    db = database.session()
    try:
        yield db
    except OperationalError as e:
        db.rollback()
        logger.warning(f"Connection error for tenant '{database.key}': {e.orig!s}")
        manager.report_failure(database.key)
        raise ConnectionUnavailable(database.key, reason=str(e.orig)) from e
    finally:
        db.close()
