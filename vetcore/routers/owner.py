### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Owner Portal Router -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Owner Portal API Endpoints

Platform-level operations against the owner database:
- Login/logout (JWT bound to an owner session)
- Tenants: list, provision, view, update, deactivate
- Tenant connections: live stats and health checks
- Tenancy configuration (config.yaml)

All endpoints except login require an owner bearer token.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import func
from sqlalchemy.orm import Session

from vetcore.config import get_settings
from vetcore.database import get_owner_db
from vetcore.dependencies import get_manager
from vetcore.errors import Unauthenticated, ValidationError
from vetcore.middleware.owner_auth import (
    authenticate_owner,
    bearer_scheme,
    issue_owner_token,
    require_owner,
    revoke_owner_token,
)
from vetcore.middleware.rate_limit import limiter
from vetcore.models import OwnerUser, Tenant, TenantStatus
from vetcore.schemas.responses import APIResponse, ErrorDetail, PaginatedResponse, PaginationMeta
from vetcore.schemas.tenants import (
    ConfigUpdateResponse,
    ConnectionHealthResponse,
    ConnectionStatsResponse,
    OwnerLoginRequest,
    OwnerLoginResponse,
    TenancyConfigResponse,
    TenancyConfigUpdate,
    TenantCreate,
    TenantResponse,
    TenantUpdate,
)
from vetcore.services.config_service import get_config_service
from vetcore.services.connection_manager import TenantConnectionManager
from vetcore.services.provisioning import deactivate_tenant, provision_tenant

router = APIRouter()

# Changing these only affects connections opened after the change
RESTART_REQUIRED_FIELDS = ("tenancy.pool_size", "tenancy.connect_timeout_seconds")


def _get_tenant_or_404(db: Session, tenant_id: int) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {tenant_id} not found",
        )
    return tenant


def _tenant_response(tenant: Tenant, manager: TenantConnectionManager) -> TenantResponse:
    response = TenantResponse.model_validate(tenant)
    response.connected = manager.cache.get(tenant.subdomain.lower()) is not None
    return response


# ========================================
# Authentication
# ========================================

@router.post(
    "/login",
    response_model=APIResponse[OwnerLoginResponse],
    summary="Owner login",
    description="Authenticate with username (or email) and password to get a JWT token",
)
@limiter.limit("20/minute")
async def owner_login(
    request: Request,
    data: OwnerLoginRequest,
    db: Session = Depends(get_owner_db),
) -> APIResponse[OwnerLoginResponse]:
    owner = authenticate_owner(db, data.username, data.password)
    if owner is None:
        raise Unauthenticated(f"Owner login failed for '{data.username}'")

    token, expires_in = issue_owner_token(db, owner)
    return APIResponse(
        success=True,
        data=OwnerLoginResponse(token=token, expires_in=expires_in),
        message="Login successful",
    )


@router.post(
    "/logout",
    response_model=APIResponse[dict],
    summary="Owner logout",
    description="Invalidate the current owner token",
)
async def owner_logout(
    owner: OwnerUser = Depends(require_owner),
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: Session = Depends(get_owner_db),
) -> APIResponse[dict]:
    revoke_owner_token(bearer.credentials, db)
    return APIResponse(success=True, message="Logged out")


# ========================================
# Tenant Endpoints
# ========================================

@router.get(
    "/tenants",
    response_model=PaginatedResponse[TenantResponse],
    summary="List tenants",
    description="List all tenants with pagination",
)
async def list_tenants(
    owner: OwnerUser = Depends(require_owner),
    db: Session = Depends(get_owner_db),
    manager: TenantConnectionManager = Depends(get_manager),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: TenantStatus | None = Query(None, alias="status", description="Only tenants with this status"),
) -> PaginatedResponse[TenantResponse]:
    query = db.query(Tenant)
    if status_filter is not None:
        query = query.filter(Tenant.status == status_filter.value)

    total = query.count()
    tenants = query.order_by(Tenant.id).offset((page - 1) * page_size).limit(page_size).all()

    return PaginatedResponse(
        success=True,
        data=[_tenant_response(tenant, manager) for tenant in tenants],
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.post(
    "/tenants",
    response_model=APIResponse[TenantResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Provision tenant",
    description="Register a tenant, create its schema, seed roles and create its first practice and admin",
)
async def create_tenant(
    data: TenantCreate,
    owner: OwnerUser = Depends(require_owner),
    db: Session = Depends(get_owner_db),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[TenantResponse]:
    existing = db.query(Tenant).filter(func.lower(Tenant.subdomain) == data.subdomain).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Subdomain '{data.subdomain}' is already taken",
        )
    if data.custom_domain:
        taken = db.query(Tenant).filter(func.lower(Tenant.custom_domain) == data.custom_domain).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Custom domain '{data.custom_domain}' is already taken",
            )

    tenant = provision_tenant(db, data, get_settings().tenant_url_template)
    return APIResponse(
        success=True,
        data=_tenant_response(tenant, manager),
        message="Tenant provisioned successfully",
    )


@router.get(
    "/tenants/{tenant_id}",
    response_model=APIResponse[TenantResponse],
    summary="Get tenant",
    description="Get tenant details by ID",
)
async def get_tenant(
    tenant_id: int,
    owner: OwnerUser = Depends(require_owner),
    db: Session = Depends(get_owner_db),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[TenantResponse]:
    tenant = _get_tenant_or_404(db, tenant_id)
    return APIResponse(success=True, data=_tenant_response(tenant, manager))


@router.patch(
    "/tenants/{tenant_id}",
    response_model=APIResponse[TenantResponse],
    summary="Update tenant",
    description="Update tenant details; connection changes drop the cached connection",
)
async def update_tenant(
    tenant_id: int,
    data: TenantUpdate,
    owner: OwnerUser = Depends(require_owner),
    db: Session = Depends(get_owner_db),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[TenantResponse]:
    tenant = _get_tenant_or_404(db, tenant_id)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("custom_domain"):
        taken = (
            db.query(Tenant)
            .filter(func.lower(Tenant.custom_domain) == update_data["custom_domain"], Tenant.id != tenant.id)
            .first()
        )
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Custom domain '{update_data['custom_domain']}' is already taken",
            )

    for field, value in update_data.items():
        if field in ("status", "plan") and value is not None:
            value = value.value
        setattr(tenant, field, value)
    db.commit()
    db.refresh(tenant)

    # New credentials or a status change must not keep using the old handle
    if {"db_host", "db_port", "db_user", "db_password", "status"} & update_data.keys():
        manager.close_tenant(tenant.subdomain.lower())

    return APIResponse(success=True, data=_tenant_response(tenant, manager), message="Tenant updated successfully")


@router.post(
    "/tenants/{tenant_id}/deactivate",
    response_model=APIResponse[TenantResponse],
    summary="Deactivate tenant",
    description="Soft-deactivate a tenant; its data is kept and its connection is closed",
)
async def deactivate(
    tenant_id: int,
    owner: OwnerUser = Depends(require_owner),
    db: Session = Depends(get_owner_db),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[TenantResponse]:
    tenant = _get_tenant_or_404(db, tenant_id)
    changed = deactivate_tenant(db, tenant, manager)
    return APIResponse(
        success=True,
        data=_tenant_response(tenant, manager),
        message="Tenant deactivated" if changed else "Tenant was already inactive",
    )


# ========================================
# Connection Diagnostics
# ========================================

@router.get(
    "/connections",
    response_model=APIResponse[list[ConnectionStatsResponse]],
    summary="Live tenant connections",
)
async def list_connections(
    owner: OwnerUser = Depends(require_owner),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[list[ConnectionStatsResponse]]:
    stats = [
        ConnectionStatsResponse(
            tenant=entry.key,
            opened_at=entry.opened_at,
            idle_seconds=entry.idle_seconds,
            hits=entry.hits,
        )
        for entry in manager.active_connections()
    ]
    return APIResponse(success=True, data=stats)


@router.post(
    "/connections/{subdomain}/check",
    response_model=APIResponse[ConnectionHealthResponse],
    summary="Health-check a tenant connection",
    description="Ping the cached connection; a failed ping evicts it",
)
async def check_connection(
    subdomain: str,
    owner: OwnerUser = Depends(require_owner),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[ConnectionHealthResponse]:
    key = subdomain.lower()
    healthy = await manager.check_health(key)
    return APIResponse(
        success=True,
        data=ConnectionHealthResponse(tenant=key, connected=healthy is not None, healthy=healthy),
    )


@router.delete(
    "/connections/{subdomain}",
    response_model=APIResponse[ConnectionHealthResponse],
    summary="Close a tenant connection",
)
async def close_connection(
    subdomain: str,
    owner: OwnerUser = Depends(require_owner),
    manager: TenantConnectionManager = Depends(get_manager),
) -> APIResponse[ConnectionHealthResponse]:
    key = subdomain.lower()
    closed = manager.close_tenant(key)
    return APIResponse(
        success=True,
        data=ConnectionHealthResponse(tenant=key, connected=False),
        message="Connection closed" if closed else "No open connection",
    )


# ========================================
# Tenancy Configuration
# ========================================

@router.get(
    "/config/tenancy",
    response_model=APIResponse[TenancyConfigResponse],
    summary="Get tenancy configuration",
)
async def get_tenancy_config(
    owner: OwnerUser = Depends(require_owner),
) -> APIResponse[TenancyConfigResponse]:
    config_service = get_config_service()
    config_service.reload()
    return APIResponse(
        success=True,
        data=TenancyConfigResponse.model_validate(config_service.get_tenancy()),
    )


@router.patch(
    "/config/tenancy",
    response_model=APIResponse[ConfigUpdateResponse],
    summary="Update tenancy configuration",
    description="Validate and save tenancy settings to config.yaml (preserves comments)",
)
async def update_tenancy_config(
    data: TenancyConfigUpdate,
    owner: OwnerUser = Depends(require_owner),
) -> APIResponse[ConfigUpdateResponse]:
    config_service = get_config_service()
    config_service.reload()

    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    errors = config_service.validation_errors(updates)
    if errors:
        raise ValidationError(
            details=[ErrorDetail(field=error.split(":", 1)[0], message=error) for error in errors],
            reason="Invalid tenancy configuration",
        )

    changed = config_service.update_tenancy(updates)
    restart_fields = [field for field in changed if field in RESTART_REQUIRED_FIELDS]

    return APIResponse(
        success=True,
        data=ConfigUpdateResponse(
            changed_fields=changed,
            restart_required=bool(restart_fields),
            message="No changes" if not changed else "Configuration saved",
        ),
    )
