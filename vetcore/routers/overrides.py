### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Permission Overrides Router -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Permission Override API Endpoints

Per-user grants or revocations of a single (resource, action) in the
current practice. Only practice administrators and super admins may manage
overrides. Overrides are never edited; they expire or are revoked.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from vetcore.dependencies import get_app_notifier
from vetcore.errors import ValidationError
from vetcore.middleware.auth import AuthorizedUser, require_practice_admin
from vetcore.middleware.tenant import get_tenant_db
from vetcore.models import OverrideStatus, PermissionOverride
from vetcore.schemas.rbac import OverrideCreate, OverrideResponse
from vetcore.schemas.responses import APIResponse, PaginatedResponse, PaginationMeta
from vetcore.services import rbac_service
from vetcore.services.notifier import Notifier

router = APIRouter()


@router.get(
    "",
    response_model=PaginatedResponse[OverrideResponse],
    summary="List overrides",
    description="Overrides of the current practice, newest first",
)
async def list_overrides(
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    active_only: bool = Query(False, description="Hide revoked and expired overrides"),
) -> PaginatedResponse[OverrideResponse]:
    query = db.query(PermissionOverride).filter(PermissionOverride.practice_id == auth.practice_id)
    if active_only:
        query = query.filter(PermissionOverride.status == OverrideStatus.ACTIVE.value)
    query = query.order_by(PermissionOverride.created_at.desc(), PermissionOverride.id.desc())

    overrides = [OverrideResponse.from_override(override) for override in query.all()]
    if active_only:
        # Expiry is derived, so it can only be filtered after loading
        overrides = [override for override in overrides if override.status == OverrideStatus.ACTIVE.value]

    total = len(overrides)
    start = (page - 1) * page_size
    return PaginatedResponse(
        success=True,
        data=overrides[start:start + page_size],
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.get(
    "/users/{user_id}",
    response_model=APIResponse[list[OverrideResponse]],
    summary="List a user's overrides",
)
async def list_user_overrides(
    user_id: int,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[list[OverrideResponse]]:
    overrides = (
        db.query(PermissionOverride)
        .filter(PermissionOverride.user_id == user_id, PermissionOverride.practice_id == auth.practice_id)
        .order_by(PermissionOverride.created_at.desc(), PermissionOverride.id.desc())
        .all()
    )
    return APIResponse(success=True, data=[OverrideResponse.from_override(override) for override in overrides])


@router.post(
    "",
    response_model=APIResponse[OverrideResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create override",
    description="Grant or deny one permission for one user in the current practice",
)
async def create_override(
    data: OverrideCreate,
    request: Request,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
    notifier: Notifier = Depends(get_app_notifier),
) -> APIResponse[OverrideResponse]:
    if auth.practice_id is None:
        raise ValidationError.for_field("practice_id", "A practice is required to create overrides")

    user = rbac_service.get_practice_user(db, data.user_id, auth.practice_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {data.user_id} not found",
        )

    override = rbac_service.create_override(
        db,
        user=user,
        resource=data.resource,
        action=data.action,
        granted=data.granted,
        reason=data.reason,
        practice_id=auth.practice_id,
        created_by=auth.user.id,
        expires_at=data.expires_at,
    )
    notifier.publish(
        "override.created",
        {
            "override_id": override.id,
            "user_id": user.id,
            "resource": override.resource,
            "action": override.action,
            "granted": override.granted,
        },
        practice_id=auth.practice_id,
        tenant=request.state.tenant_subdomain,
    )
    return APIResponse(
        success=True,
        data=OverrideResponse.from_override(override),
        message="Override created",
    )


@router.post(
    "/{override_id}/revoke",
    response_model=APIResponse[OverrideResponse],
    summary="Revoke override",
    description="Revoked and expired overrides are terminal",
)
async def revoke_override(
    override_id: int,
    request: Request,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
    notifier: Notifier = Depends(get_app_notifier),
) -> APIResponse[OverrideResponse]:
    override = (
        db.query(PermissionOverride)
        .filter(PermissionOverride.id == override_id, PermissionOverride.practice_id == auth.practice_id)
        .first()
    )
    if override is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Override {override_id} not found",
        )

    current = override.effective_status()
    if not rbac_service.revoke_override(db, override, revoked_by=auth.user.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Override {override_id} is already {current.value}",
        )

    notifier.publish(
        "override.revoked",
        {"override_id": override.id, "user_id": override.user_id},
        practice_id=auth.practice_id,
        tenant=request.state.tenant_subdomain,
    )
    return APIResponse(success=True, data=OverrideResponse.from_override(override), message="Override revoked")
