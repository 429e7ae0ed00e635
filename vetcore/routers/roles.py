### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Roles Router -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Role Management API Endpoints

- Roles: list system and custom roles, create/update/delete custom roles
- Assignments: assign a role to a user, revoke it

System roles are read-only. Mutations require a practice administrator.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from vetcore.dependencies import get_app_notifier
from vetcore.errors import PermissionDenied, ValidationError
from vetcore.middleware.auth import (
    AuthorizedUser,
    get_permission_evaluator,
    require_permission,
    require_practice_admin,
)
from vetcore.middleware.tenant import get_tenant_db
from vetcore.models import Role, UserRole
from vetcore.schemas.rbac import (
    RoleAssignmentRequest,
    RoleAssignmentResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from vetcore.schemas.responses import APIResponse
from vetcore.services import rbac_service
from vetcore.services.notifier import Notifier
from vetcore.services.permission_catalog import SystemRole, parse_system_role
from vetcore.services.permission_evaluator import PermissionEvaluator

router = APIRouter()


def _get_role_or_404(db: Session, role_id: int, practice_id: int | None) -> Role:
    role = rbac_service.get_visible_role(db, role_id, practice_id)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Role {role_id} not found",
        )
    return role


def _get_custom_role_or_404(db: Session, role_id: int, practice_id: int | None) -> Role:
    role = _get_role_or_404(db, role_id, practice_id)
    if role.is_system_defined:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="System roles cannot be modified",
        )
    return role


# ========================================
# Roles
# ========================================

@router.get(
    "",
    response_model=APIResponse[list[RoleResponse]],
    summary="List roles",
    description="System roles plus the custom roles of the current practice",
)
async def list_roles(
    auth: AuthorizedUser = Depends(require_permission("roles", "READ")),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[list[RoleResponse]]:
    roles = rbac_service.list_roles(db, auth.practice_id)
    return APIResponse(success=True, data=[RoleResponse.model_validate(role) for role in roles])


@router.post(
    "",
    response_model=APIResponse[RoleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create custom role",
)
async def create_role(
    data: RoleCreate,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[RoleResponse]:
    if auth.practice_id is None:
        raise ValidationError.for_field("practice_id", "A practice is required to create roles")
    if parse_system_role(data.name) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"'{data.name}' is a system role name",
        )

    existing = db.query(Role).filter(Role.name == data.name, Role.practice_id == auth.practice_id).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Role '{data.name}' already exists",
        )

    role = rbac_service.create_custom_role(
        db,
        practice_id=auth.practice_id,
        name=data.name,
        display_name=data.display_name,
        permissions=data.permissions,
        description=data.description,
    )
    return APIResponse(success=True, data=RoleResponse.model_validate(role), message="Role created successfully")


@router.patch(
    "/{role_id}",
    response_model=APIResponse[RoleResponse],
    summary="Update custom role",
)
async def update_role(
    role_id: int,
    data: RoleUpdate,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[RoleResponse]:
    role = _get_custom_role_or_404(db, role_id, auth.practice_id)
    role = rbac_service.update_custom_role(
        db,
        role,
        display_name=data.display_name,
        description=data.description,
        permissions=data.permissions,
        is_active=data.is_active,
    )
    return APIResponse(success=True, data=RoleResponse.model_validate(role), message="Role updated successfully")


@router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete custom role",
    description="Deactivates the role; existing assignments stop granting anything",
)
async def delete_role(
    role_id: int,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
):
    role = _get_custom_role_or_404(db, role_id, auth.practice_id)
    rbac_service.deactivate_custom_role(db, role)


# ========================================
# Assignments
# ========================================

@router.get(
    "/users/{user_id}",
    response_model=APIResponse[list[RoleAssignmentResponse]],
    summary="List a user's active role assignments",
)
async def list_user_roles(
    user_id: int,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[list[RoleAssignmentResponse]]:
    if rbac_service.get_practice_user(db, user_id, auth.practice_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")

    assignments = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.is_active)
        .order_by(UserRole.assigned_at)
        .all()
    )
    return APIResponse(
        success=True,
        data=[RoleAssignmentResponse.model_validate(assignment) for assignment in assignments],
    )


@router.post(
    "/users/{user_id}",
    response_model=APIResponse[RoleAssignmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Assign role to user",
)
async def assign_role(
    user_id: int,
    data: RoleAssignmentRequest,
    request: Request,
    auth: AuthorizedUser = Depends(require_practice_admin),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
    db: Session = Depends(get_tenant_db),
    notifier: Notifier = Depends(get_app_notifier),
) -> APIResponse[RoleAssignmentResponse]:
    user = rbac_service.get_practice_user(db, user_id, auth.practice_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")
    role = _get_role_or_404(db, data.role_id, auth.practice_id)
    if not role.is_active:
        raise ValidationError.for_field("role_id", "Role is inactive")
    # Practice administrators cannot mint platform-wide access
    granter_is_super_admin = evaluator.is_super_admin(auth.user, auth.practice_id)
    if parse_system_role(role.name) is SystemRole.SUPER_ADMIN and not granter_is_super_admin:
        raise PermissionDenied(f"User {auth.user.id} may not grant SUPER_ADMIN")

    assignment = rbac_service.assign_role(
        db, user, role, assigned_by=auth.user.id, assigner_is_super_admin=granter_is_super_admin
    )
    notifier.publish(
        "role.assigned",
        {"user_id": user.id, "role_id": role.id, "role": role.name},
        practice_id=auth.practice_id,
        tenant=request.state.tenant_subdomain,
    )
    return APIResponse(
        success=True,
        data=RoleAssignmentResponse.model_validate(assignment),
        message="Role assigned",
    )


@router.delete(
    "/users/{user_id}/{role_id}",
    response_model=APIResponse[dict],
    summary="Revoke role from user",
)
async def revoke_role(
    user_id: int,
    role_id: int,
    request: Request,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
    notifier: Notifier = Depends(get_app_notifier),
) -> APIResponse[dict]:
    if rbac_service.get_practice_user(db, user_id, auth.practice_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")
    role = _get_role_or_404(db, role_id, auth.practice_id)

    revoked = rbac_service.revoke_role(db, user_id, role.id, revoked_by=auth.user.id)
    if revoked:
        notifier.publish(
            "role.revoked",
            {"user_id": user_id, "role_id": role.id, "role": role.name},
            practice_id=auth.practice_id,
            tenant=request.state.tenant_subdomain,
        )
    return APIResponse(
        success=True,
        data={"revoked": revoked},
        message="Role revoked" if revoked else "Role was not assigned",
    )
