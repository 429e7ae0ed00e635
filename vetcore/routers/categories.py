### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Permission Categories Router -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Permission Category API Endpoints

Categories group resources for the admin UI. Deactivating a category stops
dynamic roles from granting the resources it alone lists; the change is
seen by the next permission check.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from vetcore.middleware.auth import AuthorizedUser, require_practice_admin
from vetcore.middleware.tenant import get_tenant_db
from vetcore.models import PermissionCategory
from vetcore.schemas.rbac import CategoryCreate, CategoryResponse, CategoryToggle, CategoryUpdate
from vetcore.schemas.responses import APIResponse
from vetcore.services import rbac_service

router = APIRouter()


def _get_category_or_404(db: Session, category_id: int, practice_id: int | None) -> PermissionCategory:
    category = (
        db.query(PermissionCategory)
        .filter(
            PermissionCategory.id == category_id,
            or_(PermissionCategory.practice_id.is_(None), PermissionCategory.practice_id == practice_id),
        )
        .first()
    )
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Permission category {category_id} not found",
        )
    return category


@router.get(
    "",
    response_model=APIResponse[list[CategoryResponse]],
    summary="List permission categories",
)
async def list_categories(
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[list[CategoryResponse]]:
    categories = (
        db.query(PermissionCategory)
        .filter(or_(PermissionCategory.practice_id.is_(None), PermissionCategory.practice_id == auth.practice_id))
        .order_by(PermissionCategory.display_order, PermissionCategory.id)
        .all()
    )
    return APIResponse(success=True, data=[CategoryResponse.model_validate(c) for c in categories])


@router.post(
    "",
    response_model=APIResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create permission category",
)
async def create_category(
    data: CategoryCreate,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[CategoryResponse]:
    category = PermissionCategory(
        name=data.name,
        description=data.description,
        display_order=data.display_order,
        icon=data.icon,
        is_active=data.is_active,
        is_system_defined=False,
        practice_id=auth.practice_id,
        resources=[resource.model_dump() for resource in data.resources],
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return APIResponse(success=True, data=CategoryResponse.model_validate(category), message="Category created")


@router.patch(
    "/{category_id}",
    response_model=APIResponse[CategoryResponse],
    summary="Update permission category",
)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[CategoryResponse]:
    category = _get_category_or_404(db, category_id, auth.practice_id)

    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return APIResponse(success=True, data=CategoryResponse.model_validate(category), message="Category updated")


@router.post(
    "/{category_id}/toggle",
    response_model=APIResponse[CategoryResponse],
    summary="Activate or deactivate a permission category",
    description="Setting the current value again is a no-op",
)
async def toggle_category(
    category_id: int,
    data: CategoryToggle,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
) -> APIResponse[CategoryResponse]:
    category = _get_category_or_404(db, category_id, auth.practice_id)
    changed = rbac_service.set_category_active(db, category, data.is_active)
    db.refresh(category)
    return APIResponse(
        success=True,
        data=CategoryResponse.model_validate(category),
        message=("Category activated" if data.is_active else "Category deactivated") if changed else "No change",
    )


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete permission category",
    description="Only custom categories can be deleted",
)
async def delete_category(
    category_id: int,
    auth: AuthorizedUser = Depends(require_practice_admin),
    db: Session = Depends(get_tenant_db),
):
    category = _get_category_or_404(db, category_id, auth.practice_id)
    if category.is_system_defined:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="System categories cannot be deleted; deactivate them instead",
        )
    db.delete(category)
    db.commit()
