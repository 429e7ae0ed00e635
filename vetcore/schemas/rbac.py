### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - RBAC Schemas -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
RBAC Schemas

Pydantic models for roles, role assignments, permission overrides and
permission categories. Resource and action names are validated against the
permission catalog on the way in, so malformed grants never reach storage.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from vetcore.models import PermissionOverride
from vetcore.services.permission_catalog import PermissionGrant, normalize_action, normalize_resource

ROLE_NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9_]{1,99}$"


# ========================================
# Roles
# ========================================

class RoleCreate(BaseModel):
    """Create a custom role for the current practice"""
    name: str = Field(..., pattern=ROLE_NAME_PATTERN, description="Role key, e.g. 'FRONT_DESK_LEAD'")
    display_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    permissions: list[PermissionGrant] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def upper_name(cls, v: str) -> str:
        return v.upper()


class RoleUpdate(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    permissions: list[PermissionGrant] | None = None
    is_active: bool | None = None


class RoleResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None = None
    is_system_defined: bool
    practice_id: int | None = None
    permissions: list[dict[str, Any]] = Field(default_factory=list)
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RoleAssignmentRequest(BaseModel):
    role_id: int


class RoleAssignmentResponse(BaseModel):
    id: int
    user_id: int
    role_id: int
    assigned_by: int | None = None
    assigned_at: datetime
    is_active: bool

    class Config:
        from_attributes = True


# ========================================
# Overrides
# ========================================

class OverrideCreate(BaseModel):
    """Grant or revoke one (resource, action) for one user in the current practice"""
    user_id: int
    resource: str
    action: str
    granted: bool
    reason: str = Field(..., min_length=10, max_length=1000, description="Why the override exists")
    expires_at: datetime | None = None

    @field_validator("resource")
    @classmethod
    def check_resource(cls, v: str) -> str:
        return normalize_resource(v).value

    @field_validator("action")
    @classmethod
    def check_action(cls, v: str) -> str:
        return normalize_action(v).value

    @field_validator("expires_at")
    @classmethod
    def strip_timezone(cls, v: datetime | None) -> datetime | None:
        # Stored as naive UTC like every other timestamp column
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class OverrideResponse(BaseModel):
    id: int
    user_id: int
    user_name: str | None = None
    user_email: str | None = None
    resource: str
    action: str
    granted: bool
    reason: str
    expires_at: datetime | None = None
    practice_id: int
    status: str
    created_at: datetime
    created_by: int | None = None
    revoked_at: datetime | None = None
    revoked_by: int | None = None

    @classmethod
    def from_override(cls, override: PermissionOverride) -> "OverrideResponse":
        """Report expiry as a status even though it is never stored"""
        return cls(
            id=override.id,
            user_id=override.user_id,
            user_name=override.user_name,
            user_email=override.user_email,
            resource=override.resource,
            action=override.action,
            granted=override.granted,
            reason=override.reason,
            expires_at=override.expires_at,
            practice_id=override.practice_id,
            status=override.effective_status().value,
            created_at=override.created_at,
            created_by=override.created_by,
            revoked_at=override.revoked_at,
            revoked_by=override.revoked_by,
        )


# ========================================
# Permission Categories
# ========================================

class CategoryResource(BaseModel):
    name: str
    description: str | None = None
    actions: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return normalize_resource(v).value

    @field_validator("actions")
    @classmethod
    def check_actions(cls, v: list[str]) -> list[str]:
        return [normalize_action(action).value for action in v]


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    display_order: int = Field(0, ge=0)
    icon: str | None = Field(None, max_length=50)
    is_active: bool = True
    resources: list[CategoryResource] = Field(default_factory=list)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    display_order: int | None = Field(None, ge=0)
    icon: str | None = Field(None, max_length=50)
    resources: list[CategoryResource] | None = None


class CategoryToggle(BaseModel):
    is_active: bool


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    display_order: int
    icon: str | None = None
    is_active: bool
    is_system_defined: bool
    practice_id: int | None = None
    resources: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
