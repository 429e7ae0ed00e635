### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - RBAC Models -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
RBAC Models (tenant database)

- Role: system or per-practice role with a JSON permission list
  (entries of {"resource", "action", "granted", "conditions"?})
- UserRole: assignment of a Role to a User
- PermissionOverride: user-specific, time-bounded grant or revocation
- PermissionCategory: grouping of resources; inactive categories switch off
  dynamic-role grants for the resources they list

JSON permission blobs are parsed into PermissionGrant objects by the
permission service; nothing here trusts their contents.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from vetcore.database import TenantBase


class OverrideStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"  # derived from expires_at, never stored
    REVOKED = "revoked"


class Role(TenantBase):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    display_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_system_defined = Column(Boolean, default=False, nullable=False)
    practice_id = Column(Integer, ForeignKey("practices.id"), nullable=True)
    permissions = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assignments = relationship("UserRole", back_populates="role", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint("name", "practice_id", name="uq_roles_name_practice"),)

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}', practice={self.practice_id})>"


class UserRole(TenantBase):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    assigned_by = Column(Integer, nullable=True)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by = Column(Integer, nullable=True)

    role = relationship("Role", back_populates="assignments")

    __table_args__ = (Index("ix_user_roles_user_active", "user_id", "is_active"),)


class PermissionOverride(TenantBase):
    """
    Override lifecycle: active -> expired (time based, derived at check time)
    and active -> revoked (explicit). Both are terminal.
    """

    __tablename__ = "permission_overrides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)
    resource = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False)
    granted = Column(Boolean, nullable=False)
    reason = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    practice_id = Column(Integer, ForeignKey("practices.id"), nullable=False)
    status = Column(String(20), nullable=False, default=OverrideStatus.ACTIVE.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(Integer, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_overrides_lookup", "user_id", "practice_id", "resource", "action"),
    )

    def __repr__(self):
        return (
            f"<PermissionOverride(id={self.id}, user={self.user_id}, "
            f"{self.resource}:{self.action}, granted={self.granted}, status='{self.status}')>"
        )

    def effective_status(self, now: datetime | None = None) -> OverrideStatus:
        """Stored status with expiry applied"""
        if self.status == OverrideStatus.REVOKED.value:
            return OverrideStatus.REVOKED
        if self.expires_at is not None and self.expires_at <= (now or datetime.utcnow()):
            return OverrideStatus.EXPIRED
        return OverrideStatus.ACTIVE

    def is_effective(self, now: datetime | None = None) -> bool:
        return self.effective_status(now) is OverrideStatus.ACTIVE


class PermissionCategory(TenantBase):
    __tablename__ = "permission_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    icon = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system_defined = Column(Boolean, default=False, nullable=False)
    practice_id = Column(Integer, ForeignKey("practices.id"), nullable=True)
    # [{"name": "billing", "description": "...", "actions": ["READ", ...]}]
    resources = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def resource_names(self) -> set[str]:
        return {
            str(entry.get("name", "")).lower()
            for entry in (self.resources or [])
            if isinstance(entry, dict) and entry.get("name")
        }
