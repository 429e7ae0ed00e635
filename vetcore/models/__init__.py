### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Models Package -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Models Package

Owner database (OwnerBase):
- Tenant, OwnerUser, OwnerSession, AccessLog

Tenant database (TenantBase):
- Practice, User, UserSession, AdministratorAccessiblePractice
- Role, UserRole, PermissionOverride, PermissionCategory
- Invoice
"""

from vetcore.models.owner import OwnerRole, OwnerSession, OwnerUser, Tenant, TenantPlan, TenantStatus
from vetcore.models.access_log import AccessLog
from vetcore.models.practice import (
    AdministratorAccessiblePractice,
    Practice,
    User,
    UserSession,
    generate_session_token,
    hash_password,
    verify_password,
)
from vetcore.models.rbac import OverrideStatus, PermissionCategory, PermissionOverride, Role, UserRole
from vetcore.models.billing import Invoice

__all__ = [
    "AccessLog",
    "AdministratorAccessiblePractice",
    "Invoice",
    "OverrideStatus",
    "OwnerRole",
    "OwnerSession",
    "OwnerUser",
    "PermissionCategory",
    "PermissionOverride",
    "Practice",
    "Role",
    "Tenant",
    "TenantPlan",
    "TenantStatus",
    "User",
    "UserRole",
    "UserSession",
    "generate_session_token",
    "hash_password",
    "verify_password",
]
