### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Middleware Package -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Middleware Package

Contains middleware and request dependencies:
- auth: practice session cookie and permission guards
- owner_auth: owner portal JWT
- tenant: tenant resolution and per-request tenant sessions
- logging: Request/response logging
- rate_limit: slowapi limiter
"""

from .auth import (
    AuthorizedUser,
    get_current_user,
    require_permission,
    require_practice_admin,
    require_user,
)
from .logging import RequestLoggingMiddleware
from .owner_auth import require_owner
from .tenant import get_tenant_context, get_tenant_database, get_tenant_db

__all__ = [
    "AuthorizedUser",
    "RequestLoggingMiddleware",
    "get_current_user",
    "get_tenant_context",
    "get_tenant_database",
    "get_tenant_db",
    "require_owner",
    "require_permission",
    "require_practice_admin",
    "require_user",
]
