### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Routers Package -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Routers Package

Contains endpoint routers for different resources:
- owner: Owner portal (tenants, connections, tenancy config)
- auth: Practice user login/session
- roles: Roles and role assignments
- overrides: Per-user permission overrides
- categories: Permission categories
- billing: Invoices
"""

from .auth import router as auth_router
from .billing import router as billing_router
from .categories import router as categories_router
from .overrides import router as overrides_router
from .owner import router as owner_router
from .roles import router as roles_router

__all__ = [
    "auth_router",
    "billing_router",
    "categories_router",
    "overrides_router",
    "owner_router",
    "roles_router",
]
