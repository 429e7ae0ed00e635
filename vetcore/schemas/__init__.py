### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - API Schemas Package -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
API Schemas Package

Contains Pydantic models for request/response validation:
- auth: Practice user login and session schemas
- billing: Invoice schemas
- rbac: Role, override and permission category schemas
- tenants: Owner portal schemas (tenants, connections, tenancy config)
- responses: Common response schemas

Only the common response envelopes are re-exported here; import the
resource schemas from their modules.
"""

from .responses import APIResponse, ErrorDetail, ErrorResponse, HealthResponse, PaginatedResponse, PaginationMeta

__all__ = [
    "APIResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "PaginatedResponse",
    "PaginationMeta",
]
