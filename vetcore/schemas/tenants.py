### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Owner Portal Schemas -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Owner Portal Schemas

Pydantic models for tenant provisioning, owner login and connection
diagnostics.
"""

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from vetcore.models import TenantPlan, TenantStatus

SUBDOMAIN_PATTERN = r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$"


# ========================================
# Tenant Schemas
# ========================================

class TenantCreate(BaseModel):
    """Provision a new tenant and its first practice"""
    name: str = Field(..., min_length=1, max_length=255, description="Tenant (practice group) name")
    subdomain: str = Field(..., min_length=1, max_length=63, description="Subdomain label, e.g. 'acme'")
    custom_domain: str | None = Field(None, max_length=255, description="Optional custom domain")
    db_name: str = Field(..., min_length=1, max_length=255)
    db_host: str = Field("localhost", max_length=255)
    db_port: int = Field(5432, ge=1, le=65535)
    db_user: str = Field(..., min_length=1, max_length=255)
    db_password: str = Field(..., min_length=1, max_length=255)
    storage_path: str | None = Field(None, max_length=500)
    plan: TenantPlan = TenantPlan.BASIC
    settings: dict[str, Any] = Field(default_factory=dict)

    # First practice and its administrator
    practice_name: str | None = Field(None, max_length=255, description="Defaults to the tenant name")
    admin_email: str = Field(..., min_length=3, max_length=255)
    admin_name: str = Field(..., min_length=1, max_length=255)
    admin_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("subdomain", mode="before")
    @classmethod
    def normalize_subdomain(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("subdomain")
    @classmethod
    def check_subdomain(cls, v: str) -> str:
        if not re.match(SUBDOMAIN_PATTERN, v):
            raise ValueError("Subdomain may contain only lowercase letters, digits and hyphens")
        if v == "www":
            raise ValueError("'www' is reserved")
        return v

    @field_validator("custom_domain", mode="before")
    @classmethod
    def normalize_custom_domain(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower().rstrip(".")
            return v or None
        return v


class TenantUpdate(BaseModel):
    """Update tenant fields (subdomain is immutable)"""
    name: str | None = Field(None, min_length=1, max_length=255)
    custom_domain: str | None = Field(None, max_length=255)
    db_host: str | None = Field(None, max_length=255)
    db_port: int | None = Field(None, ge=1, le=65535)
    db_user: str | None = Field(None, max_length=255)
    db_password: str | None = Field(None, max_length=255)
    storage_path: str | None = Field(None, max_length=500)
    status: TenantStatus | None = None
    plan: TenantPlan | None = None
    settings: dict[str, Any] | None = None

    @field_validator("custom_domain", mode="before")
    @classmethod
    def normalize_custom_domain(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower().rstrip(".")
            return v or None
        return v


class TenantResponse(BaseModel):
    """Tenant response (credentials excluded)"""
    id: int
    name: str
    subdomain: str
    custom_domain: str | None = None
    db_name: str
    db_host: str
    db_port: int
    storage_path: str | None = None
    status: str
    plan: str
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime | None = None
    connected: bool = False

    class Config:
        from_attributes = True


# ========================================
# Owner Authentication
# ========================================

class OwnerLoginRequest(BaseModel):
    """Owner login with username or email"""
    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class OwnerLoginResponse(BaseModel):
    """Login response with JWT token"""
    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


# ========================================
# Connections & Config
# ========================================

class ConnectionStatsResponse(BaseModel):
    """Live tenant connection"""
    tenant: str
    opened_at: datetime
    idle_seconds: float
    hits: int


class ConnectionHealthResponse(BaseModel):
    tenant: str
    connected: bool
    healthy: bool | None = None


class TenancyConfigResponse(BaseModel):
    """Editable tenancy section of config.yaml"""
    connection_ttl_seconds: int
    connect_timeout_seconds: float
    retry_backoff_seconds: float
    pool_size: int
    base_domains: list[str] = Field(default_factory=list)
    aliases: dict[str, str] = Field(default_factory=dict)

    class Config:
        from_attributes = True


class TenancyConfigUpdate(BaseModel):
    """Partial update of the tenancy section"""
    connection_ttl_seconds: int | None = Field(None, ge=1)
    connect_timeout_seconds: float | None = Field(None, gt=0, le=300)
    retry_backoff_seconds: float | None = Field(None, ge=0, le=30)
    pool_size: int | None = Field(None, ge=1, le=50)
    base_domains: list[str] | None = None
    aliases: dict[str, str] | None = None


class ConfigUpdateResponse(BaseModel):
    """Response after config update"""
    changed_fields: list[str]
    restart_required: bool
    message: str
