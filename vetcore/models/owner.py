### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Owner Database Models -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Owner Database Models

The platform-level registry, kept in its own database:
- Tenant: one practice's isolated data store and its connection descriptor
- OwnerUser: platform owner / company admin accounts
- OwnerSession: server-side record backing each owner JWT
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from vetcore.database import OwnerBase


class TenantStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


class TenantPlan(str, Enum):
    BASIC = "BASIC"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class OwnerRole(str, Enum):
    OWNER = "OWNER"
    COMPANY_ADMIN = "COMPANY_ADMIN"


class Tenant(OwnerBase):
    """
    Tenant model - one practice (or practice group) and its database.

    Tenants are deactivated by changing status; they are never hard-deleted
    through the API while their database holds data.
    """

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    subdomain = Column(String(100), nullable=False, unique=True, index=True)
    custom_domain = Column(String(255), nullable=True, unique=True)

    # Connection descriptor
    db_name = Column(String(255), nullable=False)
    db_host = Column(String(255), nullable=False, default="localhost")
    db_port = Column(Integer, nullable=False, default=5432)
    db_user = Column(String(255), nullable=False)
    db_password = Column(String(255), nullable=False)

    storage_path = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=TenantStatus.PENDING.value)
    plan = Column(String(20), nullable=False, default=TenantPlan.BASIC.value)
    settings = Column(JSON, default=dict, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Tenant(id={self.id}, subdomain='{self.subdomain}', status='{self.status}')>"

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value


class OwnerUser(OwnerBase):
    """Platform owner account (password hashed with bcrypt)"""

    __tablename__ = "owner_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default=OwnerRole.OWNER.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sessions = relationship("OwnerSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<OwnerUser(id={self.id}, username='{self.username}')>"


class OwnerSession(OwnerBase):
    """Server-side owner session; its id is the JWT 'jti' claim"""

    __tablename__ = "owner_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("owner_users.id"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("OwnerUser", back_populates="sessions")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at
