### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Practice & User Models -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Practice & User Models (tenant database)

- Practice: a clinic inside the tenant
- User: practice-scoped account with exactly one primary role
- UserSession: server-side session behind the HTTP-only session cookie
- AdministratorAccessiblePractice: cross-practice grants for ADMINISTRATOR users

Passwords and session tokens are handled here the same way for owner and
practice accounts: bcrypt hashes, random URL-safe tokens.
"""

import secrets
from datetime import datetime

import bcrypt as _bcrypt
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from vetcore.database import TenantBase


def hash_password(plaintext: str) -> str:
    """Hash a password using bcrypt"""
    return _bcrypt.hashpw(plaintext.encode(), _bcrypt.gensalt()).decode()


def verify_password(plaintext: str, hashed: str | None) -> bool:
    """Verify a plaintext password against a bcrypt hash"""
    if not hashed:
        return False
    return _bcrypt.checkpw(plaintext.encode(), hashed.encode())


def generate_session_token(length: int = 32) -> str:
    """Random URL-safe session identifier"""
    return secrets.token_urlsafe(length)


class Practice(TenantBase):
    __tablename__ = "practices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Practice(id={self.id}, name='{self.name}')>"


class User(TenantBase):
    """
    Practice user.

    `role` holds the primary (static) role name; additional per-practice
    roles come from UserRole assignments.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="CLIENT")
    practice_id = Column(Integer, ForeignKey("practices.id"), nullable=True)
    current_practice_id = Column(Integer, ForeignKey("practices.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class UserSession(TenantBase):
    __tablename__ = "sessions"

    id = Column(String(128), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at


class AdministratorAccessiblePractice(TenantBase):
    __tablename__ = "administrator_accessible_practices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    administrator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    practice_id = Column(Integer, ForeignKey("practices.id"), nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("administrator_id", "practice_id"),)
