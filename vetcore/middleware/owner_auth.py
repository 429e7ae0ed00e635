### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Owner Portal Authentication -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Owner Portal Authentication

Owner users log in with username (or email) and password and receive an
HS256 JWT. The token's `jti` is the id of a row in owner_sessions, so a
token stops working as soon as its session is deleted (logout) or expires.
"""

import secrets
from datetime import datetime, timedelta

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from vetcore.config import get_settings
from vetcore.database import get_owner_db
from vetcore.errors import Unauthenticated
from vetcore.models import OwnerSession, OwnerUser, verify_password

OWNER_TOKEN_TYPE = "owner"

# Bearer token for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)


def authenticate_owner(owner_db: Session, username: str, password: str) -> OwnerUser | None:
    """Match username or email, then check the bcrypt hash"""
    login = username.strip().lower()
    owner = (
        owner_db.query(OwnerUser)
        .filter(or_(func.lower(OwnerUser.username) == login, func.lower(OwnerUser.email) == login))
        .first()
    )
    if owner is None or not verify_password(password, owner.password_hash):
        return None
    return owner


def issue_owner_token(owner_db: Session, owner: OwnerUser) -> tuple[str, int]:
    """
    Create an owner session and a JWT bound to it.

    Returns:
        Tuple of (token, lifetime in seconds)
    """
    settings = get_settings()
    expires_delta = timedelta(hours=settings.owner_token_ttl_hours)
    expire = datetime.utcnow() + expires_delta

    session = OwnerSession(id=secrets.token_hex(16), user_id=owner.id, expires_at=expire)
    owner_db.add(session)
    owner_db.commit()

    token_data = {
        "sub": owner.username,
        "jti": session.id,
        "exp": expire,
        "type": OWNER_TOKEN_TYPE,
    }
    token = jwt.encode(token_data, settings.secret_key, algorithm="HS256")
    return token, int(expires_delta.total_seconds())


def _decode_owner_token(token: str) -> dict | None:
    """Verify signature, expiry and token type; return the payload if valid"""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != OWNER_TOKEN_TYPE or not payload.get("jti"):
        return None
    return payload


def verify_owner_token(token: str, owner_db: Session) -> OwnerUser | None:
    """Owner for a valid token whose session row still exists"""
    payload = _decode_owner_token(token)
    if payload is None:
        return None
    session = owner_db.get(OwnerSession, payload["jti"])
    if session is None or session.is_expired():
        return None
    return session.user


def revoke_owner_token(token: str, owner_db: Session) -> bool:
    """Delete the session behind a token; returns False if there was none"""
    payload = _decode_owner_token(token)
    if payload is None:
        return False
    session = owner_db.get(OwnerSession, payload["jti"])
    if session is None:
        return False
    owner_db.delete(session)
    owner_db.commit()
    return True


async def require_owner(
    request: Request,
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    owner_db: Session = Depends(get_owner_db),
) -> OwnerUser:
    """
    Dependency for owner portal endpoints.

    Raises:
        Unauthenticated: missing, invalid, expired or logged-out token
    """
    if bearer is None or not bearer.credentials:
        raise Unauthenticated("Owner bearer token is required")

    owner = verify_owner_token(bearer.credentials, owner_db)
    if owner is None:
        raise Unauthenticated("Invalid or expired owner token")

    request.state.owner_id = owner.id
    return owner
