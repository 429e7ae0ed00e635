### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Session Authentication Middleware -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Session Authentication

Practice users authenticate with the opaque `session_id` cookie issued at
login. Sessions live in the tenant database, so the user is always resolved
after the tenant.

Permission guards run after user resolution and before the handler body:

    @router.get("/invoices")
    async def list_invoices(auth: AuthorizedUser = Depends(require_permission("billing", "READ"))):
        ...
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import Depends, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from vetcore.config import get_settings
from vetcore.errors import PermissionDenied, Unauthenticated, ValidationError
from vetcore.middleware.tenant import get_tenant_db
from vetcore.models import User, UserSession, generate_session_token, verify_password
from vetcore.services.permission_evaluator import ALL_PRACTICES, Allowed, PermissionEvaluator


@dataclass
class AuthorizedUser:
    """A user cleared for an operation in one practice"""

    user: User
    practice_id: int | None


# ========================================
# Sessions
# ========================================


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_user_session(db: Session, user: User) -> UserSession:
    settings = get_settings()
    session = UserSession(
        id=generate_session_token(),
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(hours=settings.session_ttl_hours),
    )
    db.add(session)
    db.commit()
    return session


def get_current_user(request: Request, db: Session = Depends(get_tenant_db)) -> User | None:
    """User behind the session cookie, or None if missing or expired"""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        return None

    session = db.get(UserSession, token)
    if session is None or session.is_expired():
        return None

    request.state.user_id = session.user_id
    return session.user


def require_user(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise Unauthenticated("No valid session")
    return user


def get_permission_evaluator(db: Session = Depends(get_tenant_db)) -> PermissionEvaluator:
    return PermissionEvaluator(db)


# ========================================
# Guards
# ========================================


def _requested_practice(request: Request) -> int | None:
    raw = request.path_params.get("practice_id") or request.query_params.get("practice_id")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError.for_field("practice_id", "practice_id must be an integer", "int_parsing") from None


def resolve_practice(request: Request, user: User, evaluator: PermissionEvaluator) -> int | None:
    """
    Practice the request targets: an explicit practice_id (which must be one
    the user can access), else the user's current practice.
    """
    requested = _requested_practice(request)
    home = user.current_practice_id or user.practice_id
    if requested is None or requested == home:
        return home

    accessible = evaluator.get_accessible_practices(user)
    if ALL_PRACTICES not in accessible and requested not in accessible:
        raise PermissionDenied(f"User {user.id} has no access to practice {requested}")
    return requested


def require_permission(resource: str, action: str):
    """
    Dependency factory for permission checking

    Denied and EvaluationError decisions both raise PermissionDenied.
    The guard is sync so its ORM queries run in the threadpool.
    """

    def check_permission(
        request: Request,
        user: User = Depends(require_user),
        evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
    ) -> AuthorizedUser:
        practice_id = resolve_practice(request, user, evaluator)
        decision = evaluator.evaluate(user, resource, action, practice_id=practice_id)
        if not isinstance(decision, Allowed):
            raise PermissionDenied(f"{resource}:{action} for user {user.id} in practice {practice_id}: {decision}")
        return AuthorizedUser(user=user, practice_id=practice_id)

    return check_permission


def require_practice_admin(
    request: Request,
    user: User = Depends(require_user),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> AuthorizedUser:
    """Practice administrators and super admins only (role and override management)"""
    practice_id = resolve_practice(request, user, evaluator)
    if not evaluator.is_practice_admin(user, practice_id):
        raise PermissionDenied(f"User {user.id} is not an administrator of practice {practice_id}")
    return AuthorizedUser(user=user, practice_id=practice_id)
