### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Practice Auth Router -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Practice Auth API Endpoints

Session-cookie login for practice users of the resolved tenant.
"""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from vetcore.config import get_settings
from vetcore.errors import Unauthenticated
from vetcore.middleware.auth import (
    authenticate_user,
    create_user_session,
    get_permission_evaluator,
    require_user,
)
from vetcore.middleware.rate_limit import limiter
from vetcore.middleware.tenant import get_tenant_db
from vetcore.models import User, UserSession
from vetcore.schemas.auth import CurrentUserResponse, LoginRequest, UserResponse
from vetcore.schemas.responses import APIResponse
from vetcore.services.permission_evaluator import PermissionEvaluator

router = APIRouter()


@router.post(
    "/login",
    response_model=APIResponse[UserResponse],
    summary="Practice user login",
    description="Authenticate with email and password; sets the session cookie",
)
@limiter.limit("20/minute")
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_tenant_db),
) -> APIResponse[UserResponse]:
    user = authenticate_user(db, data.email, data.password)
    if user is None:
        raise Unauthenticated(f"Login failed for '{data.email}'")

    settings = get_settings()
    session = create_user_session(db, user)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.id,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    request.state.user_id = user.id

    return APIResponse(success=True, data=UserResponse.model_validate(user), message="Login successful")


@router.post(
    "/logout",
    response_model=APIResponse[dict],
    summary="Logout",
    description="Delete the current session and clear the cookie",
)
async def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_tenant_db),
) -> APIResponse[dict]:
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        session = db.get(UserSession, token)
        if session is not None:
            db.delete(session)
            db.commit()

    response.delete_cookie(settings.session_cookie_name)
    return APIResponse(success=True, message="Logged out")


@router.get(
    "/me",
    response_model=APIResponse[CurrentUserResponse],
    summary="Current user",
    description="The logged-in user with accessible practices",
)
async def me(
    user: User = Depends(require_user),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> APIResponse[CurrentUserResponse]:
    return APIResponse(
        success=True,
        data=CurrentUserResponse(
            user=UserResponse.model_validate(user),
            accessible_practices=evaluator.get_accessible_practices(user),
            can_switch_practices=evaluator.can_switch_practices(user),
            is_super_admin=evaluator.is_super_admin(user),
        ),
    )
