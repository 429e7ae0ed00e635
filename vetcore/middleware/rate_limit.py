### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Rate Limiting Middleware -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Rate Limiting Middleware

Per-session rate limiting using slowapi. Requests are keyed on the tenant
plus the session cookie, falling back to the client IP.
"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from vetcore.config import get_settings
from vetcore.schemas.responses import ErrorResponse

settings = get_settings()


def get_session_identifier(request: Request) -> str:
    """
    Get rate limit identifier from the session cookie.
    Falls back to IP address if no session present.
    """
    host = (request.headers.get("host") or "").split(":")[0].lower()
    session_id = request.cookies.get(settings.session_cookie_name, "")
    if session_id:
        # Session prefix is enough to tell callers apart
        return f"session:{host}:{session_id[:16]}"
    return f"ip:{host}:{get_remote_address(request)}"


def default_rate_limit() -> str:
    return f"{settings.rate_limit_per_minute}/minute"


limiter = Limiter(
    key_func=get_session_identifier,
    default_limits=[default_rate_limit()],
    storage_uri="memory://",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Custom handler for rate limit exceeded errors"""
    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=f"Rate limit exceeded. {exc.detail}",
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(),
        headers={"Retry-After": str(retry_after)},
    )
