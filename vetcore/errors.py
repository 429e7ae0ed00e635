### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Error Taxonomy -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Error Taxonomy

Exceptions raised by the tenancy and permission layers, and the FastAPI
handlers that turn them into ErrorResponse bodies:

- TenantNotFound        -> 404
- ConnectionUnavailable -> 503
- Unauthenticated       -> 401
- PermissionDenied      -> 403
- ValidationError       -> 400 (field-level details)

Denials always carry the same client message; the internal reason is only
written to the log.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vetcore.schemas.responses import ErrorDetail, ErrorResponse
from vetcore.utils import setup_logger

logger = setup_logger("vetcore_api", log_to_console=False)

UNAUTHORIZED_MESSAGE = "Unauthorized"
ACCESS_DENIED_MESSAGE = "Access denied"


class VetCoreError(Exception):
    """Base class for errors with a defined HTTP mapping"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Internal server error"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.public_message
        super().__init__(self.reason)


class TenantNotFound(VetCoreError):
    """Identifier does not map to an active tenant. Never retried."""

    status_code = status.HTTP_404_NOT_FOUND
    public_message = "Tenant not found"

    def __init__(self, identifier: str | None, reason: str | None = None):
        self.identifier = identifier
        super().__init__(reason or f"No active tenant for '{identifier}'")


class ConnectionUnavailable(VetCoreError):
    """Tenant database could not be reached after the retry"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_message = "Service temporarily unavailable"
    retry_after = 5

    def __init__(self, tenant_key: str, reason: str | None = None):
        self.tenant_key = tenant_key
        super().__init__(reason or f"Database for tenant '{tenant_key}' is unreachable")


class Unauthenticated(VetCoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = UNAUTHORIZED_MESSAGE


class PermissionDenied(VetCoreError):
    status_code = status.HTTP_403_FORBIDDEN
    public_message = ACCESS_DENIED_MESSAGE


class ValidationError(VetCoreError):
    """Malformed payload for a guarded operation. Details are safe to expose."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Validation error"

    def __init__(self, details: list[ErrorDetail] | None = None, reason: str | None = None):
        self.details = details or []
        super().__init__(reason)

    @classmethod
    def for_field(cls, field: str, message: str, code: str | None = None) -> "ValidationError":
        return cls(details=[ErrorDetail(field=field, message=message, code=code)], reason=message)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def vetcore_error_handler(request: Request, exc: VetCoreError) -> JSONResponse:
    """Translate a VetCoreError into its status code and stable message"""
    details = exc.details if isinstance(exc, ValidationError) else None
    headers = None

    if isinstance(exc, ConnectionUnavailable):
        headers = {"Retry-After": str(exc.retry_after)}
        logger.error(f"[{_request_id(request)}] {exc.reason}")
    elif isinstance(exc, (Unauthenticated, PermissionDenied)):
        logger.warning(f"[{_request_id(request)}] {exc.public_message}: {exc.reason}")
        if isinstance(exc, Unauthenticated):
            headers = {"WWW-Authenticate": "Session"}

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.public_message,
            details=details,
            request_id=_request_id(request),
        ).model_dump(),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI body/query validation failures to the 400 ErrorResponse shape"""
    details = [
        ErrorDetail(
            field=".".join(str(loc) for loc in err.get("loc", ()) if loc != "body") or None,
            message=err.get("msg", "Invalid value"),
            code=err.get("type"),
        )
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error=ValidationError.public_message,
            details=details,
            request_id=_request_id(request),
        ).model_dump(),
    )


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Attach the taxonomy handlers plus the catch-all 500 handler"""

    app.add_exception_handler(VetCoreError, vetcore_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions without leaking internals"""
        logger.exception(f"[{_request_id(request)}] Unhandled error: {exc!s}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal server error",
                details=[ErrorDetail(message=str(exc))] if debug else None,
                request_id=_request_id(request),
            ).model_dump(),
        )
