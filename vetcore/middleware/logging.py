### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Request Logging Middleware -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Request Logging Middleware

Logs all API requests with attribution information:
- Who: tenant subdomain and practice user (set on request.state by the
  tenant and auth dependencies)
- What: Endpoint, method, parameters
- When: Timestamp
- Result: Status code, response time

Logs to file and to the owner database's access_logs table.
"""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from vetcore.database import SessionLocal
from vetcore.models.access_log import AccessLog
from vetcore.utils import setup_logger

# Set up API logger
api_logger = setup_logger("vetcore_api", log_to_console=False)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging all API requests

    Captures:
    - Request ID (UUID prefix, echoed as X-Request-ID)
    - Method, path and query
    - Tenant and user attribution
    - Client IP
    - Response status and time

    Owner portal and auth traffic is logged to file only.
    """

    EXCLUDE_FROM_DB = (
        "/health",
        "/api/v1/owner/",
        "/api/v1/auth/",
        "/docs",
        "/openapi.json",
        "/favicon.ico",
    )

    def _should_log_to_db(self, path: str) -> bool:
        return not any(path.startswith(prefix) for prefix in self.EXCLUDE_FROM_DB)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()

        method = request.method
        path = request.url.path
        query = str(request.url.query) if request.url.query else ""
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            api_logger.error(f"[{request_id}] ERROR {method} {path} - {e!s}")
            raise

        response_time = (time.time() - start_time) * 1000  # ms

        tenant = getattr(request.state, "tenant_subdomain", None)
        user_id = getattr(request.state, "user_id", None)

        log_entry = (
            f"[{request_id}] "
            f"{method} {path}"
            f"{f'?{query}' if query else ''} "
            f"| tenant={tenant or 'default'} "
            f"| user={user_id if user_id is not None else '-'} "
            f"| ip={client_ip} "
            f"| status={status_code} "
            f"| time={response_time:.2f}ms"
        )

        if status_code >= 500:
            api_logger.error(log_entry)
        elif status_code >= 400:
            api_logger.warning(log_entry)
        else:
            api_logger.info(log_entry)

        response.headers["X-Request-ID"] = request_id

        if self._should_log_to_db(path):
            self._save_access_log(
                AccessLog.create_from_request(
                    request_id=request_id,
                    method=method,
                    path=path,
                    status_code=status_code,
                    response_time_ms=response_time,
                    tenant_subdomain=tenant,
                    user_id=user_id,
                    query_string=query or None,
                    client_ip=client_ip,
                    user_agent=request.headers.get("User-Agent"),
                )
            )

        return response

    def _save_access_log(self, log_entry: AccessLog) -> None:
        """Persist in a separate session; failures never fail the request"""
        try:
            db = SessionLocal()
            try:
                db.add(log_entry)
                db.commit()
            finally:
                db.close()
        except Exception as e:
            api_logger.error(f"Failed to save access log: {e!s}")
