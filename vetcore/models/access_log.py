### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Access Log Model -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Access Log Model

Records API requests in the owner database for audit:
- Who: tenant subdomain and practice user (when resolved)
- What: HTTP method, path, response status
- When: Timestamp
- How long: Response time
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Index, Integer, String

from vetcore.database import OwnerBase


class AccessLog(OwnerBase):
    """Access log model - one row per request outside the owner portal"""

    __tablename__ = "access_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(String(36), nullable=False)

    # Tenant users live in tenant databases, so no foreign keys here
    tenant_subdomain = Column(String(100), nullable=True)
    user_id = Column(Integer, nullable=True)

    method = Column(String(10), nullable=False)
    path = Column(String(500), nullable=False)
    query_string = Column(String(1000), nullable=True)
    client_ip = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)

    status_code = Column(Integer, nullable=False)
    response_time_ms = Column(Float, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_access_logs_tenant_created", "tenant_subdomain", "created_at"),
        Index("ix_access_logs_path_created", "path", "created_at"),
    )

    def __repr__(self):
        return f"<AccessLog(id={self.id}, method='{self.method}', path='{self.path}', status={self.status_code})>"

    @classmethod
    def create_from_request(
        cls,
        request_id: str,
        method: str,
        path: str,
        status_code: int,
        response_time_ms: float,
        tenant_subdomain: str | None = None,
        user_id: int | None = None,
        query_string: str | None = None,
        client_ip: str | None = None,
        user_agent: str | None = None,
    ) -> "AccessLog":
        """Create an access log entry (not yet committed)"""
        return cls(
            request_id=request_id,
            method=method,
            path=path,
            status_code=status_code,
            response_time_ms=response_time_ms,
            tenant_subdomain=tenant_subdomain,
            user_id=user_id,
            query_string=query_string,
            client_ip=client_ip,
            user_agent=user_agent,
        )
