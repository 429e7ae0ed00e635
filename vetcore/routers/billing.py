### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Billing Router -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Billing API Endpoints

Invoices of one practice, guarded by billing:READ.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from vetcore.middleware.auth import AuthorizedUser, require_permission
from vetcore.middleware.rate_limit import default_rate_limit, limiter
from vetcore.middleware.tenant import get_tenant_db
from vetcore.models import Invoice
from vetcore.schemas.billing import InvoiceResponse
from vetcore.schemas.responses import PaginatedResponse, PaginationMeta

router = APIRouter()


@router.get(
    "/invoices",
    response_model=PaginatedResponse[InvoiceResponse],
    summary="List invoices",
    description="Invoices of the current practice (or ?practice_id= for users with access to it)",
)
@limiter.limit(default_rate_limit)
async def list_invoices(
    request: Request,
    auth: AuthorizedUser = Depends(require_permission("billing", "READ")),
    db: Session = Depends(get_tenant_db),
    practice_id: int | None = Query(None, description="Practice to list; defaults to the current practice"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    status_filter: str | None = Query(None, alias="status", description="pending, paid or void"),
) -> PaginatedResponse[InvoiceResponse]:
    # practice_id was checked by the permission guard; auth.practice_id is authoritative
    query = db.query(Invoice).filter(Invoice.practice_id == auth.practice_id)
    if status_filter:
        query = query.filter(Invoice.status == status_filter.lower())

    total = query.count()
    invoices = (
        query.order_by(Invoice.issued_at.desc(), Invoice.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return PaginatedResponse(
        success=True,
        data=[InvoiceResponse.model_validate(invoice) for invoice in invoices],
        pagination=PaginationMeta.build(page, page_size, total),
    )
