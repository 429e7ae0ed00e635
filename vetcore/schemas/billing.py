### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Billing Schemas -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Billing Schemas
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class InvoiceResponse(BaseModel):
    """Invoice list item"""
    id: int
    practice_id: int
    client_id: int | None = None
    invoice_number: str
    total_amount: Decimal
    status: str
    issued_at: datetime | None = None

    class Config:
        from_attributes = True
