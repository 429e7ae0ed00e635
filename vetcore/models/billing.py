### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Billing Models -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Billing Models (tenant database)

Invoices are always scoped to a practice; queries filter on practice_id.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String

from vetcore.database import TenantBase


class Invoice(TenantBase):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    practice_id = Column(Integer, ForeignKey("practices.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    invoice_number = Column(String(50), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")  # pending, paid, void
    issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_invoices_practice_issued", "practice_id", "issued_at"),)

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', practice={self.practice_id})>"
