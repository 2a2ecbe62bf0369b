# FILE: hmis/models/billing.py
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from hmis.db.base import Base
from hmis.utils.timezone import now_local

# draft invoices are not yet billable, paid/cancelled are settled
SETTLED_INVOICE_STATUSES = ("paid", "cancelled", "draft")


class Invoice(Base):
    """
    Billing-owned invoice. The workflow core only reads
    status + balance to decide whether a patient still owes money.
    """

    __tablename__ = "billing_invoices"
    __table_args__ = (Index("ix_billing_invoices_patient_status", "patient_id",
                            "status"), )

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, index=True, nullable=True)

    patient_id = Column(
        Integer,
        ForeignKey("patients.id"),
        nullable=False,
        index=True,
    )

    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    paid_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    # draft / pending / partial / paid / cancelled
    status = Column(String(20), nullable=False, default="draft")

    created_at = Column(DateTime, default=now_local, nullable=False)

    patient = relationship("Patient")
