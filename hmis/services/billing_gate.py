# FILE: hmis/services/billing_gate.py
from __future__ import annotations

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from hmis.models.billing import Invoice, SETTLED_INVOICE_STATUSES
from hmis.models.pharmacy import Prescription


def has_pending_bills(db: Session, patient_id: int) -> bool:
    """
    True when the patient owns at least one billable, unsettled invoice
    with money still outstanding. Always read fresh, never cached.
    """
    q = select(
        exists().where(
            Invoice.patient_id == patient_id,
            Invoice.status.notin_(SETTLED_INVOICE_STATUSES),
            Invoice.balance > 0,
        ))
    return bool(db.execute(q).scalar())


def has_pending_prescriptions(db: Session, patient_id: int) -> bool:
    q = select(
        exists().where(
            Prescription.patient_id == patient_id,
            Prescription.status == "pending",
        ))
    return bool(db.execute(q).scalar())
