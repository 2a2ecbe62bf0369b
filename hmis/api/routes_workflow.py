# FILE: hmis/api/routes_workflow.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hmis.api.deps import current_user, get_db
from hmis.api.response import ok
from hmis.db.session import atomic
from hmis.models.user import User
from hmis.schemas.queue import (
    CashierToConsultationIn,
    CashierToPharmacyIn,
    ConsultationToLabIn,
    PrescriptionToCashierIn,
    QueueEntryOut,
    TriageToCashierIn,
)
from hmis.services import queue_service as qs
from hmis.services.workflow import run_chain_step

router = APIRouter(prefix="/workflow", tags=["workflow"])


def _chain(db: Session, step: str, payload: BaseModel, user: User):
    with atomic(db):
        entry, duplicate = run_chain_step(db, step, payload.model_dump(), created_by=user.id)
        data = QueueEntryOut.model_validate(entry).model_dump()
    data["duplicate"] = duplicate
    return ok(data, status_code=200 if duplicate else 201)


@router.post("/triage-to-cashier")
def triage_to_cashier(payload: TriageToCashierIn, db: Session = Depends(get_db),
                      user: User = Depends(current_user)):
    return _chain(db, "triage-to-cashier", payload, user)


@router.post("/cashier-to-consultation")
def cashier_to_consultation(payload: CashierToConsultationIn, db: Session = Depends(get_db),
                            user: User = Depends(current_user)):
    return _chain(db, "cashier-to-consultation", payload, user)


@router.post("/consultation-to-lab")
def consultation_to_lab(payload: ConsultationToLabIn, db: Session = Depends(get_db),
                        user: User = Depends(current_user)):
    return _chain(db, "consultation-to-lab", payload, user)


@router.post("/prescription-to-cashier")
def prescription_to_cashier(payload: PrescriptionToCashierIn, db: Session = Depends(get_db),
                            user: User = Depends(current_user)):
    return _chain(db, "prescription-to-cashier", payload, user)


@router.post("/cashier-to-pharmacy")
def cashier_to_pharmacy(payload: CashierToPharmacyIn, db: Session = Depends(get_db),
                        user: User = Depends(current_user)):
    return _chain(db, "cashier-to-pharmacy", payload, user)


@router.get("/queue/{queue_id}/time-summary")
def queue_time_summary(queue_id: int, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    return ok(qs.time_summary(qs.get_entry(db, queue_id)))


@router.get("/patients/{patient_id}/queue-history")
def patient_queue_history(patient_id: int, db: Session = Depends(get_db),
                          user: User = Depends(current_user)):
    rows = qs.patient_queue_history(db, patient_id)
    return ok([{
        **QueueEntryOut.model_validate(r["entry"]).model_dump(),
        "time_summary": r["time_summary"],
    } for r in rows])
