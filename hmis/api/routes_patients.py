# FILE: hmis/api/routes_patients.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hmis.api.deps import current_user, get_db
from hmis.api.response import ok
from hmis.db.session import atomic
from hmis.models.outbox import OutboxEvent
from hmis.models.user import User
from hmis.schemas.patient import OutboxEventOut, PatientCreate, PatientOut
from hmis.services.outbox import dispatch_pending_events
from hmis.services.patients import get_patient, register_patient

router = APIRouter(tags=["patients"])


@router.post("/patients")
def create_patient(payload: PatientCreate, db: Session = Depends(get_db),
                   user: User = Depends(current_user)):
    with atomic(db):
        data = PatientOut.model_validate(register_patient(db, payload, user.id)).model_dump()
    return ok(data, status_code=201)


@router.get("/patients/{patient_id}")
def read_patient(patient_id: int, db: Session = Depends(get_db),
                 user: User = Depends(current_user)):
    return ok(PatientOut.model_validate(get_patient(db, patient_id)).model_dump())


@router.get("/events")
def list_events(status: Optional[str] = Query(None), db: Session = Depends(get_db),
                user: User = Depends(current_user)):
    q = db.query(OutboxEvent)
    if status:
        q = q.filter(OutboxEvent.status == status)
    rows = q.order_by(OutboxEvent.id.desc()).limit(200).all()
    return ok([OutboxEventOut.model_validate(x).model_dump() for x in rows])


@router.post("/events/dispatch")
def dispatch_events(limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db),
                    user: User = Depends(current_user)):
    return ok(dispatch_pending_events(db, limit=limit))
