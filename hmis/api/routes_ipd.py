# FILE: hmis/api/routes_ipd.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hmis.api.deps import current_user, get_db
from hmis.api.response import ok
from hmis.db.session import atomic
from hmis.models.ipd import Bed, Ward
from hmis.models.user import User
from hmis.schemas.ipd import (
    AdmissionCreate,
    AdmissionOut,
    AdmissionPatch,
    BedIn,
    BedOut,
    BedStatusIn,
    BedTransferIn,
    DischargeIn,
    WardIn,
    WardOut,
    WardPatch,
)
from hmis.services import admissions as svc
from hmis.services import bed_ledger

router = APIRouter(prefix="/inpatient", tags=["inpatient"])


def _adm(adm) -> dict:
    return AdmissionOut.model_validate(adm).model_dump()


# ------------------------- Wards -------------------------
@router.get("/wards")
def list_wards(db: Session = Depends(get_db), user: User = Depends(current_user)):
    rows = db.query(Ward).filter(Ward.is_active.is_(True)).order_by(Ward.ward_name.asc()).all()
    return ok([WardOut.model_validate(x).model_dump() for x in rows])


@router.post("/wards")
def create_ward(payload: WardIn, db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = WardOut.model_validate(svc.create_ward(db, payload)).model_dump()
    return ok(data, status_code=201)


@router.put("/wards/{ward_id}")
def update_ward(ward_id: int, payload: WardPatch, db: Session = Depends(get_db),
                user: User = Depends(current_user)):
    with atomic(db):
        data = WardOut.model_validate(svc.update_ward(db, ward_id, payload)).model_dump()
    return ok(data)


@router.delete("/wards/{ward_id}")
def deactivate_ward(ward_id: int, db: Session = Depends(get_db),
                    user: User = Depends(current_user)):
    with atomic(db):
        data = WardOut.model_validate(svc.deactivate_ward(db, ward_id)).model_dump()
    return ok(data)


# ------------------------- Beds -------------------------
@router.get("/beds")
def list_beds(
    ward_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = svc.list_beds(db, ward_id=ward_id, status=status)
    return ok([BedOut.model_validate(x).model_dump() for x in rows])


@router.post("/beds")
def create_bed(payload: BedIn, db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = BedOut.model_validate(svc.create_bed(db, payload)).model_dump()
    return ok(data, status_code=201)


@router.get("/beds/{bed_id}")
def get_bed(bed_id: int, db: Session = Depends(get_db), user: User = Depends(current_user)):
    return ok(BedOut.model_validate(bed_ledger.get_bed(db, Bed, bed_id)).model_dump())


@router.put("/beds/{bed_id}/status")
def set_bed_status(bed_id: int, payload: BedStatusIn, db: Session = Depends(get_db),
                   user: User = Depends(current_user)):
    with atomic(db):
        bed = bed_ledger.set_bed_status(db, Bed, bed_id, payload.status)
        data = BedOut.model_validate(bed).model_dump()
    return ok(data)


@router.delete("/beds/{bed_id}")
def deactivate_bed(bed_id: int, db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        bed = bed_ledger.deactivate_bed(db, Bed, bed_id)
        data = BedOut.model_validate(bed).model_dump()
    return ok(data)


# ------------------------- Admissions -------------------------
@router.get("/admissions")
def list_admissions(
    status: Optional[str] = Query(None),
    patient_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = svc.list_admissions(db, status=status, patient_id=patient_id)
    return ok([_adm(x) for x in rows])


@router.get("/admissions/{admission_id}")
def get_admission(admission_id: int, db: Session = Depends(get_db),
                  user: User = Depends(current_user)):
    return ok(_adm(svc.get_admission(db, admission_id)))


@router.post("/admissions")
def admit_patient(payload: AdmissionCreate, db: Session = Depends(get_db),
                  user: User = Depends(current_user)):
    with atomic(db):
        data = _adm(svc.admit(db, payload, user.id))
    return ok(data, status_code=201)


@router.put("/admissions/{admission_id}")
def update_admission(admission_id: int, payload: AdmissionPatch,
                     db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _adm(svc.update_admission(db, admission_id, payload))
    return ok(data)


@router.post("/admissions/{admission_id}/transfer")
def transfer_bed(admission_id: int, payload: BedTransferIn,
                 db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        adm = svc.transfer_bed(db, admission_id, payload.new_bed_id, payload.reason, user.id)
        data = _adm(adm)
    return ok(data)


@router.post("/admissions/{admission_id}/discharge")
def discharge_patient(admission_id: int, payload: DischargeIn,
                      db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        adm = svc.discharge(db, admission_id, discharge_date=payload.discharge_date,
                            notes=payload.notes)
        data = _adm(adm)
    return ok(data)


@router.delete("/admissions/{admission_id}")
def cancel_admission(admission_id: int, db: Session = Depends(get_db),
                     user: User = Depends(current_user)):
    with atomic(db):
        data = _adm(svc.cancel_admission(db, admission_id))
    return ok(data)
