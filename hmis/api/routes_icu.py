# FILE: hmis/api/routes_icu.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hmis.api.deps import current_user, get_db
from hmis.api.response import ok
from hmis.db.session import atomic
from hmis.models.icu import IcuBed
from hmis.models.user import User
from hmis.schemas.icu import (
    IcuAdmissionCreate,
    IcuAdmissionOut,
    IcuAdmissionPatch,
    IcuBedIn,
    IcuBedOut,
    IcuMonitoringIn,
    IcuMonitoringOut,
    IcuMonitoringPatch,
    InvoiceBrief,
    PrescriptionBrief,
)
from hmis.schemas.ipd import AdmissionOut, BedStatusIn, BedTransferIn
from hmis.services import bed_ledger
from hmis.services import icu_admissions as svc

router = APIRouter(prefix="/icu", tags=["icu"])


def _icu(row) -> dict:
    return IcuAdmissionOut.model_validate(row).model_dump()


@router.get("/beds")
def list_icu_beds(status: Optional[str] = Query(None), db: Session = Depends(get_db),
                  user: User = Depends(current_user)):
    return ok([IcuBedOut.model_validate(x).model_dump() for x in svc.list_icu_beds(db, status=status)])


@router.post("/beds")
def create_icu_bed(payload: IcuBedIn, db: Session = Depends(get_db),
                   user: User = Depends(current_user)):
    with atomic(db):
        data = IcuBedOut.model_validate(svc.create_icu_bed(db, payload)).model_dump()
    return ok(data, status_code=201)


@router.put("/beds/{bed_id}/status")
def set_icu_bed_status(bed_id: int, payload: BedStatusIn, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    with atomic(db):
        bed = bed_ledger.set_bed_status(db, IcuBed, bed_id, payload.status)
        data = IcuBedOut.model_validate(bed).model_dump()
    return ok(data)


@router.delete("/beds/{bed_id}")
def deactivate_icu_bed(bed_id: int, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    with atomic(db):
        data = IcuBedOut.model_validate(bed_ledger.deactivate_bed(db, IcuBed, bed_id)).model_dump()
    return ok(data)


@router.get("/admissions")
def list_icu_admissions(active_only: bool = Query(False), db: Session = Depends(get_db),
                        user: User = Depends(current_user)):
    return ok([_icu(x) for x in svc.list_icu_admissions(db, active_only=active_only)])


@router.get("/admissions/{icu_admission_id}")
def get_icu_admission(icu_admission_id: int, db: Session = Depends(get_db),
                      user: User = Depends(current_user)):
    return ok(_icu(svc.get_icu_admission(db, icu_admission_id)))


@router.post("/admissions")
def admit_to_icu(payload: IcuAdmissionCreate, db: Session = Depends(get_db),
                 user: User = Depends(current_user)):
    with atomic(db):
        data = _icu(svc.admit_icu(db, payload, user.id))
    return ok(data, status_code=201)


@router.put("/admissions/{icu_admission_id}")
def update_icu_admission(icu_admission_id: int, payload: IcuAdmissionPatch,
                         db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _icu(svc.update_icu_admission(db, icu_admission_id, payload))
    return ok(data)


@router.post("/admissions/{icu_admission_id}/transfer")
def transfer_icu_bed(icu_admission_id: int, payload: BedTransferIn,
                     db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        row = svc.transfer_icu_bed(db, icu_admission_id, payload.new_bed_id, payload.reason, user.id)
        data = _icu(row)
    return ok(data)


@router.delete("/admissions/{icu_admission_id}")
def discharge_from_icu(icu_admission_id: int, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    with atomic(db):
        data = _icu(svc.discharge_icu(db, icu_admission_id))
    return ok(data)


@router.get("/admissions/{icu_admission_id}/overview")
def icu_admission_overview(icu_admission_id: int, db: Session = Depends(get_db),
                           user: User = Depends(current_user)):
    view = svc.icu_overview(db, icu_admission_id)
    return ok({
        "icu_admission": _icu(view["icu_admission"]),
        "admission": AdmissionOut.model_validate(view["admission"]).model_dump(),
        "monitoring": [_obs(x) for x in view["monitoring"]],
        "prescriptions": [PrescriptionBrief.model_validate(x).model_dump()
                          for x in view["prescriptions"]],
        "invoices": [InvoiceBrief.model_validate(x).model_dump() for x in view["invoices"]],
    })


# ------------------------- Monitoring -------------------------
def _obs(row) -> dict:
    return IcuMonitoringOut.model_validate(row).model_dump()


@router.get("/admissions/{icu_admission_id}/monitoring")
def list_icu_monitoring(icu_admission_id: int, db: Session = Depends(get_db),
                        user: User = Depends(current_user)):
    return ok([_obs(x) for x in svc.list_monitoring(db, icu_admission_id)])


@router.post("/admissions/{icu_admission_id}/monitoring")
def record_icu_monitoring(icu_admission_id: int, payload: IcuMonitoringIn,
                          db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _obs(svc.record_monitoring(db, icu_admission_id, payload, user.id))
    return ok(data, status_code=201)


@router.put("/admissions/{icu_admission_id}/monitoring/{monitoring_id}")
def update_icu_monitoring(icu_admission_id: int, monitoring_id: int, payload: IcuMonitoringPatch,
                          db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _obs(svc.update_monitoring(db, icu_admission_id, monitoring_id, payload))
    return ok(data)


@router.delete("/admissions/{icu_admission_id}/monitoring/{monitoring_id}")
def delete_icu_monitoring(icu_admission_id: int, monitoring_id: int,
                          db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        svc.delete_monitoring(db, icu_admission_id, monitoring_id)
    return ok({"id": monitoring_id, "deleted": True})
