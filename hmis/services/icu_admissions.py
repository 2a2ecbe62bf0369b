# FILE: hmis/services/icu_admissions.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hmis.core.errors import (
    AdmissionNotActive,
    AdmissionNotFound,
    MonitoringRecordNotFound,
    PatientNotFound,
    ValidationFailed,
)
from hmis.models.billing import Invoice
from hmis.models.icu import ICU_ACTIVE_STATUSES, ICU_DISCHARGED, IcuAdmission, IcuBed, IcuMonitoring
from hmis.models.ipd import ADMISSION_ACTIVE, Admission, BedTransfer
from hmis.models.patient import Patient
from hmis.models.pharmacy import Prescription
from hmis.schemas.icu import (
    IcuAdmissionCreate,
    IcuAdmissionPatch,
    IcuBedIn,
    IcuMonitoringIn,
    IcuMonitoringPatch,
)
from hmis.services.bed_ledger import occupy_bed, release_bed
from hmis.services.number_series import next_document_number
from hmis.utils.timezone import now_local

logger = logging.getLogger(__name__)


def _check_condition(status: Optional[str]) -> str:
    s = (status or "critical").strip().lower()
    if s not in ICU_ACTIVE_STATUSES:
        raise ValidationFailed(f"Unknown ICU condition: {status}",
                               details={"allowed": list(ICU_ACTIVE_STATUSES)})
    return s


def create_icu_bed(db: Session, payload: IcuBedIn) -> IcuBed:
    bed = IcuBed(**payload.model_dump(), status="available", is_active=True)
    db.add(bed)
    db.flush()
    return bed


def list_icu_beds(db: Session, *, status: Optional[str] = None,
                  active_only: bool = True) -> List[IcuBed]:
    q = db.query(IcuBed)
    if status:
        q = q.filter(IcuBed.status == status)
    if active_only:
        q = q.filter(IcuBed.is_active.is_(True))
    return q.order_by(IcuBed.bed_number.asc()).all()


def get_icu_admission(db: Session, icu_admission_id: int, *, lock: bool = False) -> IcuAdmission:
    q = db.query(IcuAdmission).filter(IcuAdmission.id == icu_admission_id)
    if lock:
        q = q.with_for_update()
    row = q.first()
    if not row:
        raise AdmissionNotFound(details={"icu_admission_id": icu_admission_id})
    return row


def _require_active(row: IcuAdmission) -> None:
    if not row.is_active:
        raise AdmissionNotActive(
            "ICU admission is already discharged",
            details={"icu_admission_id": row.id, "status": row.status})


def admit_icu(db: Session, payload: IcuAdmissionCreate, user_id: Optional[int] = None) -> IcuAdmission:
    """
    ICU stay = a general admission record (type icu, no ward bed) plus
    the ICU detail row, with the ICU bed flipped to occupied.
    """
    if not db.get(Patient, payload.patient_id):
        raise PatientNotFound(details={"patient_id": payload.patient_id})
    condition = _check_condition(payload.status)

    occupy_bed(db, IcuBed, payload.icu_bed_id)
    number = next_document_number(db, "ICU", "ICU")
    admitted_at = payload.admission_date or now_local()

    parent = Admission(
        admission_number=number,
        admission_type="icu",
        patient_id=payload.patient_id,
        bed_id=None,
        admitting_doctor_id=payload.admitting_doctor_id,
        admission_date=admitted_at,
        admission_reason=payload.admission_reason,
        expected_discharge_date=payload.expected_discharge_date,
        notes=payload.notes,
        status=ADMISSION_ACTIVE,
        created_by=user_id,
    )
    db.add(parent)
    db.flush()

    row = IcuAdmission(
        admission_id=parent.id,
        icu_bed_id=payload.icu_bed_id,
        admission_reason=payload.admission_reason,
        initial_condition=payload.initial_condition,
        status=condition,
        expected_discharge_date=payload.expected_discharge_date,
        notes=payload.notes,
    )
    db.add(row)
    db.flush()
    logger.info("ICU admission %s opened for patient %s in ICU bed %s",
                number, payload.patient_id, payload.icu_bed_id)
    return row


def update_icu_admission(db: Session, icu_admission_id: int, patch: IcuAdmissionPatch) -> IcuAdmission:
    row = get_icu_admission(db, icu_admission_id, lock=True)
    data = patch.model_dump(exclude_unset=True)
    if not data:
        return row
    _require_active(row)
    if "status" in data:
        data["status"] = _check_condition(data["status"])
    for field, value in data.items():
        setattr(row, field, value)
    db.flush()
    return row


def transfer_icu_bed(db: Session, icu_admission_id: int, new_bed_id: int,
                     reason: Optional[str] = "", user_id: Optional[int] = None) -> IcuAdmission:
    row = get_icu_admission(db, icu_admission_id, lock=True)
    _require_active(row)
    if row.icu_bed_id == new_bed_id:
        raise ValidationFailed("Patient is already in this ICU bed")

    old_bed_id = row.icu_bed_id
    occupy_bed(db, IcuBed, new_bed_id)
    release_bed(db, IcuBed, old_bed_id)
    row.icu_bed_id = new_bed_id
    db.add(
        BedTransfer(
            admission_id=row.admission_id,
            bed_kind="icu",
            from_bed_id=old_bed_id,
            to_bed_id=new_bed_id,
            reason=reason or "",
            transferred_at=now_local(),
            performed_by=user_id,
        ))
    db.flush()
    db.expire(row, ["icu_bed"])
    logger.info("ICU admission %s moved ICU bed %s -> %s", row.id, old_bed_id, new_bed_id)
    return row


def discharge_icu(db: Session, icu_admission_id: int) -> IcuAdmission:
    row = get_icu_admission(db, icu_admission_id, lock=True)
    _require_active(row)

    now = now_local()
    row.status = ICU_DISCHARGED
    row.discharged_at = now
    parent = db.get(Admission, row.admission_id)
    if parent and parent.status == ADMISSION_ACTIVE:
        parent.status = "discharged"
        parent.discharge_date = now
    release_bed(db, IcuBed, row.icu_bed_id)
    db.flush()
    logger.info("ICU admission %s discharged", row.id)
    return row


def list_icu_admissions(db: Session, *, active_only: bool = False) -> List[IcuAdmission]:
    q = db.query(IcuAdmission)
    if active_only:
        q = q.filter(IcuAdmission.status.in_(ICU_ACTIVE_STATUSES))
    return q.order_by(IcuAdmission.created_at.desc(), IcuAdmission.id.desc()).all()


# ---------------------------------------------------------------------
# bedside monitoring
# ---------------------------------------------------------------------
def record_monitoring(db: Session, icu_admission_id: int, payload: IcuMonitoringIn,
                      user_id: Optional[int] = None) -> IcuMonitoring:
    """Observations are only taken while the patient is still in the ICU."""
    row = get_icu_admission(db, icu_admission_id)
    _require_active(row)
    data = payload.model_dump(exclude={"monitoring_datetime"})
    obs = IcuMonitoring(
        icu_admission_id=row.id,
        monitoring_datetime=payload.monitoring_datetime or now_local(),
        recorded_by=user_id,
        **data,
    )
    db.add(obs)
    db.flush()
    return obs


def list_monitoring(db: Session, icu_admission_id: int) -> List[IcuMonitoring]:
    get_icu_admission(db, icu_admission_id)
    return (db.query(IcuMonitoring)
            .filter(IcuMonitoring.icu_admission_id == icu_admission_id)
            .order_by(IcuMonitoring.monitoring_datetime.desc(), IcuMonitoring.id.desc())
            .all())


def _get_monitoring(db: Session, icu_admission_id: int, monitoring_id: int) -> IcuMonitoring:
    obs = (db.query(IcuMonitoring)
           .filter(IcuMonitoring.id == monitoring_id,
                   IcuMonitoring.icu_admission_id == icu_admission_id)
           .first())
    if not obs:
        raise MonitoringRecordNotFound(
            details={"icu_admission_id": icu_admission_id, "monitoring_id": monitoring_id})
    return obs


def update_monitoring(db: Session, icu_admission_id: int, monitoring_id: int,
                      patch: IcuMonitoringPatch) -> IcuMonitoring:
    obs = _get_monitoring(db, icu_admission_id, monitoring_id)
    data = patch.model_dump(exclude_unset=True)
    if not data:
        raise ValidationFailed("No fields to update")
    if "monitoring_datetime" in data and data["monitoring_datetime"] is None:
        raise ValidationFailed("monitoring_datetime cannot be cleared")
    for field, value in data.items():
        setattr(obs, field, value)
    db.flush()
    return obs


def delete_monitoring(db: Session, icu_admission_id: int, monitoring_id: int) -> None:
    obs = _get_monitoring(db, icu_admission_id, monitoring_id)
    db.delete(obs)
    db.flush()


def icu_overview(db: Session, icu_admission_id: int) -> Dict[str, Any]:
    """
    Everything the ICU chart shows for one stay: the stay itself, its
    parent admission, observations (newest first) and the prescriptions
    and invoices raised for the patient since admission.
    """
    row = get_icu_admission(db, icu_admission_id)
    parent = row.admission
    since = parent.admission_date

    prescriptions = (db.query(Prescription)
                     .filter(Prescription.patient_id == parent.patient_id,
                             Prescription.created_at >= since)
                     .order_by(Prescription.created_at.desc()).all())
    invoices = (db.query(Invoice)
                .filter(Invoice.patient_id == parent.patient_id,
                        Invoice.created_at >= since)
                .order_by(Invoice.created_at.desc()).all())

    return {
        "icu_admission": row,
        "admission": parent,
        "monitoring": list_monitoring(db, icu_admission_id),
        "prescriptions": prescriptions,
        "invoices": invoices,
    }
