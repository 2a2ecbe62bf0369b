# FILE: hmis/services/admissions.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hmis.core.errors import (
    AdmissionNotActive,
    AdmissionNotFound,
    PatientNotFound,
    ValidationFailed,
    WardHasActiveBeds,
    WardNotFound,
)
from hmis.models.ipd import (
    ADMISSION_ACTIVE,
    BED_STATUSES,
    DIAGNOSIS_TYPES,
    Admission,
    AdmissionDiagnosis,
    Bed,
    BedTransfer,
    Ward,
)
from hmis.models.patient import Patient
from hmis.schemas.ipd import (
    AdmissionCreate,
    AdmissionDiagnosisIn,
    AdmissionPatch,
    BedIn,
    WardIn,
    WardPatch,
)
from hmis.services.bed_ledger import occupy_bed, release_bed
from hmis.services.number_series import next_document_number
from hmis.utils.timezone import now_local

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# wards / beds
# ---------------------------------------------------------------------
def create_ward(db: Session, payload: WardIn) -> Ward:
    ward = Ward(**payload.model_dump(), is_active=True)
    db.add(ward)
    db.flush()
    return ward


def get_ward(db: Session, ward_id: int, *, lock: bool = False) -> Ward:
    q = db.query(Ward).filter(Ward.id == ward_id, Ward.is_active.is_(True))
    if lock:
        q = q.with_for_update()
    ward = q.first()
    if not ward:
        raise WardNotFound(details={"ward_id": ward_id})
    return ward


def update_ward(db: Session, ward_id: int, patch: WardPatch) -> Ward:
    ward = get_ward(db, ward_id, lock=True)
    data = patch.model_dump(exclude_unset=True)
    if not data:
        raise ValidationFailed("No fields to update")
    if "ward_name" in data and not data["ward_name"]:
        raise ValidationFailed("ward_name cannot be empty")
    for field, value in data.items():
        setattr(ward, field, value)
    db.flush()
    return ward


def deactivate_ward(db: Session, ward_id: int) -> Ward:
    """Soft delete. Beds must be deactivated (or moved) first."""
    ward = get_ward(db, ward_id, lock=True)
    active_beds = (db.query(func.count(Bed.id))
                   .filter(Bed.ward_id == ward.id, Bed.is_active.is_(True))
                   .scalar())
    if active_beds:
        raise WardHasActiveBeds(details={"ward_id": ward.id, "active_beds": active_beds})
    ward.is_active = False
    db.flush()
    logger.info("Ward %s deactivated", ward.ward_name)
    return ward


def create_bed(db: Session, payload: BedIn) -> Bed:
    # the ward row lock keeps this from racing deactivate_ward
    get_ward(db, payload.ward_id, lock=True)
    bed = Bed(**payload.model_dump(), status="available", is_active=True)
    db.add(bed)
    db.flush()
    return bed


def list_beds(db: Session, *, ward_id: Optional[int] = None,
              status: Optional[str] = None, active_only: bool = True) -> List[Bed]:
    q = db.query(Bed)
    if ward_id:
        q = q.filter(Bed.ward_id == ward_id)
    if status:
        if status not in BED_STATUSES:
            raise ValidationFailed(f"Unknown bed status: {status}")
        q = q.filter(Bed.status == status)
    if active_only:
        q = q.filter(Bed.is_active.is_(True))
    return q.order_by(Bed.ward_id.asc(), Bed.bed_number.asc()).all()


# ---------------------------------------------------------------------
# admissions
# ---------------------------------------------------------------------
def get_admission(db: Session, admission_id: int, *, lock: bool = False) -> Admission:
    q = db.query(Admission).filter(Admission.id == admission_id,
                                   Admission.admission_type == "inpatient")
    if lock:
        q = q.with_for_update()
    adm = q.first()
    if not adm:
        raise AdmissionNotFound(details={"admission_id": admission_id})
    return adm


def _require_active(adm: Admission) -> None:
    if adm.status != ADMISSION_ACTIVE:
        raise AdmissionNotActive(
            f"Admission {adm.admission_number} is {adm.status}",
            details={"admission_id": adm.id, "status": adm.status})


def _diagnosis_rows(items: List[AdmissionDiagnosisIn]) -> List[AdmissionDiagnosis]:
    rows = []
    for d in items:
        dtype = (d.diagnosis_type or "primary").strip().lower()
        if dtype not in DIAGNOSIS_TYPES:
            raise ValidationFailed(f"Unknown diagnosis type: {d.diagnosis_type}",
                                   details={"allowed": list(DIAGNOSIS_TYPES)})
        rows.append(AdmissionDiagnosis(
            diagnosis_code=(d.diagnosis_code or "").strip() or None,
            diagnosis_description=d.diagnosis_description.strip(),
            diagnosis_type=dtype,
        ))
    return rows


def admit(db: Session, payload: AdmissionCreate, user_id: Optional[int] = None) -> Admission:
    """Occupy the bed and open the admission in the caller's transaction."""
    if not db.get(Patient, payload.patient_id):
        raise PatientNotFound(details={"patient_id": payload.patient_id})
    diagnoses = _diagnosis_rows(payload.diagnoses)

    occupy_bed(db, Bed, payload.bed_id)
    number = next_document_number(db, "IP", "IP")

    adm = Admission(
        admission_number=number,
        admission_type="inpatient",
        patient_id=payload.patient_id,
        bed_id=payload.bed_id,
        admitting_doctor_id=payload.admitting_doctor_id,
        admission_date=payload.admission_date or now_local(),
        admission_diagnosis=payload.admission_diagnosis,
        admission_reason=payload.admission_reason,
        expected_discharge_date=payload.expected_discharge_date,
        notes=payload.notes,
        status=ADMISSION_ACTIVE,
        created_by=user_id,
        diagnoses=diagnoses,
    )
    db.add(adm)
    db.flush()
    logger.info("Admission %s opened for patient %s in bed %s",
                number, payload.patient_id, payload.bed_id)
    return adm


def update_admission(db: Session, admission_id: int, patch: AdmissionPatch) -> Admission:
    adm = get_admission(db, admission_id, lock=True)
    data = patch.model_dump(exclude_unset=True, exclude={"diagnoses"})
    replace_diagnoses = "diagnoses" in patch.model_fields_set
    if not data and not replace_diagnoses:
        return adm

    _require_active(adm)
    if replace_diagnoses:
        # delete-orphan drops the old rows on flush
        adm.diagnoses = _diagnosis_rows(patch.diagnoses or [])
    for field, value in data.items():
        setattr(adm, field, value)
    db.flush()
    return adm


def transfer_bed(db: Session, admission_id: int, new_bed_id: int,
                 reason: Optional[str] = "", user_id: Optional[int] = None) -> Admission:
    adm = get_admission(db, admission_id, lock=True)
    _require_active(adm)
    if adm.bed_id == new_bed_id:
        raise ValidationFailed("Patient is already in this bed")

    old_bed_id = adm.bed_id
    occupy_bed(db, Bed, new_bed_id)
    if old_bed_id:
        release_bed(db, Bed, old_bed_id)

    adm.bed_id = new_bed_id
    db.add(
        BedTransfer(
            admission_id=adm.id,
            bed_kind="general",
            from_bed_id=old_bed_id,
            to_bed_id=new_bed_id,
            reason=reason or "",
            transferred_at=now_local(),
            performed_by=user_id,
        ))
    db.flush()
    db.expire(adm, ["bed"])
    logger.info("Admission %s moved bed %s -> %s", adm.admission_number, old_bed_id, new_bed_id)
    return adm


def discharge(db: Session, admission_id: int, *, discharge_date=None,
              notes: Optional[str] = None) -> Admission:
    adm = get_admission(db, admission_id, lock=True)
    _require_active(adm)

    adm.status = "discharged"
    adm.discharge_date = discharge_date or now_local()
    if notes:
        adm.notes = f"{adm.notes}\n{notes}" if adm.notes else notes
    if adm.bed_id:
        release_bed(db, Bed, adm.bed_id)
    db.flush()
    logger.info("Admission %s discharged", adm.admission_number)
    return adm


def cancel_admission(db: Session, admission_id: int) -> Admission:
    adm = get_admission(db, admission_id, lock=True)
    if adm.status == "cancelled":
        return adm
    _require_active(adm)

    adm.status = "cancelled"
    if adm.bed_id:
        release_bed(db, Bed, adm.bed_id)
    db.flush()
    logger.info("Admission %s cancelled", adm.admission_number)
    return adm


def list_admissions(db: Session, *, status: Optional[str] = None,
                    patient_id: Optional[int] = None) -> List[Admission]:
    q = db.query(Admission).filter(Admission.admission_type == "inpatient")
    if status:
        q = q.filter(Admission.status == status)
    if patient_id:
        q = q.filter(Admission.patient_id == patient_id)
    return q.order_by(Admission.admission_date.desc(), Admission.id.desc()).all()
