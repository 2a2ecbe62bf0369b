# FILE: hmis/services/patients.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from hmis.core.errors import PatientNotFound, ValidationFailed
from hmis.models.patient import Patient
from hmis.models.queue import PRIORITIES, SERVICE_POINTS
from hmis.schemas.patient import PatientCreate
from hmis.services.number_series import next_document_number
from hmis.services.outbox import PATIENT_REGISTERED, emit

logger = logging.getLogger(__name__)


def register_patient(db: Session, payload: PatientCreate, user_id: Optional[int] = None) -> Patient:
    """
    Create the patient. If an initial service point is given, a
    PatientRegistered event is stored with it; the queue entry is made
    when the outbox is dispatched, so registration never depends on it.
    """
    sp = (payload.initial_service_point or "").strip().lower() or None
    if sp and sp not in SERVICE_POINTS:
        raise ValidationFailed(f"Unknown service point: {payload.initial_service_point}")
    priority = (payload.priority or "normal").strip().lower()
    if priority not in PRIORITIES:
        raise ValidationFailed(f"Unknown priority: {payload.priority}")

    number = next_document_number(db, "PAT", "PAT")
    patient = Patient(
        patient_number=number,
        first_name=payload.first_name.strip(),
        last_name=(payload.last_name or "").strip() or None,
        gender=payload.gender,
        date_of_birth=payload.date_of_birth,
        phone=payload.phone,
        is_active=True,
    )
    db.add(patient)
    db.flush()

    if sp:
        emit(db, PATIENT_REGISTERED, {
            "patient_id": patient.id,
            "service_point": sp,
            "priority": priority,
            "created_by": user_id,
        })
    logger.info("Patient %s registered as %s", patient.id, number)
    return patient


def get_patient(db: Session, patient_id: int) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise PatientNotFound(details={"patient_id": patient_id})
    return patient
