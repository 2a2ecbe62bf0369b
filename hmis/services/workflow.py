# FILE: hmis/services/workflow.py
from __future__ import annotations

from typing import Callable, Dict, NamedTuple, Optional, Tuple

from sqlalchemy.orm import Session

from hmis.core.errors import ValidationFailed
from hmis.models.queue import QueueEntry
from hmis.services.queue_service import chain_transition


class ChainStep(NamedTuple):
    from_point: str
    to_point: str
    note: Callable[[dict], Optional[str]]


def _triage_note(p: dict) -> str:
    return f"Consultation fees payment - Service: {p.get('service_type') or 'consultation'}"


def _consultation_note(p: dict) -> Optional[str]:
    return f"Assigned to doctor ID: {p['doctor_id']}" if p.get("doctor_id") else None


def _lab_note(p: dict) -> str:
    if p.get("tests"):
        return f"Laboratory tests requested: {p['tests']}"
    return "Laboratory tests requested"


def _drug_payment_note(p: dict) -> str:
    if p.get("prescription_id"):
        return f"Drug payment - Prescription ID: {p['prescription_id']}"
    return "Drug payment"


def _dispense_note(p: dict) -> str:
    if p.get("prescription_id"):
        return f"Prescription ID: {p['prescription_id']}"
    return "Drug collection"


CHAIN_STEPS: Dict[str, ChainStep] = {
    "triage-to-cashier": ChainStep("triage", "cashier", _triage_note),
    "cashier-to-consultation": ChainStep("cashier", "consultation", _consultation_note),
    "consultation-to-lab": ChainStep("consultation", "laboratory", _lab_note),
    "prescription-to-cashier": ChainStep("consultation", "cashier", _drug_payment_note),
    "cashier-to-pharmacy": ChainStep("cashier", "pharmacy", _dispense_note),
}


def run_chain_step(
    db: Session,
    step_name: str,
    payload: dict,
    created_by: Optional[int] = None,
) -> Tuple[QueueEntry, bool]:
    """
    Run one named hand-off of the patient journey. ``payload`` carries
    ``patient_id`` and optionally ``queue_id`` (the entry being closed),
    ``priority`` and step specific fields.
    """
    step = CHAIN_STEPS.get(step_name)
    if step is None:
        raise ValidationFailed(f"Unknown workflow step: {step_name}",
                               details={"allowed": sorted(CHAIN_STEPS)})
    if not payload.get("patient_id"):
        raise ValidationFailed("patient_id is required")

    return chain_transition(
        db,
        from_point=step.from_point,
        to_point=step.to_point,
        patient_id=payload["patient_id"],
        closing_queue_id=payload.get("queue_id"),
        priority=payload.get("priority") or "normal",
        notes=step.note(payload),
        doctor_id=payload.get("doctor_id"),
        created_by=created_by,
    )
