# FILE: hmis/services/queue_service.py
from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case
from sqlalchemy.orm import Session

from hmis.core.errors import (
    CannotDeleteTerminalEntry,
    EntryNotTerminal,
    InvalidStatusTransition,
    NoPendingBills,
    NoPendingPrescriptions,
    PatientNotFound,
    PendingBillsBlockCompletion,
    QueueEntryNotFound,
    TerminalEntryImmutable,
    ValidationFailed,
)
from hmis.models.patient import Patient
from hmis.models.queue import (
    ACTIVE_STATUSES,
    PRIORITIES,
    QUEUE_STATUSES,
    SERVICE_POINTS,
    STATUS_FLOW,
    TERMINAL_STATUSES,
    QueueEntry,
    QueueHistoryEntry,
)
from hmis.schemas.queue import QueueEntryPatch
from hmis.services.billing_gate import has_pending_bills, has_pending_prescriptions
from hmis.services.number_series import next_daily_number
from hmis.utils.timezone import now_local

logger = logging.getLogger(__name__)

_RANK = {s: i for i, s in enumerate(STATUS_FLOW)}

# emergency first, then urgent, then normal
_PRIORITY_ORDER = case(
    (QueueEntry.priority == "emergency", 0),
    (QueueEntry.priority == "urgent", 1),
    else_=2,
)


# ---------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------
def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole minutes from start to end, halves rounded up. None if either is missing."""
    if start is None or end is None:
        return None
    return int(math.floor((end - start).total_seconds() / 60.0 + 0.5))


def ticket_prefix(service_point: str) -> str:
    return service_point[:1].upper()


def _check_service_point(service_point: str) -> str:
    sp = (service_point or "").strip().lower()
    if sp not in SERVICE_POINTS:
        raise ValidationFailed(f"Unknown service point: {service_point}",
                               details={"allowed": list(SERVICE_POINTS)})
    return sp


def _check_priority(priority: Optional[str]) -> str:
    p = (priority or "normal").strip().lower()
    if p not in PRIORITIES:
        raise ValidationFailed(f"Unknown priority: {priority}",
                               details={"allowed": list(PRIORITIES)})
    return p


def _ensure_patient(db: Session, patient_id: int) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise PatientNotFound(details={"patient_id": patient_id})
    return patient


def get_entry(db: Session, queue_id: int, *, lock: bool = False) -> QueueEntry:
    q = db.query(QueueEntry).filter(QueueEntry.id == queue_id)
    if lock:
        q = q.with_for_update(of=QueueEntry)
    entry = q.first()
    if not entry:
        raise QueueEntryNotFound(details={"queue_id": queue_id})
    return entry


def find_active_entry(db: Session, patient_id: int, service_point: str) -> Optional[QueueEntry]:
    return (db.query(QueueEntry).filter(
        QueueEntry.patient_id == patient_id,
        QueueEntry.service_point == service_point,
        QueueEntry.status.in_(ACTIVE_STATUSES),
    ).order_by(QueueEntry.arrival_time.asc()).first())


def _insert_entry(
    db: Session,
    *,
    patient_id: int,
    service_point: str,
    priority: str,
    doctor_id: Optional[int] = None,
    notes: Optional[str] = None,
    estimated_wait_time: Optional[int] = None,
    created_by: Optional[int] = None,
) -> QueueEntry:
    now = now_local()
    # number first: the series flush must not carry a half-built entry with it
    ticket = next_daily_number(db, f"QUEUE:{service_point}",
                               ticket_prefix(service_point), now.date())
    entry = QueueEntry(
        patient_id=patient_id,
        doctor_id=doctor_id,
        ticket_number=ticket,
        ticket_date=now.date(),
        service_point=service_point,
        priority=priority,
        status="waiting",
        arrival_time=now,
        estimated_wait_time=estimated_wait_time,
        notes=notes,
        created_by=created_by,
    )
    db.add(entry)
    db.flush()
    logger.info("Queue %s: ticket %s issued to patient %s (entry %s)",
                service_point, ticket, patient_id, entry.id)
    return entry


# ---------------------------------------------------------------------
# the transition primitive
# ---------------------------------------------------------------------
def transition(
    db: Session,
    entry: QueueEntry,
    new_status: str,
    *,
    check_billing: bool = True,
    now: Optional[datetime] = None,
) -> QueueEntry:
    """
    Move ``entry`` to ``new_status``. Every status change in the system
    goes through here.

    Forward moves along waiting -> called -> serving -> completed are
    allowed (skips included); cancelled is reachable from any active
    status; completed/cancelled never change again. Each timestamp is
    stamped only when its status is first entered.
    """
    new_status = (new_status or "").strip().lower()
    if new_status not in QUEUE_STATUSES:
        raise ValidationFailed(f"Unknown status: {new_status}",
                               details={"allowed": list(QUEUE_STATUSES)})

    if entry.status in TERMINAL_STATUSES:
        raise TerminalEntryImmutable(
            details={"queue_id": entry.id, "status": entry.status})

    if new_status != "cancelled" and _RANK[new_status] <= _RANK[entry.status]:
        raise InvalidStatusTransition(
            f"Cannot move queue entry from {entry.status} to {new_status}",
            details={"queue_id": entry.id, "from": entry.status, "to": new_status})

    if (new_status == "completed" and entry.service_point == "cashier"
            and check_billing and has_pending_bills(db, entry.patient_id)):
        logger.warning("Cashier entry %s not completed: patient %s has pending bills",
                       entry.id, entry.patient_id)
        raise PendingBillsBlockCompletion(
            "Cannot complete cashier queue: patient has pending bills",
            details={"queue_id": entry.id, "patient_id": entry.patient_id})

    now = now or now_local()
    if new_status == "called" and entry.called_time is None:
        entry.called_time = now
    elif new_status == "serving" and entry.start_time is None:
        entry.start_time = now
    elif new_status in TERMINAL_STATUSES and entry.end_time is None:
        entry.end_time = now

    old = entry.status
    entry.status = new_status
    db.flush()
    logger.info("Queue entry %s: %s -> %s", entry.id, old, new_status)
    return entry


# ---------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------
def create_entry(
    db: Session,
    *,
    patient_id: int,
    service_point: str,
    priority: Optional[str] = "normal",
    doctor_id: Optional[int] = None,
    notes: Optional[str] = None,
    estimated_wait_time: Optional[int] = None,
    created_by: Optional[int] = None,
) -> Tuple[QueueEntry, bool]:
    """
    Put a patient in line at a service point.

    Returns ``(entry, duplicate)``. When the patient already waits at this
    point the existing entry comes back with ``duplicate=True`` and nothing
    is written. Cashier needs an unpaid bill, pharmacy a pending
    prescription.
    """
    sp = _check_service_point(service_point)
    prio = _check_priority(priority)
    _ensure_patient(db, patient_id)

    existing = find_active_entry(db, patient_id, sp)
    if existing:
        logger.info("Patient %s already queued at %s (entry %s)", patient_id, sp, existing.id)
        return existing, True

    if sp == "cashier" and not has_pending_bills(db, patient_id):
        logger.warning("Cashier queue refused for patient %s: nothing to pay", patient_id)
        raise NoPendingBills(
            "Cannot add patient to cashier queue: patient has no pending bills",
            details={"patient_id": patient_id})

    if sp == "pharmacy" and not has_pending_prescriptions(db, patient_id):
        logger.warning("Pharmacy queue refused for patient %s: nothing to dispense", patient_id)
        raise NoPendingPrescriptions(
            "Cannot add patient to pharmacy queue: patient has no pending prescriptions",
            details={"patient_id": patient_id})

    entry = _insert_entry(
        db,
        patient_id=patient_id,
        service_point=sp,
        priority=prio,
        doctor_id=doctor_id,
        notes=notes,
        estimated_wait_time=estimated_wait_time,
        created_by=created_by,
    )
    return entry, False


def update_status(db: Session, queue_id: int, new_status: str) -> QueueEntry:
    entry = get_entry(db, queue_id, lock=True)
    return transition(db, entry, new_status)


def update_entry(db: Session, queue_id: int, patch: QueueEntryPatch) -> QueueEntry:
    entry = get_entry(db, queue_id, lock=True)
    data = patch.model_dump(exclude_unset=True)
    if not data:
        return entry
    if entry.status in TERMINAL_STATUSES:
        raise TerminalEntryImmutable(
            details={"queue_id": entry.id, "status": entry.status})

    if "priority" in data:
        data["priority"] = _check_priority(data["priority"])
    for field, value in data.items():
        setattr(entry, field, value)
    db.flush()
    logger.info("Queue entry %s updated: %s", entry.id, sorted(data))
    return entry


def delete_entry(db: Session, queue_id: int) -> None:
    entry = get_entry(db, queue_id, lock=True)
    if entry.status in TERMINAL_STATUSES:
        raise CannotDeleteTerminalEntry(
            details={"queue_id": entry.id, "status": entry.status})
    db.delete(entry)
    db.flush()
    logger.info("Queue entry %s deleted", queue_id)


def _history_row(entry: QueueEntry, archived_by: Optional[int]) -> QueueHistoryEntry:
    return QueueHistoryEntry(
        queue_id=entry.id,
        patient_id=entry.patient_id,
        doctor_id=entry.doctor_id,
        ticket_number=entry.ticket_number,
        ticket_date=entry.ticket_date,
        service_point=entry.service_point,
        priority=entry.priority,
        status=entry.status,
        arrival_time=entry.arrival_time,
        called_time=entry.called_time,
        start_time=entry.start_time,
        end_time=entry.end_time,
        wait_time_minutes=minutes_between(entry.arrival_time, entry.called_time),
        service_time_minutes=minutes_between(entry.start_time, entry.end_time),
        total_time_minutes=minutes_between(entry.arrival_time, entry.end_time),
        estimated_wait_time=entry.estimated_wait_time,
        notes=entry.notes,
        created_by=entry.created_by,
        archived_at=now_local(),
        archived_by=archived_by,
    )


def archive(db: Session, queue_id: int, archived_by: Optional[int] = None) -> QueueHistoryEntry:
    """Move a finished entry from the live table into history."""
    entry = get_entry(db, queue_id, lock=True)
    if entry.status not in TERMINAL_STATUSES:
        raise EntryNotTerminal(details={"queue_id": entry.id, "status": entry.status})

    if entry.service_point == "cashier" and has_pending_bills(db, entry.patient_id):
        logger.warning("Archive of cashier entry %s refused: pending bills", entry.id)
        raise PendingBillsBlockCompletion(
            "Cannot archive cashier entry: patient has pending bills",
            details={"queue_id": entry.id, "patient_id": entry.patient_id})

    hist = _history_row(entry, archived_by)
    db.add(hist)
    db.delete(entry)
    db.flush()
    logger.info("Queue entry %s archived as history %s", queue_id, hist.id)
    return hist


def batch_archive_completed(db: Session, archived_by: Optional[int] = None) -> int:
    """Archive every completed/cancelled entry. Skips the billing re-check."""
    rows = (db.query(QueueEntry).filter(
        QueueEntry.status.in_(TERMINAL_STATUSES)).with_for_update(of=QueueEntry).all())
    for entry in rows:
        db.add(_history_row(entry, archived_by))
        db.delete(entry)
    db.flush()
    logger.info("Batch archived %d queue entries", len(rows))
    return len(rows)


def chain_transition(
    db: Session,
    *,
    from_point: str,
    to_point: str,
    patient_id: int,
    closing_queue_id: Optional[int] = None,
    priority: Optional[str] = "normal",
    notes: Optional[str] = None,
    doctor_id: Optional[int] = None,
    created_by: Optional[int] = None,
) -> Tuple[QueueEntry, bool]:
    """
    Close the patient's entry at ``from_point`` and line them up at
    ``to_point``. Must run inside one ``atomic()`` block.

    The closing entry is completed without the billing re-check, and the
    new entry skips the bills/prescriptions gates. An already active entry
    at ``to_point`` is returned with ``duplicate=True``.
    """
    src = _check_service_point(from_point)
    dst = _check_service_point(to_point)
    prio = _check_priority(priority)
    _ensure_patient(db, patient_id)

    if closing_queue_id:
        closing = get_entry(db, closing_queue_id, lock=True)
        if closing.patient_id != patient_id:
            raise ValidationFailed(
                "Queue entry belongs to another patient",
                details={"queue_id": closing_queue_id, "patient_id": patient_id})
        if closing.service_point != src:
            raise ValidationFailed(
                f"Queue entry is at {closing.service_point}, not {src}",
                details={"queue_id": closing_queue_id})
        if closing.status != "completed":
            transition(db, closing, "completed", check_billing=False)

    existing = find_active_entry(db, patient_id, dst)
    if existing:
        logger.info("Chain %s -> %s: patient %s already queued (entry %s)",
                    src, dst, patient_id, existing.id)
        return existing, True

    entry = _insert_entry(
        db,
        patient_id=patient_id,
        service_point=dst,
        priority=prio,
        doctor_id=doctor_id,
        notes=notes,
        created_by=created_by,
    )
    return entry, False


_STALE_REASON = {
    "cashier": "no pending bills",
    "pharmacy": "no pending prescriptions",
}


def cleanup_stale_queue(db: Session, service_point: str) -> Dict[str, int]:
    """
    Cancel active entries whose reason to be in line has gone away
    (bill settled elsewhere, prescription dispensed or cancelled).
    """
    sp = _check_service_point(service_point)
    if sp not in _STALE_REASON:
        raise ValidationFailed("Cleanup is only available for cashier and pharmacy queues")
    gate = has_pending_bills if sp == "cashier" else has_pending_prescriptions

    rows = (db.query(QueueEntry).filter(
        QueueEntry.service_point == sp,
        QueueEntry.status.in_(ACTIVE_STATUSES),
    ).with_for_update(of=QueueEntry).all())

    verdict: Dict[int, bool] = {}
    removed = kept = 0
    for entry in rows:
        if entry.patient_id not in verdict:
            verdict[entry.patient_id] = gate(db, entry.patient_id)
        if verdict[entry.patient_id]:
            kept += 1
            continue
        transition(db, entry, "cancelled")
        marker = f"[auto-cancelled: {_STALE_REASON[sp]}]"
        entry.notes = f"{entry.notes} {marker}" if entry.notes else marker
        removed += 1
    db.flush()
    logger.info("Cleanup %s queue: removed=%d kept=%d", sp, removed, kept)
    return {"removed": removed, "kept": kept}


def check_and_complete_cashier_queue(db: Session, patient_id: int) -> Dict[str, Any]:
    """Complete the patient's cashier entries once nothing is left to pay."""
    _ensure_patient(db, patient_id)
    if has_pending_bills(db, patient_id):
        return {"has_pending_bills": True, "completed": 0}

    rows = (db.query(QueueEntry).filter(
        QueueEntry.patient_id == patient_id,
        QueueEntry.service_point == "cashier",
        QueueEntry.status.in_(ACTIVE_STATUSES),
    ).with_for_update(of=QueueEntry).all())
    for entry in rows:
        transition(db, entry, "completed")
    return {"has_pending_bills": False, "completed": len(rows)}


# ---------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------
def time_summary(entry: QueueEntry, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Durations so far; open intervals are measured up to ``now``."""
    now = now or now_local()

    if entry.called_time:
        wait = minutes_between(entry.arrival_time, entry.called_time)
    elif entry.status == "waiting":
        wait = minutes_between(entry.arrival_time, now)
    else:
        wait = None

    if entry.start_time and entry.end_time:
        service = minutes_between(entry.start_time, entry.end_time)
    elif entry.start_time and entry.status != "completed":
        service = minutes_between(entry.start_time, now)
    else:
        service = None

    total = minutes_between(entry.arrival_time, entry.end_time or now)

    return {
        "queue_id": entry.id,
        "ticket_number": entry.ticket_number,
        "service_point": entry.service_point,
        "status": entry.status,
        "arrival_time": entry.arrival_time,
        "called_time": entry.called_time,
        "start_time": entry.start_time,
        "end_time": entry.end_time,
        "wait_time_minutes": wait,
        "service_time_minutes": service,
        "total_time_minutes": total,
    }


def list_entries(
    db: Session,
    *,
    service_point: Optional[str] = None,
    status: Optional[str] = None,
    include_completed: bool = False,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[QueueEntry], int]:
    q = db.query(QueueEntry)
    if service_point:
        q = q.filter(QueueEntry.service_point == _check_service_point(service_point))
    if status:
        q = q.filter(QueueEntry.status == status)
    elif not include_completed:
        q = q.filter(QueueEntry.status.in_(ACTIVE_STATUSES))

    total = q.count()
    rows = (q.order_by(_PRIORITY_ORDER, QueueEntry.arrival_time.asc(), QueueEntry.id.asc())
            .offset((page - 1) * limit).limit(limit).all())
    return rows, total


def list_history(
    db: Session,
    *,
    service_point: Optional[str] = None,
    status: Optional[str] = None,
    patient_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[QueueHistoryEntry], int]:
    q = db.query(QueueHistoryEntry)
    if service_point:
        q = q.filter(QueueHistoryEntry.service_point == service_point)
    if status:
        q = q.filter(QueueHistoryEntry.status == status)
    if patient_id:
        q = q.filter(QueueHistoryEntry.patient_id == patient_id)
    if start_date:
        q = q.filter(QueueHistoryEntry.arrival_time >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        q = q.filter(QueueHistoryEntry.arrival_time <= datetime.combine(end_date, datetime.max.time()))

    total = q.count()
    rows = (q.order_by(QueueHistoryEntry.arrival_time.desc(), QueueHistoryEntry.id.desc())
            .offset((page - 1) * limit).limit(limit).all())
    return rows, total


def patient_queue_history(db: Session, patient_id: int) -> List[Dict[str, Any]]:
    _ensure_patient(db, patient_id)
    rows = (db.query(QueueEntry).filter(QueueEntry.patient_id == patient_id)
            .order_by(QueueEntry.arrival_time.desc(), QueueEntry.id.desc()).all())
    now = now_local()
    return [{"entry": e, "time_summary": time_summary(e, now)} for e in rows]
