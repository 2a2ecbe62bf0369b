# FILE: hmis/services/outbox.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from sqlalchemy.orm import Session

from hmis.core.config import settings
from hmis.db.session import atomic
from hmis.models.outbox import OutboxEvent
from hmis.services.queue_service import create_entry
from hmis.utils.timezone import now_local

logger = logging.getLogger(__name__)

PATIENT_REGISTERED = "PatientRegistered"


def emit(db: Session, event_type: str, payload: Dict[str, Any]) -> OutboxEvent:
    """Record an event inside the caller's transaction."""
    ev = OutboxEvent(event_type=event_type, payload=payload, status="pending", attempts=0)
    db.add(ev)
    db.flush()
    return ev


def _on_patient_registered(db: Session, payload: Dict[str, Any]) -> None:
    create_entry(
        db,
        patient_id=payload["patient_id"],
        service_point=payload["service_point"],
        priority=payload.get("priority") or "normal",
        created_by=payload.get("created_by"),
    )


HANDLERS: Dict[str, Callable[[Session, Dict[str, Any]], None]] = {
    PATIENT_REGISTERED: _on_patient_registered,
}


def dispatch_pending_events(db: Session, limit: int = 100) -> Dict[str, int]:
    """
    Run handlers for pending (and previously failed) events, one
    transaction per event. A failing handler leaves its event ``failed``
    with the error recorded; it is retried on the next run until
    OUTBOX_MAX_ATTEMPTS is reached.
    """
    events: List[OutboxEvent] = (db.query(OutboxEvent).filter(
        OutboxEvent.status.in_(("pending", "failed")),
        OutboxEvent.attempts < settings.OUTBOX_MAX_ATTEMPTS,
    ).order_by(OutboxEvent.id.asc()).limit(limit).all())
    ids = [ev.id for ev in events]
    db.rollback()

    processed = failed = 0
    for event_id in ids:
        try:
            with atomic(db):
                ev = db.get(OutboxEvent, event_id, with_for_update=True)
                if ev is None or ev.status == "processed":
                    continue
                handler = HANDLERS.get(ev.event_type)
                if handler is None:
                    raise LookupError(f"No handler for event type {ev.event_type}")
                handler(db, dict(ev.payload or {}))
                ev.status = "processed"
                ev.attempts = (ev.attempts or 0) + 1
                ev.processed_at = now_local()
                ev.last_error = None
            processed += 1
        except Exception as e:
            logger.exception("Outbox event %s failed", event_id)
            with atomic(db):
                ev = db.get(OutboxEvent, event_id)
                ev.status = "failed"
                ev.attempts = (ev.attempts or 0) + 1
                ev.last_error = f"{type(e).__name__}: {e}"
            failed += 1

    return {"processed": processed, "failed": failed}
