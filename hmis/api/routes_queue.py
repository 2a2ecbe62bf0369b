# FILE: hmis/api/routes_queue.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hmis.api.deps import current_user, get_db
from hmis.api.response import ok
from hmis.db.session import atomic
from hmis.models.user import User
from hmis.schemas.common import page_meta
from hmis.schemas.queue import (
    QueueEntryCreate,
    QueueEntryOut,
    QueueEntryPatch,
    QueueHistoryOut,
    QueueStatusUpdate,
)
from hmis.services import queue_service as qs

router = APIRouter(prefix="/queue", tags=["queue"])


def _out(entry) -> dict:
    return QueueEntryOut.model_validate(entry).model_dump()


@router.get("")
def list_queue(
    service_point: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    include_completed: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows, total = qs.list_entries(
        db,
        service_point=service_point,
        status=status,
        include_completed=include_completed,
        page=page,
        limit=limit,
    )
    return ok([_out(x) for x in rows], meta=page_meta(total, page, limit))


@router.get("/history")
def queue_history(
    service_point: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    patient_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows, total = qs.list_history(
        db,
        service_point=service_point,
        status=status,
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return ok([QueueHistoryOut.model_validate(x).model_dump() for x in rows],
              meta=page_meta(total, page, limit))


@router.post("/archive-completed")
def archive_completed(db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        count = qs.batch_archive_completed(db, archived_by=user.id)
    return ok({"archived": count})


@router.post("/cleanup/{service_point}")
def cleanup_queue(service_point: str, db: Session = Depends(get_db),
                  user: User = Depends(current_user)):
    with atomic(db):
        result = qs.cleanup_stale_queue(db, service_point)
    return ok(result)


@router.post("/cashier/{patient_id}/check-and-complete")
def cashier_check_and_complete(patient_id: int, db: Session = Depends(get_db),
                               user: User = Depends(current_user)):
    with atomic(db):
        result = qs.check_and_complete_cashier_queue(db, patient_id)
    return ok(result)


@router.get("/{queue_id}")
def get_queue_entry(queue_id: int, db: Session = Depends(get_db),
                    user: User = Depends(current_user)):
    return ok(_out(qs.get_entry(db, queue_id)))


@router.post("")
def create_queue_entry(payload: QueueEntryCreate, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    with atomic(db):
        entry, duplicate = qs.create_entry(
            db,
            patient_id=payload.patient_id,
            service_point=payload.service_point,
            priority=payload.priority,
            doctor_id=payload.doctor_id,
            notes=payload.notes,
            estimated_wait_time=payload.estimated_wait_time,
            created_by=user.id,
        )
        data = _out(entry)
    data["duplicate"] = duplicate
    return ok(data, status_code=200 if duplicate else 201)


@router.put("/{queue_id}")
def update_queue_entry(queue_id: int, payload: QueueEntryPatch,
                       db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _out(qs.update_entry(db, queue_id, payload))
    return ok(data)


@router.put("/{queue_id}/status")
def update_queue_status(queue_id: int, payload: QueueStatusUpdate,
                        db: Session = Depends(get_db), user: User = Depends(current_user)):
    with atomic(db):
        data = _out(qs.update_status(db, queue_id, payload.status))
    return ok(data)


@router.post("/{queue_id}/archive")
def archive_queue_entry(queue_id: int, db: Session = Depends(get_db),
                        user: User = Depends(current_user)):
    with atomic(db):
        hist = qs.archive(db, queue_id, archived_by=user.id)
        data = QueueHistoryOut.model_validate(hist).model_dump()
    return ok(data)


@router.delete("/{queue_id}")
def delete_queue_entry(queue_id: int, db: Session = Depends(get_db),
                       user: User = Depends(current_user)):
    with atomic(db):
        qs.delete_entry(db, queue_id)
    return ok({"id": queue_id, "deleted": True})
