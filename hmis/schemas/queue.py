# FILE: hmis/schemas/queue.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QueueEntryCreate(BaseModel):
    patient_id: int = Field(..., gt=0)
    service_point: str = Field(..., min_length=1, max_length=20)
    priority: Optional[str] = "normal"
    doctor_id: Optional[int] = None
    notes: Optional[str] = None
    estimated_wait_time: Optional[int] = Field(None, ge=0)


class QueueEntryPatch(BaseModel):
    """Only the fields a client actually sends are written."""

    priority: Optional[str] = None
    doctor_id: Optional[int] = None
    notes: Optional[str] = None
    estimated_wait_time: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(extra="forbid")


class QueueStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)


class QueueEntryOut(BaseModel):
    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    ticket_number: str
    ticket_date: date
    service_point: str
    priority: str
    status: str
    arrival_time: datetime
    called_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    estimated_wait_time: Optional[int] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None

    patient_first_name: Optional[str] = None
    patient_last_name: Optional[str] = None
    patient_number: Optional[str] = None
    patient_phone: Optional[str] = None
    doctor_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class QueueHistoryOut(BaseModel):
    id: int
    queue_id: int
    patient_id: int
    doctor_id: Optional[int] = None
    ticket_number: str
    ticket_date: date
    service_point: str
    priority: str
    status: str
    arrival_time: datetime
    called_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    wait_time_minutes: Optional[int] = None
    service_time_minutes: Optional[int] = None
    total_time_minutes: Optional[int] = None
    notes: Optional[str] = None
    archived_at: datetime
    archived_by: Optional[int] = None

    patient_first_name: Optional[str] = None
    patient_last_name: Optional[str] = None
    patient_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------
# workflow chain payloads
# ---------------------------------------------------------------------
class _ChainIn(BaseModel):
    patient_id: int = Field(..., gt=0)
    queue_id: Optional[int] = None
    priority: Optional[str] = "normal"


class TriageToCashierIn(_ChainIn):
    service_type: Optional[str] = "consultation"


class CashierToConsultationIn(_ChainIn):
    doctor_id: Optional[int] = None


class ConsultationToLabIn(_ChainIn):
    tests: Optional[str] = None


class PrescriptionToCashierIn(_ChainIn):
    prescription_id: Optional[int] = None


class CashierToPharmacyIn(_ChainIn):
    prescription_id: Optional[int] = None
