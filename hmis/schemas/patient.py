# FILE: hmis/schemas/patient.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PatientCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    phone: Optional[str] = Field(None, max_length=20)

    # line the patient up here once registration is committed
    initial_service_point: Optional[str] = None
    priority: Optional[str] = "normal"


class PatientOut(BaseModel):
    id: int
    patient_number: str
    first_name: str
    last_name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    phone: Optional[str] = None
    is_active: bool = True
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OutboxEventOut(BaseModel):
    id: int
    event_type: str
    payload: dict
    status: str
    attempts: int
    last_error: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
