# FILE: hmis/schemas/icu.py
from __future__ import annotations
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class IcuBedIn(BaseModel):
    bed_number: str = Field(..., min_length=1, max_length=30)
    bed_type: Optional[str] = "standard"
    equipment_list: Optional[str] = None


class IcuBedOut(IcuBedIn):
    id: int
    status: str
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class IcuAdmissionCreate(BaseModel):
    patient_id: int = Field(..., gt=0)
    icu_bed_id: int = Field(..., gt=0)
    admitting_doctor_id: Optional[int] = None
    admission_date: Optional[datetime] = None
    admission_reason: Optional[str] = None
    initial_condition: Optional[str] = None
    status: Optional[str] = "critical"
    expected_discharge_date: Optional[date] = None
    notes: Optional[str] = None


class IcuAdmissionPatch(BaseModel):
    status: Optional[str] = None
    admission_reason: Optional[str] = None
    expected_discharge_date: Optional[date] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class IcuAdmissionOut(BaseModel):
    id: int
    admission_id: int
    admission_number: Optional[str] = None
    patient_id: Optional[int] = None
    patient_name: Optional[str] = None
    icu_bed_id: int
    bed_number: Optional[str] = None
    admission_reason: Optional[str] = None
    initial_condition: Optional[str] = None
    status: str
    expected_discharge_date: Optional[date] = None
    discharged_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------
# bedside monitoring
# ---------------------------------------------------------------------
class _Vitals(BaseModel):
    heart_rate: Optional[int] = Field(None, ge=0, le=400)
    systolic_bp: Optional[int] = Field(None, ge=0, le=400)
    diastolic_bp: Optional[int] = Field(None, ge=0, le=300)
    mean_arterial_pressure: Optional[int] = Field(None, ge=0, le=300)
    respiratory_rate: Optional[int] = Field(None, ge=0, le=150)
    oxygen_saturation: Optional[Decimal] = Field(None, ge=0, le=100)
    temperature: Optional[Decimal] = Field(None, ge=20, le=46)
    glasgow_coma_scale: Optional[int] = Field(None, ge=3, le=15)
    central_venous_pressure: Optional[Decimal] = None
    urine_output: Optional[Decimal] = Field(None, ge=0)
    ventilator_settings: Optional[str] = None
    medication_infusions: Optional[str] = None
    notes: Optional[str] = None


class IcuMonitoringIn(_Vitals):
    monitoring_datetime: Optional[datetime] = None


class IcuMonitoringPatch(_Vitals):
    monitoring_datetime: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


class IcuMonitoringOut(_Vitals):
    id: int
    icu_admission_id: int
    monitoring_datetime: datetime
    recorded_by: Optional[int] = None
    recorded_by_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------
# overview
# ---------------------------------------------------------------------
class PrescriptionBrief(BaseModel):
    id: int
    doctor_id: Optional[int] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceBrief(BaseModel):
    id: int
    invoice_number: Optional[str] = None
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
