# FILE: hmis/schemas/ipd.py
from __future__ import annotations
from datetime import datetime, date
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

# =====================================================================
# ------------------------------- Masters ------------------------------
# =====================================================================


class WardIn(BaseModel):
    ward_code: Optional[str] = Field(None, max_length=30)
    ward_name: str = Field(..., min_length=1, max_length=100)
    ward_type: Optional[str] = "general"
    capacity: int = Field(0, ge=0)
    location: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None


class WardPatch(BaseModel):
    ward_code: Optional[str] = Field(None, max_length=30)
    ward_name: Optional[str] = Field(None, min_length=1, max_length=100)
    ward_type: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class WardOut(WardIn):
    id: int
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class BedIn(BaseModel):
    ward_id: int = Field(..., gt=0)
    bed_number: str = Field(..., min_length=1, max_length=30)
    bed_type: Optional[str] = "standard"


class BedOut(BedIn):
    id: int
    status: str
    is_active: bool = True
    ward_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BedStatusIn(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)


# =====================================================================
# ----------------------------- Admissions -----------------------------
# =====================================================================


class AdmissionDiagnosisIn(BaseModel):
    diagnosis_code: Optional[str] = Field(None, max_length=20)
    diagnosis_description: str = Field(..., min_length=1)
    diagnosis_type: Optional[str] = "primary"


class AdmissionDiagnosisOut(AdmissionDiagnosisIn):
    id: int

    model_config = ConfigDict(from_attributes=True)


class AdmissionCreate(BaseModel):
    patient_id: int = Field(..., gt=0)
    bed_id: int = Field(..., gt=0)
    admitting_doctor_id: Optional[int] = None
    admission_date: Optional[datetime] = None
    admission_diagnosis: Optional[str] = None
    admission_reason: Optional[str] = None
    expected_discharge_date: Optional[date] = None
    notes: Optional[str] = None
    diagnoses: List[AdmissionDiagnosisIn] = []


class AdmissionPatch(BaseModel):
    """``diagnoses``, when sent, replaces the whole list."""

    admitting_doctor_id: Optional[int] = None
    admission_diagnosis: Optional[str] = None
    admission_reason: Optional[str] = None
    expected_discharge_date: Optional[date] = None
    notes: Optional[str] = None
    diagnoses: Optional[List[AdmissionDiagnosisIn]] = None

    model_config = ConfigDict(extra="forbid")


class BedTransferIn(BaseModel):
    new_bed_id: int = Field(..., gt=0)
    reason: Optional[str] = ""


class DischargeIn(BaseModel):
    discharge_date: Optional[datetime] = None
    notes: Optional[str] = None


class AdmissionOut(BaseModel):
    id: int
    admission_number: str
    admission_type: str
    patient_id: int
    patient_name: Optional[str] = None
    bed_id: Optional[int] = None
    bed_number: Optional[str] = None
    ward_name: Optional[str] = None
    admitting_doctor_id: Optional[int] = None
    doctor_name: Optional[str] = None
    admission_date: datetime
    admission_diagnosis: Optional[str] = None
    admission_reason: Optional[str] = None
    expected_discharge_date: Optional[date] = None
    discharge_date: Optional[datetime] = None
    notes: Optional[str] = None
    status: str
    diagnoses: List[AdmissionDiagnosisOut] = []

    model_config = ConfigDict(from_attributes=True)
