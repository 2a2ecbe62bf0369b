from __future__ import annotations
from sqlalchemy import (Column, Integer, String, DateTime, Date, Text,
                        ForeignKey, Boolean, UniqueConstraint, Index)
from sqlalchemy.orm import relationship
from hmis.db.base import Base
from hmis.utils.timezone import now_local

BED_STATUSES = ("available", "occupied", "maintenance", "reserved")
# statuses an operator may set by hand; occupancy only moves with admissions
MANUAL_BED_STATUSES = ("available", "maintenance", "reserved")

ADMISSION_ACTIVE = "admitted"
ADMISSION_STATUSES = ("admitted", "discharged", "cancelled")
DIAGNOSIS_TYPES = ("primary", "secondary", "provisional", "final")

# ---------------------------------------------------------------------
# Wards / beds
# ---------------------------------------------------------------------


class Ward(Base):
    __tablename__ = "wards"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
    }

    id = Column(Integer, primary_key=True)
    ward_code = Column(String(30), unique=True, nullable=True)
    ward_name = Column(String(100), unique=True, nullable=False)
    ward_type = Column(String(30), default="general")
    capacity = Column(Integer, default=0)
    location = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    beds = relationship("Bed", back_populates="ward")


class Bed(Base):
    __tablename__ = "beds"
    __table_args__ = (
        UniqueConstraint("ward_id", "bed_number", name="uq_bed_number_per_ward"),
        Index("ix_beds_ward_status", "ward_id", "status"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    ward_id = Column(Integer,
                     ForeignKey("wards.id"),
                     nullable=False,
                     index=True)
    bed_number = Column(String(30), nullable=False)
    bed_type = Column(String(30), default="standard")
    status = Column(String(20), nullable=False, default="available")
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    ward = relationship("Ward", back_populates="beds")

    @property
    def ward_name(self) -> str | None:
        return self.ward.ward_name if self.ward else None


# ---------------------------------------------------------------------
# Admissions
# ---------------------------------------------------------------------


class Admission(Base):
    __tablename__ = "admissions"
    __table_args__ = (
        Index("ix_admissions_patient_status", "patient_id", "status"),
        Index("ix_admissions_bed_status", "bed_id", "status"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    admission_number = Column(String(30), unique=True, nullable=False)
    admission_type = Column(String(20), nullable=False, default="inpatient")  # inpatient / icu

    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    # null for ICU parents; the ICU bed lives on IcuAdmission
    bed_id = Column(Integer, ForeignKey("beds.id"), nullable=True)
    admitting_doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    admission_date = Column(DateTime, nullable=False, default=now_local)
    admission_diagnosis = Column(Text, nullable=True)
    admission_reason = Column(Text, nullable=True)
    expected_discharge_date = Column(Date, nullable=True)
    discharge_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=ADMISSION_ACTIVE)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    patient = relationship("Patient")
    bed = relationship("Bed")
    admitting_doctor = relationship("User", foreign_keys=[admitting_doctor_id])
    diagnoses = relationship("AdmissionDiagnosis",
                             cascade="all, delete-orphan",
                             order_by="AdmissionDiagnosis.id")

    @property
    def patient_name(self) -> str | None:
        return self.patient.full_name if self.patient else None

    @property
    def bed_number(self) -> str | None:
        return self.bed.bed_number if self.bed else None

    @property
    def ward_name(self) -> str | None:
        return self.bed.ward_name if self.bed else None

    @property
    def doctor_name(self) -> str | None:
        return self.admitting_doctor.name if self.admitting_doctor else None


class BedTransfer(Base):
    __tablename__ = "bed_transfers"

    id = Column(Integer, primary_key=True)
    admission_id = Column(Integer, ForeignKey("admissions.id"), index=True, nullable=False)
    bed_kind = Column(String(10), nullable=False, default="general")  # general / icu
    from_bed_id = Column(Integer, nullable=True)
    to_bed_id = Column(Integer, nullable=False)
    reason = Column(String(255), default="")
    transferred_at = Column(DateTime, nullable=False, default=now_local)
    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True)


class AdmissionDiagnosis(Base):
    __tablename__ = "admission_diagnoses"

    id = Column(Integer, primary_key=True)
    admission_id = Column(Integer, ForeignKey("admissions.id"), index=True, nullable=False)
    diagnosis_code = Column(String(20), nullable=True)  # ICD-10
    diagnosis_description = Column(Text, nullable=False)
    diagnosis_type = Column(String(20), nullable=False, default="primary")
    created_at = Column(DateTime, default=now_local)
