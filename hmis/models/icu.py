from __future__ import annotations
from sqlalchemy import (Column, Integer, String, DateTime, Date, Text, Numeric,
                        ForeignKey, Boolean, Index)
from sqlalchemy.orm import relationship
from hmis.db.base import Base
from hmis.utils.timezone import now_local

ICU_ACTIVE_STATUSES = ("critical", "serious", "stable", "improving")
ICU_DISCHARGED = "discharged"


class IcuBed(Base):
    __tablename__ = "icu_beds"
    __table_args__ = (
        Index("ix_icu_beds_status", "status"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    bed_number = Column(String(30), unique=True, nullable=False)
    bed_type = Column(String(30), default="standard")
    equipment_list = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="available")
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)


class IcuAdmission(Base):
    __tablename__ = "icu_admissions"
    __table_args__ = (
        Index("ix_icu_admissions_bed_status", "icu_bed_id", "status"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    admission_id = Column(Integer,
                          ForeignKey("admissions.id"),
                          nullable=False,
                          unique=True)
    icu_bed_id = Column(Integer, ForeignKey("icu_beds.id"), nullable=False)

    admission_reason = Column(Text, nullable=True)
    initial_condition = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="critical")
    expected_discharge_date = Column(Date, nullable=True)
    discharged_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    admission = relationship("Admission")
    icu_bed = relationship("IcuBed")

    @property
    def is_active(self) -> bool:
        return self.status in ICU_ACTIVE_STATUSES

    @property
    def admission_number(self) -> str | None:
        return self.admission.admission_number if self.admission else None

    @property
    def patient_id(self) -> int | None:
        return self.admission.patient_id if self.admission else None

    @property
    def patient_name(self) -> str | None:
        return self.admission.patient_name if self.admission else None

    @property
    def bed_number(self) -> str | None:
        return self.icu_bed.bed_number if self.icu_bed else None


class IcuMonitoring(Base):
    """One bedside observation round for an ICU stay."""

    __tablename__ = "icu_monitoring"
    __table_args__ = (
        Index("ix_icu_monitoring_adm_time", "icu_admission_id", "monitoring_datetime"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    icu_admission_id = Column(Integer, ForeignKey("icu_admissions.id"), nullable=False)
    monitoring_datetime = Column(DateTime, nullable=False, default=now_local)

    heart_rate = Column(Integer, nullable=True)
    systolic_bp = Column(Integer, nullable=True)
    diastolic_bp = Column(Integer, nullable=True)
    mean_arterial_pressure = Column(Integer, nullable=True)
    respiratory_rate = Column(Integer, nullable=True)
    oxygen_saturation = Column(Numeric(5, 2), nullable=True)
    temperature = Column(Numeric(4, 1), nullable=True)
    glasgow_coma_scale = Column(Integer, nullable=True)
    central_venous_pressure = Column(Numeric(5, 2), nullable=True)
    urine_output = Column(Numeric(8, 2), nullable=True)  # ml
    ventilator_settings = Column(Text, nullable=True)
    medication_infusions = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    recorder = relationship("User")

    @property
    def recorded_by_name(self) -> str | None:
        return self.recorder.name if self.recorder else None
