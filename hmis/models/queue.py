# hmis/models/queue.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from hmis.db.base import Base
from hmis.utils.timezone import now_local

SERVICE_POINTS = (
    "triage",
    "cashier",
    "consultation",
    "laboratory",
    "pharmacy",
    "radiology",
    "general",
)
PRIORITIES = ("normal", "urgent", "emergency")

STATUS_FLOW = ("waiting", "called", "serving", "completed")
ACTIVE_STATUSES = ("waiting", "called", "serving")
TERMINAL_STATUSES = ("completed", "cancelled")
QUEUE_STATUSES = ACTIVE_STATUSES + TERMINAL_STATUSES


class _PatientDisplayMixin:
    @property
    def patient_first_name(self):
        return self.patient.first_name if self.patient else None

    @property
    def patient_last_name(self):
        return self.patient.last_name if self.patient else None

    @property
    def patient_number(self):
        return self.patient.patient_number if self.patient else None

    @property
    def patient_phone(self):
        return self.patient.phone if self.patient else None

    @property
    def doctor_name(self):
        return self.doctor.name if self.doctor else None


class QueueEntry(_PatientDisplayMixin, Base):
    __tablename__ = "queue_entries"
    __table_args__ = (
        UniqueConstraint(
            "service_point",
            "ticket_date",
            "ticket_number",
            name="uq_queue_ticket_per_point_day",
        ),
        Index("ix_queue_point_status", "service_point", "status"),
        Index("ix_queue_patient_point_status", "patient_id", "service_point",
              "status"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    ticket_number = Column(String(20), nullable=False)
    ticket_date = Column(Date, nullable=False)
    service_point = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False, default="normal")
    status = Column(String(20), nullable=False, default="waiting")

    arrival_time = Column(DateTime, nullable=False, default=now_local)
    called_time = Column(DateTime, nullable=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)

    estimated_wait_time = Column(Integer, nullable=True)  # minutes
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    patient = relationship("Patient", lazy="joined")
    doctor = relationship("User", foreign_keys=[doctor_id], lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class QueueHistoryEntry(_PatientDisplayMixin, Base):
    """Archived queue entry. Rows are only ever inserted."""

    __tablename__ = "queue_history"
    __table_args__ = (
        Index("ix_queue_history_patient", "patient_id", "archived_at"),
        Index("ix_queue_history_point_arrival", "service_point",
              "arrival_time"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
        },
    )

    id = Column(Integer, primary_key=True)
    queue_id = Column(Integer, nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    ticket_number = Column(String(20), nullable=False)
    ticket_date = Column(Date, nullable=False)
    service_point = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)

    arrival_time = Column(DateTime, nullable=False)
    called_time = Column(DateTime, nullable=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)

    wait_time_minutes = Column(Integer, nullable=True)
    service_time_minutes = Column(Integer, nullable=True)
    total_time_minutes = Column(Integer, nullable=True)

    estimated_wait_time = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)

    archived_at = Column(DateTime, nullable=False, default=now_local)
    archived_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    patient = relationship("Patient", lazy="joined")
    doctor = relationship("User", foreign_keys=[doctor_id], lazy="joined")
