# FILE: hmis/models/pharmacy.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text

from hmis.db.base import Base
from hmis.utils.timezone import now_local


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # pending / dispensed / cancelled
    status = Column(String(20), nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=now_local, nullable=False)
