# FILE: hmis/models/patient.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
)

from hmis.db.base import Base
from hmis.utils.timezone import now_local


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    patient_number = Column(String(32), unique=True, index=True, nullable=False)

    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=True)
    gender = Column(String(16), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    phone = Column(String(20), index=True, nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=now_local, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)
