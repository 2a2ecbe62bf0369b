# hmis/models/number_series.py
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from hmis.db.base import Base
from hmis.utils.timezone import now_local


class NumberSeries(Base):
    __tablename__ = "number_series"
    __table_args__ = (
        UniqueConstraint("key", "scope_key", name="uq_number_series_key_scope"),
    )

    id = Column(Integer, primary_key=True)
    key = Column(String(40), nullable=False)        # QUEUE:cashier / IP / ICU / TXN / PAT
    scope_key = Column(Integer, nullable=False)     # YYYYMMDD for daily series, 0 otherwise
    next_seq = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, nullable=False, default=now_local, onupdate=now_local)
