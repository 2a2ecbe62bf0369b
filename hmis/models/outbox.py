# hmis/models/outbox.py
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index

from hmis.db.base import Base
from hmis.utils.timezone import now_local


class OutboxEvent(Base):
    """
    Domain event written in the same transaction as the change that
    caused it, and handled later by ``dispatch_pending_events``.
    """

    __tablename__ = "outbox_events"
    __table_args__ = (Index("ix_outbox_status_created", "status", "created_at"), )

    id = Column(Integer, primary_key=True)
    event_type = Column(String(60), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)

    # pending / processed / failed
    status = Column(String(20), nullable=False, default="pending")
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=now_local)
    processed_at = Column(DateTime, nullable=True)
