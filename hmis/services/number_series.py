# FILE: hmis/services/number_series.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hmis.core.config import settings
from hmis.core.errors import NumberSeriesConflict
from hmis.models.number_series import NumberSeries
from hmis.utils.timezone import date_key

logger = logging.getLogger(__name__)


def next_sequence(db: Session, key: str, scope_key: int = 0) -> int:
    """
    Concurrency-safe counter backed by NumberSeries with UNIQUE(key, scope_key).

    The increment is a single UPDATE, so the row stays locked until the
    caller's transaction ends and two callers can never read the same value.
    The first caller for a new scope inserts the row; if another request
    wins that insert, NumberSeriesConflict is raised so the client retries.
    """
    res = db.execute(
        update(NumberSeries)
        .where(NumberSeries.key == key, NumberSeries.scope_key == scope_key)
        .values(next_seq=NumberSeries.next_seq + 1)
        .execution_options(synchronize_session=False))

    if res.rowcount == 0:
        db.add(NumberSeries(key=key, scope_key=scope_key, next_seq=2))
        try:
            db.flush()
        except IntegrityError as e:
            logger.warning("Number series %s/%s created concurrently", key, scope_key)
            raise NumberSeriesConflict(details={"key": key, "scope_key": scope_key}) from e
        return 1

    issued = db.execute(
        select(NumberSeries.next_seq).where(
            NumberSeries.key == key,
            NumberSeries.scope_key == scope_key)).scalar_one()
    return int(issued) - 1


def next_document_number(db: Session, key: str, prefix: str,
                         pad: Optional[int] = None) -> str:
    """Global series, e.g. IP-000001 / TXN-000042."""
    seq = next_sequence(db, key, 0)
    width = pad or settings.DOCUMENT_NUMBER_PAD
    return f"{prefix}-{seq:0{width}d}"


def next_daily_number(db: Session, key: str, prefix: str, on_day: date,
                      pad: Optional[int] = None) -> str:
    """Series restarting every calendar day, e.g. C-001."""
    seq = next_sequence(db, key, date_key(on_day))
    width = pad or settings.QUEUE_TICKET_PAD
    return f"{prefix}-{seq:0{width}d}"
