# FILE: hmis/services/bed_ledger.py
from __future__ import annotations

import logging
from typing import Optional, Type, Union

from sqlalchemy import update
from sqlalchemy.orm import Session

from hmis.core.errors import BedNotFound, BedUnavailable, ValidationFailed
from hmis.models.icu import IcuBed
from hmis.models.ipd import MANUAL_BED_STATUSES, Bed
from hmis.utils.timezone import now_local

logger = logging.getLogger(__name__)

AnyBed = Union[Bed, IcuBed]
BedModel = Type[AnyBed]


def _reload(db: Session, model: BedModel, bed_id: int) -> Optional[AnyBed]:
    # UPDATEs below bypass the identity map
    return db.get(model, bed_id, populate_existing=True)


def occupy_bed(db: Session, model: BedModel, bed_id: int) -> AnyBed:
    """
    available -> occupied as one compare-and-set UPDATE. Zero affected
    rows means someone else holds the bed (or it does not exist).
    """
    res = db.execute(
        update(model)
        .where(model.id == bed_id, model.status == "available", model.is_active.is_(True))
        .values(status="occupied", updated_at=now_local())
        .execution_options(synchronize_session=False))

    bed = _reload(db, model, bed_id)
    if res.rowcount == 1:
        logger.info("%s %s occupied", model.__tablename__, bed_id)
        return bed

    if bed is None:
        raise BedNotFound(details={"bed_id": bed_id})
    logger.warning("%s %s not available (status=%s, active=%s)",
                   model.__tablename__, bed_id, bed.status, bed.is_active)
    raise BedUnavailable(
        f"Bed {bed.bed_number} is not available",
        details={"bed_id": bed_id, "status": bed.status, "is_active": bed.is_active})


def release_bed(db: Session, model: BedModel, bed_id: int) -> None:
    """occupied -> available. A bed that is already free is left alone."""
    res = db.execute(
        update(model)
        .where(model.id == bed_id, model.status == "occupied")
        .values(status="available", updated_at=now_local())
        .execution_options(synchronize_session=False))
    _reload(db, model, bed_id)
    if res.rowcount:
        logger.info("%s %s released", model.__tablename__, bed_id)
    else:
        logger.warning("%s %s was not occupied on release", model.__tablename__, bed_id)


def get_bed(db: Session, model: BedModel, bed_id: int) -> AnyBed:
    bed = db.get(model, bed_id)
    if not bed:
        raise BedNotFound(details={"bed_id": bed_id})
    return bed


def set_bed_status(db: Session, model: BedModel, bed_id: int, status: str) -> AnyBed:
    """
    Manual housekeeping status (available / maintenance / reserved).
    Occupancy is never set or cleared from here.
    """
    status = (status or "").strip().lower()
    if status not in MANUAL_BED_STATUSES:
        raise ValidationFailed(
            f"Bed status cannot be set to {status!r} directly",
            details={"allowed": list(MANUAL_BED_STATUSES)})

    res = db.execute(
        update(model)
        .where(model.id == bed_id, model.status != "occupied")
        .values(status=status, updated_at=now_local())
        .execution_options(synchronize_session=False))
    bed = _reload(db, model, bed_id)
    if bed is None:
        raise BedNotFound(details={"bed_id": bed_id})
    if res.rowcount == 0:
        raise BedUnavailable("Bed is occupied; discharge or transfer the patient first",
                             details={"bed_id": bed_id})
    return bed


def deactivate_bed(db: Session, model: BedModel, bed_id: int) -> AnyBed:
    res = db.execute(
        update(model)
        .where(model.id == bed_id, model.status != "occupied")
        .values(is_active=False, updated_at=now_local())
        .execution_options(synchronize_session=False))
    bed = _reload(db, model, bed_id)
    if bed is None:
        raise BedNotFound(details={"bed_id": bed_id})
    if res.rowcount == 0:
        raise BedUnavailable("Cannot deactivate an occupied bed",
                             details={"bed_id": bed_id})
    logger.info("%s %s deactivated", model.__tablename__, bed_id)
    return bed
