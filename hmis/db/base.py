# hmis/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All HMIS tables (patients, queues, admissions, inventory, etc.) inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from hmis.models import (  # noqa: F401
    user,
    patient,
    billing,
    pharmacy,
    queue,
    ipd,
    icu,
    inventory,
    number_series,
    outbox,
)
