# hmis/db/init_db.py
import logging

from sqlalchemy.engine import Engine

from hmis.db.base import Base
from hmis.db.session import engine as default_engine

logger = logging.getLogger(__name__)


def init_db(bind: Engine = None) -> None:
    bind = bind or default_engine
    Base.metadata.create_all(bind=bind)
    logger.info("Schema ensured (%d tables)", len(Base.metadata.tables))
