"""Create the clinicbook tables on the configured database."""

import logging

from sqlalchemy.engine import Engine

from . import models  # noqa: F401  registers every table on Base.metadata
from .database import Base, engine

logger = logging.getLogger(__name__)


def init_db(bind: Engine = engine) -> None:
    """Create missing tables; existing tables are left untouched."""
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database tables ready ({len(Base.metadata.tables)} tables)")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
