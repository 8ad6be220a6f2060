"""
Create all tables directly from the models (development and tests).

Production databases are managed by Alembic; see pharmalink/db/migrate.py.
"""
import logging

from pharmalink.db.base import Base
from pharmalink.db.session import engine
# Registers every model with Base.metadata
import pharmalink.db.models  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")


if __name__ == "__main__":
    init_db()
