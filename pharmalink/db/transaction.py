import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmalink.core.errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(db: Session, operation: str):
    """
    Roll back and re-raise persistence failures as StorageError.

    Either every statement inside the block is committed by the caller, or
    none of them is; no retries happen here.
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation} failed: {e}", exc_info=True)
        raise StorageError(f"{operation} failed, please try again") from e
