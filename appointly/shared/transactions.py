"""Unit-of-work helper for the write paths"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..errors import TransientStoreError

logger = logging.getLogger(__name__)


@contextmanager
def write_transaction(db: Session, operation: str):
    """
    Commit on success, roll back on any error.

    Connection loss and lock timeouts surface as TransientStoreError so the
    caller can retry; the driver message is logged, never returned.
    """
    try:
        yield
        db.commit()
    except OperationalError as e:
        db.rollback()
        logger.error(f"❌ {operation} failed on a datastore error: {e.__class__.__name__}: {e.orig}")
        raise TransientStoreError() from e
    except Exception:
        db.rollback()
        raise
