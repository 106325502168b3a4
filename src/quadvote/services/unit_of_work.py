"""Transactional boundary shared by ledger and voting operations."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quadvote.services.errors import StorageFailureError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing at all.

    Storage errors are rolled back and surfaced as ``StorageFailureError``;
    any other exception (business rejections included) is rolled back and
    re-raised unchanged.

    Usage:
        with unit_of_work(db):
            db.add(row)
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        logger.error("Unit of work rolled back after storage error: %s", err)
        raise StorageFailureError("The operation could not be stored; nothing was applied") from err
    except BaseException:
        db.rollback()
        raise
