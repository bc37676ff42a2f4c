"""
Transaction boundary for mutating service operations.

Every create, update, transition, and delete runs inside one
``unit_of_work()``.  The context manager yields the Flask-SQLAlchemy
session, commits when the block exits cleanly, and rolls back on any
exception, so a failure between two writes never leaves half of an
operation in the database.

Database exceptions are translated at this boundary:

  - ``IntegrityError`` on a unique column -> ``ConflictError(field)``
  - any other ``SQLAlchemyError``         -> ``StorageFailure``

Service-layer errors (``NotFoundError``, ``ValidationError``, ...)
propagate unchanged.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from asset_tracker.errors import AssetTrackerError, ConflictError, StorageFailure
from asset_tracker.extensions import db

logger = logging.getLogger(__name__)

# Unique columns whose violations are reported as conflicts.
_UNIQUE_FIELDS = ("serial_number", "email")


def _conflicting_field(exc: IntegrityError) -> str | None:
    """
    Return the unique column named in a driver's integrity message.

    SQLite reports ``UNIQUE constraint failed: assets.serial_number``;
    PostgreSQL names the ``assets_serial_number_key`` constraint.  Both
    contain the column name.
    """
    message = str(exc.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        return None
    for field in _UNIQUE_FIELDS:
        if field in message:
            return field
    return None


@contextmanager
def unit_of_work() -> Iterator[Session]:
    """
    Run a block of writes as a single transaction.

    Yields:
        The session every store call in the block must use.

    Raises:
        ConflictError:  A unique constraint rejected the writes.
        StorageFailure: The database failed or aborted the transaction.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except AssetTrackerError as exc:
        session.rollback()
        logger.warning("Rolled back unit of work: %s", exc)
        raise
    except IntegrityError as exc:
        session.rollback()
        field = _conflicting_field(exc)
        if field is not None:
            logger.warning("Rolled back unit of work: duplicate %s", field)
            raise ConflictError(field) from exc
        logger.exception("Integrity failure; unit of work rolled back")
        raise StorageFailure("The database rejected the change.") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Storage failure; unit of work rolled back")
        raise StorageFailure("The database is unavailable.") from exc
    except Exception:
        session.rollback()
        raise
