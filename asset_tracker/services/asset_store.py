"""
Asset store — data access for current asset rows.

Plain reads and writes against the ``assets`` table.  No business
rules live here; the lifecycle service decides *whether* a write
happens and calls these functions inside its unit of work.  None of
these functions commit.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete as sql_delete
from sqlalchemy.orm import Session

from asset_tracker.errors import NotFoundError
from asset_tracker.models.asset import Asset
from asset_tracker.models.base import utcnow

logger = logging.getLogger(__name__)

# Columns the update path may write.  ``id`` and ``created_at`` are
# fixed at insert; ``updated_at`` is maintained by ``update`` itself.
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "category",
        "serial_number",
        "model",
        "brand",
        "purchase_date",
        "purchase_price",
        "status",
        "allocated_to_user_id",
        "notes",
    }
)


def next_timestamp(previous: datetime | None) -> datetime:
    """
    Return a modification time strictly later than ``previous``.

    Two writes inside one clock tick would otherwise share an
    ``updated_at``; the second is pushed one microsecond forward.
    """
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def get(session: Session, asset_id: int) -> Asset | None:
    """Return an asset by primary key, or None if not found."""
    return session.get(Asset, asset_id)


def insert(session: Session, asset: Asset) -> Asset:
    """
    Add a new asset and flush so it receives an ID.

    A duplicate ``serial_number`` raises ``IntegrityError`` from the
    flush; ``unit_of_work`` reports it as a conflict.
    """
    session.add(asset)
    session.flush()
    return asset


def update(session: Session, asset_id: int, fields: dict) -> Asset:
    """
    Write ``fields`` onto an asset and bump ``updated_at``.

    Args:
        session:  The unit-of-work session.
        asset_id: Primary key of the asset to change.
        fields:   Column name -> new value.  Only keys present are
                  written; an empty dict still refreshes ``updated_at``.

    Returns:
        The updated Asset.

    Raises:
        NotFoundError: If the asset does not exist.
        KeyError:      If ``fields`` names a column outside
                       ``UPDATABLE_FIELDS``.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise KeyError(f"Not updatable: {', '.join(sorted(unknown))}")

    asset = get(session, asset_id)
    if asset is None:
        raise NotFoundError("asset", asset_id)

    for name, value in fields.items():
        setattr(asset, name, value)
    asset.updated_at = next_timestamp(asset.updated_at)

    session.flush()
    return asset


def delete(session: Session, asset_id: int) -> bool:
    """
    Delete an asset row.

    History rows must already be gone (see
    ``history_service.delete_by_asset``); the foreign key rejects the
    delete otherwise.

    Returns:
        True if a row was removed, False if none matched.
    """
    result = session.execute(sql_delete(Asset).where(Asset.id == asset_id))
    logger.debug("Deleted %d asset row(s) for id %d", result.rowcount, asset_id)
    return result.rowcount > 0
