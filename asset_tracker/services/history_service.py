"""
History ledger — the append-only record of asset transitions.

Entries are only ever added (``append``) or removed wholesale when
their asset is deleted (``delete_by_asset``).  There is no update
function.  The ``id`` sequence is the order of an asset's
entries; the last one always mirrors the asset's current status and
owner after a transition.
"""

import logging

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from asset_tracker.models.history import AssetHistory

logger = logging.getLogger(__name__)


def append(session: Session, entry: AssetHistory) -> AssetHistory:
    """
    Add a new history entry and flush so it receives an ID.

    Raises:
        ValueError: If ``entry`` has already been persisted.
    """
    if entry.id is not None:
        raise ValueError(f"History entry {entry.id} is already recorded.")
    session.add(entry)
    session.flush()
    logger.debug("Appended history entry %d for asset %d", entry.id, entry.asset_id)
    return entry


def delete_by_asset(session: Session, asset_id: int) -> int:
    """Remove every entry for an asset.  Returns the number removed."""
    result = session.execute(
        sql_delete(AssetHistory).where(AssetHistory.asset_id == asset_id)
    )
    logger.debug("Removed %d history entries for asset %d", result.rowcount, asset_id)
    return result.rowcount


def list_by_asset(session: Session, asset_id: int | None = None) -> list[AssetHistory]:
    """
    Return history entries oldest first.

    Args:
        session:  Any session (no writes are made).
        asset_id: Restrict to one asset; None returns every entry.
    """
    stmt = select(AssetHistory).order_by(AssetHistory.id)
    if asset_id is not None:
        stmt = stmt.where(AssetHistory.asset_id == asset_id)
    return list(session.scalars(stmt))


def latest_for_asset(session: Session, asset_id: int) -> AssetHistory | None:
    """Return the most recent entry for an asset, or None."""
    stmt = (
        select(AssetHistory)
        .where(AssetHistory.asset_id == asset_id)
        .order_by(AssetHistory.id.desc())
        .limit(1)
    )
    return session.scalars(stmt).first()


def count_for_asset(session: Session, asset_id: int) -> int:
    """Return how many entries an asset has."""
    stmt = select(func.count(AssetHistory.id)).where(
        AssetHistory.asset_id == asset_id
    )
    return session.scalar(stmt)
