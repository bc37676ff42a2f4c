"""
Query service — read-side composition of assets, history, and users.

The models declare foreign keys but no relationships.  Each join the
API needs is spelled out here as a function that reads the stores and
assembles a small dataclass:

  - ``AssetWithOwner``  = asset + its current owner (or None)
  - ``HistoryDetail``   = history entry + asset + previous owner +
                          new owner + acting user

No business rules live here; nothing in this module writes.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from asset_tracker.errors import NotFoundError
from asset_tracker.extensions import db
from asset_tracker.models.asset import Asset
from asset_tracker.models.history import AssetHistory
from asset_tracker.models.user import User
from asset_tracker.services import asset_store, history_service, user_service

logger = logging.getLogger(__name__)


# =========================================================================
# Result types
# =========================================================================


@dataclass
class AssetWithOwner:
    """An asset joined with the user it is allocated to."""

    asset: Asset
    owner: User | None

    def to_dict(self) -> dict:
        data = self.asset.to_dict()
        data["allocated_user"] = self.owner.to_dict() if self.owner else None
        return data


@dataclass
class HistoryDetail:
    """A history entry with every row it references resolved."""

    entry: AssetHistory
    asset: Asset
    previous_user: User | None
    new_user: User | None
    changed_by_user: User

    def to_dict(self) -> dict:
        data = self.entry.to_dict()
        data["asset"] = self.asset.to_dict()
        data["previous_user"] = (
            self.previous_user.to_dict() if self.previous_user else None
        )
        data["new_user"] = self.new_user.to_dict() if self.new_user else None
        data["changed_by_user"] = self.changed_by_user.to_dict()
        return data


# =========================================================================
# Asset + owner
# =========================================================================


def compose_asset(session: Session, asset: Asset) -> AssetWithOwner:
    """Attach the current owner to an already-loaded asset."""
    owner = None
    if asset.allocated_to_user_id is not None:
        owner = user_service.get_user(session, asset.allocated_to_user_id)
    return AssetWithOwner(asset=asset, owner=owner)


def _asset_owner_rows(stmt) -> list[AssetWithOwner]:
    rows = db.session.execute(stmt).all()
    return [AssetWithOwner(asset=asset, owner=owner) for asset, owner in rows]


def _asset_owner_select():
    return select(Asset, User).outerjoin(
        User, Asset.allocated_to_user_id == User.id
    )


def get_assets() -> list[AssetWithOwner]:
    """Return every asset with its owner, ordered by ID."""
    return _asset_owner_rows(_asset_owner_select().order_by(Asset.id))


def get_asset_by_id(asset_id: int) -> AssetWithOwner:
    """
    Return one asset with its owner.

    Raises:
        NotFoundError: If the asset does not exist.
    """
    asset = asset_store.get(db.session, asset_id)
    if asset is None:
        raise NotFoundError("asset", asset_id)
    return compose_asset(db.session, asset)


def get_user_assets(user_id: int) -> list[AssetWithOwner]:
    """
    Return the assets currently allocated to a user.

    Raises:
        NotFoundError: If the user does not exist.
    """
    if not user_service.user_exists(db.session, user_id):
        raise NotFoundError("user", user_id)
    stmt = (
        _asset_owner_select()
        .where(Asset.allocated_to_user_id == user_id)
        .order_by(Asset.id)
    )
    return _asset_owner_rows(stmt)


# =========================================================================
# History + users
# =========================================================================


def get_asset_history(asset_id: int | None = None) -> list[HistoryDetail]:
    """
    Return history entries, oldest first, with all references resolved.

    Args:
        asset_id: Restrict to one asset.  None returns the history of
                  every asset.  An unknown ID yields an empty list.
    """
    previous_user = aliased(User)
    new_user = aliased(User)
    changed_by = aliased(User)

    stmt = (
        select(AssetHistory, Asset, previous_user, new_user, changed_by)
        .join(Asset, AssetHistory.asset_id == Asset.id)
        .join(changed_by, AssetHistory.changed_by_user_id == changed_by.id)
        .outerjoin(previous_user, AssetHistory.previous_user_id == previous_user.id)
        .outerjoin(new_user, AssetHistory.new_user_id == new_user.id)
        .order_by(AssetHistory.id)
    )
    if asset_id is not None:
        stmt = stmt.where(AssetHistory.asset_id == asset_id)

    return [
        HistoryDetail(
            entry=entry,
            asset=asset,
            previous_user=prev,
            new_user=new,
            changed_by_user=actor,
        )
        for entry, asset, prev, new, actor in db.session.execute(stmt).all()
    ]


# =========================================================================
# Audit consistency
# =========================================================================


def check_consistency(asset_id: int) -> bool:
    """
    Return True if an asset's current state matches its latest entry.

    An asset with no history is consistent by definition: its state
    is still whatever it was created with.

    Raises:
        NotFoundError: If the asset does not exist.
    """
    asset = asset_store.get(db.session, asset_id)
    if asset is None:
        raise NotFoundError("asset", asset_id)

    latest = history_service.latest_for_asset(db.session, asset_id)
    if latest is None:
        return True
    return (
        latest.new_status == asset.status
        and latest.new_user_id == asset.allocated_to_user_id
    )


def find_inconsistent_assets() -> list[Asset]:
    """Return every asset whose state diverges from its latest entry."""
    assets = list(db.session.scalars(select(Asset).order_by(Asset.id)))
    return [asset for asset in assets if not check_consistency(asset.id)]
