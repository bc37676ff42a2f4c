"""
Asset history model — ``asset_history`` table.

One row per status/ownership transition.  Rows are written once by
the lifecycle service and never updated; they are removed only when
their asset is deleted.

Ordering: ``id`` is the monotonic sequence for an asset's entries.
``created_at`` is recorded for display and sorts the same way except
when two transitions land in the same clock tick.
"""

from asset_tracker.extensions import db
from asset_tracker.models.asset import ASSET_STATUSES, in_list_check
from asset_tracker.models.base import isoformat, utcnow


class AssetHistory(db.Model):
    """
    Before/after snapshot of one transition.

    ``previous_status`` is nullable for schema compatibility; in
    practice every entry written by the lifecycle service has one,
    since assets always start with a status.
    """

    __tablename__ = "asset_history"
    __table_args__ = (
        db.CheckConstraint(
            in_list_check("new_status", ASSET_STATUSES),
            name="CK_asset_history_new_status",
        ),
        db.CheckConstraint(
            "previous_status IS NULL OR "
            + in_list_check("previous_status", ASSET_STATUSES),
            name="CK_asset_history_previous_status",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    asset_id = db.Column(
        db.Integer,
        db.ForeignKey("assets.id"),
        nullable=False,
        index=True,
    )
    previous_status = db.Column(db.String(20), nullable=True)
    new_status = db.Column(db.String(20), nullable=False)
    previous_user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=True
    )
    new_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    changed_by_user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False
    )
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "previous_user_id": self.previous_user_id,
            "new_user_id": self.new_user_id,
            "changed_by_user_id": self.changed_by_user_id,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self) -> str:
        return (
            f"<AssetHistory asset={self.asset_id} "
            f"{self.previous_status}->{self.new_status}>"
        )
