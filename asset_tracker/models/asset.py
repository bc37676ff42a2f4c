"""
Asset model — ``assets`` table.

Holds the *current* state of each physical asset.  How that state is
allowed to change lives in ``services/lifecycle_service.py``; the
record of past changes lives in ``models/history.py``.
"""

from asset_tracker.extensions import db
from asset_tracker.models.base import isoformat, utcnow

# -- Status values ---------------------------------------------------------
STATUS_UNALLOCATED = "unallocated"
STATUS_AVAILABLE = "available"
STATUS_ALLOCATED = "allocated"
STATUS_UNDER_REPAIR = "under-repair"
STATUS_RETIRED = "retired"

ASSET_STATUSES = (
    STATUS_UNALLOCATED,
    STATUS_AVAILABLE,
    STATUS_ALLOCATED,
    STATUS_UNDER_REPAIR,
    STATUS_RETIRED,
)

# -- Category values -------------------------------------------------------
ASSET_CATEGORIES = (
    "laptop",
    "keyboard",
    "monitor",
    "mouse",
    "tablet",
    "phone",
    "other",
)


def in_list_check(column: str, values: tuple[str, ...]) -> str:
    """Build a CHECK expression restricting ``column`` to ``values``."""
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Asset(db.Model):
    """
    A specific physical piece of equipment.

    ``allocated_to_user_id`` is the owner.  Nothing ties it to
    ``status``: an ``allocated`` asset with no owner is a legal row.
    """

    __tablename__ = "assets"
    __table_args__ = (
        db.CheckConstraint(
            in_list_check("status", ASSET_STATUSES), name="CK_assets_status"
        ),
        db.CheckConstraint(
            in_list_check("category", ASSET_CATEGORIES), name="CK_assets_category"
        ),
        db.CheckConstraint(
            "purchase_price IS NULL OR purchase_price >= 0",
            name="CK_assets_purchase_price",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(20), nullable=False)
    serial_number = db.Column(db.String(100), unique=True, nullable=False)
    model = db.Column(db.String(100), nullable=True)
    brand = db.Column(db.String(100), nullable=True)
    purchase_date = db.Column(db.Date, nullable=True)
    purchase_price = db.Column(db.Numeric(10, 2), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_UNALLOCATED)
    allocated_to_user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=True,
        index=True,
    )
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        """
        Serialize for JSON responses.

        ``purchase_price`` is converted to float here and only here; it
        stays a two-place ``Decimal`` everywhere else.
        """
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "serial_number": self.serial_number,
            "model": self.model,
            "brand": self.brand,
            "purchase_date": isoformat(self.purchase_date),
            "purchase_price": (
                float(self.purchase_price)
                if self.purchase_price is not None
                else None
            ),
            "status": self.status,
            "allocated_to_user_id": self.allocated_to_user_id,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Asset {self.serial_number} status={self.status}>"
