"""
Dashboard service — asset counts by status and by category.

Pure read-side aggregation over the ``assets`` table.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select

from asset_tracker.extensions import db
from asset_tracker.models.asset import (
    ASSET_CATEGORIES,
    STATUS_ALLOCATED,
    STATUS_AVAILABLE,
    STATUS_RETIRED,
    STATUS_UNALLOCATED,
    STATUS_UNDER_REPAIR,
    Asset,
)

logger = logging.getLogger(__name__)


@dataclass
class CategoryCount:
    """Number of assets in one category."""

    category: str
    count: int


@dataclass
class DashboardStats:
    """Headline counts for the dashboard."""

    total_assets: int = 0
    unallocated_assets: int = 0
    available_assets: int = 0
    allocated_assets: int = 0
    under_repair_assets: int = 0
    retired_assets: int = 0
    assets_by_category: list[CategoryCount] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_assets": self.total_assets,
            "unallocated_assets": self.unallocated_assets,
            "available_assets": self.available_assets,
            "allocated_assets": self.allocated_assets,
            "under_repair_assets": self.under_repair_assets,
            "retired_assets": self.retired_assets,
            "assets_by_category": [
                {"category": row.category, "count": row.count}
                for row in self.assets_by_category
            ],
        }


def get_dashboard_stats() -> DashboardStats:
    """
    Count assets by status and by category.

    Categories with no assets are omitted from ``assets_by_category``;
    the list follows the canonical category order.
    """
    status_rows = db.session.execute(
        select(Asset.status, func.count(Asset.id)).group_by(Asset.status)
    ).all()
    by_status = {status: count for status, count in status_rows}

    category_rows = db.session.execute(
        select(Asset.category, func.count(Asset.id)).group_by(Asset.category)
    ).all()
    by_category = {category: count for category, count in category_rows}

    stats = DashboardStats(
        total_assets=sum(by_status.values()),
        unallocated_assets=by_status.get(STATUS_UNALLOCATED, 0),
        available_assets=by_status.get(STATUS_AVAILABLE, 0),
        allocated_assets=by_status.get(STATUS_ALLOCATED, 0),
        under_repair_assets=by_status.get(STATUS_UNDER_REPAIR, 0),
        retired_assets=by_status.get(STATUS_RETIRED, 0),
        assets_by_category=[
            CategoryCount(category=category, count=by_category[category])
            for category in ASSET_CATEGORIES
            if category in by_category
        ],
    )
    logger.debug("Dashboard stats: %d assets", stats.total_assets)
    return stats
