"""Create users, assets and asset_history tables

The three tables of the asset lifecycle:

    users          — the directory of people who hold assets.
    assets         — current state of each asset (status, owner).
    asset_history  — append-only record of status/ownership transitions.

Status and category values are enforced with CHECK constraints so the
database rejects values the application would also reject.

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f1c9a2b7d10"
down_revision = None
branch_labels = None
depends_on = None


_STATUSES = "('unallocated', 'available', 'allocated', 'under-repair', 'retired')"
_CATEGORIES = (
    "('laptop', 'keyboard', 'monitor', 'mouse', 'tablet', 'phone', 'other')"
)


def upgrade() -> None:
    """Create the three tables with their constraints and indexes."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint("role IN ('admin', 'user')", name="CK_users_role"),
    )

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("serial_number", sa.String(length=100), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=True),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("purchase_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column(
            "allocated_to_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("serial_number"),
        sa.CheckConstraint(f"status IN {_STATUSES}", name="CK_assets_status"),
        sa.CheckConstraint(f"category IN {_CATEGORIES}", name="CK_assets_category"),
        sa.CheckConstraint(
            "purchase_price IS NULL OR purchase_price >= 0",
            name="CK_assets_purchase_price",
        ),
    )
    op.create_index(
        "ix_assets_allocated_to_user_id", "assets", ["allocated_to_user_id"]
    )

    op.create_table(
        "asset_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "asset_id", sa.Integer(), sa.ForeignKey("assets.id"), nullable=False
        ),
        sa.Column("previous_status", sa.String(length=20), nullable=True),
        sa.Column("new_status", sa.String(length=20), nullable=False),
        sa.Column(
            "previous_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "new_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "changed_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            f"new_status IN {_STATUSES}", name="CK_asset_history_new_status"
        ),
        sa.CheckConstraint(
            f"previous_status IS NULL OR previous_status IN {_STATUSES}",
            name="CK_asset_history_previous_status",
        ),
    )
    op.create_index("ix_asset_history_asset_id", "asset_history", ["asset_id"])


def downgrade() -> None:
    """Drop the tables in reverse dependency order."""
    op.drop_index("ix_asset_history_asset_id", table_name="asset_history")
    op.drop_table("asset_history")
    op.drop_index("ix_assets_allocated_to_user_id", table_name="assets")
    op.drop_table("assets")
    op.drop_table("users")
