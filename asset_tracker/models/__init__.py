"""
Model package — imports all models so Alembic and SQLAlchemy can
discover them automatically when ``flask db`` commands are run.

  - user.py    -> users
  - asset.py   -> assets
  - history.py -> asset_history
"""

from asset_tracker.models.user import User  # noqa: F401
from asset_tracker.models.asset import Asset  # noqa: F401
from asset_tracker.models.history import AssetHistory  # noqa: F401
