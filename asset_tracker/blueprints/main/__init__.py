"""
Main blueprint — health check, dashboard counts, and global history.
"""

from flask import Blueprint

bp = Blueprint("main", __name__)

from asset_tracker.blueprints.main import routes  # noqa: E402, F401
