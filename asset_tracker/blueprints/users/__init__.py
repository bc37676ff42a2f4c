"""
Users blueprint — user directory and per-user asset lists.
"""

from flask import Blueprint

bp = Blueprint("users", __name__)

from asset_tracker.blueprints.users import routes  # noqa: E402, F401
