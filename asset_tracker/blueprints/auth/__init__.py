"""
Auth blueprint — email-only login and logout.
"""

from flask import Blueprint

bp = Blueprint("auth", __name__)

from asset_tracker.blueprints.auth import routes  # noqa: E402, F401
