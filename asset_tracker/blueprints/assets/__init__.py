"""
Assets blueprint — registration, edits, status transitions, deletion.
"""

from flask import Blueprint

bp = Blueprint("assets", __name__)

from asset_tracker.blueprints.assets import routes  # noqa: E402, F401
