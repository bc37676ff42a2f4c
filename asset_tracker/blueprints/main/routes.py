"""
Routes for the main blueprint — health check, dashboard, history.
"""

from datetime import datetime, timezone

from flask import jsonify, request
from sqlalchemy import text

from asset_tracker.blueprints.main import bp
from asset_tracker.errors import ValidationError
from asset_tracker.extensions import db
from asset_tracker.services import dashboard_service, query_service


@bp.route("/health")
def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 if the app is running and can reach the database.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", "timestamp": timestamp}, 200
    except Exception as exc:  # pylint: disable=broad-except
        db.session.rollback()
        return (
            {"status": "unhealthy", "database": str(exc), "timestamp": timestamp},
            503,
        )


@bp.route("/dashboard")
def dashboard():
    """Asset counts by status and category."""
    return dashboard_service.get_dashboard_stats().to_dict()


@bp.route("/history")
def history():
    """
    Every history entry, oldest first, with users and asset resolved.

    ``?asset_id=<id>`` restricts the list to one asset.
    """
    raw_asset_id = request.args.get("asset_id")
    asset_id = None
    if raw_asset_id is not None:
        try:
            asset_id = int(raw_asset_id)
        except ValueError as exc:
            raise ValidationError("asset_id must be an integer.") from exc
    entries = query_service.get_asset_history(asset_id)
    return jsonify([entry.to_dict() for entry in entries])
