"""
Routes for the users blueprint — directory and per-user assets.
"""

from flask import jsonify

from asset_tracker.blueprints.users import bp
from asset_tracker.decorators import json_payload
from asset_tracker.models.user import ROLE_USER
from asset_tracker.services import query_service, user_service


@bp.route("", methods=["GET"])
def user_list():
    """List every user."""
    return jsonify([user.to_dict() for user in user_service.get_users()])


@bp.route("", methods=["POST"])
@json_payload
def user_create(payload):
    """Create a user from ``{email, name, role?}``."""
    user = user_service.create_user(
        email=payload.get("email"),
        name=payload.get("name"),
        role=payload.get("role", ROLE_USER),
    )
    return user.to_dict(), 201


@bp.route("/<int:user_id>/assets")
def user_assets(user_id):
    """Assets currently allocated to one user."""
    assets = query_service.get_user_assets(user_id)
    return jsonify([item.to_dict() for item in assets])
