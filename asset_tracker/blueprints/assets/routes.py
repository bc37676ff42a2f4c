"""
Routes for the assets blueprint.

Plain edits (``PATCH``) and status transitions (``POST .../status``)
are separate routes; only the latter writes a history entry.
"""

from flask import jsonify
from flask_login import current_user

from asset_tracker.blueprints.assets import bp
from asset_tracker.decorators import json_payload
from asset_tracker.errors import ValidationError
from asset_tracker.services import lifecycle_service, query_service


# Keys accepted by POST /assets.
_CREATE_FIELDS = (
    "name",
    "category",
    "serial_number",
    "model",
    "brand",
    "purchase_date",
    "purchase_price",
    "status",
    "allocated_to_user_id",
    "notes",
)


@bp.route("", methods=["GET"])
def asset_list():
    """List every asset with its owner."""
    return jsonify([item.to_dict() for item in query_service.get_assets()])


@bp.route("", methods=["POST"])
@json_payload
def asset_create(payload):
    """Register a new asset.  No history entry is written."""
    unknown = sorted(set(payload) - set(_CREATE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown asset field(s): {', '.join(unknown)}")

    result = lifecycle_service.create_asset(
        name=payload.get("name"),
        category=payload.get("category"),
        serial_number=payload.get("serial_number"),
        model=payload.get("model"),
        brand=payload.get("brand"),
        purchase_date=payload.get("purchase_date"),
        purchase_price=payload.get("purchase_price"),
        status=payload.get("status"),
        allocated_to_user_id=payload.get("allocated_to_user_id"),
        notes=payload.get("notes"),
    )
    return result.to_dict(), 201


@bp.route("/<int:asset_id>", methods=["GET"])
def asset_detail(asset_id):
    """One asset with its owner."""
    return query_service.get_asset_by_id(asset_id).to_dict()


@bp.route("/<int:asset_id>", methods=["PATCH"])
@json_payload
def asset_update(asset_id, payload):
    """
    Partial update.  Absent keys are left alone; ``null`` clears.

    Status and owner may be edited here without a history entry unless
    ``STRICT_AUDIT_TRAIL`` is on.
    """
    patch = lifecycle_service.AssetPatch.from_mapping(payload)
    return lifecycle_service.update_asset(asset_id, patch).to_dict()


@bp.route("/<int:asset_id>/status", methods=["POST"])
@json_payload
def asset_transition(asset_id, payload):
    """
    Status/ownership transition with a history entry.

    Body: ``{new_status, allocated_to_user_id?, notes?,
    changed_by_user_id?}``.  When ``changed_by_user_id`` is omitted the
    logged-in user is the acting user.
    """
    acting_user_id = payload.get("changed_by_user_id")
    if acting_user_id is None and current_user.is_authenticated:
        acting_user_id = current_user.id
    if acting_user_id is None:
        raise ValidationError("changed_by_user_id is required when not logged in.")

    result = lifecycle_service.transition(
        asset_id,
        payload.get("new_status"),
        acting_user_id=acting_user_id,
        new_owner_id=payload.get("allocated_to_user_id"),
        notes=payload.get("notes"),
    )
    return result.to_dict()


@bp.route("/<int:asset_id>", methods=["DELETE"])
def asset_delete(asset_id):
    """Delete an asset and its history.  Missing assets are not an error."""
    return {"success": lifecycle_service.delete_asset(asset_id)}


@bp.route("/<int:asset_id>/history")
def asset_history(asset_id):
    """History of one asset, oldest first.  Unknown IDs give an empty list."""
    entries = query_service.get_asset_history(asset_id)
    return jsonify([entry.to_dict() for entry in entries])
