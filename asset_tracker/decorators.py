"""
Request decorators for the JSON API blueprints.

    @bp.route("", methods=["POST"])
    @json_payload
    def create_asset(payload):
        ...

    @bp.route("/<int:asset_id>", methods=["PATCH"])
    @json_payload
    def update_asset(asset_id, payload):
        ...
"""

import logging
from functools import wraps

from flask import request

from asset_tracker.errors import ValidationError

logger = logging.getLogger(__name__)


def json_payload(func):
    """
    Parse the request body as a JSON object and pass it as ``payload``.

    Raises:
        ValidationError: If the body is missing, not JSON, or not an
                         object.  The app's error handler answers 400.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            logger.debug(
                "Rejected %s %s: body is not a JSON object",
                request.method,
                request.path,
            )
            raise ValidationError("Request body must be a JSON object.")
        return func(*args, payload=payload, **kwargs)

    return wrapper
