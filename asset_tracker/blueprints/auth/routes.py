"""
Routes for the auth blueprint — email-only login and logout.

There are no passwords in this system: posting a registered email
signs that user in.  The login route therefore only answers when
``DEV_LOGIN_ENABLED`` is on.  The logged-in user is used as the acting
user for status transitions that do not name one explicitly.
"""

import logging

from flask import abort, current_app
from flask_login import current_user, login_required, login_user, logout_user

from asset_tracker.blueprints.auth import bp
from asset_tracker.decorators import json_payload
from asset_tracker.errors import ValidationError
from asset_tracker.services import user_service

logger = logging.getLogger(__name__)


@bp.route("/login", methods=["POST"])
@json_payload
def login(payload):
    """Sign in as the user with the posted ``email``."""
    if not current_app.config.get("DEV_LOGIN_ENABLED"):
        abort(404)

    email = payload.get("email")
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required.")

    user = user_service.login(email)
    login_user(user)
    return user.to_dict()


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Clear the Flask-Login session."""
    logger.info("User %d logged out", current_user.id)
    logout_user()
    return {"success": True}


@bp.route("/me")
@login_required
def me():
    """Return the logged-in user."""
    return current_user.to_dict()
