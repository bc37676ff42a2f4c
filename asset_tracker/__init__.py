"""
Application factory for the Asset Tracker JSON API.

Usage::

    from asset_tracker import create_app
    app = create_app()           # Uses FLASK_ENV to pick config.
    app = create_app("testing")  # Explicit config for tests.
"""

import logging
import os

from flask import Flask, jsonify
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from .config import config_by_name
from .errors import ConflictError, NotFoundError, StorageFailure, ValidationError
from .extensions import db, login_manager, migrate

logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: One of 'development', 'testing', or 'production'.
                     Defaults to the FLASK_ENV environment variable,
                     falling back to 'development'.

    Returns:
        A fully configured Flask application instance.
    """
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")
    config_class = config_by_name.get(config_name)
    if config_class is None:
        raise ValueError(
            f"Unknown config '{config_name}'. "
            f"Valid options: {list(config_by_name.keys())}"
        )

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Refuse to start production with unsafe settings.
    if config_name == "production":
        config_class.validate_production_secrets(app.config)

    # -- Configure logging -------------------------------------------------
    _configure_logging(app)

    # -- Initialize extensions ---------------------------------------------
    _register_extensions(app)

    # -- Register blueprints -----------------------------------------------
    _register_blueprints(app)

    # -- Register error handlers -------------------------------------------
    _register_error_handlers(app)

    # -- Register custom CLI commands --------------------------------------
    _register_cli_commands(app)

    return app


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # pylint: disable=unused-argument
    """SQLite ignores foreign keys unless each connection turns them on."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _register_extensions(app: Flask) -> None:
    """Bind all Flask extensions to the application instance."""
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _enable_sqlite_foreign_keys)

    # Imported here to avoid circular imports with models.
    from .models.user import User  # pylint: disable=import-outside-toplevel

    @login_manager.user_loader
    def load_user(user_id: str):
        """Load a user by primary key for Flask-Login session management."""
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        """JSON 401 instead of a redirect to a login page."""
        return {"error": "unauthorized", "message": "Login required."}, 401


def _register_blueprints(app: Flask) -> None:
    """
    Import and register each blueprint with its URL prefix.

    Blueprints are imported inside this function to avoid circular
    imports.  Models and services can safely import ``db`` from
    extensions at module level.
    """
    # pylint: disable=import-outside-toplevel

    # Main blueprint: health check, dashboard, global history.
    from .blueprints.main import bp as main_bp

    app.register_blueprint(main_bp)

    # Auth: email-only login and logout.
    from .blueprints.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    # Users: directory and per-user asset lists.
    from .blueprints.users import bp as users_bp

    app.register_blueprint(users_bp, url_prefix="/users")

    # Assets: create, edit, transition, delete, history.
    from .blueprints.assets import bp as assets_bp

    app.register_blueprint(assets_bp, url_prefix="/assets")


def _error_body(error: str, message: str, **extra) -> dict:
    body = {"error": error, "message": message}
    body.update(extra)
    return body


def _register_error_handlers(app: Flask) -> None:
    """
    Map service-layer exceptions and HTTP errors to JSON responses.

    Validation, lookup, and conflict errors carry a message meant for
    the user.  Storage failures answer with a generic message; the
    details are in the log.
    """

    @app.errorhandler(ValidationError)
    def validation_error(error):
        return _error_body("validation_error", str(error)), 400

    @app.errorhandler(NotFoundError)
    def not_found_error(error):
        return (
            _error_body(
                "not_found",
                str(error),
                entity=error.entity,
                entity_id=error.entity_id,
            ),
            404,
        )

    @app.errorhandler(ConflictError)
    def conflict_error(error):
        return _error_body("conflict", str(error), field=error.field), 409

    @app.errorhandler(StorageFailure)
    def storage_failure(error):  # pylint: disable=unused-argument
        db.session.rollback()
        return (
            _error_body("storage_failure", "The request could not be saved. Try again."),
            503,
        )

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify(
            _error_body(error.name.lower().replace(" ", "_"), error.description)
        ), error.code

    @app.errorhandler(500)
    def internal_error(error):  # pylint: disable=unused-argument
        db.session.rollback()
        return _error_body("internal_error", "An unexpected error occurred."), 500


def _register_cli_commands(app: Flask) -> None:
    """Register custom Flask CLI commands (e.g., flask db-check)."""
    # pylint: disable=import-outside-toplevel
    from .cli import register_commands
    from .seed_dev_admin import register_seed_commands

    register_commands(app)
    register_seed_commands(app)


def _configure_logging(app: Flask) -> None:
    """
    Set up application logging at ``LOG_LEVEL``.

    In debug mode SQLAlchemy's engine logger is quieted so that
    ``SQLALCHEMY_ECHO`` output does not bury application messages.
    """
    log_level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if app.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
