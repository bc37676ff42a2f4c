"""
Application configuration classes.

Each class represents a deployment environment. The factory function
``create_app`` in ``asset_tracker/__init__.py`` selects the appropriate
config based on the FLASK_ENV environment variable.

The database connection string is any SQLAlchemy URL.  SQLite is the
default for local development; production is expected to point
``DATABASE_URL`` at a server database (PostgreSQL, SQL Server, ...)
so that concurrent transitions are serialized by real transaction
isolation.
"""

import logging
import os

# Module-level logger for startup warnings emitted by config classes.
_logger = logging.getLogger(__name__)

# Sentinel for detecting an unset SECRET_KEY in production.
_DEFAULT_SECRET_KEY = "dev-secret-change-me"


def _env_flag(name: str, default: str) -> bool:
    """Read a true/false environment variable."""
    return os.environ.get(name, default).lower() == "true"


class BaseConfig:
    """
    Shared configuration values inherited by all environments.

    Secrets and connection strings are loaded from environment variables
    so they never appear in source control.
    """

    # -- Flask core --------------------------------------------------------
    SECRET_KEY: str = os.environ.get("SECRET_KEY", _DEFAULT_SECRET_KEY)

    # -- Session cookie hardening ------------------------------------------
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "Lax"
    SESSION_COOKIE_SECURE: bool = False

    # -- SQLAlchemy --------------------------------------------------------
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL", "sqlite:///asset_tracker.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = False

    # -- Lifecycle policy --------------------------------------------------
    # When True, plain field edits may not touch status or owner; those
    # changes must go through the status transition endpoint so that
    # every one of them lands in the asset history.
    STRICT_AUDIT_TRAIL: bool = _env_flag("STRICT_AUDIT_TRAIL", "false")

    # -- Email-only login --------------------------------------------------
    # There are no passwords in this system.  The /auth/login route only
    # exists when this flag is on.
    DEV_LOGIN_ENABLED: bool = _env_flag("DEV_LOGIN_ENABLED", "false")

    # -- Logging -----------------------------------------------------------
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @classmethod
    def validate_production_secrets(cls, app_config: dict) -> None:
        """
        Verify that the production configuration is safe to run.

        Raises ``RuntimeError`` for hard requirements and logs warnings
        for soft requirements.

        Args:
            app_config: The ``app.config`` dict after loading the
                        config class.

        Raises:
            RuntimeError: If any critical value is missing or still
                          set to its insecure default.
        """
        errors: list[str] = []

        if app_config.get("SECRET_KEY") == _DEFAULT_SECRET_KEY:
            errors.append(
                "SECRET_KEY is still the insecure default. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_hex(32))"'
            )

        # SQLite serializes writers with a file lock and does not give
        # concurrent request handlers real transaction isolation.
        db_uri = app_config.get("SQLALCHEMY_DATABASE_URI", "")
        if db_uri.startswith("sqlite"):
            errors.append(
                f"DATABASE_URL ({db_uri}) points at SQLite. "
                "Use a server database in production."
            )

        if errors:
            combined = "\n  - ".join(errors)
            raise RuntimeError(f"Production configuration errors:\n  - {combined}")

        if app_config.get("LOG_LEVEL", "").upper() == "DEBUG":
            _logger.warning(
                "LOG_LEVEL=DEBUG is not recommended in production; "
                "SQL statements and request data may appear in logs."
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: verbose logging, SQL echo enabled."""

    DEBUG: bool = True
    SQLALCHEMY_ECHO: bool = True
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")
    DEV_LOGIN_ENABLED: bool = _env_flag("DEV_LOGIN_ENABLED", "true")


class TestingConfig(BaseConfig):
    """
    Testing environment: in-memory SQLite database.

    Flask-SQLAlchemy keeps a single shared connection for in-memory
    SQLite, so every session in a test sees the same schema.
    """

    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = os.environ.get("TEST_DATABASE_URL", "sqlite://")
    LOG_LEVEL: str = "DEBUG"
    DEV_LOGIN_ENABLED: bool = True
    STRICT_AUDIT_TRAIL: bool = False


class ProductionConfig(BaseConfig):
    """
    Production environment: strict settings, no debug output.

    The application factory calls ``validate_production_secrets()`` at
    startup and refuses to launch if critical values are missing.
    """

    DEBUG: bool = False
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")
    SESSION_COOKIE_SECURE: bool = True
    DEV_LOGIN_ENABLED: bool = False


# Lookup dict used by the application factory.
config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
