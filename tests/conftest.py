"""
Pytest configuration and shared fixtures.

Provides a test application, database session, test client, and small
factories for users and assets.  Uses the ``testing`` configuration,
which points at an in-memory SQLite database; the schema is created
fresh for every test function and dropped afterwards.
"""

import itertools

import pytest

from asset_tracker import create_app
from asset_tracker.extensions import db as _db
from asset_tracker.services import lifecycle_service, user_service


@pytest.fixture(scope="function")
def app():
    """
    Create a Flask application configured for testing.

    A new app per test gives each test its own in-memory database and
    its own application context (Flask-Login caches the current user
    on ``g``, which lives on that context).
    """
    app = create_app("testing")

    with app.app_context():
        yield app


@pytest.fixture(scope="function")
def db_session(app):  # pylint: disable=redefined-outer-name
    """
    Provide a database session backed by a freshly created schema.

    Tables are created before the test and dropped after it, so no
    rows leak between tests.
    """
    _db.create_all()

    yield _db.session

    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope="function")
def client(app, db_session):  # pylint: disable=redefined-outer-name,unused-argument
    """
    Provide a Flask test client for making HTTP requests.

    Usage in tests::

        def test_health(client):
            response = client.get("/health")
            assert response.status_code == 200
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def make_user(db_session):  # pylint: disable=redefined-outer-name,unused-argument
    """
    Factory for users with unique email addresses.

    Usage::

        alice = make_user(name="Alice")
        admin = make_user(role="admin")
    """
    counter = itertools.count(1)

    def _make_user(name=None, email=None, role="user"):
        n = next(counter)
        return user_service.create_user(
            email=email or f"user{n}@example.com",
            name=name or f"User {n}",
            role=role,
        )

    return _make_user


@pytest.fixture
def make_asset(db_session):  # pylint: disable=redefined-outer-name,unused-argument
    """
    Factory for assets with unique serial numbers.

    Returns the ``Asset`` row.  Keyword arguments are passed through
    to ``lifecycle_service.create_asset``.
    """
    counter = itertools.count(1)

    def _make_asset(**overrides):
        n = next(counter)
        values = {
            "name": f"Test Laptop {n}",
            "category": "laptop",
            "serial_number": f"SN-{n:04d}",
        }
        values.update(overrides)
        return lifecycle_service.create_asset(**values).asset

    return _make_asset
