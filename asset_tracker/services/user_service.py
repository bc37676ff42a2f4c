"""
User service — the user directory.

Two roles in one module:

  - The identity store the lifecycle service checks against
    (``get_user`` / ``user_exists``, both taking an explicit session).
  - Simple directory operations used by the API: create, list, look
    up by email, and the email-only login lookup.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from asset_tracker.errors import NotFoundError, ValidationError
from asset_tracker.extensions import db
from asset_tracker.models.user import ROLE_USER, USER_ROLES, User
from asset_tracker.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


# -- Identity store --------------------------------------------------------


def get_user(session: Session, user_id: int) -> User | None:
    """Return a user by primary key, or None if not found."""
    return session.get(User, user_id)


def user_exists(session: Session, user_id: int) -> bool:
    """Return True if a user with this ID exists."""
    return get_user(session, user_id) is not None


# -- Directory lookups -----------------------------------------------------


def get_users() -> list[User]:
    """Return all users ordered by name."""
    return list(db.session.scalars(select(User).order_by(User.name, User.id)))


def get_user_by_id(user_id: int) -> User | None:
    """Return a user by primary key using the request session."""
    return get_user(db.session, user_id)


def get_user_by_email(email: str) -> User | None:
    """
    Return a user by email address (case-insensitive, exact match).

    Stored emails are lowercase, so comparing lowercased values finds
    at most one row.
    """
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return db.session.scalars(stmt).first()


def login(email: str) -> User:
    """
    Resolve the user signing in with ``email``.

    There are no passwords; knowing a registered email is enough.
    Routes only expose this when ``DEV_LOGIN_ENABLED`` is on.

    Raises:
        NotFoundError: If no user has this email.
    """
    user = get_user_by_email(email)
    if user is None:
        logger.info("Login failed: no user with email %s", email)
        raise NotFoundError("user", email)
    logger.info("User %d logged in", user.id)
    return user


# -- Creation --------------------------------------------------------------


def _normalize_email(email: str) -> str:
    """
    Validate an email address and return its normalized form.

    The whole address is lowercased so that addresses differing only
    in case collide on the unique ``email`` column.
    """
    try:
        result = validate_email(email or "", check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email address: {exc}") from exc
    return result.normalized.lower()


def create_user(email: str, name: str, role: str = ROLE_USER) -> User:
    """
    Create a new user.

    Args:
        email: Unique email address.
        name:  Display name (required).
        role:  ``admin`` or ``user``.

    Returns:
        The newly created User record.

    Raises:
        ValidationError: Bad email, blank name, or unknown role.
        ConflictError:   The email is already registered.
    """
    normalized = _normalize_email(email)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required.")
    if role not in USER_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Valid roles: {', '.join(USER_ROLES)}"
        )

    with unit_of_work() as session:
        user = User(email=normalized, name=name, role=role)
        session.add(user)
        session.flush()

    logger.info("Created user %d <%s> role=%s", user.id, user.email, user.role)
    return user
