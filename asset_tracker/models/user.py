"""
User directory model — ``users`` table.

There are no passwords.  Users are identified by email and carry a
coarse role.  Assets reference users as owners; history entries
reference them as previous owner, new owner, and acting user.
"""

from flask_login import UserMixin

from asset_tracker.extensions import db
from asset_tracker.models.base import isoformat, utcnow

ROLE_ADMIN = "admin"
ROLE_USER = "user"
USER_ROLES = (ROLE_ADMIN, ROLE_USER)


class User(UserMixin, db.Model):
    """
    A person who can own assets and record transitions.

    Inherits from ``UserMixin`` so the JSON API can keep the logged-in
    user in the Flask-Login session.
    """

    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role IN ('admin', 'user')",
            name="CK_users_role",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def is_admin(self) -> bool:
        """True for users with the admin role."""
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
