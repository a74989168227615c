"""
Application user model.

Users are the actors recorded on audit entries.  Authentication itself
is handled outside this service; the only login path provided here is
the development bypass in the ``auth`` blueprint.
"""

from flask_login import UserMixin

from assettrack.extensions import db
from assettrack.utils import utcnow


class User(UserMixin, db.Model):
    """
    Application user record.

    Inherits from ``UserMixin`` to satisfy Flask-Login requirements
    (``is_authenticated``, ``is_active``, ``get_id``).

    ``role`` values: admin, editor, viewer.
    """

    # ``user`` is a reserved word in some dialects; SQLAlchemy quotes it.
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    email = db.Column(db.String(200), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    role = db.Column(db.String(20), nullable=False, default="viewer")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def full_name(self) -> str:
        """Return the user's display name, falling back to the email."""
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
