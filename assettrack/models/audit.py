"""
Asset audit log model.

``AssetLog`` is the append-only history of every mutation to an asset
or its relationships.  ``asset_id`` is deliberately not a foreign key:
entries outlive a hard-deleted asset and remain the permanent record.
"""

import enum

from sqlalchemy import event

from assettrack.exceptions import IntegrityError
from assettrack.extensions import db
from assettrack.utils import utcnow


class LogAction(str, enum.Enum):
    """
    Action kinds recorded in the audit log.

    Stored as plain strings; any value not listed here reads back as
    ``OTHER`` so older readers tolerate newer writers.
    """

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    UPDATE_STATUS = "UPDATE_STATUS"
    UPDATE_LOCATION = "UPDATE_LOCATION"
    ASSIGNED = "ASSIGNED"
    CUSTOMER_ASSIGNED = "CUSTOMER_ASSIGNED"
    RELATIONSHIP_CREATED = "RELATIONSHIP_CREATED"
    RELATIONSHIP_UPDATED = "RELATIONSHIP_UPDATED"
    RELATIONSHIP_DELETED = "RELATIONSHIP_DELETED"
    ARCHIVE = "ARCHIVE"
    DELETE = "DELETE"
    OTHER = "OTHER"

    @classmethod
    def _missing_(cls, value):
        return cls.OTHER


class AssetLog(db.Model):
    """
    One audit entry for one asset.

    ``details`` always contains a human-readable ``message``.  Pointer
    transitions add ``previous`` and ``new``; field edits add a
    ``changes`` mapping of field -> {previous, new}.
    """

    __tablename__ = "asset_log"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    asset_id = db.Column(db.Integer, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    action_type = db.Column(db.String(50), nullable=False)
    details = db.Column(db.JSON, nullable=False, default=dict)

    # -- Relationships -----------------------------------------------------
    user = db.relationship("User")

    @property
    def action(self) -> LogAction:
        return LogAction(self.action_type)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "action_type": self.action_type,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"<AssetLog {self.action_type} asset={self.asset_id}>"


# -- Append-only enforcement ------------------------------------------------
# Audit entries are never modified or removed once flushed.


@event.listens_for(AssetLog, "before_update")
def _prevent_log_update(mapper, connection, target):
    raise IntegrityError(
        f"Audit log entry {target.id} is immutable and cannot be modified."
    )


@event.listens_for(AssetLog, "before_delete")
def _prevent_log_delete(mapper, connection, target):
    raise IntegrityError(
        f"Audit log entry {target.id} is immutable and cannot be deleted."
    )
