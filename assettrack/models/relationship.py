"""
Directed, typed edges between two asset instances.

Relationship types come from a fixed vocabulary.  Each type has a
forward label ("Part of") and a label used when the edge is viewed from
its target ("Has part").
"""

import enum

from assettrack.extensions import db
from assettrack.utils import utcnow


class RelationshipType(str, enum.Enum):
    """The fixed relationship vocabulary."""

    PART_OF = "part_of"
    ACCESSORY_TO = "accessory_to"
    REPLACEMENT_FOR = "replacement_for"
    DEPENDS_ON = "depends_on"
    PAIRED_WITH = "paired_with"
    PARENT_OF = "parent_of"
    CHILD_OF = "child_of"
    CONNECTED_TO = "connected_to"
    INSTALLED_IN = "installed_in"
    CONTAINS = "contains"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def inverse_label(self) -> str:
        """Label shown on the target side of the edge."""
        return _INVERSE_LABELS.get(self, f"{self.label} (inverse)")


_LABELS = {
    RelationshipType.PART_OF: "Part of",
    RelationshipType.ACCESSORY_TO: "Accessory to",
    RelationshipType.REPLACEMENT_FOR: "Replacement for",
    RelationshipType.DEPENDS_ON: "Depends on",
    RelationshipType.PAIRED_WITH: "Paired with",
    RelationshipType.PARENT_OF: "Parent of",
    RelationshipType.CHILD_OF: "Child of",
    RelationshipType.CONNECTED_TO: "Connected to",
    RelationshipType.INSTALLED_IN: "Installed in",
    RelationshipType.CONTAINS: "Contains",
}

_INVERSE_LABELS = {
    RelationshipType.PART_OF: "Has part",
    RelationshipType.PARENT_OF: "Child of",
    RelationshipType.CHILD_OF: "Parent of",
    RelationshipType.CONTAINS: "Contained in",
    RelationshipType.INSTALLED_IN: "Has installed",
}


class Relationship(db.Model):
    """
    Directed edge ``source --type--> target``.

    The (source, target, type) triple is unique; the reverse edge is a
    different triple and may coexist.  Deletion is hard.
    """

    __tablename__ = "relationship"
    __table_args__ = (
        db.UniqueConstraint(
            "source_asset_id",
            "target_asset_id",
            "relationship_type",
            name="UQ_relationship_source_target_type",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    source_asset_id = db.Column(
        db.Integer, db.ForeignKey("asset.id"), nullable=False, index=True
    )
    target_asset_id = db.Column(
        db.Integer, db.ForeignKey("asset.id"), nullable=False, index=True
    )
    relationship_type = db.Column(
        db.Enum(
            RelationshipType,
            native_enum=False,
            length=30,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    source_asset = db.relationship(
        "Asset", foreign_keys=[source_asset_id], back_populates="outgoing_relationships"
    )
    target_asset = db.relationship(
        "Asset", foreign_keys=[target_asset_id], back_populates="incoming_relationships"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "source_asset_id": self.source_asset_id,
            "target_asset_id": self.target_asset_id,
            "relationship_type": self.relationship_type.value,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return (
            f"<Relationship {self.source_asset_id} "
            f"{self.relationship_type.value} {self.target_asset_id}>"
        )
