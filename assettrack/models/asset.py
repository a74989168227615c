"""
Asset instance models.

``Asset`` is one tracked physical item.  Its current status, location,
assignment, and customer are plain nullable foreign keys; they are
changed only through the transition functions in ``asset_service`` so
every change lands in the audit log.

``AttributeValue`` holds one custom field value for one asset in one of
four typed slots.  Use ``typed_value`` / ``store()`` rather than
reading the slots directly.
"""

from assettrack.exceptions import IntegrityError
from assettrack.extensions import db
from assettrack.models.field import VALUE_SLOTS, FieldDefinition, TypedValue
from assettrack.utils import utcnow


class Asset(db.Model):
    """
    A specific trackable item of an administrator-defined type.

    ``unique_identifier`` (serial number, asset tag, ...) is unique per
    workspace.  ``is_archived`` is a soft delete: archived assets keep
    their values and relationships but drop out of default listings.
    """

    __tablename__ = "asset"
    __table_args__ = (
        db.UniqueConstraint(
            "workspace_id", "unique_identifier", name="UQ_asset_workspace_identifier"
        ),
        db.Index("IX_asset_updated_at_id", "updated_at", "id"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    asset_type_id = db.Column(
        db.Integer, db.ForeignKey("asset_type.id"), nullable=False, index=True
    )
    unique_identifier = db.Column(db.String(200), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    manufacturer_id = db.Column(
        db.Integer, db.ForeignKey("manufacturer.id"), nullable=True, index=True
    )
    date_acquired = db.Column(db.Date, nullable=True)
    cost = db.Column(db.Numeric(12, 2), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    current_status_id = db.Column(
        db.Integer, db.ForeignKey("status.id"), nullable=True, index=True
    )
    current_location_id = db.Column(
        db.Integer, db.ForeignKey("location.id"), nullable=True, index=True
    )
    current_assignment_id = db.Column(
        db.Integer, db.ForeignKey("assignment.id"), nullable=True, index=True
    )
    current_customer_id = db.Column(
        db.Integer, db.ForeignKey("customer.id"), nullable=True, index=True
    )
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    asset_type = db.relationship("AssetType", back_populates="assets")
    manufacturer = db.relationship("Manufacturer")
    status = db.relationship("Status")
    location = db.relationship("Location")
    assignment = db.relationship("Assignment")
    customer = db.relationship("Customer")
    attribute_values = db.relationship(
        "AttributeValue",
        back_populates="asset",
        cascade="all, delete-orphan",
    )
    outgoing_relationships = db.relationship(
        "Relationship",
        foreign_keys="Relationship.source_asset_id",
        back_populates="source_asset",
        cascade="all, delete-orphan",
    )
    incoming_relationships = db.relationship(
        "Relationship",
        foreign_keys="Relationship.target_asset_id",
        back_populates="target_asset",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "asset_type_id": self.asset_type_id,
            "unique_identifier": self.unique_identifier,
            "name": self.name,
            "manufacturer_id": self.manufacturer_id,
            "date_acquired": (
                self.date_acquired.isoformat() if self.date_acquired else None
            ),
            "cost": str(self.cost) if self.cost is not None else None,
            "notes": self.notes,
            "current_status_id": self.current_status_id,
            "current_location_id": self.current_location_id,
            "current_assignment_id": self.current_assignment_id,
            "current_customer_id": self.current_customer_id,
            "is_archived": self.is_archived,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Asset {self.unique_identifier}: {self.name}>"


class AttributeValue(db.Model):
    """
    Stored value of one field definition for one asset.

    Exactly one of the four slots is populated, chosen by the field's
    kind at write time.  The field's asset type must match the asset's
    asset type; ``store()`` raises ``IntegrityError`` otherwise.
    """

    __tablename__ = "attribute_value"
    __table_args__ = (
        db.UniqueConstraint(
            "asset_id", "field_definition_id", name="UQ_attribute_value_asset_field"
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    asset_id = db.Column(
        db.Integer, db.ForeignKey("asset.id"), nullable=False, index=True
    )
    field_definition_id = db.Column(
        db.Integer, db.ForeignKey("field_definition.id"), nullable=False, index=True
    )
    text_value = db.Column(db.Text, nullable=True)
    number_value = db.Column(db.Float, nullable=True)
    date_value = db.Column(db.Date, nullable=True)
    boolean_value = db.Column(db.Boolean, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    asset = db.relationship("Asset", back_populates="attribute_values")
    field_definition = db.relationship("FieldDefinition", back_populates="values")

    @property
    def typed_value(self) -> TypedValue:
        """Read the populated slot as a ``TypedValue``."""
        kind = self.field_definition.kind
        return TypedValue(kind=kind, value=getattr(self, kind.slot))

    def store(self, typed: TypedValue) -> None:
        """
        Write ``typed`` into its slot and clear the other three.

        Raises:
            IntegrityError: If the kind does not match the field's kind
                            or the field belongs to another asset type.
        """
        field: FieldDefinition = self.field_definition
        if typed.kind is not field.kind:
            raise IntegrityError(
                f"Value of kind {typed.kind.value} written to "
                f"{field.kind.value} field '{field.field_name}'.",
                field=field.field_name,
            )
        if self.asset is not None and self.asset.asset_type_id != field.asset_type_id:
            raise IntegrityError(
                f"Field '{field.field_name}' belongs to asset type "
                f"{field.asset_type_id}, not to asset {self.asset.id}'s type "
                f"{self.asset.asset_type_id}.",
                field=field.field_name,
            )
        for slot in VALUE_SLOTS:
            setattr(self, slot, None)
        setattr(self, typed.kind.slot, typed.value)
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return (
            f"<AttributeValue asset={self.asset_id} "
            f"field={self.field_definition_id}>"
        )
