"""
Reference-list models — workspaces, asset types, and the taxonomies
assets point to (statuses, locations, assignments, manufacturers,
customers).

Rows with a NULL ``workspace_id`` are global and visible to every
workspace.  Statuses and locations may additionally be scoped to one
asset type.
"""

from assettrack.extensions import db
from assettrack.utils import utcnow


class Workspace(db.Model):
    """A tenant.  Every asset and most taxonomy rows belong to one."""

    __tablename__ = "workspace"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Workspace {self.name}>"


class AssetType(db.Model):
    """
    Administrator-defined category of trackable item (e.g., "Laptop").

    Owns its custom field definitions; deleting the type deletes them.
    """

    __tablename__ = "asset_type"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    icon = db.Column(db.String(50), nullable=False, default="dashboard")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    fields = db.relationship(
        "FieldDefinition",
        back_populates="asset_type",
        cascade="all, delete-orphan",
        order_by="FieldDefinition.id",
    )
    assets = db.relationship("Asset", back_populates="asset_type", lazy="dynamic")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<AssetType {self.name}>"


class Status(db.Model):
    """
    Workflow status an asset can be in (e.g., "In Use", "Repair").

    ``sort_order`` is the explicit display order, maintained by
    ``taxonomy_service.reorder_statuses``.
    """

    __tablename__ = "status"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    asset_type_id = db.Column(
        db.Integer, db.ForeignKey("asset_type.id"), nullable=True, index=True
    )
    name = db.Column(db.String(100), nullable=False)
    color = db.Column(db.String(20), nullable=False, default="#6B7280")
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "asset_type_id": self.asset_type_id,
            "name": self.name,
            "color": self.color,
            "sort_order": self.sort_order,
        }

    def __repr__(self) -> str:
        return f"<Status {self.name}>"


class Location(db.Model):
    """Physical place an asset can be (e.g., "Warehouse A")."""

    __tablename__ = "location"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    asset_type_id = db.Column(
        db.Integer, db.ForeignKey("asset_type.id"), nullable=True, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "asset_type_id": self.asset_type_id,
            "name": self.name,
            "description": self.description,
        }

    def __repr__(self) -> str:
        return f"<Location {self.name}>"


class Assignment(db.Model):
    """Person, project, or context an asset is assigned to."""

    __tablename__ = "assignment"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    details = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"<Assignment {self.name}>"


class Manufacturer(db.Model):
    """Canonical list of manufacturers (e.g., Dell, Lenovo, HP)."""

    __tablename__ = "manufacturer"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=True, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    contact_info = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "contact_info": self.contact_info,
        }

    def __repr__(self) -> str:
        return f"<Manufacturer {self.name}>"


class Customer(db.Model):
    """A customer an asset has been placed with.  Always workspace-owned."""

    __tablename__ = "customer"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    workspace_id = db.Column(
        db.Integer, db.ForeignKey("workspace.id"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<Customer {self.name}>"
