"""
Model package — imports all models so Alembic and SQLAlchemy can
discover them automatically when ``flask db`` commands are run.

  - taxonomy.py     -> workspaces, asset types, reference lists
  - field.py        -> custom field definitions
  - asset.py        -> asset instances and their attribute values
  - relationship.py -> directed edges between assets
  - audit.py        -> append-only asset history
  - user.py         -> audit actors
"""

from assettrack.models.taxonomy import (  # noqa: F401
    Assignment,
    AssetType,
    Customer,
    Location,
    Manufacturer,
    Status,
    Workspace,
)
from assettrack.models.field import FieldDefinition, FieldKind, TypedValue  # noqa: F401
from assettrack.models.asset import Asset, AttributeValue  # noqa: F401
from assettrack.models.relationship import (  # noqa: F401
    Relationship,
    RelationshipType,
)
from assettrack.models.audit import AssetLog, LogAction  # noqa: F401
from assettrack.models.user import User  # noqa: F401
