"""
Catalog blueprint — workspaces, asset types, field schema, and
reference lists (statuses, locations, assignments, manufacturers,
customers).
"""

from flask import Blueprint

bp = Blueprint("catalog", __name__)

# Import routes after blueprint creation to avoid circular imports.
from assettrack.blueprints.catalog import routes  # noqa: E402, F401
