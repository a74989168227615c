"""
Assets blueprint — asset instances, state transitions, history,
custom values, and relationships.
"""

from flask import Blueprint

bp = Blueprint("assets", __name__)

# Import routes after blueprint creation to avoid circular imports.
from assettrack.blueprints.assets import routes  # noqa: E402, F401
