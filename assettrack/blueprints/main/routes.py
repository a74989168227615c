"""
Routes for the main blueprint — health check and dashboard stats.
"""

from sqlalchemy import text

from assettrack.blueprints.main import bp
from assettrack.blueprints.request_utils import workspace_scope
from assettrack.extensions import db
from assettrack.services import query_service


@bp.route("/health")
def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 if the app is running and can reach the database.
    """
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}, 200
    except Exception as exc:  # pylint: disable=broad-except
        return {"status": "unhealthy", "database": str(exc)}, 503


@bp.route("/api/stats")
def asset_stats():
    """Total non-archived assets and a count per status."""
    return query_service.get_asset_stats(workspace_scope())
