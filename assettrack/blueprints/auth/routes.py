"""
Routes for the auth blueprint.

Real authentication is handled in front of this service.  The
development-only ``/dev-login`` route logs in a seeded user by email or
id so audit entries carry an actor during local work; it is disabled
unless ``DEV_LOGIN_ENABLED`` is true.
"""

import logging

from flask import current_app
from flask_login import current_user, login_required, login_user, logout_user

from assettrack.blueprints.auth import bp
from assettrack.blueprints.request_utils import json_body
from assettrack.exceptions import NotFoundError
from assettrack.extensions import db
from assettrack.models.user import User

logger = logging.getLogger(__name__)


@bp.route("/dev-login", methods=["POST"])
def dev_login():
    """
    Development-only login bypass.

    Body:
        user_id (int):  Specific user to log in as.  Takes precedence.
        email (str):    Email of the user to log in as.

    With neither, the first active admin is used.
    """
    if not current_app.config.get("DEV_LOGIN_ENABLED"):
        return {"message": "Development login is disabled."}, 403

    body = json_body()
    query = User.query.filter(User.is_active == True)  # noqa: E712
    if body.get("user_id") is not None:
        target_user = query.filter(User.id == body["user_id"]).first()
    elif body.get("email"):
        target_user = query.filter(User.email == body["email"]).first()
    else:
        target_user = query.filter(User.role == "admin").order_by(User.id).first()

    if target_user is None:
        raise NotFoundError(
            "No matching active user. Run: flask seed-dev-user", field="user_id"
        )

    login_user(target_user)
    logger.info("Dev login: user %d (%s)", target_user.id, target_user.email)
    return target_user.to_dict()


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Clear the Flask-Login session."""
    user_id = current_user.id
    logout_user()
    logger.info("User %d logged out", user_id)
    return {"message": "Signed out."}


@bp.route("/me")
@login_required
def me():
    """Return the logged-in user."""
    return db.session.get(User, current_user.id).to_dict()
