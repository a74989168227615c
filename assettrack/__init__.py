"""
Application factory for the asset tracking service.

Usage::

    from assettrack import create_app
    app = create_app()           # Uses FLASK_ENV to pick config.
    app = create_app("testing")  # Explicit config for tests.
"""

import logging
import os

from flask import Flask
from werkzeug.exceptions import HTTPException

from .config import config_by_name
from .exceptions import AssetTrackError
from .extensions import db, login_manager, migrate

logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: One of 'development', 'testing', or 'production'.
                     Defaults to the FLASK_ENV environment variable,
                     falling back to 'development'.

    Returns:
        A fully configured Flask application instance.
    """
    # Resolve the configuration class.
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")
    config_class = config_by_name.get(config_name)
    if config_class is None:
        raise ValueError(
            f"Unknown config '{config_name}'. "
            f"Valid options: {list(config_by_name.keys())}"
        )

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    # Refuse to run production with insecure defaults.
    if config_name == "production":
        config_class.validate_production_secrets(app.config)

    # -- Initialize extensions ---------------------------------------------
    _register_extensions(app)

    # -- Register blueprints -----------------------------------------------
    _register_blueprints(app)

    # -- Register error handlers -------------------------------------------
    _register_error_handlers(app)

    # -- Register custom CLI commands --------------------------------------
    _register_cli_commands(app)

    # -- Configure logging -------------------------------------------------
    _configure_logging(app)

    return app


def _register_extensions(app: Flask) -> None:
    """Bind all Flask extensions to the application instance."""
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Imported here so every model is registered on ``db.metadata``
    # before ``create_all`` or Alembic autogenerate runs.
    from . import models  # noqa: F401  pylint: disable=import-outside-toplevel
    from .models.user import User  # pylint: disable=import-outside-toplevel

    @login_manager.user_loader
    def load_user(user_id: str):
        """Load a user by primary key for Flask-Login session management."""
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        """API clients get a JSON 401 instead of a login redirect."""
        return {"message": login_manager.login_message}, 401


def _register_blueprints(app: Flask) -> None:
    """
    Import and register each blueprint with its URL prefix.

    Blueprints are imported inside this function to avoid circular
    imports — models and services can safely import ``db`` from
    extensions at module level.
    """
    # pylint: disable=import-outside-toplevel

    # Main blueprint: health check and dashboard stats.
    from .blueprints.main import bp as main_bp

    app.register_blueprint(main_bp)

    # Authentication: development login and the current user.
    from .blueprints.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    # Catalog: workspaces, asset types, fields and reference lists.
    from .blueprints.catalog import bp as catalog_bp

    app.register_blueprint(catalog_bp, url_prefix="/api")

    # Assets: instances and their history and relationships.
    from .blueprints.assets import bp as assets_bp

    app.register_blueprint(assets_bp, url_prefix="/api")

    # Reports: export and import.
    from .blueprints.reports import bp as reports_bp

    app.register_blueprint(reports_bp, url_prefix="/api")


def _register_error_handlers(app: Flask) -> None:
    """Render domain errors and HTTP errors as JSON bodies."""

    @app.errorhandler(AssetTrackError)
    def domain_error(error: AssetTrackError):
        """Map a service-layer error to its status code."""
        if error.status_code >= 500:
            db.session.rollback()
            logger.error("Integrity failure: %s", error.message)
        return error.to_dict(), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        """Handle 400/404/405 and the other werkzeug HTTP errors."""
        return {"message": error.description}, error.code

    @app.errorhandler(500)
    def internal_error(error):  # pylint: disable=unused-argument
        """Handle 500 Internal Server Error."""
        db.session.rollback()
        return {"message": "Internal server error."}, 500


def _register_cli_commands(app: Flask) -> None:
    """Register custom Flask CLI commands (e.g., flask db-check)."""
    from .cli import register_commands  # pylint: disable=import-outside-toplevel

    register_commands(app)


def _configure_logging(app: Flask) -> None:
    """
    Set the root log level from ``LOG_LEVEL``.

    Every module logs through ``logging.getLogger(__name__)``; this only
    decides what reaches the handlers.
    """
    log_level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

    # Quiet down noisy libraries in development.
    if app.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
