"""
Application configuration classes.

Each class represents a deployment environment. The factory function
``create_app`` in ``assettrack/__init__.py`` selects the appropriate
config based on the FLASK_ENV environment variable.

Database connection strings default to SQLite so the service runs
without external infrastructure; point ``DATABASE_URL`` at PostgreSQL
(or any SQLAlchemy dialect) for shared deployments.
"""

import logging
import os

# Module-level logger for startup warnings emitted by config classes.
_logger = logging.getLogger(__name__)

# Sentinel for detecting an unset SECRET_KEY in production.
_DEFAULT_SECRET_KEY = "dev-secret-change-me"


class BaseConfig:
    """
    Shared configuration values inherited by all environments.

    Secrets and connection strings are loaded from environment variables
    so they never appear in source control.
    """

    # -- Flask core --------------------------------------------------------
    SECRET_KEY: str = os.environ.get("SECRET_KEY", _DEFAULT_SECRET_KEY)

    # -- Session cookie hardening ------------------------------------------
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "Lax"
    SESSION_COOKIE_SECURE: bool = False
    PERMANENT_SESSION_LIFETIME: int = int(
        os.environ.get("PERMANENT_SESSION_LIFETIME", "3600")
    )

    # -- SQLAlchemy --------------------------------------------------------
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL", "sqlite:///assettrack-dev.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = False

    # -- JSON responses ----------------------------------------------------
    # Keep field order stable so exported and listed keys read naturally.
    JSON_SORT_KEYS: bool = False

    # -- Export ------------------------------------------------------------
    # Hard ceiling on rows written by a single export request.
    EXPORT_MAX_ROWS: int = int(os.environ.get("EXPORT_MAX_ROWS", "50000"))

    # -- Dev login guard ---------------------------------------------------
    # The ``/auth/dev-login`` route is disabled unless this is explicitly
    # set to "true" in the environment.
    DEV_LOGIN_ENABLED: bool = (
        os.environ.get("DEV_LOGIN_ENABLED", "false").lower() == "true"
    )

    # -- Logging -----------------------------------------------------------
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @classmethod
    def validate_production_secrets(cls, app_config: dict) -> None:
        """
        Verify that all required secrets are set for production.

        Called by ``create_app()`` when ``config_name == 'production'``.

        Raises:
            RuntimeError: If any critical secret is missing or still
                          set to its insecure default value.
        """
        errors: list[str] = []

        if app_config.get("SECRET_KEY") == _DEFAULT_SECRET_KEY:
            errors.append(
                "SECRET_KEY is still the insecure default. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_hex(32))"'
            )

        if app_config.get("DEV_LOGIN_ENABLED"):
            errors.append("DEV_LOGIN_ENABLED must be false in production.")

        if errors:
            combined = "\n  - ".join(errors)
            raise RuntimeError(f"Production configuration errors:\n  - {combined}")

        if app_config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite"):
            _logger.warning(
                "Production is running on SQLite. Set DATABASE_URL to a "
                "server database for concurrent writers."
            )

        if app_config.get("LOG_LEVEL", "").upper() == "DEBUG":
            _logger.warning(
                "LOG_LEVEL=DEBUG is not recommended in production. "
                "Consider INFO or WARNING."
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: verbose logging, dev login enabled."""

    DEBUG: bool = True
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")
    DEV_LOGIN_ENABLED: bool = (
        os.environ.get("DEV_LOGIN_ENABLED", "true").lower() == "true"
    )


class TestingConfig(BaseConfig):
    """
    Testing environment: in-memory SQLite database.

    Every test gets a fresh schema from the ``app`` fixture, so nothing
    persists between tests.
    """

    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = os.environ.get("TEST_DATABASE_URL", "sqlite://")
    LOG_LEVEL: str = "DEBUG"
    DEV_LOGIN_ENABLED: bool = True
    EXPORT_MAX_ROWS: int = 1000


class ProductionConfig(BaseConfig):
    """
    Production environment: strict settings, no debug output.

    The application factory calls ``validate_production_secrets()`` at
    startup and refuses to launch if critical values are missing.
    """

    DEBUG: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")
    SESSION_COOKIE_SECURE: bool = True
    DEV_LOGIN_ENABLED: bool = False


# Lookup dict used by the application factory.
config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
