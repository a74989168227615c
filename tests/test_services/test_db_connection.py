"""
Database connectivity, schema, and CLI command tests.

These tests confirm that:
  - The application can connect to its database.
  - Every model table is created.
  - The seeding and check commands behave as documented.

Run from your project root with::

    pytest tests/test_services/test_db_connection.py -v
"""

from sqlalchemy import inspect

from assettrack.extensions import db
from assettrack.models.taxonomy import Status
from assettrack.models.user import User


class TestDatabaseConnectivity:
    """Verify that the app can talk to the database."""

    def test_basic_connection(self, app):
        """
        Execute a simple SELECT 1 query to confirm the database
        is reachable and the connection string is correct.
        """
        row = db.session.execute(db.text("SELECT 1 AS connected")).fetchone()
        assert row is not None
        assert row[0] == 1


class TestSchemaExists:
    """Verify that every model table was created."""

    def test_expected_tables_exist(self, app):
        expected = {
            "workspace",
            "asset_type",
            "field_definition",
            "status",
            "location",
            "assignment",
            "manufacturer",
            "customer",
            "asset",
            "attribute_value",
            "relationship",
            "asset_log",
            "user",
        }
        found = set(inspect(db.engine).get_table_names())
        assert expected <= found


class TestCliCommands:
    """Custom ``flask`` commands."""

    def test_db_check_reports_ready(self, app):
        result = app.test_cli_runner().invoke(args=["db-check"])
        assert result.exit_code == 0
        assert "Database is ready" in result.output

    def test_seed_statuses_is_idempotent(self, app, workspace):
        workspace_id = workspace.id
        runner = app.test_cli_runner()
        args = [
            "seed-statuses",
            "--workflow",
            "manufacturing",
            "--workspace-id",
            str(workspace_id),
        ]

        first = runner.invoke(args=args)
        second = runner.invoke(args=args)

        assert first.exit_code == 0
        assert "Created 4 status(es)." in first.output
        assert "already exist" in second.output
        assert Status.query.filter_by(workspace_id=workspace_id).count() == 4

    def test_seed_statuses_unknown_workspace_fails(self, app):
        result = app.test_cli_runner().invoke(
            args=["seed-statuses", "--workflow", "sales", "--workspace-id", "99"]
        )
        assert result.exit_code != 0
        assert "Workspace ID 99 not found." in result.output

    def test_seed_dev_user_creates_then_reactivates(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=["seed-dev-user"])
        user = User.query.filter_by(email="dev.admin@localhost").one()
        user.is_active = False
        db.session.commit()

        result = runner.invoke(args=["seed-dev-user"])

        assert "reactivated" in result.output
        assert User.query.filter_by(email="dev.admin@localhost").one().is_active is True
