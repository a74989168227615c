"""
Pytest configuration and shared fixtures.

Provides a test application, database, and test client that all test
modules can use.  The ``testing`` configuration points at an in-memory
SQLite database; every test gets freshly created tables that are
dropped afterwards, so nothing leaks between tests.
"""

import pytest

from assettrack import create_app
from assettrack.extensions import db as _db
from assettrack.models.user import User
from assettrack.services import field_service, taxonomy_service


@pytest.fixture(scope="function")
def app():
    """
    Create a Flask application configured for testing.

    An application context stays pushed for the whole test so services
    can be called directly.
    """
    app = create_app("testing")

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="function")
def db_session(app):  # pylint: disable=redefined-outer-name
    """Provide the SQLAlchemy session bound to the test database."""
    yield _db.session


@pytest.fixture(scope="function")
def client(app):  # pylint: disable=redefined-outer-name
    """
    Provide a Flask test client for making HTTP requests.

    Usage in tests::

        def test_health(client):
            response = client.get("/health")
            assert response.status_code == 200
    """
    with app.test_client() as test_client:
        yield test_client


# -- Domain fixtures ---------------------------------------------------------


@pytest.fixture()
def workspace(db_session):
    """A workspace every other fixture is created in."""
    return taxonomy_service.create_workspace("Test Workspace")


@pytest.fixture()
def other_workspace(db_session):
    return taxonomy_service.create_workspace("Other Workspace")


@pytest.fixture()
def user(db_session, workspace):  # pylint: disable=redefined-outer-name
    """An active admin user recorded as the actor on audit entries."""
    user = User(
        email="tester@localhost",
        first_name="Test",
        last_name="User",
        role="admin",
        workspace_id=workspace.id,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def laptop_type(workspace):
    """
    A "Laptop" asset type with one field of every kind.

    Only "Serial Vendor" (Text) is required; "RAM (GB)" (Number) and
    "Condition" (Choice) are filterable.
    """
    asset_type = taxonomy_service.create_asset_type("Laptop", workspace_id=workspace.id)
    field_service.define_field(asset_type.id, "Serial Vendor", "Text", is_required=True)
    field_service.define_field(asset_type.id, "RAM (GB)", "Number", is_filterable=True)
    field_service.define_field(asset_type.id, "Warranty Ends", "Date")
    field_service.define_field(asset_type.id, "Encrypted", "Boolean")
    field_service.define_field(
        asset_type.id,
        "Condition",
        "Choice",
        is_filterable=True,
        options=["New", "Used", "Broken"],
    )
    return asset_type


@pytest.fixture()
def fields(laptop_type):
    """The laptop type's field definitions keyed by name."""
    return {field.field_name: field for field in field_service.get_fields(laptop_type.id)}


@pytest.fixture()
def statuses(workspace):
    """Two workspace statuses: "In Use" and "Retired"."""
    return {
        name: taxonomy_service.create_entry("statuses", name, workspace_id=workspace.id)
        for name in ("In Use", "Retired")
    }


@pytest.fixture()
def make_laptop(workspace, laptop_type, user):
    """
    Factory creating a laptop asset through ``asset_service``.

    Usage::

        asset = make_laptop("LT-001", **{"RAM (GB)": 16})
    """
    from assettrack.services import asset_service  # pylint: disable=import-outside-toplevel

    def _make(unique_identifier: str, name: str | None = None, fixed=None, **custom):
        custom.setdefault("Serial Vendor", "Lenovo")
        fixed_fields = {
            "workspace_id": workspace.id,
            "unique_identifier": unique_identifier,
            "name": name or f"Laptop {unique_identifier}",
        }
        fixed_fields.update(fixed or {})
        return asset_service.create_asset(
            laptop_type.id, fixed_fields, custom, user_id=user.id
        )

    return _make
