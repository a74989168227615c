"""
Tests for asset_service — creation, edits, transitions, archive, delete.

Each mutation must land together with its audit entry; failures must
leave neither behind.
"""

from datetime import date
from decimal import Decimal

import pytest

from assettrack.exceptions import ConflictError, NotFoundError, ValidationError
from assettrack.models.asset import Asset, AttributeValue
from assettrack.models.audit import AssetLog, LogAction
from assettrack.models.relationship import Relationship
from assettrack.services import (
    asset_service,
    attribute_service,
    audit_service,
    field_service,
    relationship_service,
    taxonomy_service,
)


def _actions(asset_id):
    return [entry.action for entry in audit_service.get_asset_logs(asset_id)]


class TestCreateAsset:
    """Atomic creation with custom values and a CREATE entry."""

    def test_create_writes_values_and_one_create_entry(self, make_laptop, user):
        asset = make_laptop(
            "LT-001",
            fixed={"cost": "1299.5", "date_acquired": "2026-02-01"},
            **{"RAM (GB)": "16", "Condition": "New"},
        )

        assert asset.cost == Decimal("1299.50")
        assert asset.date_acquired == date(2026, 2, 1)
        values = asset_service.get_asset_detail(asset.id).attribute_values
        assert {row.field_definition.field_name for row in values} == {
            "Serial Vendor",
            "RAM (GB)",
            "Condition",
        }
        logs = audit_service.get_asset_logs(asset.id)
        assert [entry.action for entry in logs] == [LogAction.CREATE]
        assert logs[0].user_id == user.id

    def test_missing_required_field_creates_nothing(self, workspace, laptop_type):
        with pytest.raises(ValidationError) as excinfo:
            asset_service.create_asset(
                laptop_type.id,
                {"workspace_id": workspace.id, "unique_identifier": "X1", "name": "X"},
                {"RAM (GB)": 8},
            )
        assert excinfo.value.field == "Serial Vendor"
        assert Asset.query.count() == 0
        assert AssetLog.query.count() == 0

    def test_bad_custom_value_creates_nothing(self, make_laptop):
        with pytest.raises(ValidationError):
            make_laptop("LT-002", **{"RAM (GB)": "plenty"})
        assert Asset.query.count() == 0
        assert AttributeValue.query.count() == 0
        assert AssetLog.query.count() == 0

    def test_unknown_asset_type_raises_not_found(self, workspace):
        with pytest.raises(NotFoundError):
            asset_service.create_asset(
                4242,
                {"workspace_id": workspace.id, "unique_identifier": "X", "name": "X"},
            )

    def test_blank_name_is_rejected(self, make_laptop):
        with pytest.raises(ValidationError) as excinfo:
            make_laptop("LT-003", fixed={"name": "   "})
        assert excinfo.value.field == "name"

    def test_identifier_is_unique_per_workspace(self, make_laptop):
        make_laptop("LT-010")
        with pytest.raises(ConflictError):
            make_laptop("LT-010")

    def test_same_identifier_allowed_in_another_workspace(
        self, workspace, other_workspace
    ):
        monitor = taxonomy_service.create_asset_type("Monitor")
        for ws in (workspace, other_workspace):
            asset_service.create_asset(
                monitor.id,
                {"workspace_id": ws.id, "unique_identifier": "MON-1", "name": "Dell"},
            )
        assert Asset.query.filter_by(unique_identifier="MON-1").count() == 2

    def test_initial_pointer_from_other_workspace_is_not_found(
        self, make_laptop, other_workspace
    ):
        foreign = taxonomy_service.create_entry(
            "statuses", "Foreign", workspace_id=other_workspace.id
        )
        with pytest.raises(NotFoundError):
            make_laptop("LT-004", fixed={"current_status_id": foreign.id})
        assert Asset.query.count() == 0

    def test_required_date_field(self, workspace, laptop_type):
        field_service.define_field(
            laptop_type.id, "Warranty Expiry", "Date", is_required=True
        )
        fixed = {"workspace_id": workspace.id, "unique_identifier": "LT-005", "name": "X"}

        with pytest.raises(ValidationError) as excinfo:
            asset_service.create_asset(laptop_type.id, fixed, {"Serial Vendor": "HP"})
        assert excinfo.value.field == "Warranty Expiry"
        assert Asset.query.count() == 0

        asset = asset_service.create_asset(
            laptop_type.id,
            fixed,
            {"Serial Vendor": "HP", "Warranty Expiry": "2026-01-15"},
        )
        values = attribute_service.get_values(asset.id)
        assert values["Warranty Expiry"] == date(2026, 1, 15)

    @pytest.mark.parametrize("cost", ["1e30", "12345678901", "-1e10"])
    def test_cost_must_fit_the_money_column(self, make_laptop, cost):
        with pytest.raises(ValidationError) as excinfo:
            make_laptop("LT-006", fixed={"cost": cost})
        assert excinfo.value.field == "cost"
        assert Asset.query.count() == 0

    def test_largest_cost_is_accepted(self, make_laptop):
        asset = make_laptop("LT-007", fixed={"cost": "9999999999.99"})
        assert asset.cost == Decimal("9999999999.99")

    @pytest.mark.parametrize("custom", [["Lenovo"], "Lenovo", 7])
    def test_custom_values_must_be_objects(self, workspace, laptop_type, custom):
        with pytest.raises(ValidationError) as excinfo:
            asset_service.create_asset(
                laptop_type.id,
                {"workspace_id": workspace.id, "unique_identifier": "X", "name": "X"},
                custom,
            )
        assert excinfo.value.field == "custom_field_values"
        assert Asset.query.count() == 0

    def test_writes_in_another_workspace_are_not_found(
        self, make_laptop, other_workspace, statuses
    ):
        asset = make_laptop("LT-008")
        with pytest.raises(NotFoundError):
            asset_service.archive_asset(asset.id, workspace_id=other_workspace.id)
        with pytest.raises(NotFoundError):
            asset_service.set_status(
                asset.id, statuses["In Use"].id, workspace_id=other_workspace.id
            )
        with pytest.raises(NotFoundError):
            asset_service.delete_asset(asset.id, workspace_id=other_workspace.id)
        assert asset.is_archived is False
        assert _actions(asset.id) == [LogAction.CREATE]


class TestTransitions:
    """Pointer moves and their audit entries."""

    @pytest.fixture(autouse=True)
    def _setup(self, make_laptop, statuses, user):
        self.asset = make_laptop("LT-200")
        self.statuses = statuses
        self.user = user

    def test_set_status_records_previous_and_new(self):
        in_use = self.statuses["In Use"]
        retired = self.statuses["Retired"]
        asset_service.set_status(self.asset.id, in_use.id, user_id=self.user.id)
        asset_service.set_status(self.asset.id, retired.id, user_id=self.user.id)

        entries = [
            e for e in audit_service.get_asset_logs(self.asset.id)
            if e.action is LogAction.UPDATE_STATUS
        ]
        assert [(e.details["previous"], e.details["new"]) for e in entries] == [
            (None, in_use.id),
            (in_use.id, retired.id),
        ]
        assert db_asset(self.asset.id).current_status_id == retired.id

    def test_setting_same_status_is_a_no_op(self):
        in_use = self.statuses["In Use"]
        asset_service.set_status(self.asset.id, in_use.id)
        asset_service.set_status(self.asset.id, in_use.id)
        assert _actions(self.asset.id).count(LogAction.UPDATE_STATUS) == 1

    def test_clearing_status_with_none(self):
        asset_service.set_status(self.asset.id, self.statuses["In Use"].id)
        asset_service.set_status(self.asset.id, None)
        assert db_asset(self.asset.id).current_status_id is None
        assert _actions(self.asset.id).count(LogAction.UPDATE_STATUS) == 2

    def test_status_scoped_to_other_asset_type_is_not_found(self, workspace):
        phone = taxonomy_service.create_asset_type("Phone", workspace_id=workspace.id)
        phone_only = taxonomy_service.create_entry(
            "statuses", "Activated", workspace_id=workspace.id, asset_type_id=phone.id
        )
        with pytest.raises(NotFoundError):
            asset_service.set_status(self.asset.id, phone_only.id)

    def test_global_location_is_visible(self):
        warehouse = taxonomy_service.create_entry("locations", "Warehouse")
        asset = asset_service.set_location(self.asset.id, warehouse.id)
        assert asset.current_location_id == warehouse.id
        assert LogAction.UPDATE_LOCATION in _actions(self.asset.id)

    def test_assignment_and_customer_actions(self, workspace):
        desk = taxonomy_service.create_entry("assignments", "Front Desk")
        acme = taxonomy_service.create_entry(
            "customers", "Acme", workspace_id=workspace.id
        )
        asset_service.set_assignment(self.asset.id, desk.id)
        asset_service.set_customer(self.asset.id, acme.id)
        actions = _actions(self.asset.id)
        assert LogAction.ASSIGNED in actions
        assert LogAction.CUSTOMER_ASSIGNED in actions

    def test_missing_asset_raises_not_found(self):
        with pytest.raises(NotFoundError):
            asset_service.set_status(98765, self.statuses["In Use"].id)

    def test_deleting_status_clears_pointer_and_logs(self):
        in_use = self.statuses["In Use"]
        asset_service.set_status(self.asset.id, in_use.id)

        cleared = taxonomy_service.delete_entry("statuses", in_use.id)

        assert cleared == 1
        assert db_asset(self.asset.id).current_status_id is None
        last = audit_service.get_asset_logs(self.asset.id)[-1]
        assert last.action is LogAction.UPDATE_STATUS
        assert last.details["new"] is None


class TestUpdateAsset:
    """Plain field and custom value edits."""

    @pytest.fixture(autouse=True)
    def _setup(self, make_laptop, fields):
        self.asset = make_laptop("LT-300", **{"RAM (GB)": 8})
        self.fields = fields

    def test_update_records_changed_fields_only(self):
        asset_service.update_asset(
            self.asset.id,
            {"name": "Renamed", "notes": None},
            {"RAM (GB)": 16},
        )
        entry = audit_service.get_asset_logs(self.asset.id)[-1]
        assert entry.action is LogAction.UPDATE
        assert entry.details["changes"] == {
            "name": {"previous": "Laptop LT-300", "new": "Renamed"}
        }
        assert entry.details["custom_fields"] == {
            "RAM (GB)": {"previous": 8.0, "new": 16.0}
        }

    def test_unchanged_update_writes_nothing(self):
        asset_service.update_asset(
            self.asset.id, {"name": "Laptop LT-300"}, {"RAM (GB)": "8"}
        )
        assert _actions(self.asset.id) == [LogAction.CREATE]

    def test_asset_type_is_immutable(self, workspace):
        other = taxonomy_service.create_asset_type("Phone", workspace_id=workspace.id)
        with pytest.raises(ValidationError):
            asset_service.update_asset(self.asset.id, {"asset_type_id": other.id})

    def test_pointers_are_not_editable_here(self, statuses):
        with pytest.raises(ValidationError):
            asset_service.update_asset(
                self.asset.id, {"current_status_id": statuses["In Use"].id}
            )

    def test_set_custom_value_logs_previous_and_new(self, user):
        asset_service.set_custom_value(
            self.asset.id, self.fields["RAM (GB)"].id, "32", user_id=user.id
        )
        entry = audit_service.get_asset_logs(self.asset.id)[-1]
        assert entry.action is LogAction.UPDATE
        assert entry.details["field"] == "RAM (GB)"
        assert entry.details["previous"] == 8.0
        assert entry.details["new"] == 32.0

    def test_clearing_required_value_is_rejected(self):
        with pytest.raises(ValidationError):
            asset_service.set_custom_value(
                self.asset.id, self.fields["Serial Vendor"].id, ""
            )


class TestArchiveAndDelete:
    """Soft and hard deletion."""

    def test_archive_sets_flag_once(self, make_laptop):
        asset = make_laptop("LT-400")
        asset_service.archive_asset(asset.id)
        asset_service.archive_asset(asset.id)

        assert db_asset(asset.id).is_archived is True
        assert _actions(asset.id).count(LogAction.ARCHIVE) == 1

    def test_archive_keeps_values_and_relationships(self, make_laptop):
        dock = make_laptop("DOCK-1")
        asset = make_laptop("LT-401", **{"RAM (GB)": 8})
        relationship_service.connect(dock.id, asset.id, "accessory_to")

        asset_service.archive_asset(asset.id)

        detail = asset_service.get_asset_detail(asset.id)
        assert len(detail.attribute_values) == 2
        assert len(relationship_service.list_for(asset.id)) == 1

    def test_delete_keeps_history_and_notifies_related_asset(self, make_laptop):
        dock = make_laptop("DOCK-2")
        asset = make_laptop("LT-402")
        relationship_service.connect(dock.id, asset.id, "accessory_to")
        asset_id = asset.id

        asset_service.delete_asset(asset_id)

        assert asset_service.get_asset_by_id(asset_id) is None
        assert AttributeValue.query.filter_by(asset_id=asset_id).count() == 0
        assert Relationship.query.count() == 0
        assert _actions(asset_id)[-1] is LogAction.DELETE
        assert _actions(dock.id)[-1] is LogAction.RELATIONSHIP_DELETED

    def test_get_asset_detail_hides_other_workspace(self, make_laptop, other_workspace):
        asset = make_laptop("LT-403")
        with pytest.raises(NotFoundError):
            asset_service.get_asset_detail(asset.id, workspace_id=other_workspace.id)


def db_asset(asset_id):
    return asset_service.get_asset_by_id(asset_id)
