"""
Tests for import_service — parsing uploads and best-effort row import.
"""

import pytest

from assettrack.exceptions import NotFoundError, ValidationError
from assettrack.models.asset import Asset
from assettrack.models.audit import LogAction
from assettrack.services import (
    attribute_service,
    audit_service,
    export_service,
    field_service,
    import_service,
    taxonomy_service,
)


class TestParsing:

    def test_csv_with_bom_and_blank_lines(self):
        content = "\ufeffunique_identifier,name\nA-1,First\n,\nA-2,Second\n".encode()
        rows = import_service.parse_csv(content)
        assert rows == [
            {"unique_identifier": "A-1", "name": "First"},
            {"unique_identifier": "A-2", "name": "Second"},
        ]

    def test_json_must_be_an_array(self):
        with pytest.raises(ValidationError):
            import_service.parse_json('{"name": "x"}')

    def test_invalid_json_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            import_service.parse_json("[{")

    def test_upload_dispatches_on_extension(self):
        assert import_service.parse_upload("assets.JSON", "[]") == []
        with pytest.raises(ValidationError):
            import_service.parse_upload("assets.xlsx", b"")

    @pytest.mark.parametrize(
        "parse", [import_service.parse_csv, import_service.parse_json]
    )
    def test_non_utf8_bytes_are_a_validation_error(self, parse):
        with pytest.raises(ValidationError) as excinfo:
            parse(b"\xff\xfename\n\xffbad\n")
        assert excinfo.value.field == "file"


class TestImportAssets:

    @pytest.fixture(autouse=True)
    def _setup(self, workspace, laptop_type, statuses, user):
        self.workspace = workspace
        self.laptop_type = laptop_type
        self.statuses = statuses
        self.user = user

    def _import(self, rows):
        return import_service.import_assets(rows, self.workspace.id, user_id=self.user.id)

    def test_camel_case_row_with_names_is_imported(self):
        result = self._import(
            [
                {
                    "uniqueIdentifier": "IMP-1",
                    "name": "Imported",
                    "assetTypeName": "laptop",
                    "statusName": "in use",
                    "dateAcquired": "2025-12-24",
                    "customFields": {"Serial Vendor": "HP", "RAM (GB)": "32"},
                }
            ]
        )

        assert result.errors == []
        assert result.imported == 1
        asset = Asset.query.filter_by(unique_identifier="IMP-1").one()
        assert asset.current_status_id == self.statuses["In Use"].id
        assert attribute_service.get_values(asset.id)["RAM (GB)"] == 32.0
        logs = audit_service.get_asset_logs(asset.id)
        assert [e.action for e in logs] == [LogAction.CREATE]
        assert logs[0].user_id == self.user.id

    def test_bad_rows_are_reported_and_others_continue(self):
        rows = [
            {"unique_identifier": "OK-1", "name": "Good", "asset_type_id": self.laptop_type.id,
             "Serial Vendor": "Dell"},
            {"unique_identifier": "BAD-1", "asset_type_id": self.laptop_type.id},
            {"unique_identifier": "BAD-2", "name": "No status",
             "asset_type_name": "Laptop", "status_name": "Lost", "Serial Vendor": "Dell"},
            {"unique_identifier": "BAD-3", "name": "Orphan", "asset_type_id": 9999},
            {"unique_identifier": "BAD-4", "name": "Missing vendor",
             "asset_type_id": self.laptop_type.id},
        ]

        result = self._import(rows)

        assert result.imported == 1
        assert result.errors[0] == "Row 2: Missing required field 'name'"
        assert result.errors[1] == "Row 3: Status 'Lost' not found."
        assert result.errors[2] == "Row 4: Asset type with ID 9999 not found"
        assert result.errors[3].startswith("Row 5: ")
        assert result.to_dict()["message"] == "Import successful"
        assert Asset.query.count() == 1

    def test_nothing_imported_message(self):
        result = self._import([{"name": "No identifier"}])
        assert result.imported == 0
        assert result.to_dict()["message"] == "Import completed with errors"

    def test_unknown_custom_column_is_a_row_error(self):
        result = self._import(
            [
                {"unique_identifier": "X-1", "name": "X", "asset_type_name": "Laptop",
                 "Serial Vendor": "HP", "Battery": "good"},
            ]
        )
        assert result.imported == 0
        assert "Battery" in result.errors[0]

    def test_duplicate_identifier_is_a_row_error(self):
        row = {"unique_identifier": "DUP", "name": "D", "asset_type_name": "Laptop",
               "Serial Vendor": "HP"}
        result = self._import([row, dict(row)])
        assert result.imported == 1
        assert result.errors[0].startswith("Row 2: ")

    def test_exported_csv_imports_into_another_workspace(
        self, make_laptop, other_workspace
    ):
        make_laptop("CSV-1", **{"RAM (GB)": 8, "Encrypted": "no"})
        exported = export_service.export_assets_csv(Asset.query.all()).getvalue()
        target_type = taxonomy_service.create_asset_type(
            "Laptop", workspace_id=other_workspace.id
        )
        field_service.define_field(target_type.id, "Serial Vendor", "Text")
        field_service.define_field(target_type.id, "RAM (GB)", "Number")
        field_service.define_field(target_type.id, "Encrypted", "Boolean")

        rows = import_service.parse_csv(exported)
        result = import_service.import_assets(rows, other_workspace.id)

        assert result.errors == []
        values = attribute_service.get_values(result.asset_ids[0])
        assert values == {"Serial Vendor": "Lenovo", "RAM (GB)": 8.0, "Encrypted": False}

    def test_numbered_custom_column_maps_back_to_its_field(self):
        sign = taxonomy_service.create_asset_type("Sign", workspace_id=self.workspace.id)
        field_service.define_field(sign.id, "name", "Text")

        result = self._import(
            [
                {
                    "unique_identifier": "SIGN-1",
                    "name": "Lobby sign",
                    "asset_type_name": "Sign",
                    "name (custom)": "",
                    "name (custom) 2": "Welcome",
                }
            ]
        )

        assert result.errors == []
        assert attribute_service.get_values(result.asset_ids[0]) == {"name": "Welcome"}

    def test_unknown_workspace_is_not_found(self):
        with pytest.raises(NotFoundError):
            import_service.import_assets([], 31337)
