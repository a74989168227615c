"""
Tests for export_service — CSV, JSON, and Excel output.
"""

import csv
import io
import json

import pytest
from openpyxl import load_workbook

from assettrack.services import (
    asset_service,
    export_service,
    field_service,
    taxonomy_service,
)
from assettrack.services.export_service import FIXED_COLUMNS


def _read_csv(buffer):
    raw = buffer.getvalue()
    assert raw.startswith(b"\xef\xbb\xbf")
    return list(csv.reader(io.StringIO(raw.decode("utf-8-sig"))))


class TestExports:

    @pytest.fixture(autouse=True)
    def _setup(self, make_laptop, statuses):
        self.full = make_laptop(
            "LT-1",
            name="Full",
            fixed={"cost": "1299.5", "date_acquired": "2026-02-01"},
            **{"RAM (GB)": "16", "Encrypted": "yes", "Condition": "New"},
        )
        self.bare = make_laptop("LT-2", name="Bare")
        asset_service.set_status(self.full.id, statuses["In Use"].id)
        self.assets = [self.full, self.bare]

    def test_csv_header_has_fixed_then_custom_columns(self):
        rows = _read_csv(export_service.export_assets_csv(self.assets))
        assert rows[0] == list(FIXED_COLUMNS) + [
            "Serial Vendor",
            "RAM (GB)",
            "Warranty Ends",
            "Encrypted",
            "Condition",
        ]
        assert len(rows) == 3

    def test_csv_cell_formatting(self):
        header, full, bare = _read_csv(export_service.export_assets_csv(self.assets))
        full_row = dict(zip(header, full))
        bare_row = dict(zip(header, bare))

        assert full_row["status_name"] == "In Use"
        assert full_row["cost"] == "1299.50"
        assert full_row["date_acquired"] == "2026-02-01"
        assert full_row["RAM (GB)"] == "16"
        assert full_row["Encrypted"] == "true"
        assert full_row["is_archived"] == "false"
        assert bare_row["RAM (GB)"] == ""
        assert bare_row["status_name"] == ""

    def test_colliding_custom_name_gets_suffix(self, workspace):
        kiosk = taxonomy_service.create_asset_type("Kiosk", workspace_id=workspace.id)
        field_service.define_field(kiosk.id, "notes", "Text")

        table = export_service.build_table(self.assets)
        other = export_service.build_table([])
        assert "notes (custom)" not in table.custom_columns
        assert other.columns == list(FIXED_COLUMNS)

        booth = asset_service.create_asset(
            kiosk.id,
            {"workspace_id": workspace.id, "unique_identifier": "K-1", "name": "Booth"},
            {"notes": "lobby"},
        )
        table = export_service.build_table([booth])
        assert table.custom_columns == ["notes (custom)"]
        assert table.rows[0]["custom_fields"] == {"notes (custom)": "lobby"}

    def test_each_colliding_field_gets_its_own_column(self, workspace):
        kiosk = taxonomy_service.create_asset_type("Kiosk", workspace_id=workspace.id)
        field_service.define_field(kiosk.id, "name (custom)", "Text")
        sign = taxonomy_service.create_asset_type("Sign", workspace_id=workspace.id)
        field_service.define_field(sign.id, "name", "Text")

        booth = asset_service.create_asset(
            kiosk.id,
            {"workspace_id": workspace.id, "unique_identifier": "K-1", "name": "Booth"},
            {"name (custom)": "literal"},
        )
        board = asset_service.create_asset(
            sign.id,
            {"workspace_id": workspace.id, "unique_identifier": "S-1", "name": "Board"},
            {"name": "Welcome"},
        )
        table = export_service.build_table([booth, board])

        assert table.custom_columns == ["name (custom)", "name (custom) 2"]
        assert table.rows[0]["custom_fields"] == {
            "name (custom)": "literal",
            "name (custom) 2": None,
        }
        assert table.rows[1]["custom_fields"] == {
            "name (custom)": None,
            "name (custom) 2": "Welcome",
        }

    def test_json_export_nests_custom_fields(self):
        payload = json.loads(export_service.export_assets_json(self.assets).getvalue())

        assert [item["unique_identifier"] for item in payload] == ["LT-1", "LT-2"]
        assert payload[0]["cost"] == "1299.50"
        assert payload[0]["custom_fields"]["RAM (GB)"] == 16.0
        assert payload[0]["custom_fields"]["Encrypted"] is True
        assert payload[1]["custom_fields"]["Condition"] is None

    def test_excel_export_is_readable(self):
        wb = load_workbook(export_service.export_assets_excel(self.assets))
        ws = wb["Assets"]

        header = [cell.value for cell in ws[1]]
        assert header[: len(FIXED_COLUMNS)] == list(FIXED_COLUMNS)
        assert ws.max_row == 3
        cost_col = header.index("cost") + 1
        assert ws.cell(row=2, column=cost_col).value == pytest.approx(1299.5)
        assert ws.cell(row=1, column=1).font.bold is True
