"""
Export service — generate CSV, JSON, and Excel files from asset listings.

All export functions return a BytesIO buffer ready to be sent as a
Flask response with the appropriate content type.

Every format shares one column layout: the fixed columns below,
followed by one column per distinct custom field name found on the
exported assets' types.  A custom field whose name equals a fixed
column is exported as "<name> (custom)".
"""

import csv
import io
import json
import logging
from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from assettrack.models.asset import Asset, AttributeValue
from assettrack.models.field import FieldDefinition

logger = logging.getLogger(__name__)

FIXED_COLUMNS = (
    "id",
    "unique_identifier",
    "name",
    "asset_type_name",
    "status_name",
    "location_name",
    "assignment_name",
    "manufacturer_name",
    "customer_name",
    "date_acquired",
    "cost",
    "notes",
    "is_archived",
    "created_at",
    "updated_at",
)

CUSTOM_SUFFIX = " (custom)"

# Excel header styling constants.
_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="2B579A", end_color="2B579A", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", wrap_text=True)
_CURRENCY_FORMAT = '#,##0.00'
_DATE_FORMAT = "yyyy-mm-dd"


@dataclass
class ExportTable:
    """
    Format-neutral export data.

    Attributes:
        custom_columns: Custom column headers in display order.
        rows:           One dict per asset with the fixed columns and a
                        ``custom_fields`` dict keyed by custom header.
    """

    custom_columns: list[str] = dataclass_field(default_factory=list)
    rows: list[dict[str, Any]] = dataclass_field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        return list(FIXED_COLUMNS) + self.custom_columns


def build_table(assets: list[Asset]) -> ExportTable:
    """
    Collect fixed and custom values for ``assets`` in their given order.

    Custom columns come from the field definitions of the assets' types
    (ordered by asset type, then field id), so every exported row has
    every column even when the asset holds no value for it.  Fields with
    the same name on different types share a column; a header already
    taken by a differently named field gets a numeric suffix
    ("name (custom) 2").
    """
    table = ExportTable()
    if not assets:
        return table

    type_ids = sorted({asset.asset_type_id for asset in assets})
    fields = (
        FieldDefinition.query.filter(FieldDefinition.asset_type_id.in_(type_ids))
        .order_by(FieldDefinition.asset_type_id, FieldDefinition.id)
        .all()
    )
    header_by_field: dict[int, str] = {}
    header_owners: dict[str, str] = {}
    for field in fields:
        header = _custom_header(field.field_name, header_owners)
        header_by_field[field.id] = header
        if header not in table.custom_columns:
            table.custom_columns.append(header)

    asset_ids = [asset.id for asset in assets]
    values: dict[int, dict[str, Any]] = {asset_id: {} for asset_id in asset_ids}
    for row in AttributeValue.query.filter(AttributeValue.asset_id.in_(asset_ids)).all():
        header = header_by_field[row.field_definition_id]
        values[row.asset_id][header] = row.typed_value.value

    for asset in assets:
        record = {
            "id": asset.id,
            "unique_identifier": asset.unique_identifier,
            "name": asset.name,
            "asset_type_name": asset.asset_type.name,
            "status_name": asset.status.name if asset.status else None,
            "location_name": asset.location.name if asset.location else None,
            "assignment_name": asset.assignment.name if asset.assignment else None,
            "manufacturer_name": asset.manufacturer.name if asset.manufacturer else None,
            "customer_name": asset.customer.name if asset.customer else None,
            "date_acquired": asset.date_acquired,
            "cost": asset.cost,
            "notes": asset.notes,
            "is_archived": asset.is_archived,
            "created_at": asset.created_at,
            "updated_at": asset.updated_at,
            "custom_fields": {
                header: values[asset.id].get(header) for header in table.custom_columns
            },
        }
        table.rows.append(record)
    return table


# =========================================================================
# CSV / JSON Exports
# =========================================================================


def export_assets_csv(assets: list[Asset]) -> io.BytesIO:
    """
    Export assets to CSV.

    Booleans are written as "true"/"false", whole numbers without a
    trailing ".0", and missing values as empty cells.
    """
    table = build_table(assets)
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(table.columns)
    for record in table.rows:
        writer.writerow(
            [_format_cell(record[column]) for column in FIXED_COLUMNS]
            + [_format_cell(record["custom_fields"][c]) for c in table.custom_columns]
        )

    buffer = io.BytesIO()
    buffer.write(output.getvalue().encode("utf-8-sig"))
    buffer.seek(0)

    logger.info("Exported %d asset(s) to CSV", len(table.rows))
    return buffer


def export_assets_json(assets: list[Asset]) -> io.BytesIO:
    """Export assets as a JSON array of objects with a ``custom_fields`` object."""
    table = build_table(assets)
    payload = [
        {
            **{column: _json_value(record[column]) for column in FIXED_COLUMNS},
            "custom_fields": {
                header: _json_value(value)
                for header, value in record["custom_fields"].items()
            },
        }
        for record in table.rows
    ]

    buffer = io.BytesIO()
    buffer.write(json.dumps(payload, indent=2).encode("utf-8"))
    buffer.seek(0)

    logger.info("Exported %d asset(s) to JSON", len(payload))
    return buffer


# =========================================================================
# Excel Export
# =========================================================================


def export_assets_excel(assets: list[Asset]) -> io.BytesIO:
    """
    Export assets to an Excel workbook with a styled header row.

    Returns:
        BytesIO buffer containing the .xlsx data.
    """
    table = build_table(assets)
    wb = Workbook()
    ws = wb.active
    ws.title = "Assets"

    headers = table.columns
    _write_header_row(ws, headers)

    for row_idx, record in enumerate(table.rows, start=2):
        cells = [record[column] for column in FIXED_COLUMNS] + [
            record["custom_fields"][header] for header in table.custom_columns
        ]
        for col_idx, value in enumerate(cells, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_excel_value(value))
            if isinstance(value, Decimal):
                cell.number_format = _CURRENCY_FORMAT
            elif isinstance(value, date) and not isinstance(value, datetime):
                cell.number_format = _DATE_FORMAT

    _auto_fit_columns(ws)

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    logger.info("Exported %d asset(s) to Excel", len(table.rows))
    return buffer


# =========================================================================
# Internal helpers
# =========================================================================


def _custom_header(field_name: str, owners: dict[str, str]) -> str:
    """Claim a column header for ``field_name`` in ``owners`` (header -> name)."""
    base = f"{field_name}{CUSTOM_SUFFIX}" if field_name in FIXED_COLUMNS else field_name
    header = base
    number = 2
    while owners.setdefault(header, field_name) != field_name:
        header = f"{base} {number}"
        number += 1
    return header


def _format_cell(value: Any) -> str:
    """Format one value for CSV output."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _excel_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _write_header_row(ws, headers: list[str]) -> None:
    """Write a styled header row to an Excel worksheet."""
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN


def _auto_fit_columns(ws) -> None:
    """Auto-fit column widths based on content (approximate)."""
    for col in ws.columns:
        max_length = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_length + 4, 40)
