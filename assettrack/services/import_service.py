"""
Import service — best-effort bulk creation of assets from CSV or JSON.

Accepts the layout produced by ``export_service`` as well as the older
camelCase column names (``uniqueIdentifier``, ``assetTypeName``, ...).
Taxonomy names are resolved case-insensitively within the workspace.
Each row is created through ``asset_service.create_asset``; a row that
fails is reported as ``"Row N: <message>"`` and the rest continue.
"""

import csv
import io
import json
import logging
import re
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Iterable, Mapping

from assettrack.exceptions import AssetTrackError, ValidationError
from assettrack.services import asset_service, field_service, taxonomy_service
from assettrack.services.export_service import CUSTOM_SUFFIX, FIXED_COLUMNS
from assettrack.utils import is_blank

logger = logging.getLogger(__name__)

# Export header of a custom column renamed to stay unique, e.g. "name (custom) 2".
_NUMBERED_CUSTOM = re.compile(rf"^(.*{re.escape(CUSTOM_SUFFIX)}) \d+$")

# Alternate column spellings mapped to export column names.
COLUMN_ALIASES = {
    "uniqueIdentifier": "unique_identifier",
    "assetTypeId": "asset_type_id",
    "assetTypeName": "asset_type_name",
    "assetType": "asset_type_name",
    "statusId": "status_id",
    "statusName": "status_name",
    "status": "status_name",
    "locationId": "location_id",
    "locationName": "location_name",
    "location": "location_name",
    "assignmentId": "assignment_id",
    "assignmentName": "assignment_name",
    "assignment": "assignment_name",
    "manufacturerId": "manufacturer_id",
    "manufacturerName": "manufacturer_name",
    "manufacturer": "manufacturer_name",
    "customerId": "customer_id",
    "customerName": "customer_name",
    "customer": "customer_name",
    "dateAcquired": "date_acquired",
    "isArchived": "is_archived",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "customFields": "custom_fields",
}

# (taxonomy, id column, name column, asset column)
_REFERENCES = (
    ("statuses", "status_id", "status_name", "current_status_id"),
    ("locations", "location_id", "location_name", "current_location_id"),
    ("assignments", "assignment_id", "assignment_name", "current_assignment_id"),
    ("manufacturers", "manufacturer_id", "manufacturer_name", "manufacturer_id"),
    ("customers", "customer_id", "customer_name", "current_customer_id"),
)

# Export columns that describe stored state and are not re-imported.
_IGNORED_COLUMNS = frozenset({"id", "is_archived", "created_at", "updated_at"})

_KNOWN_COLUMNS = (
    set(FIXED_COLUMNS)
    | {"asset_type_id", "custom_fields"}
    | {ref[1] for ref in _REFERENCES}
)


@dataclass
class ImportResult:
    """Outcome of one import run."""

    imported: int = 0
    errors: list[str] = dataclass_field(default_factory=list)
    asset_ids: list[int] = dataclass_field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "message": (
                "Import successful" if self.imported else "Import completed with errors"
            ),
            "imported": self.imported,
            "errors": self.errors,
            "asset_ids": self.asset_ids,
        }


# =========================================================================
# Parsing
# =========================================================================


def parse_csv(content: str | bytes) -> list[dict[str, Any]]:
    """Read CSV text (header row first) into row dicts, skipping blank lines."""
    content = _decode(content)
    if content.startswith("\ufeff"):
        content = content[1:]
    reader = csv.DictReader(io.StringIO(content))
    return [
        {key.strip(): value for key, value in row.items() if key is not None}
        for row in reader
        if any(not is_blank(value) for value in row.values() if isinstance(value, str))
    ]


def parse_json(content: str | bytes) -> list[dict[str, Any]]:
    """
    Read a JSON array of objects.

    Raises:
        ValidationError: If the content is not valid JSON or not an
                         array of objects.
    """
    content = _decode(content)
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValidationError("Could not parse JSON file.", field="file") from exc
    return _require_row_list(data)


def parse_upload(filename: str, content: str | bytes) -> list[dict[str, Any]]:
    """Dispatch on the file extension (.csv or .json)."""
    lowered = (filename or "").lower()
    if lowered.endswith(".csv"):
        return parse_csv(content)
    if lowered.endswith(".json"):
        return parse_json(content)
    raise ValidationError(
        "Only CSV and JSON files are supported.", field="file", value=filename
    )


# =========================================================================
# Import
# =========================================================================


def import_assets(
    rows: Iterable[Mapping[str, Any]],
    workspace_id: int,
    user_id: int | None = None,
) -> ImportResult:
    """
    Create one asset per row, collecting per-row errors.

    Args:
        rows:         Row dicts from ``parse_csv`` / ``parse_json`` or a
                      JSON request body.
        workspace_id: Workspace the assets are created in; names resolve
                      within its view.
        user_id:      ID of the acting user.

    Returns:
        ImportResult with the count, the error lines, and the new ids.

    Raises:
        NotFoundError: If the workspace does not exist.
    """
    taxonomy_service.require_workspace(workspace_id)
    result = ImportResult()

    for index, raw_row in enumerate(rows, start=1):
        try:
            if not isinstance(raw_row, Mapping):
                raise ValidationError("Row must be an object.")
            asset_type_id, fixed, custom = _prepare_row(
                _normalize_keys(raw_row), workspace_id
            )
            asset = asset_service.create_asset(
                asset_type_id, fixed, custom, user_id=user_id
            )
        except AssetTrackError as exc:
            result.errors.append(f"Row {index}: {exc.message}")
            continue
        result.imported += 1
        result.asset_ids.append(asset.id)

    logger.info(
        "Imported %d asset(s) into workspace ID %d with %d error(s)",
        result.imported,
        workspace_id,
        len(result.errors),
    )
    return result


# -- Internal helpers -------------------------------------------------------


def _decode(content: str | bytes) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("File must be UTF-8 encoded.", field="file") from exc


def _require_row_list(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        raise ValidationError(
            "JSON import must contain an array of assets.", field="file"
        )
    return data


def _normalize_keys(row: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in row.items():
        key = str(key).strip()
        normalized[COLUMN_ALIASES.get(key, key)] = value
    return normalized


def _prepare_row(
    row: dict[str, Any],
    workspace_id: int,
) -> tuple[int, dict[str, Any], dict[str, Any]]:
    """Turn one normalized row into ``create_asset`` arguments."""
    for column in ("unique_identifier", "name"):
        if is_blank(row.get(column)):
            raise ValidationError(f"Missing required field '{column}'", field=column)

    asset_type = _resolve_asset_type(row, workspace_id)

    fixed: dict[str, Any] = {
        "workspace_id": workspace_id,
        "unique_identifier": row["unique_identifier"],
        "name": row["name"],
    }
    for column in ("date_acquired", "cost", "notes"):
        if not is_blank(row.get(column)):
            fixed[column] = row[column]

    for taxonomy, id_column, name_column, asset_column in _REFERENCES:
        if not is_blank(row.get(id_column)):
            fixed[asset_column] = row[id_column]
        elif not is_blank(row.get(name_column)):
            entry = taxonomy_service.resolve_by_name(
                taxonomy, str(row[name_column]), workspace_id, asset_type.id
            )
            fixed[asset_column] = entry.id

    custom = _collect_custom_values(row, asset_type.id)
    return asset_type.id, fixed, custom


def _resolve_asset_type(row: dict[str, Any], workspace_id: int):
    if not is_blank(row.get("asset_type_id")):
        raw = row["asset_type_id"]
        visible = {
            asset_type.id: asset_type
            for asset_type in taxonomy_service.get_asset_types(workspace_id)
        }
        try:
            asset_type = visible.get(int(raw))
        except (TypeError, ValueError):
            asset_type = None
        if asset_type is None:
            raise ValidationError(
                f"Asset type with ID {raw} not found",
                field="asset_type_id",
                value=raw,
            )
        return asset_type
    if not is_blank(row.get("asset_type_name")):
        return taxonomy_service.resolve_asset_type_by_name(
            str(row["asset_type_name"]), workspace_id
        )
    raise ValidationError(
        "Missing required field 'asset_type_id' or 'asset_type_name'",
        field="asset_type_id",
    )


def _collect_custom_values(row: dict[str, Any], asset_type_id: int) -> dict[str, Any]:
    """
    Gather custom values from a nested ``custom_fields`` object and from
    any extra columns.

    Blank cells are skipped, so columns that belong to other asset types
    in a mixed export are ignored.  A non-blank column that names no
    field of the row's type is an error.
    """
    field_names = {field.field_name for field in field_service.get_fields(asset_type_id)}

    candidates: dict[str, Any] = {}
    nested = row.get("custom_fields")
    if isinstance(nested, Mapping):
        candidates.update(nested)
    for column, value in row.items():
        if column in _KNOWN_COLUMNS or column in _IGNORED_COLUMNS:
            continue
        candidates[column] = value

    values: dict[str, Any] = {}
    for header, value in candidates.items():
        if is_blank(value):
            continue
        name = header
        numbered = _NUMBERED_CUSTOM.match(name)
        if name not in field_names and numbered:
            name = numbered.group(1)
        if name not in field_names and name.endswith(CUSTOM_SUFFIX):
            name = name[: -len(CUSTOM_SUFFIX)]
        if name not in field_names:
            raise ValidationError(
                f"Column '{header}' is not a field of this asset type",
                field=header,
                value=value,
            )
        values[name] = value
    return values
