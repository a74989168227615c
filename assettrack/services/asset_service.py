"""
Asset service — lifecycle of asset instances.

Creates, edits, transitions, archives, and deletes assets.  Every
mutation writes its audit entry in the same transaction as the change
itself; on any failure the whole unit is rolled back.

Current-state pointers (status, location, assignment, customer) only
change through the ``set_*`` transition functions.  Setting the pointer
an asset already holds is a no-op and writes no audit entry.
"""

import logging
from dataclasses import dataclass, field as dataclass_field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from assettrack.exceptions import ConflictError, NotFoundError, ValidationError
from assettrack.extensions import db
from assettrack.models.asset import Asset, AttributeValue
from assettrack.models.audit import AssetLog, LogAction
from assettrack.services import (
    attribute_service,
    audit_service,
    field_service,
    taxonomy_service,
)
from assettrack.utils import (
    is_blank,
    parse_date,
    parse_decimal,
    parse_optional_id,
    utcnow,
)

logger = logging.getLogger(__name__)

# Plain columns callers may set on create and update.
EDITABLE_FIELDS = (
    "unique_identifier",
    "name",
    "manufacturer_id",
    "date_acquired",
    "cost",
    "notes",
)

# Pointer columns that may be supplied once, at creation.
INITIAL_POINTERS = {
    "current_status_id": "statuses",
    "current_location_id": "locations",
    "current_assignment_id": "assignments",
    "current_customer_id": "customers",
}


@dataclass
class AssetDetail:
    """An asset with its custom values and its full history."""

    asset: Asset
    attribute_values: list[AttributeValue] = dataclass_field(default_factory=list)
    logs: list[AssetLog] = dataclass_field(default_factory=list)

    def to_dict(self) -> dict:
        payload = self.asset.to_dict()
        payload["asset_type_name"] = self.asset.asset_type.name
        payload["custom_field_values"] = attribute_service.serialize_rows(
            self.attribute_values
        )
        payload["logs"] = [entry.to_dict() for entry in self.logs]
        return payload


# =========================================================================
# Reads
# =========================================================================


def get_asset_by_id(asset_id: int) -> Asset | None:
    return db.session.get(Asset, asset_id)


def require_asset(asset_id: int, workspace_id: int | None = None) -> Asset:
    """
    Return the asset or raise NotFoundError.

    When ``workspace_id`` is given, an asset owned by another workspace
    is reported as not found.
    """
    asset = get_asset_by_id(asset_id)
    if asset is None or (
        workspace_id is not None and asset.workspace_id != workspace_id
    ):
        raise NotFoundError(
            f"Asset ID {asset_id} not found.", field="asset_id", value=asset_id
        )
    return asset


def get_asset_detail(asset_id: int, workspace_id: int | None = None) -> AssetDetail:
    """Load an asset with its custom values and audit history."""
    asset = require_asset(asset_id, workspace_id)
    return AssetDetail(
        asset=asset,
        attribute_values=attribute_service.get_value_rows(asset_id),
        logs=audit_service.get_asset_logs(asset_id),
    )


# =========================================================================
# Create / update
# =========================================================================


def create_asset(
    asset_type_id: int,
    fixed_fields: Mapping[str, Any],
    custom_field_values: Any = None,
    user_id: int | None = None,
) -> Asset:
    """
    Create an asset with its custom values and a CREATE audit entry.

    Args:
        asset_type_id:       The asset's type; cannot change later.
        fixed_fields:        ``unique_identifier`` and ``name`` (required),
                             optional ``workspace_id``, ``manufacturer_id``,
                             ``date_acquired``, ``cost``, ``notes``, and
                             initial ``current_*_id`` pointers.
        custom_field_values: Raw custom values keyed by field id or name
                             (see ``attribute_service.resolve_inputs``).
        user_id:             ID of the acting user.

    Returns:
        The committed Asset.

    Raises:
        NotFoundError:   Unknown asset type, workspace, or pointer.
        ValidationError: Bad fixed field, bad custom value, or a missing
                         required custom field.
        ConflictError:   ``unique_identifier`` already used in the workspace.
    """
    asset_type = taxonomy_service.require_asset_type(asset_type_id)
    fixed = dict(fixed_fields or {})

    workspace_id = parse_optional_id(fixed.pop("workspace_id", None), "workspace_id")
    if workspace_id is not None:
        taxonomy_service.require_workspace(workspace_id)
    if asset_type.workspace_id is not None and asset_type.workspace_id != workspace_id:
        raise NotFoundError(
            f"Asset type ID {asset_type_id} not found.",
            field="asset_type_id",
            value=asset_type_id,
        )
    fixed.pop("asset_type_id", None)

    pointers = {
        column: fixed.pop(column) for column in list(fixed) if column in INITIAL_POINTERS
    }
    values = _clean_fixed_fields(fixed, workspace_id, asset_type_id, creating=True)
    _check_identifier_free(workspace_id, values["unique_identifier"])

    asset = Asset(workspace_id=workspace_id, asset_type_id=asset_type_id, **values)
    for column, raw in pointers.items():
        entry = _resolve_pointer(
            INITIAL_POINTERS[column], raw, workspace_id, asset_type_id
        )
        setattr(asset, column, entry.id if entry is not None else None)

    inputs = attribute_service.resolve_inputs(asset_type_id, custom_field_values)
    typed_by_field = {
        field.id: attribute_service.coerce(field, raw) for field, raw in inputs
    }
    attribute_service.check_required(asset_type_id, typed_by_field)

    try:
        db.session.add(asset)
        db.session.flush()
        for field, raw in inputs:
            attribute_service.write_value(asset, field, raw)
        audit_service.log_change(
            asset_id=asset.id,
            action=LogAction.CREATE,
            message=f"Asset '{asset.name}' created",
            user_id=user_id,
            unique_identifier=asset.unique_identifier,
            asset_type_id=asset_type_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Created asset %s (%s) of type ID %d",
        asset.unique_identifier,
        asset.name,
        asset_type_id,
    )
    return asset


def update_asset(
    asset_id: int,
    fixed_fields: Mapping[str, Any] | None = None,
    custom_field_values: Any = None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Asset:
    """
    Edit an asset's plain fields and custom values.

    One UPDATE entry records every changed field as ``{previous, new}``;
    nothing is written when no value actually changes.  Pointers are
    changed through the ``set_*`` functions, and the asset type and
    workspace are fixed at creation.

    Raises:
        NotFoundError:   Unknown asset or manufacturer.
        ValidationError: Bad input, or an attempt to change the asset
                         type, workspace, or a current-state pointer.
        ConflictError:   New ``unique_identifier`` already in use.
    """
    asset = require_asset(asset_id, workspace_id)
    fixed = dict(fixed_fields or {})

    if "asset_type_id" in fixed:
        requested = parse_optional_id(fixed.pop("asset_type_id"), "asset_type_id")
        if requested != asset.asset_type_id:
            raise ValidationError(
                "The asset type of an asset cannot be changed.",
                field="asset_type_id",
                value=requested,
            )
    if "workspace_id" in fixed:
        requested = parse_optional_id(fixed.pop("workspace_id"), "workspace_id")
        if requested != asset.workspace_id:
            raise ValidationError(
                "An asset cannot move between workspaces.",
                field="workspace_id",
                value=requested,
            )
    for column in INITIAL_POINTERS:
        if column in fixed:
            raise ValidationError(
                f"'{column}' is changed through its transition endpoint.",
                field=column,
            )

    values = _clean_fixed_fields(
        fixed, asset.workspace_id, asset.asset_type_id, creating=False
    )
    if (
        "unique_identifier" in values
        and values["unique_identifier"] != asset.unique_identifier
    ):
        _check_identifier_free(asset.workspace_id, values["unique_identifier"])

    changes: dict[str, dict[str, Any]] = {}
    for column, new in values.items():
        previous = getattr(asset, column)
        if previous != new:
            changes[column] = {"previous": _jsonable(previous), "new": _jsonable(new)}

    inputs = attribute_service.resolve_inputs(asset.asset_type_id, custom_field_values)
    current = {
        row.field_definition_id: row.typed_value
        for row in attribute_service.get_value_rows(asset_id)
    }
    custom_changes: dict[str, dict[str, Any]] = {}
    pending: list[tuple[Any, Any]] = []
    for field, raw in inputs:
        typed = attribute_service.coerce(field, raw)
        previous = current.get(field.id)
        if previous is None and typed.is_empty:
            continue
        if previous is not None and previous.value == typed.value:
            continue
        custom_changes[field.field_name] = {
            "previous": previous.to_json() if previous is not None else None,
            "new": typed.to_json(),
        }
        pending.append((field, raw))

    if not changes and not custom_changes:
        return asset

    try:
        for column in changes:
            setattr(asset, column, values[column])
        for field, raw in pending:
            attribute_service.write_value(asset, field, raw)
        asset.updated_at = utcnow()

        details: dict[str, Any] = {"changes": changes}
        if custom_changes:
            details["custom_fields"] = custom_changes
        changed_names = list(changes) + list(custom_changes)
        audit_service.log_change(
            asset_id=asset.id,
            action=LogAction.UPDATE,
            message=f"Asset updated: {', '.join(changed_names)}",
            user_id=user_id,
            **details,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Updated asset ID %d (%d change(s))", asset_id, len(changed_names))
    return asset


def set_custom_value(
    asset_id: int,
    field_id: int,
    raw: Any,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> AttributeValue:
    """
    Store one custom value and record an UPDATE entry for it.

    Writing the value a field already holds changes nothing and records
    nothing.

    Raises:
        NotFoundError:   Unknown asset, or a field that is not defined on
                         the asset's type.
        ValidationError: If coercion fails.
    """
    asset = require_asset(asset_id, workspace_id)
    field = field_service.get_field_by_id(field_id)
    if field is None or field.asset_type_id != asset.asset_type_id:
        raise NotFoundError(
            f"Field definition ID {field_id} not found on this asset type.",
            field="field_id",
            value=field_id,
        )

    try:
        row, previous = attribute_service.write_value(asset, field, raw)
        new = row.typed_value
        if (previous.value if previous is not None else None) == new.value:
            db.session.commit()
            return row

        asset.updated_at = utcnow()
        audit_service.log_change(
            asset_id=asset.id,
            action=LogAction.UPDATE,
            message=f"Custom field '{field.field_name}' updated",
            user_id=user_id,
            field=field.field_name,
            previous=previous.to_json() if previous is not None else None,
            new=new.to_json(),
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Set field '%s' on asset ID %d", field.field_name, asset_id)
    return row


# =========================================================================
# Transitions
# =========================================================================


def set_status(
    asset_id: int,
    status_id: int | None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Asset:
    """Move an asset to another status (or to none)."""
    return _transition(asset_id, "statuses", status_id, user_id, workspace_id)


def set_location(
    asset_id: int,
    location_id: int | None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Asset:
    """Move an asset to another location (or to none)."""
    return _transition(asset_id, "locations", location_id, user_id, workspace_id)


def set_assignment(
    asset_id: int,
    assignment_id: int | None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Asset:
    """Assign an asset (or clear its assignment)."""
    return _transition(asset_id, "assignments", assignment_id, user_id, workspace_id)


def set_customer(
    asset_id: int,
    customer_id: int | None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Asset:
    """Hand an asset to a customer (or take it back)."""
    return _transition(asset_id, "customers", customer_id, user_id, workspace_id)


def archive_asset(
    asset_id: int, user_id: int | None = None, workspace_id: int | None = None
) -> Asset:
    """
    Soft-delete an asset.

    Archived assets keep their values and relationships but drop out of
    default listings.  Archiving an archived asset does nothing.
    """
    asset = require_asset(asset_id, workspace_id)
    if asset.is_archived:
        return asset

    try:
        asset.is_archived = True
        asset.updated_at = utcnow()
        audit_service.log_change(
            asset_id=asset.id,
            action=LogAction.ARCHIVE,
            message=f"Asset '{asset.name}' archived",
            user_id=user_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Archived asset ID %d", asset_id)
    return asset


def delete_asset(
    asset_id: int, user_id: int | None = None, workspace_id: int | None = None
) -> None:
    """
    Hard-delete an asset with its values and relationships.

    The asset's own history gets a final DELETE entry, and the other
    endpoint of every removed relationship gets a RELATIONSHIP_DELETED
    entry.  Audit entries are kept.
    """
    asset = require_asset(asset_id, workspace_id)

    try:
        for edge in asset.outgoing_relationships:
            _log_edge_removed(edge.target_asset_id, asset, edge, user_id)
        for edge in asset.incoming_relationships:
            _log_edge_removed(edge.source_asset_id, asset, edge, user_id)

        audit_service.log_change(
            asset_id=asset.id,
            action=LogAction.DELETE,
            message=f"Asset '{asset.name}' deleted",
            user_id=user_id,
            unique_identifier=asset.unique_identifier,
            name=asset.name,
        )
        db.session.delete(asset)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Deleted asset ID %d", asset_id)


# -- Internal helpers -------------------------------------------------------


def _transition(
    asset_id: int,
    taxonomy: str,
    entry_id: Any,
    user_id: int | None,
    workspace_id: int | None = None,
) -> Asset:
    descriptor = taxonomy_service.get_descriptor(taxonomy)
    asset = require_asset(asset_id, workspace_id)
    entry = _resolve_pointer(taxonomy, entry_id, asset.workspace_id, asset.asset_type_id)
    new_id = entry.id if entry is not None else None
    previous_id = getattr(asset, descriptor.pointer_column)

    if previous_id == new_id:
        return asset

    previous_entry = (
        taxonomy_service.get_entry(taxonomy, previous_id)
        if previous_id is not None
        else None
    )
    previous_name = previous_entry.name if previous_entry is not None else "Unassigned"
    new_name = entry.name if entry is not None else "Unassigned"

    try:
        setattr(asset, descriptor.pointer_column, new_id)
        asset.updated_at = utcnow()
        audit_service.log_change(
            asset_id=asset.id,
            action=descriptor.log_action,
            message=f"{descriptor.label} changed from '{previous_name}' to '{new_name}'",
            user_id=user_id,
            field=descriptor.pointer_column,
            previous=previous_id,
            new=new_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Asset ID %d %s: %s -> %s",
        asset_id,
        descriptor.pointer_column,
        previous_id,
        new_id,
    )
    return asset


def _resolve_pointer(
    taxonomy: str,
    raw: Any,
    workspace_id: int | None,
    asset_type_id: int,
):
    """Return the visible taxonomy row for ``raw``, or None to clear."""
    descriptor = taxonomy_service.get_descriptor(taxonomy)
    entry_id = parse_optional_id(raw, descriptor.pointer_column)
    if entry_id is None:
        return None
    entry = taxonomy_service.get_entry(taxonomy, entry_id)
    if entry is None or not taxonomy_service.is_visible(
        entry, workspace_id, asset_type_id
    ):
        raise NotFoundError(
            f"{descriptor.label} ID {entry_id} not found.",
            field=descriptor.pointer_column,
            value=entry_id,
        )
    return entry


def _clean_fixed_fields(
    fixed: dict[str, Any],
    workspace_id: int | None,
    asset_type_id: int,
    creating: bool,
) -> dict[str, Any]:
    """Validate plain column input and convert it to storage types."""
    unknown = sorted(set(fixed) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(
            f"Assets do not accept: {', '.join(unknown)}.", field=unknown[0]
        )

    values: dict[str, Any] = {}
    for column in ("unique_identifier", "name"):
        if column in fixed or creating:
            raw = fixed.get(column)
            if is_blank(raw):
                raise ValidationError(f"'{column}' is required.", field=column)
            values[column] = str(raw).strip()

    if "manufacturer_id" in fixed:
        manufacturer = _resolve_pointer(
            "manufacturers", fixed["manufacturer_id"], workspace_id, asset_type_id
        )
        values["manufacturer_id"] = manufacturer.id if manufacturer else None
    if "date_acquired" in fixed:
        raw = fixed["date_acquired"]
        values["date_acquired"] = (
            None if is_blank(raw) else parse_date(raw, "date_acquired")
        )
    if "cost" in fixed:
        raw = fixed["cost"]
        values["cost"] = None if is_blank(raw) else parse_decimal(raw, "cost")
    if "notes" in fixed:
        raw = fixed["notes"]
        values["notes"] = None if is_blank(raw) else str(raw)
    return values


def _check_identifier_free(workspace_id: int | None, unique_identifier: str) -> None:
    query = Asset.query.filter(Asset.unique_identifier == unique_identifier)
    if workspace_id is None:
        query = query.filter(Asset.workspace_id.is_(None))
    else:
        query = query.filter(Asset.workspace_id == workspace_id)
    if query.first() is not None:
        raise ConflictError(
            f"An asset with identifier '{unique_identifier}' already exists.",
            field="unique_identifier",
            value=unique_identifier,
        )


def _log_edge_removed(other_asset_id: int, deleted: Asset, edge, user_id) -> None:
    audit_service.log_change(
        asset_id=other_asset_id,
        action=LogAction.RELATIONSHIP_DELETED,
        message=f"Relationship removed: asset '{deleted.name}' was deleted",
        user_id=user_id,
        relationship_id=edge.id,
        relationship_type=edge.relationship_type.value,
        other_asset_id=deleted.id,
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value
