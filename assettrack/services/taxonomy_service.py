"""
Taxonomy service — workspaces, asset types, and the reference lists
assets point to.

Statuses, locations, assignments, manufacturers, and customers share
one set of CRUD functions driven by the ``TAXONOMIES`` registry.
Scoping rules: a workspace sees its own rows plus global rows (NULL
``workspace_id``); statuses and locations may also be limited to one
asset type, in which case they are visible only to assets of that type.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import func, or_

from assettrack.exceptions import ConflictError, NotFoundError, ValidationError
from assettrack.extensions import db
from assettrack.models.asset import Asset
from assettrack.models.audit import LogAction
from assettrack.models.taxonomy import (
    Assignment,
    AssetType,
    Customer,
    Location,
    Manufacturer,
    Status,
    Workspace,
)
from assettrack.services import audit_service
from assettrack.utils import is_blank, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxonomyDescriptor:
    """
    Describes one reference list.

    Attributes:
        key:            Registry key and URL segment (e.g., "statuses").
        label:          Singular display name used in messages.
        model:          The SQLAlchemy model class.
        editable:       Attributes callers may set besides ``name``.
        pointer_column: ``Asset`` column that references this list.
        log_action:     Audit action for a change of that pointer.
        type_scoped:    True if rows may be limited to one asset type.
        workspace_required: True if rows cannot be global.
    """

    key: str
    label: str
    model: type
    editable: tuple[str, ...]
    pointer_column: str
    log_action: LogAction
    type_scoped: bool = False
    workspace_required: bool = False


TAXONOMIES: dict[str, TaxonomyDescriptor] = {
    "statuses": TaxonomyDescriptor(
        key="statuses",
        label="Status",
        model=Status,
        editable=("color", "asset_type_id"),
        pointer_column="current_status_id",
        log_action=LogAction.UPDATE_STATUS,
        type_scoped=True,
    ),
    "locations": TaxonomyDescriptor(
        key="locations",
        label="Location",
        model=Location,
        editable=("description", "asset_type_id"),
        pointer_column="current_location_id",
        log_action=LogAction.UPDATE_LOCATION,
        type_scoped=True,
    ),
    "assignments": TaxonomyDescriptor(
        key="assignments",
        label="Assignment",
        model=Assignment,
        editable=("details",),
        pointer_column="current_assignment_id",
        log_action=LogAction.ASSIGNED,
    ),
    "manufacturers": TaxonomyDescriptor(
        key="manufacturers",
        label="Manufacturer",
        model=Manufacturer,
        editable=("contact_info",),
        pointer_column="manufacturer_id",
        log_action=LogAction.UPDATE,
    ),
    "customers": TaxonomyDescriptor(
        key="customers",
        label="Customer",
        model=Customer,
        editable=("email", "phone", "address", "notes"),
        pointer_column="current_customer_id",
        log_action=LogAction.CUSTOMER_ASSIGNED,
        workspace_required=True,
    ),
}


def get_descriptor(taxonomy: str) -> TaxonomyDescriptor:
    """Return the registry entry for ``taxonomy`` or raise NotFoundError."""
    descriptor = TAXONOMIES.get(taxonomy)
    if descriptor is None:
        raise NotFoundError(f"Unknown taxonomy '{taxonomy}'.", field="taxonomy", value=taxonomy)
    return descriptor


# =========================================================================
# Workspaces
# =========================================================================


def get_workspaces() -> list[Workspace]:
    """Return all workspaces ordered by name."""
    return Workspace.query.order_by(Workspace.name, Workspace.id).all()


def get_workspace_by_id(workspace_id: int) -> Workspace | None:
    return db.session.get(Workspace, workspace_id)


def require_workspace(workspace_id: int) -> Workspace:
    """Return the workspace or raise NotFoundError."""
    workspace = get_workspace_by_id(workspace_id)
    if workspace is None:
        raise NotFoundError(
            f"Workspace ID {workspace_id} not found.",
            field="workspace_id",
            value=workspace_id,
        )
    return workspace


def create_workspace(name: str) -> Workspace:
    """Create a new workspace (tenant)."""
    name = _require_name(name, "Workspace")
    workspace = Workspace(name=name)
    db.session.add(workspace)
    db.session.commit()

    logger.info("Created workspace: %s", name)
    return workspace


# =========================================================================
# Asset Types
# =========================================================================


def get_asset_types(workspace_id: int | None = None) -> list[AssetType]:
    """
    Return asset types visible to a workspace, ordered by name.

    With no workspace, every asset type is returned.
    """
    query = AssetType.query.order_by(AssetType.name, AssetType.id)
    if workspace_id is not None:
        query = query.filter(
            or_(AssetType.workspace_id == workspace_id, AssetType.workspace_id.is_(None))
        )
    return query.all()


def get_asset_type_by_id(asset_type_id: int) -> AssetType | None:
    return db.session.get(AssetType, asset_type_id)


def require_asset_type(asset_type_id: int, workspace_id: int | None = None) -> AssetType:
    """
    Return the asset type or raise NotFoundError.

    When ``workspace_id`` is given, a type owned by another workspace is
    reported as not found.
    """
    asset_type = get_asset_type_by_id(asset_type_id)
    if asset_type is None or not in_scope(asset_type, workspace_id):
        raise NotFoundError(
            f"Asset type ID {asset_type_id} not found.",
            field="asset_type_id",
            value=asset_type_id,
        )
    return asset_type


def create_asset_type(
    name: str,
    workspace_id: int | None = None,
    description: str | None = None,
    icon: str | None = None,
) -> AssetType:
    """
    Create a new asset type.

    Args:
        name:         Display name (e.g., "Laptop").
        workspace_id: Owning workspace, or None for a global type.
        description:  Optional description.
        icon:         Optional icon tag; defaults to "dashboard".

    Raises:
        ValidationError: If the name is blank.
        NotFoundError:   If the workspace does not exist.
    """
    name = _require_name(name, "Asset type")
    if workspace_id is not None:
        require_workspace(workspace_id)

    asset_type = AssetType(
        name=name,
        workspace_id=workspace_id,
        description=description,
        icon=icon or "dashboard",
    )
    db.session.add(asset_type)
    db.session.commit()

    logger.info("Created asset type: %s", name)
    return asset_type


def update_asset_type(
    asset_type_id: int,
    name: str | None = None,
    description: str | None = None,
    icon: str | None = None,
    workspace_id: int | None = None,
) -> AssetType:
    """Update an asset type's display attributes."""
    asset_type = require_asset_type(asset_type_id, workspace_id)

    if name is not None:
        asset_type.name = _require_name(name, "Asset type")
    if description is not None:
        asset_type.description = description
    if icon is not None:
        asset_type.icon = icon or "dashboard"
    db.session.commit()

    logger.info("Updated asset type ID %d", asset_type_id)
    return asset_type


def delete_asset_type(
    asset_type_id: int,
    workspace_id: int | None = None,
    user_id: int | None = None,
) -> None:
    """
    Delete an asset type together with its field definitions and its
    type-scoped statuses and locations.

    Scoped statuses and locations are deleted the way ``delete_entry``
    deletes them, so any asset still pointing at one goes back to
    unassigned with an audit entry.

    Raises:
        NotFoundError: If the asset type does not exist.
        ConflictError: If any asset (archived or not) still uses it.
    """
    asset_type = require_asset_type(asset_type_id, workspace_id)

    asset_count = Asset.query.filter(Asset.asset_type_id == asset_type_id).count()
    if asset_count:
        raise ConflictError(
            f"Asset type '{asset_type.name}' still has {asset_count} asset(s); "
            "delete or move them first.",
            field="asset_type_id",
            value=asset_type_id,
        )

    cleared = 0
    try:
        for taxonomy in ("statuses", "locations"):
            descriptor = TAXONOMIES[taxonomy]
            scoped = descriptor.model.query.filter(
                descriptor.model.asset_type_id == asset_type_id
            ).all()
            for entry in scoped:
                cleared += _clear_pointers(descriptor, entry, user_id)
                db.session.delete(entry)
        db.session.flush()
        db.session.delete(asset_type)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Deleted asset type ID %d (cleared %d asset pointer(s))", asset_type_id, cleared
    )


# =========================================================================
# Reference lists (statuses, locations, assignments, manufacturers, customers)
# =========================================================================


def get_entries(
    taxonomy: str,
    workspace_id: int | None = None,
    asset_type_id: int | None = None,
) -> list:
    """
    Return the rows of a reference list visible to a workspace.

    Statuses are returned in ``sort_order``; every other list by name.
    """
    descriptor = get_descriptor(taxonomy)
    model = descriptor.model
    query = model.query

    if workspace_id is not None:
        query = query.filter(
            or_(model.workspace_id == workspace_id, model.workspace_id.is_(None))
        )
    if descriptor.type_scoped and asset_type_id is not None:
        query = query.filter(
            or_(model.asset_type_id == asset_type_id, model.asset_type_id.is_(None))
        )

    if model is Status:
        query = query.order_by(Status.sort_order, Status.id)
    else:
        query = query.order_by(model.name, model.id)
    return query.all()


def get_entry(taxonomy: str, entry_id: int):
    descriptor = get_descriptor(taxonomy)
    return db.session.get(descriptor.model, entry_id)


def require_entry(taxonomy: str, entry_id: int, workspace_id: int | None = None):
    """
    Return the row or raise NotFoundError naming the list.

    When ``workspace_id`` is given, a row owned by another workspace is
    reported as not found.
    """
    descriptor = get_descriptor(taxonomy)
    entry = db.session.get(descriptor.model, entry_id)
    if entry is None or not in_scope(entry, workspace_id):
        raise NotFoundError(
            f"{descriptor.label} ID {entry_id} not found.",
            field=descriptor.pointer_column,
            value=entry_id,
        )
    return entry


def in_scope(row, workspace_id: int | None) -> bool:
    """
    True if a workspace-owned row may be read or changed in ``workspace_id``.

    Global rows are in every scope, and no scope means every row.
    """
    return workspace_id is None or row.workspace_id in (None, workspace_id)


def is_visible(entry, workspace_id: int | None, asset_type_id: int | None) -> bool:
    """True if ``entry`` may be referenced by an asset in that scope."""
    if entry.workspace_id is not None and entry.workspace_id != workspace_id:
        return False
    entry_type_id = getattr(entry, "asset_type_id", None)
    return entry_type_id is None or entry_type_id == asset_type_id


def create_entry(
    taxonomy: str,
    name: str,
    workspace_id: int | None = None,
    attrs: Mapping[str, Any] | None = None,
    **kwargs: Any,
):
    """
    Create a row in a reference list.

    Args:
        taxonomy:     Registry key (e.g., "statuses").
        name:         Display name.
        workspace_id: Owning workspace, or None for a global row.
        attrs:        Values for the list's editable attributes; keyword
                      arguments are merged into it.

    Raises:
        ValidationError: Blank name, unknown attribute, or a missing
                         workspace on a list that requires one.
        NotFoundError:   Unknown workspace or asset type.
    """
    descriptor = get_descriptor(taxonomy)
    attrs = {**(attrs or {}), **kwargs}
    name = _require_name(name, descriptor.label)
    _check_attrs(descriptor, attrs)

    if workspace_id is None and descriptor.workspace_required:
        raise ValidationError(
            f"{descriptor.label} requires a workspace.", field="workspace_id"
        )
    if workspace_id is not None:
        require_workspace(workspace_id)
    if attrs.get("asset_type_id") is not None:
        require_asset_type(attrs["asset_type_id"], workspace_id)

    entry = descriptor.model(name=name, workspace_id=workspace_id, **attrs)
    if descriptor.model is Status:
        entry.sort_order = _next_status_position()
    db.session.add(entry)
    db.session.commit()

    logger.info("Created %s: %s", descriptor.label.lower(), name)
    return entry


def update_entry(
    taxonomy: str,
    entry_id: int,
    attrs: Mapping[str, Any] | None = None,
    workspace_id: int | None = None,
    **kwargs: Any,
):
    """
    Update ``name`` and/or editable attributes of a reference row.

    ``attrs`` and keyword arguments are merged.  ``workspace_id`` scopes
    the lookup; it is never changed.

    Raises:
        NotFoundError:   Unknown row, or one owned by another workspace.
        ValidationError: Blank name or unknown attribute.
        ConflictError:   Limiting the row to an asset type while assets
                         of another type still point at it.
    """
    descriptor = get_descriptor(taxonomy)
    entry = require_entry(taxonomy, entry_id, workspace_id)

    attrs = {**(attrs or {}), **kwargs}
    name = attrs.pop("name", None)
    _check_attrs(descriptor, attrs)
    if name is not None:
        name = _require_name(name, descriptor.label)
    new_type_id = attrs.get("asset_type_id")
    if new_type_id is not None:
        require_asset_type(new_type_id, entry.workspace_id)
        _check_no_other_type_assets(descriptor, entry, new_type_id)

    try:
        if name is not None:
            entry.name = name
        for key, value in attrs.items():
            setattr(entry, key, value)
        if hasattr(entry, "updated_at"):
            entry.updated_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Updated %s ID %d", descriptor.label.lower(), entry_id)
    return entry


def delete_entry(
    taxonomy: str,
    entry_id: int,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> int:
    """
    Delete a reference row and clear every asset pointer to it.

    Each affected asset gets one audit entry recording the pointer going
    back to unassigned.

    Returns:
        The number of assets whose pointer was cleared.
    """
    descriptor = get_descriptor(taxonomy)
    entry = require_entry(taxonomy, entry_id, workspace_id)

    try:
        cleared = _clear_pointers(descriptor, entry, user_id)
        db.session.delete(entry)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Deleted %s ID %d (cleared %d asset pointer(s))",
        descriptor.label.lower(),
        entry_id,
        cleared,
    )
    return cleared


def reorder_statuses(
    ordered_ids: list[int], workspace_id: int | None = None
) -> list[Status]:
    """
    Set the display order of statuses.

    ``ordered_ids[0]`` gets position 0, and so on.  Statuses not listed
    keep their current position.

    Raises:
        ValidationError: If the list repeats an id.
        NotFoundError:   If an id does not exist.
    """
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Status order contains duplicate ids.", field="status_ids")

    statuses = [
        require_entry("statuses", status_id, workspace_id) for status_id in ordered_ids
    ]
    for position, status in enumerate(statuses):
        status.sort_order = position
    db.session.commit()

    logger.info("Reordered %d status(es)", len(statuses))
    return statuses


def resolve_by_name(
    taxonomy: str,
    name: str,
    workspace_id: int | None,
    asset_type_id: int | None = None,
):
    """
    Case-insensitive lookup of a visible row by name (used by import).

    Workspace-owned rows win over global rows with the same name.

    Raises:
        NotFoundError: If no visible row has that name.
    """
    descriptor = get_descriptor(taxonomy)
    wanted = name.strip().lower()
    matches = [
        entry
        for entry in get_entries(taxonomy, workspace_id, asset_type_id)
        if entry.name.strip().lower() == wanted
    ]
    if not matches:
        raise NotFoundError(
            f"{descriptor.label} '{name}' not found.",
            field=descriptor.pointer_column,
            value=name,
        )
    matches.sort(key=lambda entry: entry.workspace_id is None)
    return matches[0]


def resolve_asset_type_by_name(name: str, workspace_id: int | None) -> AssetType:
    """Case-insensitive asset type lookup within a workspace's view."""
    wanted = name.strip().lower()
    matches = [
        asset_type
        for asset_type in get_asset_types(workspace_id)
        if asset_type.name.strip().lower() == wanted
    ]
    if not matches:
        raise NotFoundError(
            f"Asset type '{name}' not found.", field="asset_type_id", value=name
        )
    matches.sort(key=lambda asset_type: asset_type.workspace_id is None)
    return matches[0]


# -- Internal helpers -------------------------------------------------------


def _clear_pointers(descriptor: TaxonomyDescriptor, entry, user_id: int | None) -> int:
    """Point every asset referencing ``entry`` back to unassigned (no commit)."""
    column = getattr(Asset, descriptor.pointer_column)
    affected = Asset.query.filter(column == entry.id).all()
    now = utcnow()
    for asset in affected:
        setattr(asset, descriptor.pointer_column, None)
        asset.updated_at = now
        audit_service.log_change(
            asset_id=asset.id,
            action=descriptor.log_action,
            message=f"{descriptor.label} '{entry.name}' was deleted",
            user_id=user_id,
            field=descriptor.pointer_column,
            previous=entry.id,
            new=None,
        )
    return len(affected)


def _check_no_other_type_assets(
    descriptor: TaxonomyDescriptor, entry, asset_type_id: int
) -> None:
    column = getattr(Asset, descriptor.pointer_column)
    others = Asset.query.filter(
        column == entry.id, Asset.asset_type_id != asset_type_id
    ).count()
    if others:
        raise ConflictError(
            f"{descriptor.label} '{entry.name}' is used by {others} asset(s) "
            "of another type.",
            field="asset_type_id",
            value=asset_type_id,
        )


def _require_name(name: Any, label: str) -> str:
    if is_blank(name):
        raise ValidationError(f"{label} name is required.", field="name")
    return str(name).strip()


def _check_attrs(descriptor: TaxonomyDescriptor, attrs: dict[str, Any]) -> None:
    unknown = sorted(set(attrs) - set(descriptor.editable))
    if unknown:
        raise ValidationError(
            f"{descriptor.label} does not accept: {', '.join(unknown)}.",
            field=unknown[0],
        )


def _next_status_position() -> int:
    current = db.session.query(func.max(Status.sort_order)).scalar()
    return 0 if current is None else current + 1


# =========================================================================
# Workflow status templates
# =========================================================================

WORKFLOW_TEMPLATES: dict[str, tuple[tuple[str, str], ...]] = {
    "manufacturing": (
        ("Production", "#3B82F6"),
        ("QA Testing", "#8B5CF6"),
        ("Packaging", "#10B981"),
        ("Ready for Shipping", "#14B8A6"),
    ),
    "sales": (
        ("Demo", "#3B82F6"),
        ("Shipped to Customer", "#10B981"),
        ("RMA Requested", "#F59E0B"),
        ("RMA Approved", "#F97316"),
        ("Returned", "#EF4444"),
    ),
}


def seed_workflow_statuses(
    workflow: str,
    workspace_id: int,
    asset_type_id: int | None = None,
) -> list[Status]:
    """
    Create the statuses of a workflow template in a workspace.

    Statuses whose name already exists in the workspace's view are
    skipped, so running the seed twice creates nothing new.

    Returns:
        The statuses that were created, in template order.

    Raises:
        ValidationError: Unknown workflow name.
        NotFoundError:   Unknown workspace or asset type.
    """
    template = WORKFLOW_TEMPLATES.get(workflow)
    if template is None:
        raise ValidationError(
            f"Unknown workflow '{workflow}' "
            f"(choose from: {', '.join(WORKFLOW_TEMPLATES)}).",
            field="workflow",
            value=workflow,
        )
    require_workspace(workspace_id)

    existing = {
        status.name.strip().lower()
        for status in get_entries("statuses", workspace_id, asset_type_id)
    }
    created = []
    for name, color in template:
        if name.lower() in existing:
            continue
        created.append(
            create_entry(
                "statuses",
                name,
                workspace_id=workspace_id,
                color=color,
                asset_type_id=asset_type_id,
            )
        )
    return created
