"""
Routes for the catalog blueprint — everything an administrator
configures before assets are tracked.

Workspaces, asset types and their custom field definitions, and the
five reference lists served through one generic ``/<taxonomy>`` route
set (statuses, locations, assignments, manufacturers, customers).
"""

from assettrack.blueprints.catalog import bp
from assettrack.blueprints.request_utils import (
    acting_user_id,
    arg_id,
    json_body,
    workspace_scope,
)
from assettrack.exceptions import ValidationError
from assettrack.services import field_service, taxonomy_service
from assettrack.utils import parse_optional_id


# =========================================================================
# Workspaces
# =========================================================================


@bp.route("/workspaces")
def list_workspaces():
    return [workspace.to_dict() for workspace in taxonomy_service.get_workspaces()]


@bp.route("/workspaces", methods=["POST"])
def create_workspace():
    body = json_body()
    workspace = taxonomy_service.create_workspace(body.get("name"))
    return workspace.to_dict(), 201


# =========================================================================
# Asset types
# =========================================================================


@bp.route("/asset-types")
def list_asset_types():
    """Asset types visible to the requested workspace."""
    return [
        asset_type.to_dict()
        for asset_type in taxonomy_service.get_asset_types(workspace_scope())
    ]


@bp.route("/asset-types", methods=["POST"])
def create_asset_type():
    body = json_body()
    asset_type = taxonomy_service.create_asset_type(
        name=body.get("name"),
        workspace_id=workspace_scope(body),
        description=body.get("description"),
        icon=body.get("icon"),
    )
    return asset_type.to_dict(), 201


@bp.route("/asset-types/<int:asset_type_id>")
def get_asset_type(asset_type_id: int):
    """An asset type with its field definitions."""
    asset_type = taxonomy_service.require_asset_type(asset_type_id, workspace_scope())
    payload = asset_type.to_dict()
    payload["fields"] = [
        field.to_dict() for field in field_service.get_fields(asset_type_id)
    ]
    return payload


@bp.route("/asset-types/<int:asset_type_id>", methods=["PUT"])
def update_asset_type(asset_type_id: int):
    body = json_body()
    asset_type = taxonomy_service.update_asset_type(
        asset_type_id,
        name=body.get("name"),
        description=body.get("description"),
        icon=body.get("icon"),
        workspace_id=workspace_scope(body),
    )
    return asset_type.to_dict()


@bp.route("/asset-types/<int:asset_type_id>", methods=["DELETE"])
def delete_asset_type(asset_type_id: int):
    body = json_body()
    taxonomy_service.delete_asset_type(
        asset_type_id,
        workspace_id=workspace_scope(body),
        user_id=acting_user_id(body),
    )
    return "", 204


# =========================================================================
# Field schema
# =========================================================================


@bp.route("/asset-types/<int:asset_type_id>/fields")
def list_fields(asset_type_id: int):
    taxonomy_service.require_asset_type(asset_type_id, workspace_scope())
    return [field.to_dict() for field in field_service.get_fields(asset_type_id)]


@bp.route("/asset-types/<int:asset_type_id>/fields", methods=["POST"])
def define_field(asset_type_id: int):
    """
    Attach a custom field to an asset type.

    Body: ``field_name``, ``kind``, optional ``is_required``,
    ``is_filterable``, ``is_visible_on_card``, ``options``.
    """
    body = json_body()
    if "kind" not in body and "field_type" in body:
        body["kind"] = body["field_type"]
    taxonomy_service.require_asset_type(asset_type_id, workspace_scope(body))
    field = field_service.define_field(
        asset_type_id,
        field_name=body.get("field_name"),
        kind=body.get("kind"),
        is_required=body.get("is_required", False),
        is_filterable=body.get("is_filterable", False),
        is_visible_on_card=body.get("is_visible_on_card", False),
        options=body.get("options"),
    )
    return field.to_dict(), 201


@bp.route("/fields/<int:field_id>", methods=["PUT"])
def update_field(field_id: int):
    body = json_body()
    changes = {
        key: value
        for key, value in body.items()
        if key not in ("workspace_id", "user_id")
    }
    field = field_service.update_field(
        field_id, changes, workspace_id=workspace_scope(body)
    )
    return field.to_dict()


@bp.route("/fields/<int:field_id>", methods=["DELETE"])
def delete_field(field_id: int):
    """Delete a field and all of its stored values."""
    removed = field_service.delete_field(
        field_id, workspace_id=workspace_scope(json_body())
    )
    return {"deleted_values": removed}


# =========================================================================
# Reference lists
# =========================================================================


@bp.route("/statuses/reorder", methods=["POST"])
def reorder_statuses():
    """Body: ``{"status_ids": [3, 1, 2]}`` in the new display order."""
    body = json_body()
    raw_ids = body.get("status_ids")
    if not isinstance(raw_ids, list):
        raise ValidationError("'status_ids' must be a list.", field="status_ids")
    ordered_ids = [parse_optional_id(raw, "status_ids") for raw in raw_ids]
    statuses = taxonomy_service.reorder_statuses(ordered_ids, workspace_scope(body))
    return [status.to_dict() for status in statuses]


@bp.route("/<taxonomy>")
def list_entries(taxonomy: str):
    """Rows of a reference list visible to the workspace (and asset type)."""
    entries = taxonomy_service.get_entries(
        taxonomy, workspace_scope(), arg_id("asset_type_id")
    )
    return [entry.to_dict() for entry in entries]


@bp.route("/<taxonomy>", methods=["POST"])
def create_entry(taxonomy: str):
    body = json_body()
    workspace_id = workspace_scope(body)
    attrs = {
        key: value
        for key, value in body.items()
        if key not in ("name", "workspace_id", "user_id")
    }
    entry = taxonomy_service.create_entry(
        taxonomy, body.get("name"), workspace_id=workspace_id, attrs=attrs
    )
    return entry.to_dict(), 201


@bp.route("/<taxonomy>/<int:entry_id>", methods=["PUT"])
def update_entry(taxonomy: str, entry_id: int):
    body = json_body()
    attrs = {
        key: value
        for key, value in body.items()
        if key not in ("workspace_id", "user_id")
    }
    entry = taxonomy_service.update_entry(
        taxonomy, entry_id, attrs, workspace_id=workspace_scope(body)
    )
    return entry.to_dict()


@bp.route("/<taxonomy>/<int:entry_id>", methods=["DELETE"])
def delete_entry(taxonomy: str, entry_id: int):
    """Delete a row; assets pointing at it go back to unassigned."""
    body = json_body()
    cleared = taxonomy_service.delete_entry(
        taxonomy,
        entry_id,
        user_id=acting_user_id(body),
        workspace_id=workspace_scope(body),
    )
    return {"cleared_assets": cleared}
