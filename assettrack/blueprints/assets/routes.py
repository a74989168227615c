"""
Routes for the assets blueprint — asset instances and their graph.

List/filter, create, read, update, and delete assets; move them between
statuses, locations, assignments, and customers; read their history and
custom values; and manage relationships between them.
"""

from flask import request

from assettrack.blueprints.assets import bp
from assettrack.blueprints.request_utils import (
    acting_user_id,
    arg_bool,
    arg_id,
    json_body,
    workspace_scope,
)
from assettrack.exceptions import ValidationError
from assettrack.services import (
    asset_service,
    attribute_service,
    audit_service,
    query_service,
    relationship_service,
)
from assettrack.utils import parse_optional_id

# URL segment -> (transition function, body key holding the new pointer)
_TRANSITIONS = {
    "status": (asset_service.set_status, "status_id"),
    "location": (asset_service.set_location, "location_id"),
    "assignment": (asset_service.set_assignment, "assignment_id"),
    "customer": (asset_service.set_customer, "customer_id"),
}

# Query-string prefix for custom field filters, e.g. ``cf_12=Lenovo``.
_CUSTOM_FILTER_PREFIX = "cf_"


def parse_asset_filter() -> query_service.AssetFilter:
    """Build an ``AssetFilter`` from the query string."""
    custom_fields = {}
    for key, value in request.args.items():
        if key.startswith(_CUSTOM_FILTER_PREFIX):
            field_id = key[len(_CUSTOM_FILTER_PREFIX):]
            if not field_id.isdigit():
                raise ValidationError(
                    f"Bad custom field filter '{key}'.", field=key, value=value
                )
            custom_fields[int(field_id)] = value

    return query_service.AssetFilter(
        workspace_id=workspace_scope(),
        asset_type_id=arg_id("asset_type_id"),
        status_id=arg_id("status_id"),
        location_id=arg_id("location_id"),
        assignment_id=arg_id("assignment_id"),
        customer_id=arg_id("customer_id"),
        manufacturer_id=arg_id("manufacturer_id"),
        search=request.args.get("search"),
        include_archived=arg_bool("include_archived"),
        custom_fields=custom_fields,
    )


# =========================================================================
# Assets
# =========================================================================


@bp.route("/assets")
def list_assets():
    """
    Filtered asset listing, most recently updated first.

    Query Parameters:
        workspace_id, asset_type_id, status_id, location_id,
        assignment_id, customer_id, manufacturer_id (int),
        search (str), include_archived (bool), cf_<field_id> (str).
    """
    assets = query_service.filter_assets(parse_asset_filter())
    return [asset.to_dict() for asset in assets]


@bp.route("/assets", methods=["POST"])
def create_asset():
    """
    Create an asset.

    Body: ``asset_type_id``, ``unique_identifier``, ``name``, optional
    plain fields and ``current_*_id`` pointers, and
    ``custom_field_values`` as a list of ``{field_id, value}`` or a
    mapping of field id/name to value.
    """
    body = json_body()
    user_id = acting_user_id(body)
    asset_type_id = parse_optional_id(body.get("asset_type_id"), "asset_type_id")
    if asset_type_id is None:
        raise ValidationError("'asset_type_id' is required.", field="asset_type_id")

    fixed = {
        key: value
        for key, value in body.items()
        if key not in ("asset_type_id", "custom_field_values", "user_id")
    }
    fixed["workspace_id"] = workspace_scope(body)
    asset = asset_service.create_asset(
        asset_type_id,
        fixed,
        body.get("custom_field_values"),
        user_id=user_id,
    )
    return asset_service.get_asset_detail(asset.id).to_dict(), 201


@bp.route("/assets/<int:asset_id>")
def get_asset(asset_id: int):
    """An asset with its custom values and history."""
    return asset_service.get_asset_detail(asset_id, workspace_scope()).to_dict()


@bp.route("/assets/<int:asset_id>", methods=["PUT"])
def update_asset(asset_id: int):
    body = json_body()
    fixed = {
        key: value
        for key, value in body.items()
        if key not in ("custom_field_values", "user_id")
    }
    workspace_id = workspace_scope(body)
    asset_service.update_asset(
        asset_id,
        fixed,
        body.get("custom_field_values"),
        user_id=acting_user_id(body),
        workspace_id=workspace_id,
    )
    return asset_service.get_asset_detail(asset_id, workspace_id).to_dict()


@bp.route("/assets/<int:asset_id>", methods=["DELETE"])
def delete_asset(asset_id: int):
    """Hard delete; history entries are kept."""
    body = json_body()
    asset_service.delete_asset(
        asset_id, user_id=acting_user_id(body), workspace_id=workspace_scope(body)
    )
    return "", 204


@bp.route("/assets/<int:asset_id>/<transition>", methods=["PATCH"])
def transition_asset(asset_id: int, transition: str):
    """
    Move an asset's current status, location, assignment, or customer.

    Body: ``{"status_id": 4}`` (or ``location_id``, ...); ``null``
    clears the pointer.
    """
    body = json_body()
    user_id = acting_user_id(body)
    workspace_id = workspace_scope(body)

    if transition == "archive":
        return asset_service.archive_asset(
            asset_id, user_id=user_id, workspace_id=workspace_id
        ).to_dict()

    if transition not in _TRANSITIONS:
        return {"message": f"Unknown transition '{transition}'."}, 404
    setter, key = _TRANSITIONS[transition]
    if key not in body:
        raise ValidationError(f"'{key}' is required.", field=key)
    return setter(
        asset_id, body[key], user_id=user_id, workspace_id=workspace_id
    ).to_dict()


@bp.route("/assets/<int:asset_id>/logs")
def asset_logs(asset_id: int):
    """History of one asset, oldest first (``?newest_first=true`` to flip)."""
    asset_service.require_asset(asset_id, workspace_scope())
    logs = audit_service.get_asset_logs(
        asset_id, newest_first=arg_bool("newest_first")
    )
    return [entry.to_dict() for entry in logs]


@bp.route("/assets/<int:asset_id>/custom-field-values")
def asset_custom_values(asset_id: int):
    asset_service.require_asset(asset_id, workspace_scope())
    return attribute_service.serialize_rows(attribute_service.get_value_rows(asset_id))


@bp.route("/assets/<int:asset_id>/custom-field-values/<int:field_id>", methods=["PUT"])
def set_custom_value(asset_id: int, field_id: int):
    """Body: ``{"value": ...}``; null or blank clears the value."""
    body = json_body()
    row = asset_service.set_custom_value(
        asset_id,
        field_id,
        body.get("value"),
        user_id=acting_user_id(body),
        workspace_id=workspace_scope(body),
    )
    return attribute_service.serialize_rows([row])[0]


# =========================================================================
# Relationships
# =========================================================================


@bp.route("/assets/<int:asset_id>/relationships")
def asset_relationships(asset_id: int):
    """Edges touching an asset (``?include_reverse=false`` for outgoing only)."""
    views = relationship_service.list_for(
        asset_id,
        include_reverse=arg_bool("include_reverse", default=True),
        workspace_id=workspace_scope(),
    )
    return [view.to_dict() for view in views]


@bp.route("/relationships", methods=["POST"])
def create_relationship():
    """Body: ``source_asset_id``, ``target_asset_id``, ``relationship_type``, ``notes``."""
    body = json_body()
    for key in ("source_asset_id", "target_asset_id", "relationship_type"):
        if body.get(key) is None:
            raise ValidationError(f"'{key}' is required.", field=key)
    edge = relationship_service.connect(
        parse_optional_id(body["source_asset_id"], "source_asset_id"),
        parse_optional_id(body["target_asset_id"], "target_asset_id"),
        body["relationship_type"],
        notes=body.get("notes"),
        user_id=acting_user_id(body),
        workspace_id=workspace_scope(body),
    )
    return edge.to_dict(), 201


@bp.route("/relationships/<int:edge_id>", methods=["PUT"])
def update_relationship(edge_id: int):
    body = json_body()
    edge = relationship_service.update_relationship(
        edge_id,
        relationship_type=body.get("relationship_type"),
        notes=body.get("notes"),
        user_id=acting_user_id(body),
        workspace_id=workspace_scope(body),
    )
    return edge.to_dict()


@bp.route("/relationships/<int:edge_id>", methods=["DELETE"])
def delete_relationship(edge_id: int):
    body = json_body()
    relationship_service.disconnect(
        edge_id, user_id=acting_user_id(body), workspace_id=workspace_scope(body)
    )
    return "", 204
