"""
Routes for the reports blueprint — asset export and bulk import.

Exports honour the same filters as the asset listing and are capped at
``EXPORT_MAX_ROWS`` rows.
"""

from flask import current_app, make_response, request

from assettrack.blueprints.assets.routes import parse_asset_filter
from assettrack.blueprints.reports import bp
from assettrack.blueprints.request_utils import (
    acting_user_id,
    json_body,
    workspace_scope,
)
from assettrack.exceptions import ValidationError
from assettrack.services import export_service, import_service, query_service

_EXPORTERS = {
    "csv": (export_service.export_assets_csv, "text/csv; charset=utf-8"),
    "json": (export_service.export_assets_json, "application/json"),
    "xlsx": (
        export_service.export_assets_excel,
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ),
}


# =========================================================================
# Export endpoints
# =========================================================================


@bp.route("/export/assets")
def export_assets():
    """
    Export the filtered asset listing.

    Query Parameters:
        format (str): ``csv`` (default), ``json``, or ``xlsx``.
        Plus every filter accepted by ``GET /api/assets``.
    """
    fmt = request.args.get("format", "csv").lower()
    if fmt not in _EXPORTERS:
        raise ValidationError(
            f"Unsupported export format '{fmt}'.", field="format", value=fmt
        )

    assets = query_service.filter_assets(
        parse_asset_filter(), limit=current_app.config["EXPORT_MAX_ROWS"]
    )
    exporter, content_type = _EXPORTERS[fmt]
    buffer = exporter(assets)

    response = make_response(buffer.read())
    response.headers["Content-Type"] = content_type
    response.headers["Content-Disposition"] = f"attachment; filename=assets.{fmt}"
    return response


# =========================================================================
# Import endpoint
# =========================================================================


@bp.route("/import/assets", methods=["POST"])
def import_assets():
    """
    Best-effort bulk import.

    Accepts a multipart upload (``file`` field, .csv or .json, plus a
    ``workspace_id`` form field) or a JSON body
    ``{"workspace_id": 1, "assets": [...]}``.  Rows that fail are
    reported as ``"Row N: ..."`` lines and the rest are still created.
    """
    if request.files:
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("No file was uploaded.", field="file")
        rows = import_service.parse_upload(upload.filename, upload.read())
        body = dict(request.form)
    else:
        body = json_body()
        rows = body.get("assets")
        if not isinstance(rows, list):
            raise ValidationError("'assets' must be a list of objects.", field="assets")

    workspace_id = workspace_scope(body)
    if workspace_id is None:
        raise ValidationError("Workspace ID is required.", field="workspace_id")

    result = import_service.import_assets(
        rows, workspace_id, user_id=acting_user_id(body)
    )
    return result.to_dict()
