"""
Request parsing helpers shared by the JSON blueprints.
"""

from typing import Any

from flask import request
from flask_login import current_user

from assettrack.exceptions import ValidationError
from assettrack.utils import parse_bool, parse_optional_id


def json_body() -> dict[str, Any]:
    """
    Return the request's JSON object body (empty dict if there is none).

    Raises:
        ValidationError: If the body is JSON but not an object.
    """
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object.", field="body")
    return body


def acting_user_id(body: dict[str, Any] | None = None) -> int | None:
    """
    The user recorded on audit entries.

    The logged-in user wins; otherwise the optional ``user_id`` from the
    body or query string is used.
    """
    if current_user.is_authenticated:
        return current_user.id
    raw = (body or {}).get("user_id", request.args.get("user_id"))
    return parse_optional_id(raw, "user_id")


def arg_id(name: str) -> int | None:
    """Optional integer id from the query string."""
    return parse_optional_id(request.args.get(name), name)


def arg_bool(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    return default if raw is None else parse_bool(raw)


def workspace_scope(body: dict[str, Any] | None = None) -> int | None:
    """
    Workspace the request operates in.

    Taken from the body or query string, falling back to the logged-in
    user's workspace.
    """
    raw = (body or {}).get("workspace_id", request.args.get("workspace_id"))
    workspace_id = parse_optional_id(raw, "workspace_id")
    if workspace_id is None and current_user.is_authenticated:
        return current_user.workspace_id
    return workspace_id
