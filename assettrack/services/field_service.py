"""
Field schema service — custom field definitions attached to asset types.

A field's ``kind`` decides which typed slot its values live in, so the
kind cannot change once any value references the field.  Deleting a
field deletes every stored value for it; confirming that with the user
is the caller's job.
"""

import logging
from typing import Any, Iterable, Mapping

from assettrack.exceptions import NotFoundError, ValidationError
from assettrack.extensions import db
from assettrack.models.asset import AttributeValue
from assettrack.models.field import FieldDefinition, FieldKind
from assettrack.services import taxonomy_service
from assettrack.utils import is_blank, parse_bool

logger = logging.getLogger(__name__)

_FLAG_NAMES = ("is_required", "is_filterable", "is_visible_on_card")


def get_fields(asset_type_id: int) -> list[FieldDefinition]:
    """Return the field definitions of an asset type in creation order."""
    return (
        FieldDefinition.query.filter(FieldDefinition.asset_type_id == asset_type_id)
        .order_by(FieldDefinition.id)
        .all()
    )


def get_field_by_id(field_id: int) -> FieldDefinition | None:
    return db.session.get(FieldDefinition, field_id)


def require_field(field_id: int, workspace_id: int | None = None) -> FieldDefinition:
    """
    Return the field definition or raise NotFoundError.

    When ``workspace_id`` is given, a field whose asset type belongs to
    another workspace is reported as not found.
    """
    field = get_field_by_id(field_id)
    if field is None or not taxonomy_service.in_scope(field.asset_type, workspace_id):
        raise NotFoundError(
            f"Field definition ID {field_id} not found.",
            field="field_id",
            value=field_id,
        )
    return field


def define_field(
    asset_type_id: int,
    field_name: str,
    kind: FieldKind | str,
    is_required: bool = False,
    is_filterable: bool = False,
    is_visible_on_card: bool = False,
    options: Iterable[str] | None = None,
) -> FieldDefinition:
    """
    Attach a new custom field to an asset type.

    Args:
        asset_type_id:      The owning asset type.
        field_name:         Display name, unique (case-sensitive) per type.
        kind:               Text, Number, Date, Boolean, or Choice.
        is_required:        Assets of this type must supply a value.
        is_filterable:      The field may be used in asset filters.
        is_visible_on_card: Shown on the asset card in the UI.
        options:            Allowed values; required for Choice and
                            ignored for every other kind.

    Returns:
        The newly created FieldDefinition.

    Raises:
        NotFoundError:   If the asset type does not exist.
        ValidationError: Blank or duplicate name, unknown kind, or a
                         Choice field without usable options.
    """
    asset_type = taxonomy_service.require_asset_type(asset_type_id)
    field_name = _clean_name(field_name)
    kind = _parse_kind(kind)
    _check_name_free(asset_type_id, field_name)

    field = FieldDefinition(
        asset_type=asset_type,
        field_name=field_name,
        kind=kind,
        is_required=parse_bool(is_required),
        is_filterable=parse_bool(is_filterable),
        is_visible_on_card=parse_bool(is_visible_on_card),
        options=_clean_options(options) if kind is FieldKind.CHOICE else None,
    )
    db.session.add(field)
    db.session.commit()

    logger.info(
        "Defined field '%s' (%s) on asset type ID %d",
        field_name,
        kind.value,
        asset_type_id,
    )
    return field


def update_field(
    field_id: int,
    changes: Mapping[str, Any] | None = None,
    workspace_id: int | None = None,
    **kwargs: Any,
) -> FieldDefinition:
    """
    Update a field's name, flags, options, or (while unused) kind.

    Accepted keys, given as ``changes`` or as keyword arguments:
    ``field_name``, ``kind``, ``is_required``, ``is_filterable``,
    ``is_visible_on_card``, ``options``.  Every key is validated before
    anything is assigned, so a rejected update leaves the field as it was.

    Raises:
        NotFoundError:   If the field does not exist (or belongs to an
                         asset type owned by another workspace).
        ValidationError: Unknown key, blank/duplicate name, a kind change
                         on a field that already has stored values, or a
                         Choice field left without options.
    """
    changes = {**(changes or {}), **kwargs}
    field = require_field(field_id, workspace_id)

    unknown = sorted(set(changes) - {"field_name", "kind", "options", *_FLAG_NAMES})
    if unknown:
        raise ValidationError(
            f"Field definitions do not accept: {', '.join(unknown)}.",
            field=unknown[0],
        )

    new_name = field.field_name
    if changes.get("field_name") is not None:
        new_name = _clean_name(changes["field_name"])
        if new_name != field.field_name:
            _check_name_free(field.asset_type_id, new_name)

    new_kind = field.kind
    if changes.get("kind") is not None:
        new_kind = _parse_kind(changes["kind"])
        if new_kind is not field.kind and count_values(field.id):
            raise ValidationError(
                f"The kind of field '{field.field_name}' cannot change "
                "once values have been stored for it.",
                field="kind",
                value=new_kind.value,
            )

    new_options = None
    if new_kind is FieldKind.CHOICE:
        if "options" in changes or not field.options:
            new_options = _clean_options(changes.get("options"))
        else:
            new_options = field.options

    flags = {
        flag: parse_bool(changes[flag])
        for flag in _FLAG_NAMES
        if changes.get(flag) is not None
    }

    try:
        field.field_name = new_name
        field.kind = new_kind
        field.options = new_options
        for flag, value in flags.items():
            setattr(field, flag, value)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Updated field definition ID %d", field_id)
    return field


def delete_field(field_id: int, workspace_id: int | None = None) -> int:
    """
    Delete a field definition and every value stored for it.

    Returns:
        The number of attribute values removed.
    """
    field = require_field(field_id, workspace_id)
    removed = count_values(field_id)

    db.session.delete(field)
    db.session.commit()

    logger.info(
        "Deleted field definition ID %d and %d stored value(s)", field_id, removed
    )
    return removed


def count_values(field_id: int) -> int:
    """Number of attribute value rows referencing a field."""
    return AttributeValue.query.filter(
        AttributeValue.field_definition_id == field_id
    ).count()


# -- Internal helpers -------------------------------------------------------


def _clean_name(field_name: Any) -> str:
    if is_blank(field_name):
        raise ValidationError("Field name is required.", field="field_name")
    return str(field_name).strip()


def _parse_kind(kind: Any) -> FieldKind:
    try:
        return FieldKind.parse(kind)
    except ValueError as exc:
        raise ValidationError(str(exc), field="kind", value=kind) from exc


def _check_name_free(asset_type_id: int, field_name: str) -> None:
    existing = FieldDefinition.query.filter(
        FieldDefinition.asset_type_id == asset_type_id,
        FieldDefinition.field_name == field_name,
    ).first()
    if existing is not None:
        raise ValidationError(
            f"A field named '{field_name}' already exists on this asset type.",
            field="field_name",
            value=field_name,
        )


def _clean_options(options: Iterable[str] | None) -> list[str]:
    """Validate a Choice option list; order is preserved."""
    if options is None or isinstance(options, str):
        cleaned = [] if options is None else [options]
    else:
        cleaned = list(options)

    if not cleaned:
        raise ValidationError(
            "Choice fields need at least one option.", field="options"
        )
    result: list[str] = []
    for option in cleaned:
        if is_blank(option):
            raise ValidationError("Choice options cannot be blank.", field="options")
        option = str(option).strip()
        if option in result:
            raise ValidationError(
                f"Choice option '{option}' is listed twice.",
                field="options",
                value=option,
            )
        result.append(option)
    return result
