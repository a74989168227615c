"""
Attribute value service — typed storage of custom field values.

Raw input (form strings, JSON scalars, CSV cells) is coerced into a
``TypedValue`` according to the field's kind, then written into the one
matching slot of the (asset, field) ``AttributeValue`` row.  Reads go
the other way and return plain Python values keyed by field name.

Coercion rules by kind:
  - Text:    any scalar, stored as ``str``.
  - Number:  ``float``; non-numeric, non-finite, or boolean input fails.
  - Date:    ``datetime.date``; unparseable strings fail.
  - Boolean: any truthy/falsy input; never fails.
  - Choice:  must equal one of the field's options exactly.

``None`` or a blank string clears the value, which fails for required
fields.
"""

import logging
from typing import Any, Callable, Iterable, Mapping

from assettrack.exceptions import NotFoundError, ValidationError
from assettrack.extensions import db
from assettrack.models.asset import Asset, AttributeValue
from assettrack.models.field import FieldDefinition, FieldKind, TypedValue
from assettrack.services import field_service
from assettrack.utils import is_blank, parse_bool, parse_date, parse_number

logger = logging.getLogger(__name__)


# =========================================================================
# Coercion
# =========================================================================


def _coerce_text(field: FieldDefinition, raw: Any) -> str:
    if isinstance(raw, (dict, list)):
        raise ValidationError(
            f"'{field.field_name}' must be text.", field=field.field_name, value=str(raw)
        )
    return str(raw)


def _coerce_number(field: FieldDefinition, raw: Any) -> float:
    return parse_number(raw, field.field_name)


def _coerce_date(field: FieldDefinition, raw: Any):
    return parse_date(raw, field.field_name)


def _coerce_boolean(field: FieldDefinition, raw: Any) -> bool:
    return parse_bool(raw)


def _coerce_choice(field: FieldDefinition, raw: Any) -> str:
    options = field.options or []
    if not isinstance(raw, str) or raw not in options:
        raise ValidationError(
            f"'{raw}' is not an allowed option for '{field.field_name}' "
            f"(allowed: {', '.join(options)}).",
            field=field.field_name,
            value=raw,
        )
    return raw


_COERCERS: dict[FieldKind, Callable[[FieldDefinition, Any], Any]] = {
    FieldKind.TEXT: _coerce_text,
    FieldKind.NUMBER: _coerce_number,
    FieldKind.DATE: _coerce_date,
    FieldKind.BOOLEAN: _coerce_boolean,
    FieldKind.CHOICE: _coerce_choice,
}


def coerce(field: FieldDefinition, raw: Any) -> TypedValue:
    """
    Convert raw input into a ``TypedValue`` for ``field``.

    Raises:
        ValidationError: If the input does not fit the field's kind, or
                         if it is empty and the field is required.
    """
    if is_blank(raw):
        if field.is_required:
            raise ValidationError(
                f"'{field.field_name}' is required.", field=field.field_name
            )
        return TypedValue(kind=field.kind, value=None)
    return TypedValue(kind=field.kind, value=_COERCERS[field.kind](field, raw))


# =========================================================================
# Writes
# =========================================================================


def write_value(
    asset: Asset,
    field: FieldDefinition,
    raw: Any,
) -> tuple[AttributeValue, TypedValue | None]:
    """
    Coerce ``raw`` and store it on ``asset`` (no commit).

    Creates the (asset, field) row on first write and updates it in
    place afterwards.

    Returns:
        The row and the value it held before, or None if it was new.

    Raises:
        ValidationError: If coercion fails.
        IntegrityError:  If ``field`` belongs to another asset type.
    """
    typed = coerce(field, raw)

    row = AttributeValue.query.filter(
        AttributeValue.asset_id == asset.id,
        AttributeValue.field_definition_id == field.id,
    ).first()
    previous = row.typed_value if row is not None else None

    if row is None:
        row = AttributeValue(asset=asset, field_definition=field)
        row.store(typed)
        db.session.add(row)
    else:
        row.store(typed)
    db.session.flush()
    return row, previous


def upsert_value(asset_id: int, field_id: int, raw: Any) -> AttributeValue:
    """
    Store one custom field value and commit.

    This is the unaudited store operation; user-facing edits go through
    ``asset_service.set_custom_value`` which also writes the audit entry.

    Raises:
        NotFoundError:   Unknown asset or field.
        ValidationError: If coercion fails.
        IntegrityError:  If the field belongs to another asset type.
    """
    asset = _require_asset(asset_id)
    field = field_service.require_field(field_id)
    try:
        row, _previous = write_value(asset, field, raw)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Stored value for field ID %d on asset ID %d", field_id, asset_id)
    return row


# =========================================================================
# Reads
# =========================================================================


def get_value_rows(asset_id: int) -> list[AttributeValue]:
    """Return the stored rows for an asset ordered by field id."""
    return (
        AttributeValue.query.join(FieldDefinition)
        .filter(AttributeValue.asset_id == asset_id)
        .order_by(FieldDefinition.id)
        .all()
    )


def get_values(asset_id: int) -> dict[str, Any]:
    """
    Return ``{field_name: python_value}`` for every stored value.

    Values are ``str``, ``float``, ``datetime.date``, ``bool``, or
    ``None`` according to each field's kind.
    """
    return {
        row.field_definition.field_name: row.typed_value.value
        for row in get_value_rows(asset_id)
    }


def serialize_rows(rows: Iterable[AttributeValue]) -> list[dict[str, Any]]:
    """JSON-friendly view of value rows for API responses."""
    return [
        {
            "field_id": row.field_definition_id,
            "field_name": row.field_definition.field_name,
            "kind": row.field_definition.kind.value,
            "value": row.typed_value.to_json(),
        }
        for row in rows
    ]


# =========================================================================
# Schema-aware helpers used by asset creation and import
# =========================================================================


def resolve_inputs(
    asset_type_id: int,
    entries: Iterable[Mapping[str, Any]] | Mapping[Any, Any] | None,
) -> list[tuple[FieldDefinition, Any]]:
    """
    Match raw custom field input to the asset type's definitions.

    ``entries`` is either a list of ``{"field_id" | "field_name", "value"}``
    dicts or a mapping keyed by field id or field name.

    Raises:
        ValidationError: Unknown field, a field supplied twice, or input
                         that is neither a mapping nor a list of objects.
    """
    if not entries:
        return []
    if not isinstance(entries, Mapping) and (
        isinstance(entries, (str, bytes)) or not isinstance(entries, Iterable)
    ):
        raise ValidationError(
            "'custom_field_values' must be a list or an object.",
            field="custom_field_values",
            value=entries,
        )

    fields = field_service.get_fields(asset_type_id)
    by_id = {field.id: field for field in fields}
    by_name = {field.field_name: field for field in fields}

    if isinstance(entries, Mapping):
        pairs = list(entries.items())
    else:
        pairs = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                raise ValidationError(
                    "Each custom field value must be an object with "
                    "'field_id' or 'field_name' and 'value'.",
                    field="custom_field_values",
                    value=entry,
                )
            key = entry.get("field_id", entry.get("field_name"))
            pairs.append((key, entry.get("value")))

    resolved: list[tuple[FieldDefinition, Any]] = []
    seen: set[int] = set()
    for key, raw in pairs:
        field = _lookup_field(key, by_id, by_name)
        if field.id in seen:
            raise ValidationError(
                f"'{field.field_name}' was supplied more than once.",
                field=field.field_name,
            )
        seen.add(field.id)
        resolved.append((field, raw))
    return resolved


def check_required(
    asset_type_id: int,
    supplied: Mapping[int, TypedValue],
) -> None:
    """
    Ensure every required field of the type has a non-empty value.

    Args:
        asset_type_id: The asset type being written.
        supplied:      Coerced values keyed by field id.

    Raises:
        ValidationError: Naming the first missing required field.
    """
    for field in field_service.get_fields(asset_type_id):
        if not field.is_required:
            continue
        typed = supplied.get(field.id)
        if typed is None or typed.is_empty:
            raise ValidationError(
                f"'{field.field_name}' is required.", field=field.field_name
            )


# -- Internal helpers -------------------------------------------------------


def _lookup_field(
    key: Any,
    by_id: dict[int, FieldDefinition],
    by_name: dict[str, FieldDefinition],
) -> FieldDefinition:
    if isinstance(key, str) and key in by_name:
        return by_name[key]
    try:
        field = by_id.get(int(key))
    except (TypeError, ValueError):
        field = None
    if field is None:
        raise ValidationError(
            f"Custom field {key!r} is not defined for this asset type.",
            field="custom_field_values",
            value=key,
        )
    return field


def _require_asset(asset_id: int) -> Asset:
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        raise NotFoundError(
            f"Asset ID {asset_id} not found.", field="asset_id", value=asset_id
        )
    return asset
