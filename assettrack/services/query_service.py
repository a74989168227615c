"""
Query service — filtered asset listings and dashboard counts.

All criteria of an ``AssetFilter`` are combined with AND.  Results are
ordered by ``updated_at`` descending, ties broken by ``id`` ascending.
"""

import logging
from dataclasses import dataclass, field as dataclass_field
from typing import Any

from sqlalchemy import and_, desc, exists, func, or_

from assettrack.exceptions import ValidationError
from assettrack.extensions import db
from assettrack.models.asset import Asset, AttributeValue
from assettrack.models.field import FieldKind
from assettrack.models.taxonomy import Status
from assettrack.services import attribute_service, field_service
from assettrack.utils import is_blank

logger = logging.getLogger(__name__)


@dataclass
class AssetFilter:
    """
    Criteria for ``filter_assets``.  ``None`` means "any".

    Attributes:
        workspace_id:     Only assets owned by this workspace.
        asset_type_id:    Only assets of this type.
        status_id:        Current status (likewise the other pointers).
        search:           Case-insensitive substring of name, unique
                          identifier, or notes.
        include_archived: Include soft-deleted assets.
        custom_fields:    ``{field_id: raw value}`` for filterable fields.
                          Text fields match a case-insensitive substring;
                          every other kind matches the coerced value.
    """

    workspace_id: int | None = None
    asset_type_id: int | None = None
    status_id: int | None = None
    location_id: int | None = None
    assignment_id: int | None = None
    customer_id: int | None = None
    manufacturer_id: int | None = None
    search: str | None = None
    include_archived: bool = False
    custom_fields: dict[int, Any] = dataclass_field(default_factory=dict)


_POINTER_CRITERIA = (
    ("asset_type_id", Asset.asset_type_id),
    ("status_id", Asset.current_status_id),
    ("location_id", Asset.current_location_id),
    ("assignment_id", Asset.current_assignment_id),
    ("customer_id", Asset.current_customer_id),
    ("manufacturer_id", Asset.manufacturer_id),
)


def build_query(criteria: AssetFilter):
    """Return the ordered SQLAlchemy query for ``criteria``."""
    query = Asset.query

    if criteria.workspace_id is not None:
        query = query.filter(Asset.workspace_id == criteria.workspace_id)
    if not criteria.include_archived:
        query = query.filter(Asset.is_archived == False)  # noqa: E712
    for attr, column in _POINTER_CRITERIA:
        value = getattr(criteria, attr)
        if value is not None:
            query = query.filter(column == value)

    if not is_blank(criteria.search):
        pattern = f"%{_escape_like(criteria.search.strip())}%"
        query = query.filter(
            or_(
                Asset.name.ilike(pattern, escape="\\"),
                Asset.unique_identifier.ilike(pattern, escape="\\"),
                Asset.notes.ilike(pattern, escape="\\"),
            )
        )

    for field_id, raw in (criteria.custom_fields or {}).items():
        condition = _custom_field_condition(field_id, raw)
        if condition is not None:
            query = query.filter(condition)

    return query.order_by(desc(Asset.updated_at), Asset.id)


def filter_assets(criteria: AssetFilter, limit: int | None = None) -> list[Asset]:
    """
    Return the assets matching every criterion.

    Raises:
        NotFoundError:   A custom field id does not exist.
        ValidationError: A custom field is not filterable, or its value
                         does not coerce to the field's kind.
    """
    query = build_query(criteria)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_asset_stats(workspace_id: int | None = None) -> dict:
    """
    Count non-archived assets in total and per status.

    Returns:
        ``{"total": n, "by_status": [{"status_id", "status_name",
        "color", "count"}, ...]}`` in status display order, with
        assets that have no status counted under "Unassigned" last.
    """
    base = [Asset.is_archived == False]  # noqa: E712
    if workspace_id is not None:
        base.append(Asset.workspace_id == workspace_id)

    total = db.session.query(func.count(Asset.id)).filter(*base).scalar() or 0

    rows = (
        db.session.query(Asset.current_status_id, func.count(Asset.id))
        .filter(*base)
        .group_by(Asset.current_status_id)
        .all()
    )
    counts = {status_id: count for status_id, count in rows}

    by_status = []
    status_ids = [status_id for status_id in counts if status_id is not None]
    if status_ids:
        statuses = (
            Status.query.filter(Status.id.in_(status_ids))
            .order_by(Status.sort_order, Status.id)
            .all()
        )
        by_status.extend(
            {
                "status_id": status.id,
                "status_name": status.name,
                "color": status.color,
                "count": counts[status.id],
            }
            for status in statuses
        )
    if None in counts:
        by_status.append(
            {
                "status_id": None,
                "status_name": "Unassigned",
                "color": None,
                "count": counts[None],
            }
        )

    return {"total": total, "by_status": by_status}


# -- Internal helpers -------------------------------------------------------


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _custom_field_condition(field_id: Any, raw: Any):
    """EXISTS clause matching one custom field value, or None to skip."""
    field = field_service.require_field(int(field_id))
    if not field.is_filterable:
        raise ValidationError(
            f"Field '{field.field_name}' is not filterable.",
            field="custom_fields",
            value=field.id,
        )
    if is_blank(raw):
        return None

    if field.kind is FieldKind.TEXT:
        slot_condition = AttributeValue.text_value.ilike(
            f"%{_escape_like(str(raw).strip())}%", escape="\\"
        )
    else:
        typed = attribute_service.coerce(field, raw)
        slot_condition = getattr(AttributeValue, field.kind.slot) == typed.value

    return exists().where(
        and_(
            AttributeValue.asset_id == Asset.id,
            AttributeValue.field_definition_id == field.id,
            slot_condition,
        )
    )
