"""
Custom field schema models.

A ``FieldDefinition`` attaches one typed attribute to an asset type.
``FieldKind`` decides which storage slot of ``AttributeValue`` holds the
value; ``TypedValue`` is the variant that crosses the store boundary so
callers never inspect the slots themselves.
"""

import enum
from dataclasses import dataclass
from datetime import date
from typing import Any

from assettrack.extensions import db
from assettrack.utils import utcnow


class FieldKind(str, enum.Enum):
    """Primitive kinds a custom field can hold."""

    TEXT = "Text"
    NUMBER = "Number"
    DATE = "Date"
    BOOLEAN = "Boolean"
    CHOICE = "Choice"

    @classmethod
    def parse(cls, raw: Any) -> "FieldKind":
        """
        Resolve a kind from its name, case-insensitively.

        "Dropdown" is accepted as a legacy spelling of Choice.

        Raises:
            ValueError: If the name matches no kind.
        """
        if isinstance(raw, cls):
            return raw
        text = str(raw).strip().lower()
        if text == "dropdown":
            return cls.CHOICE
        for kind in cls:
            if kind.value.lower() == text:
                return kind
        raise ValueError(f"Unknown field kind {raw!r}.")

    @property
    def slot(self) -> str:
        """Name of the ``AttributeValue`` column that stores this kind."""
        return _SLOT_BY_KIND[self]


_SLOT_BY_KIND = {
    FieldKind.TEXT: "text_value",
    FieldKind.NUMBER: "number_value",
    FieldKind.DATE: "date_value",
    FieldKind.BOOLEAN: "boolean_value",
    FieldKind.CHOICE: "text_value",
}

VALUE_SLOTS = ("text_value", "number_value", "date_value", "boolean_value")


@dataclass(frozen=True)
class TypedValue:
    """
    A custom field value tagged with its kind.

    ``value`` is ``str`` for Text and Choice, ``float`` for Number,
    ``datetime.date`` for Date, ``bool`` for Boolean, or ``None`` when
    the value has been cleared.
    """

    kind: FieldKind
    value: str | float | date | bool | None

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def to_json(self) -> str | float | bool | None:
        """JSON-friendly form (dates become ISO strings)."""
        if isinstance(self.value, date):
            return self.value.isoformat()
        return self.value


class FieldDefinition(db.Model):
    """
    Administrator-defined attribute schema attached to an asset type.

    ``field_name`` is unique within its asset type (case-sensitive).
    ``options`` is the ordered list of allowed strings for Choice
    fields and NULL for every other kind.
    """

    __tablename__ = "field_definition"
    __table_args__ = (
        db.UniqueConstraint(
            "asset_type_id", "field_name", name="UQ_field_definition_type_name"
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    asset_type_id = db.Column(
        db.Integer, db.ForeignKey("asset_type.id"), nullable=False, index=True
    )
    field_name = db.Column(db.String(200), nullable=False)
    kind = db.Column(
        db.Enum(
            FieldKind,
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    is_filterable = db.Column(db.Boolean, nullable=False, default=False)
    is_visible_on_card = db.Column(db.Boolean, nullable=False, default=False)
    options = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    asset_type = db.relationship("AssetType", back_populates="fields")
    values = db.relationship(
        "AttributeValue",
        back_populates="field_definition",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_type_id": self.asset_type_id,
            "field_name": self.field_name,
            "kind": self.kind.value,
            "is_required": self.is_required,
            "is_filterable": self.is_filterable,
            "is_visible_on_card": self.is_visible_on_card,
            "options": list(self.options) if self.options is not None else None,
        }

    def __repr__(self) -> str:
        return f"<FieldDefinition {self.field_name} ({self.kind.value})>"
