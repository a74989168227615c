"""
Tests for attribute_service — coercion and typed storage of custom values.
"""

from datetime import date

import pytest

from assettrack.exceptions import IntegrityError, ValidationError
from assettrack.models.asset import AttributeValue
from assettrack.models.field import FieldKind
from assettrack.services import attribute_service, field_service, taxonomy_service


class TestCoerce:
    """Per-kind conversion of raw input."""

    def test_number_accepts_numeric_strings(self, fields):
        typed = attribute_service.coerce(fields["RAM (GB)"], " 16 ")
        assert typed.kind is FieldKind.NUMBER
        assert typed.value == 16.0

    @pytest.mark.parametrize("raw", ["sixteen", True, "nan", "inf"])
    def test_number_rejects_bad_input(self, fields, raw):
        with pytest.raises(ValidationError) as excinfo:
            attribute_service.coerce(fields["RAM (GB)"], raw)
        assert excinfo.value.field == "RAM (GB)"

    def test_date_parses_iso_strings(self, fields):
        typed = attribute_service.coerce(fields["Warranty Ends"], "2027-03-31")
        assert typed.value == date(2027, 3, 31)

    def test_date_rejects_garbage(self, fields):
        with pytest.raises(ValidationError):
            attribute_service.coerce(fields["Warranty Ends"], "not a date")

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("No", False), ("0", False), (0, False),
         ("true", True), ("yes", True), (1, True), ("anything", True)],
    )
    def test_boolean_never_fails(self, fields, raw, expected):
        assert attribute_service.coerce(fields["Encrypted"], raw).value is expected

    def test_choice_requires_exact_member(self, fields):
        assert attribute_service.coerce(fields["Condition"], "Used").value == "Used"
        with pytest.raises(ValidationError):
            attribute_service.coerce(fields["Condition"], "used")

    def test_blank_clears_optional_field(self, fields):
        typed = attribute_service.coerce(fields["RAM (GB)"], "  ")
        assert typed.is_empty

    def test_blank_fails_for_required_field(self, fields):
        with pytest.raises(ValidationError) as excinfo:
            attribute_service.coerce(fields["Serial Vendor"], None)
        assert excinfo.value.field == "Serial Vendor"


class TestUpsertValue:
    """Row creation, in-place update, and the one-slot invariant."""

    @pytest.fixture(autouse=True)
    def _setup(self, make_laptop, fields):
        self.asset = make_laptop("LT-100")
        self.fields = fields

    def _rows(self, field_id):
        return AttributeValue.query.filter(
            AttributeValue.asset_id == self.asset.id,
            AttributeValue.field_definition_id == field_id,
        ).all()

    def test_first_write_creates_one_row(self):
        field = self.fields["RAM (GB)"]
        attribute_service.upsert_value(self.asset.id, field.id, "32")

        rows = self._rows(field.id)
        assert len(rows) == 1
        assert rows[0].number_value == 32.0
        assert rows[0].text_value is None
        assert rows[0].date_value is None
        assert rows[0].boolean_value is None

    def test_second_write_updates_in_place(self):
        field = self.fields["RAM (GB)"]
        attribute_service.upsert_value(self.asset.id, field.id, 8)
        attribute_service.upsert_value(self.asset.id, field.id, 64)

        rows = self._rows(field.id)
        assert len(rows) == 1
        assert rows[0].number_value == 64.0

    def test_choice_is_stored_in_text_slot(self):
        field = self.fields["Condition"]
        row = attribute_service.upsert_value(self.asset.id, field.id, "New")
        assert row.text_value == "New"
        assert row.typed_value.value == "New"

    def test_field_from_other_asset_type_is_an_integrity_error(self, workspace):
        other_type = taxonomy_service.create_asset_type(
            "Phone", workspace_id=workspace.id
        )
        foreign = field_service.define_field(other_type.id, "IMEI", "Text")

        with pytest.raises(IntegrityError):
            attribute_service.upsert_value(self.asset.id, foreign.id, "12345")
        assert self._rows(foreign.id) == []

    def test_coercion_failure_leaves_existing_value(self):
        field = self.fields["RAM (GB)"]
        attribute_service.upsert_value(self.asset.id, field.id, 8)
        with pytest.raises(ValidationError):
            attribute_service.upsert_value(self.asset.id, field.id, "lots")
        assert self._rows(field.id)[0].number_value == 8.0

    def test_get_values_is_keyed_by_field_name(self):
        attribute_service.upsert_value(self.asset.id, self.fields["Encrypted"].id, "yes")
        attribute_service.upsert_value(
            self.asset.id, self.fields["Warranty Ends"].id, "2028-01-01"
        )

        values = attribute_service.get_values(self.asset.id)
        assert values["Serial Vendor"] == "Lenovo"
        assert values["Encrypted"] is True
        assert values["Warranty Ends"] == date(2028, 1, 1)


class TestResolveInputs:
    """Matching raw input to field definitions."""

    def test_accepts_names_ids_and_entry_lists(self, laptop_type, fields):
        by_name = attribute_service.resolve_inputs(laptop_type.id, {"RAM (GB)": 4})
        by_id = attribute_service.resolve_inputs(
            laptop_type.id, [{"field_id": fields["RAM (GB)"].id, "value": 4}]
        )
        assert by_name[0][0].id == by_id[0][0].id == fields["RAM (GB)"].id

    def test_unknown_field_is_rejected(self, laptop_type):
        with pytest.raises(ValidationError):
            attribute_service.resolve_inputs(laptop_type.id, {"Battery": "ok"})

    def test_check_required_names_missing_field(self, laptop_type):
        with pytest.raises(ValidationError) as excinfo:
            attribute_service.check_required(laptop_type.id, {})
        assert excinfo.value.field == "Serial Vendor"
