"""Unit tests for field definitions and definition payload loading."""

import logging

import pytest

from crmfields.definitions import (
    FieldDefinition,
    composite_owners,
    load_definitions,
    normalize_options,
    sub_fields_of,
)
from crmfields.errors import FieldDefinitionError
from crmfields.types import FieldErrorCode, FieldType
from tests.factories import make_field


class TestNormalizeOptions:
    """Test the four accepted option shapes."""

    def test_native_list(self):
        """Should trim members and drop empties."""
        assert normalize_options([" Open ", "", "Closed"]) == ["Open", "Closed"]

    def test_json_encoded_list(self):
        """Should decode a JSON list."""
        assert normalize_options('["Hot", "Warm", "Cold"]') == ["Hot", "Warm", "Cold"]

    def test_newline_delimited_string(self):
        """Should split text that is not JSON on newlines."""
        assert normalize_options("Open\r\nClosed\n\nPending") == ["Open", "Closed", "Pending"]

    def test_single_word_string(self):
        """A bare word is not JSON and becomes one option."""
        assert normalize_options("Open") == ["Open"]

    def test_object_values(self):
        """Should use an object's values as labels."""
        assert normalize_options({"a": "Yes", "b": "No"}) == ["Yes", "No"]

    def test_non_string_members_dropped(self):
        """Should drop members that are not strings."""
        assert normalize_options(["A", 1, None, "B"]) == ["A", "B"]

    @pytest.mark.parametrize("raw", [None, "", "   ", 5, '{"a": "b"}', '"text"'])
    def test_other_shapes_are_empty(self, raw):
        """Anything else normalizes to an empty list."""
        assert normalize_options(raw) == []


class TestFieldDefinitionFromDict:
    """Test building definitions from payload entries."""

    def test_ids_are_strings(self):
        """Should compare ids, sub-field ids and controller ids as strings."""
        fd = FieldDefinition.from_dict({
            "id": 7,
            "field_name": "Field_7",
            "field_label": "Contact",
            "field_type": "composite",
            "sub_field_ids": [8, "9"],
            "dependent_on_field_id": 3,
        })
        assert fd.id == "7"
        assert fd.sub_field_ids == ("8", "9")
        assert fd.dependent_on_field_id == "3"

    def test_missing_id_falls_back_to_field_name(self):
        fd = FieldDefinition.from_dict({
            "field_name": "Field_1", "field_label": "Notes", "field_type": "textarea",
        })
        assert fd.id == "Field_1"
        assert fd.field_type is FieldType.TEXTAREA

    def test_unknown_type_degrades_to_text(self, caplog):
        """Should render unknown types as text and log a warning."""
        with caplog.at_level(logging.WARNING, logger="crmfields.definitions"):
            fd = FieldDefinition.from_dict({
                "field_name": "Field_2", "field_label": "Rating", "field_type": "stars",
            })
        assert fd.field_type is FieldType.TEXT
        assert "stars" in caplog.text

    def test_flag_coercion(self):
        """Should accept booleans, ints and truthy strings for flags."""
        fd = FieldDefinition.from_dict({
            "field_name": "Field_3", "field_label": "Status", "field_type": "select",
            "is_required": "true", "is_hidden": 0, "is_read_only": 1,
        })
        assert fd.is_required is True
        assert fd.is_hidden is False
        assert fd.is_read_only is True

    def test_options_normalized(self):
        fd = FieldDefinition.from_dict({
            "field_name": "Field_4", "field_label": "Stage", "field_type": "radio",
            "options": '["New", "Won"]',
        })
        assert fd.options == ("New", "Won")
        assert fd.raw_options == '["New", "Won"]'

    def test_to_dict(self):
        fd = make_field("Field_5", "Owner", FieldType.LOOKUP, lookup_type="owners")
        data = fd.to_dict()
        assert data["field_type"] == "lookup"
        assert data["lookup_type"] == "owners"
        assert "sub_field_ids" not in data


class TestLoadDefinitions:
    """Test payload validation and ordering."""

    def test_envelope_and_sorting(self):
        """Should unwrap customFields and sort by sort_order."""
        definitions = load_definitions({"customFields": [
            {"id": 1, "field_name": "b", "field_label": "B", "field_type": "text", "sort_order": 2},
            {"id": 2, "field_name": "a", "field_label": "A", "field_type": "text", "sort_order": 1},
        ]})
        assert [d.field_name for d in definitions] == ["a", "b"]

    def test_empty_envelope(self):
        assert load_definitions({}) == []

    def test_missing_required_property(self):
        """Should report the missing property with its payload path."""
        with pytest.raises(FieldDefinitionError) as exc_info:
            load_definitions([{"field_name": "a", "field_type": "text"}])
        error = exc_info.value.errors[0]
        assert error.code is FieldErrorCode.REQUIRED
        assert error.field_name == "0.field_label"

    def test_wrong_property_type(self):
        with pytest.raises(FieldDefinitionError) as exc_info:
            load_definitions([{"field_name": 5, "field_label": "A", "field_type": "text"}])
        assert exc_info.value.errors[0].code is FieldErrorCode.INVALID_TYPE

    def test_duplicate_field_names(self):
        """Should refuse two definitions with the same storage key."""
        with pytest.raises(FieldDefinitionError, match="Duplicate field_name 'a'"):
            load_definitions([
                {"field_name": "a", "field_label": "A", "field_type": "text"},
                {"field_name": "a", "field_label": "A2", "field_type": "text"},
            ])


class TestComposites:
    """Test composite ownership helpers."""

    def test_sub_fields_in_order(self):
        first = make_field("first", "First")
        last = make_field("last", "Last")
        name = make_field("name", "Name", FieldType.COMPOSITE, sub_field_ids=("last", "first", "ghost"))
        assert sub_fields_of(name, [first, last, name]) == [last, first]

    def test_owners_first_composite_wins(self):
        sub = make_field("sub", "Sub")
        one = make_field("one", "One", FieldType.COMPOSITE, sub_field_ids=("sub",))
        two = make_field("two", "Two", FieldType.COMPOSITE, sub_field_ids=("sub",))
        assert composite_owners([sub, one, two]) == {"sub": "one"}

    def test_composite_cannot_own_itself(self):
        loop = make_field("loop", "Loop", FieldType.COMPOSITE, sub_field_ids=("loop",))
        assert composite_owners([loop]) == {}
        assert sub_fields_of(loop, [loop]) == []
