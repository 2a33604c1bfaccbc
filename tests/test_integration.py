"""Integration tests for FormSession: the full write -> resolve -> render -> submit flow."""

import asyncio
import json
import logging

import pytest

from crmfields import FormSession
from crmfields.config import EngineConfig
from crmfields.errors import UnknownFieldError
from crmfields.types import EventType, FieldType, ValueSource
from tests.factories import make_field


def raw(id, label, field_type="text", **kwargs):
    data = {"id": id, "field_name": f"Field_{id}", "field_label": label, "field_type": field_type}
    data.update(kwargs)
    return data


@pytest.fixture
def lead_definitions():
    return [
        raw(1, "Status", "select", options=["Open", "Closed"], is_required=True, sort_order=1),
        raw(2, "Reason", dependent_on_field_id=1, is_required=True, sort_order=2),
        raw(3, "First Name", is_required=True, sort_order=3),
        raw(4, "Notes", "textarea", sort_order=4),
        raw(5, "Start Date", "date", sort_order=5),
        raw(6, "Date Added", "date", sort_order=6),
        raw(7, "Internal", is_hidden=True, sort_order=7),
    ]


@pytest.fixture
def session(lead_definitions, fixed_config):
    return FormSession(lead_definitions, config=fixed_config, entity_type="leads")


class TestDependencies:
    """Test dependent fields through the session."""

    def test_dependent_starts_disabled(self, session):
        assert not session.is_enabled("Field_2")

    def test_clearing_controller_clears_dependent(self, session):
        session.update("Field_1", "Open")
        session.update("Field_2", "Budget")
        assert session.store.get("Field_2") == "Budget"

        session.update("Field_1", "")
        assert not session.is_enabled("Field_2")
        assert session.store.get("Field_2") == ""
        assert session.store.source_of("Field_2") is ValueSource.DEPENDENCY

    def test_disabled_dependent_renders_placeholder(self, session):
        control = next(c for c in session.render() if c.field_name == "Field_2")
        assert control.disabled is True

    def test_validation_skips_disabled_dependent(self, session):
        session.update("Field_1", "Open")
        session.update("Field_3", "Ada")
        assert session.validate().message == "Reason is required"
        session.update("Field_1", "")
        assert session.validate().message == "Status is required"


class TestDates:
    """Test date autofill and Date Added display."""

    def test_render_autofills_empty_date_once(self, session):
        session.render()
        assert session.store.get("Field_5") == "03/09/2024"
        assert session.store.source_of("Field_5") is ValueSource.AUTOFILL

        session.update("Field_5", "")
        session.render()
        assert session.store.get("Field_5") == ""

    def test_date_added_is_not_autofilled(self, session):
        session.render()
        assert session.store.get("Field_6") == ""
        assert session.display_value("Field_6") == "03/09/2024"

    def test_typed_digits_stored_as_iso(self, session):
        session.update("Field_5", "03152024")
        assert session.store.get("Field_5") == "2024-03-15"
        assert session.display_value("Field_5") == "03/15/2024"

    def test_payload_sends_iso(self, session):
        session.render()
        assert session.to_payload()["Start Date"] == "2024-03-09"


class TestRecords:
    """Test loading an existing record for editing."""

    def test_blob_then_columns(self, session):
        loaded = session.load_record({
            "first_name": "Ada",
            "custom_fields": json.dumps({"Notes": "call back", "Start Date": "2024-01-02T10:00:00"}),
        })
        assert set(loaded) == {"Field_3", "Field_4", "Field_5"}
        assert session.store.get("Field_3") == "Ada"
        assert session.store.get("Field_5") == "2024-01-02"

    def test_blob_wins_over_column(self, session):
        session.load_record({"first_name": "Column", "custom_fields": {"First Name": "Blob"}})
        assert session.store.get("Field_3") == "Blob"

    def test_bad_blob_is_ignored(self, session, caplog):
        with caplog.at_level(logging.WARNING, logger="crmfields.store"):
            session.load_record({"custom_fields": "{not json", "first_name": "Ada"})
        assert session.store.get("Field_3") == "Ada"
        assert "Could not parse custom_fields blob" in caplog.text

    def test_loading_controller_enables_dependent(self, session):
        session.load_record({"custom_fields": {"Status": "Open", "Reason": "Budget"}})
        assert session.is_enabled("Field_2")
        assert session.store.get("Field_2") == "Budget"


class TestAddress:
    """Test address combination through the session."""

    @pytest.fixture
    def address_session(self, address_definitions, fixed_config):
        return FormSession(address_definitions, config=fixed_config)

    def test_full_address_follows_sub_fields(self, address_session):
        address_session.update_many({
            "f_addr": "1 Main St", "f_city": "Springfield", "f_state": "IL", "f_zip": "62704",
        })
        assert address_session.store.get("f_full") == "1 Main St, Springfield, IL, 62704"
        status = address_session.address_status()
        assert status["complete"] is True

    def test_zip_input_is_masked(self, address_session):
        address_session.update("f_zip", "62-704-99")
        assert address_session.store.get("f_zip") == "62704"

    def test_display_falls_back_to_combination(self, address_session):
        address_session.update("f_city", "Springfield")
        address_session.update("f_full", "-", masked=False)
        assert address_session.display_value("f_full") == "Springfield"

    def test_declared_group_renders_sub_fields_inside(self, address_definitions, fixed_config):
        group = make_field("grp", "Address Block", FieldType.ADDRESS_GROUP, sort_order=0)
        session = FormSession([group] + address_definitions, config=fixed_config)
        names = [c.field_name for c in session.render()]
        assert names == ["grp", "f_full"]
        assert "grp" not in session.to_payload()

    def test_unsettled_pipeline_warns(self, address_definitions, caplog):
        session = FormSession(address_definitions, config=EngineConfig(max_resolver_passes=1))
        with caplog.at_level(logging.WARNING, logger="crmfields.form"):
            session.update("f_city", "Springfield")
        assert "did not settle after 1 passes" in caplog.text


class TestDefinitionLoading:
    """Test late and replaced definition sets."""

    def test_late_definitions_keep_user_input(self, lead_definitions, fixed_config):
        session = FormSession(lead_definitions[:3], config=fixed_config)
        session.update("Field_3", "Ada")

        async def fetch():
            return {"customFields": lead_definitions}

        definitions = asyncio.run(session.fetch_definitions(fetch))
        assert len(definitions) == 7
        assert session.store.get("Field_3") == "Ada"
        assert session.store.get("Field_4") == ""

    def test_reload_keeps_full_address_override(self, address_definitions, fixed_config):
        session = FormSession(address_definitions, config=fixed_config)
        session.update_many({"f_addr": "1 Main St", "f_city": "Springfield"})
        session.update("f_full", "PO Box 9")

        session.apply_definitions(address_definitions + [make_field("notes", "Notes", sort_order=7)])
        assert session.store.get("f_full") == "PO Box 9"

        session.update("f_zip", "62704")
        assert session.store.get("f_full") == "1 Main St, Springfield, 62704"

    def test_apply_definitions_emits_event(self, lead_definitions):
        session = FormSession()
        events = []
        session.subscribe(events.append)
        session.apply_definitions(lead_definitions)
        assert events[0].type is EventType.DEFINITIONS_LOADED
        assert events[0].payload == {"count": 7}

    def test_unknown_field(self, session):
        with pytest.raises(UnknownFieldError):
            session.update("Field_99", "x")


class TestSubmission:
    """Test validation events and payloads."""

    def test_validation_events(self, session):
        events = []
        session.subscribe(events.append)
        result = session.validate()
        assert not result.is_valid
        assert events[-1].type is EventType.VALIDATION_FAILED
        assert events[-1].field_name == "Field_1"

        session.update_many({"Field_1": "Open", "Field_2": "Budget", "Field_3": "Ada"})
        assert session.validate().is_valid
        assert events[-1].type is EventType.VALIDATION_PASSED

    def test_payload_excludes_hidden(self, session):
        session.update_many({"Field_1": "Open", "Field_3": "Ada"})
        payload = session.to_payload()
        assert payload["Status"] == "Open"
        assert payload["First Name"] == "Ada"
        assert "Internal" not in payload

    def test_standard_columns(self, session):
        session.update_many({"Field_1": "Open", "Field_3": "Ada"})
        assert session.standard_columns() == {"status": "Open", "first_name": "Ada"}

    def test_bulk_update_payload(self, session):
        assert session.bulk_update_payload("Field_5", "03/09/2024") == {"Start Date": "2024-03-09"}
