"""Unit tests for dependent-field state machines and the resolver."""

import logging

import pytest

from crmfields.dependencies import (
    VALID_TRANSITIONS,
    DependencyResolver,
    DependencyStateMachine,
    InvalidDependencyTransitionError,
    controller_has_value,
)
from crmfields.store import FieldValueStore
from crmfields.types import DependencyState, EventType, FieldType, ValueSource
from tests.factories import make_field


@pytest.fixture
def definitions():
    return [
        make_field("org", "Organization", id="1"),
        make_field("contact", "Contact", id="2", dependent_on_field_id="1"),
        make_field("roles", "Roles", FieldType.MULTISELECT, id="3", options=("A", "B"),
                   dependent_on_field_id="1"),
        make_field("orphan", "Orphan", id="4", dependent_on_field_id="99"),
    ]


@pytest.fixture
def store(definitions):
    store = FieldValueStore(definitions)
    store.seed()
    return store


class TestStateMachine:
    """Test the two-state machine."""

    def test_transitions_table(self):
        assert VALID_TRANSITIONS[DependencyState.ENABLED] == {DependencyState.DISABLED}
        assert VALID_TRANSITIONS[DependencyState.DISABLED] == {DependencyState.ENABLED}

    def test_transition_records_event(self):
        sm = DependencyStateMachine("contact", "org")
        event = sm.transition_to(DependencyState.DISABLED)
        assert sm.state is DependencyState.DISABLED
        assert event.type is EventType.DEPENDENCY_DISABLED
        assert event.payload == {"controller": "org", "from_state": "enabled", "to_state": "disabled"}
        assert sm.get_events() == [event]

    def test_same_state_transition_rejected(self):
        sm = DependencyStateMachine("contact", "org")
        with pytest.raises(InvalidDependencyTransitionError) as exc_info:
            sm.transition_to(DependencyState.ENABLED)
        assert exc_info.value.current_state is DependencyState.ENABLED

    def test_serialization(self):
        sm = DependencyStateMachine("contact", "org", DependencyState.DISABLED)
        data = sm.to_dict()
        assert data == {"fieldName": "contact", "controllerName": "org", "state": "disabled"}
        assert DependencyStateMachine.from_dict(data).state is DependencyState.DISABLED


class TestControllerValue:
    """Test what counts as a satisfied controller."""

    @pytest.mark.parametrize("value", ["x", ["", "a"], [" "], True, False, 0, {"a": "b"}])
    def test_satisfied(self, value):
        assert controller_has_value(value)

    @pytest.mark.parametrize("value", [None, "", "   ", [], (), {}])
    def test_not_satisfied(self, value):
        assert not controller_has_value(value)


class TestResolver:
    """Test reactive clearing and state tracking."""

    def test_empty_controller_disables(self, definitions, store):
        resolver = DependencyResolver(definitions, store)
        resolver.resolve()
        assert resolver.state_of("contact") is DependencyState.DISABLED
        assert not resolver.is_enabled("contact")
        assert resolver.is_enabled("org")
        assert resolver.state_of("org") is None

    def test_clearing_on_next_pass(self, definitions, store):
        """Emptying the controller clears dependents to "" or [] in one pass."""
        resolver = DependencyResolver(definitions, store)
        store.set("org", "Acme")
        resolver.resolve()
        store.set("contact", "Jane")
        store.set("roles", ["A"])

        store.set("org", "  ")
        cleared = resolver.resolve()
        assert cleared == ["contact", "roles"]
        assert store.get("contact") == ""
        assert store.get("roles") == []
        assert store.source_of("contact") is ValueSource.DEPENDENCY

    def test_reenabling_restores_nothing(self, definitions, store):
        resolver = DependencyResolver(definitions, store)
        store.set("org", "Acme")
        resolver.resolve()
        store.set("contact", "Jane")
        store.set("org", "")
        resolver.resolve()
        store.set("org", "Acme")
        resolver.resolve()
        assert resolver.is_enabled("contact")
        assert store.get("contact") == ""

    def test_writes_while_disabled_are_cleared(self, definitions, store):
        resolver = DependencyResolver(definitions, store)
        resolver.resolve()
        store.set("contact", "sneaky")
        assert resolver.resolve() == ["contact"]
        assert store.get("contact") == ""

    def test_transition_events_emitted(self, definitions, store):
        events = []
        store.subscribe(events.append)
        resolver = DependencyResolver(definitions, store)
        resolver.resolve()
        store.set("org", "Acme")
        resolver.resolve()
        kinds = [(e.type, e.field_name) for e in events if e.type.value.startswith("dependency.")]
        assert (EventType.DEPENDENCY_DISABLED, "contact") in kinds
        assert (EventType.DEPENDENCY_ENABLED, "contact") in kinds
        assert (EventType.DEPENDENCY_ENABLED, "orphan") not in kinds

    def test_dangling_reference_stays_disabled(self, definitions, store, caplog):
        """A controller id that matches nothing keeps the field disabled, logged once."""
        with caplog.at_level(logging.WARNING, logger="crmfields.dependencies"):
            resolver = DependencyResolver(definitions, store)
            resolver.rebuild(definitions)
        assert caplog.text.count("orphan depends on unknown field id 99") == 1
        store.set("org", "Acme")
        resolver.resolve()
        assert resolver.edges()["orphan"] is None
        assert not resolver.is_enabled("orphan")

    def test_rebuild_keeps_states(self, definitions, store):
        resolver = DependencyResolver(definitions, store)
        resolver.resolve()
        resolver.rebuild(definitions)
        assert resolver.state_of("contact") is DependencyState.DISABLED
        assert resolver.disabled_fields() == {"contact", "roles", "orphan"}

    def test_unchecked_checkbox_controller_keeps_dependent(self):
        definitions = [
            make_field("agree", "Agree", FieldType.CHECKBOX, id="1"),
            make_field("detail", "Detail", id="2", dependent_on_field_id="1"),
        ]
        store = FieldValueStore(definitions)
        store.seed()
        resolver = DependencyResolver(definitions, store)
        store.set("agree", False)
        store.set("detail", "kept")
        assert resolver.resolve() == []
        assert resolver.is_enabled("detail")
        assert store.get("detail") == "kept"
