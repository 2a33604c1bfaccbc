"""Dependent-field state machines and resolver.

A field whose definition names a ``dependent_on_field_id`` is gated by that
controller field. Each dependent gets a two-state machine:

- ENABLED: the controller holds a non-empty value
- DISABLED: the controller is empty (or does not exist)

Entering DISABLED clears the dependent's stored value; returning to ENABLED
restores nothing. While the controller stays empty, any value that reaches the
dependent is cleared again on the next resolver pass.

Usage:
    >>> from crmfields.types import DependencyState
    >>> sm = DependencyStateMachine(field_name="Field_9", controller_name="Field_2")
    >>> sm.state
    <DependencyState.ENABLED: 'enabled'>
    >>> sm.transition_to(DependencyState.DISABLED)
    >>> sm.state
    <DependencyState.DISABLED: 'disabled'>
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from crmfields.definitions import FieldDefinition, index_by_id
from crmfields.errors import FieldEngineError
from crmfields.events import FieldEvent
from crmfields.store import FieldValueStore
from crmfields.types import DependencyState, EventType, ValueSource

logger = logging.getLogger(__name__)


class InvalidDependencyTransitionError(FieldEngineError):
    """Raised when a dependency state machine is asked for a transition it does not allow.

    Attributes:
        current_state: State before the attempted transition
        target_state: State that was requested
    """

    def __init__(self, current_state: DependencyState, target_state: DependencyState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


STATE_TO_EVENT_TYPE: Dict[DependencyState, EventType] = {
    DependencyState.ENABLED: EventType.DEPENDENCY_ENABLED,
    DependencyState.DISABLED: EventType.DEPENDENCY_DISABLED,
}

VALID_TRANSITIONS: Dict[DependencyState, Set[DependencyState]] = {
    DependencyState.ENABLED: {DependencyState.DISABLED},
    DependencyState.DISABLED: {DependencyState.ENABLED},
}


def controller_has_value(value: Any) -> bool:
    """True when a controller value satisfies its dependents.

    Examples:
        >>> controller_has_value("  ")
        False
        >>> controller_has_value([])
        False
        >>> controller_has_value(False)
        True
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    if isinstance(value, dict):
        return any(controller_has_value(v) for v in value.values())
    return True


@dataclass
class DependencyStateMachine:
    """State of one dependent field.

    Attributes:
        field_name: The gated field
        controller_name: The controlling field, or None when the reference
            does not resolve to a definition
        state: Current dependency state
    """

    field_name: str
    controller_name: Optional[str]
    state: DependencyState = DependencyState.ENABLED
    _events: List[FieldEvent] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_state: DependencyState) -> bool:
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(self, target_state: DependencyState) -> FieldEvent:
        """Move to ``target_state`` and record the transition event.

        Raises:
            InvalidDependencyTransitionError: If the machine is already in
                ``target_state``
        """
        if not self.can_transition_to(target_state):
            raise InvalidDependencyTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid dependency transition for '{self.field_name}': "
                    f"already '{self.state.value}'"
                ),
            )
        old_state = self.state
        self.state = target_state
        event = FieldEvent.create(
            STATE_TO_EVENT_TYPE[target_state],
            self.field_name,
            ValueSource.DEPENDENCY,
            {
                "controller": self.controller_name,
                "from_state": old_state.value,
                "to_state": target_state.value,
            },
        )
        self._events.append(event)
        return event

    @property
    def is_enabled(self) -> bool:
        return self.state is DependencyState.ENABLED

    def get_events(self) -> List[FieldEvent]:
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldName": self.field_name,
            "controllerName": self.controller_name,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencyStateMachine":
        return cls(
            field_name=data["fieldName"],
            controller_name=data.get("controllerName"),
            state=DependencyState(data["state"]),
        )


class DependencyResolver:
    """Keeps dependent fields consistent with their controllers.

    Call ``resolve`` after every store change; it returns the names of fields
    whose values it cleared, so a caller can tell whether another pass of the
    pipeline is needed.
    """

    def __init__(self, definitions: List[FieldDefinition], store: FieldValueStore):
        self.store = store
        self.machines: Dict[str, DependencyStateMachine] = {}
        self._warned: Set[str] = set()
        self.rebuild(definitions)

    def rebuild(self, definitions: List[FieldDefinition]) -> None:
        """Recreate machines for a new definition set, keeping known states."""
        by_id = index_by_id(definitions)
        previous = self.machines
        self.machines = {}
        for definition in definitions:
            target_id = definition.dependent_on_field_id
            if target_id is None:
                continue
            controller = by_id.get(target_id)
            controller_name = controller.field_name if controller is not None else None
            if controller_name is None and definition.field_name not in self._warned:
                self._warned.add(definition.field_name)
                logger.warning(
                    "%s depends on unknown field id %s; it stays disabled",
                    definition.field_name, target_id,
                )
            machine = DependencyStateMachine(definition.field_name, controller_name)
            old = previous.get(definition.field_name)
            if old is not None and old.controller_name == controller_name:
                machine.state = old.state
            self.machines[definition.field_name] = machine

    def edges(self) -> Dict[str, Optional[str]]:
        """dependent field_name -> controller field_name (None if dangling)."""
        return {name: m.controller_name for name, m in self.machines.items()}

    def state_of(self, field_name: str) -> Optional[DependencyState]:
        machine = self.machines.get(field_name)
        return machine.state if machine is not None else None

    def is_enabled(self, field_name: str) -> bool:
        """Fields without a controller are always enabled."""
        machine = self.machines.get(field_name)
        return machine is None or machine.is_enabled

    def disabled_fields(self) -> Set[str]:
        return {name for name, m in self.machines.items() if not m.is_enabled}

    def _desired_state(self, machine: DependencyStateMachine) -> DependencyState:
        if machine.controller_name is None:
            return DependencyState.DISABLED
        if controller_has_value(self.store.get(machine.controller_name)):
            return DependencyState.ENABLED
        return DependencyState.DISABLED

    def resolve(self) -> List[str]:
        """Run one pass over every dependent field.

        Returns:
            Names of fields whose value was cleared in this pass
        """
        cleared: List[str] = []
        for name, machine in self.machines.items():
            desired = self._desired_state(machine)
            if desired is not machine.state:
                self.store.emitter.emit(machine.transition_to(desired))
            if not machine.is_enabled and self.store.has_value(name):
                if self.store.clear(name, ValueSource.DEPENDENCY):
                    logger.debug("Cleared %s, controller %s is empty", name, machine.controller_name)
                    cleared.append(name)
        return cleared

    def get_events(self) -> List[FieldEvent]:
        """All transition events across machines, oldest first."""
        events = [e for m in self.machines.values() for e in m.get_events()]
        return sorted(events, key=lambda e: e.ts)


__all__ = [
    "DependencyStateMachine",
    "DependencyResolver",
    "InvalidDependencyTransitionError",
    "VALID_TRANSITIONS",
    "controller_has_value",
]
