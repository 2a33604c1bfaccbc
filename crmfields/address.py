"""Address group detection and Full Address combination.

An address group is a derived, non-persisted bundle of up to five address
sub-fields (Address, Address 2, City, State, Zip), found by exact
case-insensitive label match, plus the computed Full Address field that holds
their combination.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from crmfields.classify import classify
from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import FieldDefinition
from crmfields.dispatch import is_valid
from crmfields.events import FieldEvent
from crmfields.formatters import is_blank
from crmfields.store import FieldValueStore
from crmfields.types import EventType, SemanticKind, ValueSource

logger = logging.getLogger(__name__)

ROLES: Tuple[str, ...] = ("address", "address2", "city", "state", "zip")

ROLE_LABELS: Dict[str, Tuple[str, ...]] = {
    "address": ("address", "address1", "address 1", "street address"),
    "address2": ("address2", "address 2"),
    "city": ("city",),
    "state": ("state",),
    "zip": ("zip", "zip code", "postal code"),
}

# Must be present and complete; the others only need to be complete when present
REQUIRED_ROLES = ("address", "city", "zip")

_OTHER_STREET_LABELS = ("address1", "address 1", "street address")

# Full Address values that count as empty in read-only views
_EMPTY_FULL_ADDRESS = ("", "-", "n/a")


@dataclass(frozen=True)
class AddressGroup:
    """Detected address sub-fields and the computed Full Address field."""
    address: Optional[FieldDefinition] = None
    address2: Optional[FieldDefinition] = None
    city: Optional[FieldDefinition] = None
    state: Optional[FieldDefinition] = None
    zip: Optional[FieldDefinition] = None
    full_address: Optional[FieldDefinition] = None

    def parts(self) -> Dict[str, FieldDefinition]:
        """role -> definition, for the roles that were found, in role order."""
        found = {role: getattr(self, role) for role in ROLES}
        return {role: d for role, d in found.items() if d is not None}

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(d.field_name for d in self.parts().values())

    def role_of(self, field_name: str) -> Optional[str]:
        for role, definition in self.parts().items():
            if definition.field_name == field_name:
                return role
        return None


def find_address_group(definitions: Iterable[FieldDefinition]) -> Optional[AddressGroup]:
    """Detect the address group among visible definitions.

    The computed field is the first field with a fuzzy Full Address label.
    Without one, a bare "Address" field becomes the computed field when
    another street field (Address1, Address 1, Street Address) exists.

    Returns:
        The group, or None when no address sub-field is present
    """
    visible = [d for d in definitions if not d.is_hidden]
    full = next((d for d in visible if classify(d) is SemanticKind.FULL_ADDRESS), None)

    if full is None:
        bare = next((d for d in visible if d.label_key == "address"), None)
        other_street = any(d.label_key in _OTHER_STREET_LABELS for d in visible)
        if bare is not None and other_street:
            full = bare

    found: Dict[str, FieldDefinition] = {}
    for definition in visible:
        if full is not None and definition.field_name == full.field_name:
            continue
        for role in ROLES:
            if role not in found and definition.label_key in ROLE_LABELS[role]:
                found[role] = definition
                break

    if not found:
        return None
    return AddressGroup(full_address=full, **found)


def combine_address(parts: Dict[str, Any]) -> str:
    """Build the one-line address from role -> value.

    Examples:
        >>> combine_address({"address": "1 Main St", "city": "Springfield",
        ...     "state": "IL", "zip": "62704"})
        '1 Main St, Springfield, IL, 62704'
        >>> combine_address({"city": "Springfield"})
        'Springfield'
    """
    def text(role: str) -> str:
        value = parts.get(role)
        return "" if value is None else str(value).strip()

    city_state = ", ".join(p for p in (text("city"), text("state")) if p)
    pieces = (text("address"), text("address2"), city_state, text("zip"))
    return ", ".join(p for p in pieces if p)


def is_field_complete(definition: FieldDefinition, value: Any, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    return not is_blank(value) and is_valid(definition, value, config)


class AddressResolver:
    """Writes the combined address into the Full Address field.

    The Full Address value is rewritten only when the combination of the
    sub-fields changes, so a value the user types into Full Address stands
    until one of the sub-fields is edited again.
    """

    def __init__(self, group: Optional[AddressGroup], store: FieldValueStore):
        self.group = group
        self.store = store
        self._last_combined: Optional[str] = None

    def part_values(self) -> Dict[str, Any]:
        if self.group is None:
            return {}
        return {role: self.store.get(d.field_name) for role, d in self.group.parts().items()}

    def combined(self) -> str:
        return combine_address(self.part_values())

    def resolve(self) -> bool:
        """Run one pass; True when the Full Address value was written."""
        if self.group is None or self.group.full_address is None:
            return False
        combined = self.combined()
        if combined == self._last_combined:
            return False
        self._last_combined = combined
        if not combined:
            return False

        full_name = self.group.full_address.field_name
        current = self.store.get(full_name)
        if combined == ("" if current is None else str(current)):
            return False
        self.store.set(full_name, combined, ValueSource.ADDRESS)
        self.store.emitter.emit(FieldEvent.create(
            EventType.ADDRESS_COMBINED, full_name, ValueSource.ADDRESS, {"combined": combined}
        ))
        logger.debug("Combined address into %s", full_name)
        return True

    def field_status(self) -> Dict[str, bool]:
        """role -> completeness, for the roles that are present."""
        if self.group is None:
            return {}
        config = self.store.config
        return {
            role: is_field_complete(d, self.store.get(d.field_name), config)
            for role, d in self.group.parts().items()
        }

    def is_complete(self) -> bool:
        """Required roles present and complete; optional roles complete or left empty."""
        status = self.field_status()
        if not status:
            return False
        if not all(status.get(role, False) for role in REQUIRED_ROLES):
            return False
        parts = self.part_values()
        return all(
            ok or is_blank(parts[role])
            for role, ok in status.items()
            if role not in REQUIRED_ROLES
        )

    def status(self) -> Dict[str, Any]:
        """Completeness summary for the address block."""
        return {
            "complete": self.is_complete(),
            "combined": self.combined(),
            "fields": self.field_status(),
            "fullAddressField": (
                self.group.full_address.field_name
                if self.group is not None and self.group.full_address is not None
                else None
            ),
        }

    def display_value(self, value: Any) -> str:
        """Full Address text for read-only views, falling back to the combination."""
        text = "" if value is None else str(value).strip()
        if text.lower() in _EMPTY_FULL_ADDRESS or text == self.store.config.select_placeholder:
            return self.combined()
        return text


__all__ = [
    "ROLES",
    "ROLE_LABELS",
    "REQUIRED_ROLES",
    "AddressGroup",
    "AddressResolver",
    "find_address_group",
    "combine_address",
    "is_field_complete",
]
