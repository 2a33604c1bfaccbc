"""Field value store.

``FieldValueStore`` holds the current value of every field in a form session,
keyed by ``field_name``. It is the only place values change: seeding from
defaults, user input, record loading and resolver writes all go through
``set``, and every effective change is published as a ``FieldEvent``.

Values are normalized at this boundary:

- multi-valued kinds become ordered, de-duplicated lists of strings
- zip values become strings (ints via ``str()``)
- composite values are dicts keyed by sub-field ``field_name``; writes
  addressed to a composite-owned sub-field are routed into that dict
"""

import copy
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from crmfields.classify import classify
from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import (
    FieldDefinition,
    composite_owners,
    index_by_name,
    sub_fields_of,
)
from crmfields.errors import UnknownFieldError
from crmfields.events import EventEmitter, EventListener, FieldEvent
from crmfields.formatters import is_blank, split_multi, strip_time
from crmfields.types import (
    MULTI_VALUED_KINDS,
    EventType,
    SemanticKind,
    ValueSource,
)

logger = logging.getLogger(__name__)

_DATE_KINDS = frozenset({SemanticKind.DATE, SemanticKind.DATE_ADDED, SemanticKind.DATETIME})


def empty_value(kind: SemanticKind) -> Any:
    """The cleared value for a kind: ``[]`` for lists, ``{}`` for composites, else ``""``."""
    if kind in MULTI_VALUED_KINDS:
        return []
    if kind is SemanticKind.COMPOSITE:
        return {}
    return ""


class FieldValueStore:
    """Mutable field_name -> value map with change notification.

    Examples:
        >>> from crmfields.definitions import FieldDefinition
        >>> store = FieldValueStore([
        ...     FieldDefinition(id="1", field_name="Field_1", field_label="Status",
        ...         default_value="Open"),
        ... ])
        >>> store.seed()
        ['Field_1']
        >>> store.get("Field_1")
        'Open'
    """

    def __init__(
        self,
        definitions: Iterable[FieldDefinition] = (),
        config: EngineConfig = DEFAULT_CONFIG,
        emitter: Optional[EventEmitter] = None,
    ):
        self.config = config
        self.emitter = emitter or EventEmitter()
        self._values: Dict[str, Any] = {}
        self._seeded: Set[str] = set()
        self._sources: Dict[str, ValueSource] = {}
        self.set_definitions(definitions)

    # -- definitions --------------------------------------------------------

    def set_definitions(self, definitions: Iterable[FieldDefinition]) -> None:
        """Replace the definition set; existing values are kept."""
        self._definitions: List[FieldDefinition] = list(definitions)
        self._by_name = index_by_name(self._definitions)
        self._kinds = {d.field_name: classify(d) for d in self._definitions}
        self._owners = composite_owners(self._definitions)

    @property
    def definitions(self) -> List[FieldDefinition]:
        return list(self._definitions)

    def definition(self, field_name: str) -> FieldDefinition:
        try:
            return self._by_name[field_name]
        except KeyError:
            raise UnknownFieldError(field_name) from None

    def kind_of(self, field_name: str) -> SemanticKind:
        self.definition(field_name)
        return self._kinds[field_name]

    def owner_of(self, field_name: str) -> Optional[str]:
        """Composite that owns a sub-field, or None for top-level fields."""
        return self._owners.get(field_name)

    def is_top_level(self, field_name: str) -> bool:
        return field_name not in self._owners

    # -- normalization ------------------------------------------------------

    def normalize(self, field_name: str, value: Any) -> Any:
        kind = self.kind_of(field_name)
        if kind in MULTI_VALUED_KINDS:
            return split_multi(value)
        if kind is SemanticKind.ZIP:
            if value is None:
                return ""
            if isinstance(value, int) and not isinstance(value, bool):
                return str(value)
            return value
        if kind is SemanticKind.COMPOSITE:
            return self._normalize_composite(self.definition(field_name), value)
        return "" if value is None else value

    def _normalize_composite(self, composite: FieldDefinition, value: Any) -> Dict[str, Any]:
        if not isinstance(value, Mapping):
            return {}
        subs = sub_fields_of(composite, self._definitions)
        by_label = {s.field_label: s.field_name for s in subs}
        names = {s.field_name for s in subs}
        nested: Dict[str, Any] = {}
        for key, sub_value in value.items():
            name = key if key in names else by_label.get(key)
            if name is not None:
                nested[name] = self.normalize(name, sub_value)
        return nested

    def _seed_value(self, definition: FieldDefinition) -> Any:
        kind = self._kinds[definition.field_name]
        if kind is SemanticKind.COMPOSITE:
            return {
                sub.field_name: self._seed_value(sub)
                for sub in sub_fields_of(definition, self._definitions)
            }
        if kind in MULTI_VALUED_KINDS:
            return split_multi(definition.default_value)
        return self.normalize(definition.field_name, definition.default_value or "")

    # -- reads --------------------------------------------------------------

    def get(self, field_name: str, default: Any = None) -> Any:
        """Current value; composite-owned sub-fields are read from the composite."""
        self.definition(field_name)
        owner = self._owners.get(field_name)
        if owner is not None:
            nested = self._values.get(owner)
            if isinstance(nested, dict):
                return nested.get(field_name, default)
            return default
        return self._values.get(field_name, default)

    def has_value(self, field_name: str) -> bool:
        return not is_blank(self.get(field_name))

    def source_of(self, field_name: str) -> Optional[ValueSource]:
        """Who last wrote the field, or None if it was never written."""
        return self._sources.get(field_name)

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of all top-level values."""
        return copy.deepcopy(self._values)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._values

    # -- writes -------------------------------------------------------------

    def seed(self) -> List[str]:
        """Seed every visible, unseeded top-level field from its default.

        Fields are seeded once per store. A field that already holds a value
        (from the user or a record) is marked seeded and left alone.

        Returns:
            Names of fields that received a seed value
        """
        seeded: List[str] = []
        for definition in self._definitions:
            name = definition.field_name
            if definition.is_hidden or name in self._owners or name in self._seeded:
                continue
            self._seeded.add(name)
            if name in self._values:
                continue
            if self._write(name, self._seed_value(definition), ValueSource.SEED):
                seeded.append(name)
        if seeded:
            self.emitter.emit(FieldEvent.create(
                EventType.VALUES_SEEDED, None, ValueSource.SEED, {"fields": list(seeded)}
            ))
        return seeded

    def set(self, field_name: str, value: Any, source: ValueSource = ValueSource.USER) -> bool:
        """Write one value.

        Args:
            field_name: Storage key of the target field
            value: New value (normalized before storing)
            source: Who is writing

        Returns:
            True if the stored value changed

        Raises:
            UnknownFieldError: If no definition has this field_name
        """
        self.definition(field_name)
        owner = self._owners.get(field_name)
        if owner is None:
            return self._write(field_name, self.normalize(field_name, value), source)

        normalized = self.normalize(field_name, value)
        nested = self._values.get(owner)
        nested = dict(nested) if isinstance(nested, dict) else {}
        old = nested.get(field_name)
        if field_name in nested and old == normalized:
            return False
        nested[field_name] = normalized
        self._values[owner] = nested
        self._sources[field_name] = source
        self._publish(field_name, old, normalized, source, composite=owner)
        return True

    def clear(self, field_name: str, source: ValueSource = ValueSource.DEPENDENCY) -> bool:
        return self.set(field_name, empty_value(self.kind_of(field_name)), source)

    def _write(self, field_name: str, value: Any, source: ValueSource) -> bool:
        old = self._values.get(field_name)
        if field_name in self._values and old == value:
            return False
        self._values[field_name] = value
        self._sources[field_name] = source
        self._publish(field_name, old, value, source)
        return True

    def _publish(self, field_name: str, old: Any, new: Any, source: ValueSource, **extra: Any) -> None:
        logger.debug("%s <- %r (%s)", field_name, new, source.value)
        payload: Dict[str, Any] = {"old": copy.deepcopy(old), "new": copy.deepcopy(new)}
        payload.update(extra)
        self.emitter.emit(FieldEvent.create(EventType.VALUE_CHANGED, field_name, source, payload))

    # -- subscriptions ------------------------------------------------------

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Receive every event; returns a function that unsubscribes."""
        self.emitter.on_any(listener)
        return lambda: self.emitter.off_any(listener)

    # -- records ------------------------------------------------------------

    def load_record(self, record: Mapping[str, Any], entity_type: Optional[str] = None) -> List[str]:
        """Populate values from a persisted entity record.

        Pass 1 reads the record's custom-fields blob (a dict, or a JSON string)
        keyed by field label, skipping blank entries. Pass 2 fills fields that
        are still empty, or only hold their seeded default, from the standard
        entity column mapped to their label when that column holds a non-empty
        value. Pass 2 never overwrites pass 1.

        Args:
            record: Entity record as returned by the backend
            entity_type: Key into the configured label -> column tables

        Returns:
            Names of fields that were loaded
        """
        blob = _parse_blob(record.get("custom_fields", record.get("customFields")))
        loaded: List[str] = []

        for definition in self._definitions:
            name = definition.field_name
            if name in self._owners or is_blank(blob.get(definition.field_label)):
                continue
            self._write_loaded(definition, blob[definition.field_label])
            loaded.append(name)

        columns = self.config.columns_for(entity_type) if entity_type else {}
        for definition in self._definitions:
            name = definition.field_name
            if name in self._owners or name in loaded:
                continue
            if self.has_value(name) and self._sources.get(name) is not ValueSource.SEED:
                continue
            column = columns.get(definition.field_label)
            if column is None or is_blank(record.get(column)):
                continue
            self._write_loaded(definition, record[column])
            loaded.append(name)

        self._seeded.update(loaded)
        self.emitter.emit(FieldEvent.create(
            EventType.RECORD_LOADED, None, ValueSource.RECORD,
            {"fields": list(loaded), "entityType": entity_type},
        ))
        return loaded

    def _write_loaded(self, definition: FieldDefinition, value: Any) -> None:
        if self._kinds[definition.field_name] in _DATE_KINDS:
            value = strip_time(value)
        self.set(definition.field_name, value, ValueSource.RECORD)


def _parse_blob(raw: Any) -> Dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Could not parse custom_fields blob, ignoring it")
            return {}
        if isinstance(parsed, dict):
            return parsed
    logger.warning("custom_fields blob is %s, expected an object", type(raw).__name__)
    return {}


__all__ = [
    "FieldValueStore",
    "empty_value",
]
