"""FormSession orchestrator.

``FormSession`` ties the engine together for one create, edit or bulk-update
form: it owns the definitions, the value store, the dependency resolver, the
address resolver, the validation engine and the submission mapper.

Every write and every definition (re)load runs the same pipeline, in a fixed
order: dependency resolution, then address combination, repeated until neither
resolver writes anything.

Usage:
    >>> session = FormSession([
    ...     {"id": 1, "field_name": "Field_1", "field_label": "Status",
    ...      "field_type": "select", "options": ["Open", "Closed"], "is_required": True},
    ...     {"id": 2, "field_name": "Field_2", "field_label": "Reason",
    ...      "field_type": "text", "dependent_on_field_id": 1},
    ... ])
    >>> session.is_enabled("Field_2")
    False
    >>> session.update("Field_1", "Open")
    True
    >>> session.is_enabled("Field_2")
    True
    >>> session.validate().to_dict()
    {'isValid': True, 'message': ''}
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Set, Union

from crmfields.address import AddressResolver, find_address_group
from crmfields.classify import classify
from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import FieldDefinition, load_definitions
from crmfields.dependencies import DependencyResolver
from crmfields.dispatch import format_value, mask_value, render_field
from crmfields.events import EventEmitter, EventListener, FieldEvent
from crmfields.formatters import EMPTY_DISPLAY, date_to_display, is_blank
from crmfields.renderer import Control, RenderContext
from crmfields.store import FieldValueStore
from crmfields.submission import SubmissionMapper
from crmfields.types import EventType, SemanticKind, ValueSource
from crmfields.validation import ValidationEngine, ValidationResult

logger = logging.getLogger(__name__)

DefinitionsInput = Union[Sequence[FieldDefinition], Sequence[Dict[str, Any]], Dict[str, Any]]


def _as_definitions(definitions: DefinitionsInput) -> List[FieldDefinition]:
    if isinstance(definitions, dict):
        return load_definitions(definitions)
    items = list(definitions)
    if all(isinstance(item, FieldDefinition) for item in items):
        return sorted(items, key=lambda d: d.sort_order)
    return load_definitions(items)


class FormSession:
    """One form's worth of definitions, values and resolvers.

    Attributes:
        config: Engine configuration
        entity_type: Entity the form edits ("leads", "organizations", ...),
            used to pick the label -> column table
        organization_id: Organization of the record; filters hiring-manager
            lookups
        store: The session's value store
    """

    def __init__(
        self,
        definitions: Optional[DefinitionsInput] = None,
        config: EngineConfig = DEFAULT_CONFIG,
        entity_type: Optional[str] = None,
        organization_id: Optional[str] = None,
    ):
        self.config = config
        self.entity_type = entity_type
        self.organization_id = organization_id
        self.emitter = EventEmitter()
        self.store = FieldValueStore((), config, self.emitter)
        self.dependencies = DependencyResolver([], self.store)
        self.address = AddressResolver(None, self.store)
        self._definitions: List[FieldDefinition] = []
        self._validation = ValidationEngine([], config)
        self._mapper = SubmissionMapper([], config)
        self._autofilled: Set[str] = set()
        if definitions is not None:
            self.apply_definitions(definitions)

    @property
    def definitions(self) -> List[FieldDefinition]:
        return list(self._definitions)

    @property
    def values(self) -> Dict[str, Any]:
        return self.store.snapshot()

    # -- definitions --------------------------------------------------------

    def apply_definitions(self, definitions: DefinitionsInput) -> List[str]:
        """Install a definition set, seed new fields and run the pipeline.

        Values already in the store are kept, so definitions that arrive after
        the user started typing do not wipe their input. The address resolver
        is kept while the detected address group is unchanged, so a typed Full
        Address override survives a reload.

        Args:
            definitions: FieldDefinitions, raw definition dicts, or the
                ``{"customFields": [...]}`` envelope

        Returns:
            Names of fields seeded by this load

        Raises:
            FieldDefinitionError: If a raw payload is malformed
        """
        self._definitions = _as_definitions(definitions)
        self.store.set_definitions(self._definitions)
        self.dependencies.rebuild(self._definitions)
        group = find_address_group(self._definitions)
        if group != self.address.group:
            self.address = AddressResolver(group, self.store)
        self._validation = ValidationEngine(self._definitions, self.config)
        self._mapper = SubmissionMapper(self._definitions, self.config)

        self.emitter.emit(FieldEvent.create(
            EventType.DEFINITIONS_LOADED, None, ValueSource.SEED,
            {"count": len(self._definitions)},
        ))
        seeded = self.store.seed()
        self.run_pipeline()
        return seeded

    async def fetch_definitions(
        self, fetch: Callable[[], Awaitable[DefinitionsInput]]
    ) -> List[FieldDefinition]:
        """Await a definition payload from ``fetch`` and apply it."""
        payload = await fetch()
        self.apply_definitions(payload)
        return self.definitions

    # -- pipeline -----------------------------------------------------------

    def run_pipeline(self) -> int:
        """Run dependency then address resolution until nothing changes.

        Returns:
            Number of passes run
        """
        limit = max(1, self.config.max_resolver_passes)
        for passes in range(1, limit + 1):
            cleared = self.dependencies.resolve()
            combined = self.address.resolve()
            if not cleared and not combined:
                return passes
        logger.warning("Resolver pipeline did not settle after %d passes", limit)
        return limit

    # -- writes -------------------------------------------------------------

    def update(
        self,
        field_name: str,
        value: Any,
        source: ValueSource = ValueSource.USER,
        masked: bool = True,
    ) -> bool:
        """Write one value and run the pipeline.

        Args:
            field_name: Storage key of the field
            value: Raw input
            source: Who is writing
            masked: Apply the field's input mask before storing

        Returns:
            True if the stored value changed

        Raises:
            UnknownFieldError: If no definition has this field_name
        """
        definition = self.store.definition(field_name)
        if masked:
            value = mask_value(definition, value, self.store.get(field_name, ""))
        changed = self.store.set(field_name, value, source)
        if changed:
            self.run_pipeline()
        return changed

    def update_many(self, values: Mapping[str, Any], source: ValueSource = ValueSource.USER) -> List[str]:
        changed = [name for name, value in values.items() if self.update(name, value, source)]
        return changed

    def load_record(self, record: Mapping[str, Any], entity_type: Optional[str] = None) -> List[str]:
        """Load a persisted record for editing (see ``FieldValueStore.load_record``)."""
        loaded = self.store.load_record(record, entity_type or self.entity_type)
        self.run_pipeline()
        return loaded

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # -- queries ------------------------------------------------------------

    def is_enabled(self, field_name: str) -> bool:
        return self.dependencies.is_enabled(field_name)

    def _visible(self) -> List[FieldDefinition]:
        return [d for d in self._definitions if not d.is_hidden]

    def _autofill_dates(self) -> None:
        today = date_to_display(self.config.today())
        for definition in self._visible():
            name = definition.field_name
            if name in self._autofilled or classify(definition) is not SemanticKind.DATE:
                continue
            self._autofilled.add(name)
            if self.dependencies.is_enabled(name) and is_blank(self.store.get(name)):
                self.store.set(name, today, ValueSource.AUTOFILL)

    def render_context(self) -> RenderContext:
        group = self.address.group
        return RenderContext(
            definitions=tuple(self._definitions),
            values=self.store.snapshot(),
            config=self.config,
            organization_id=self.organization_id,
            disabled_fields=frozenset(self.dependencies.disabled_fields()),
            address_fields=group.field_names if group is not None else (),
            address_complete=self.address.is_complete() if group is not None else None,
            address_combined=self.address.combined(),
        )

    def render(self) -> List[Control]:
        """Render every visible top-level field, in display order.

        Empty date fields are filled with today's date the first time they are
        rendered. Composite-owned sub-fields render inside their composite, and
        address sub-fields render inside a declared address-group field when
        the form has one.
        """
        self._autofill_dates()
        self.run_pipeline()
        context = self.render_context()

        grouped: Set[str] = set()
        if any(classify(d) is SemanticKind.ADDRESS_GROUP for d in self._visible()):
            grouped = set(context.address_fields)

        return [
            render_field(d, context.values.get(d.field_name, ""), context)
            for d in self._visible()
            if self.store.is_top_level(d.field_name) and d.field_name not in grouped
        ]

    def render_one(self, field_name: str) -> Control:
        definition = self.store.definition(field_name)
        return render_field(definition, self.store.get(field_name, ""), self.render_context())

    def display_value(self, field_name: str) -> str:
        """Read-only display text for one field."""
        definition = self.store.definition(field_name)
        value = self.store.get(field_name)
        group = self.address.group
        if group is not None and group.full_address is not None \
                and group.full_address.field_name == field_name:
            return self.address.display_value(value) or EMPTY_DISPLAY
        if classify(definition) is SemanticKind.DATE_ADDED and is_blank(value):
            return date_to_display(self.config.today())
        return format_value(definition, value, self.config)

    def address_status(self) -> Dict[str, Any]:
        return self.address.status()

    # -- validation and submission -------------------------------------------

    def validate(self) -> ValidationResult:
        """Validate required, visible, enabled fields; first failure wins."""
        result = self._validation.validate(
            self.store.snapshot(), skip=self.dependencies.disabled_fields()
        )
        event_type = EventType.VALIDATION_PASSED if result.is_valid else EventType.VALIDATION_FAILED
        self.emitter.emit(FieldEvent.create(
            event_type,
            result.error.field_name if result.error is not None else None,
            ValueSource.USER,
            result.to_dict(),
        ))
        return result

    def to_payload(self) -> Dict[str, Any]:
        return self._mapper.to_payload(self.store.snapshot())

    def bulk_update_payload(self, field_name: str, value: Any) -> Dict[str, Any]:
        """Payload for applying one field value across many records."""
        definition = self.store.definition(field_name)
        return self._mapper.bulk_update_payload(definition, self.store.normalize(field_name, value))

    def standard_columns(self, entity_type: Optional[str] = None) -> Dict[str, Any]:
        return self._mapper.standard_columns(self.store.snapshot(), entity_type or self.entity_type or "")


__all__ = [
    "FormSession",
]
