"""Field definition model.

A ``FieldDefinition`` is one administrator-authored custom field: its storage key
(``field_name``), its display and payload key (``field_label``), its declared type,
flags, options and the optional pointers to sub-fields and a controlling field.

Definition payloads arrive from the field-management endpoint either as a bare
list or wrapped as ``{"customFields": [...]}``. They are checked against a JSON
Schema before any definition is built, so a malformed payload fails loudly at the
boundary instead of surfacing later as odd rendering.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from jsonschema import Draft7Validator

from crmfields.errors import FieldDefinitionError, FieldError
from crmfields.types import FieldErrorCode, FieldType

logger = logging.getLogger(__name__)

RawOptions = Union[None, str, Sequence[Any], Dict[str, Any]]

_ID = {"type": ["string", "integer"]}
_NULLABLE_STRING = {"type": ["string", "null"]}

FIELD_DEFINITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": _ID,
        "field_name": {"type": "string", "minLength": 1},
        "field_label": {"type": "string"},
        "field_type": {"type": "string", "minLength": 1},
        "is_required": {"type": ["boolean", "integer", "null"]},
        "is_hidden": {"type": ["boolean", "integer", "null"]},
        "is_read_only": {"type": ["boolean", "integer", "null"]},
        "options": {"type": ["array", "string", "object", "null"]},
        "placeholder": _NULLABLE_STRING,
        "default_value": {"type": ["string", "number", "boolean", "array", "null"]},
        "sort_order": {"type": ["integer", "number", "null"]},
        "lookup_type": _NULLABLE_STRING,
        "sub_field_ids": {"type": ["array", "null"], "items": _ID},
        "dependent_on_field_id": {"type": ["string", "integer", "null"]},
    },
    "required": ["field_name", "field_label", "field_type"],
}

DEFINITIONS_PAYLOAD_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": FIELD_DEFINITION_SCHEMA,
}

_payload_validator = Draft7Validator(DEFINITIONS_PAYLOAD_SCHEMA)

_NEWLINES = re.compile(r"\r?\n")


def normalize_options(raw: RawOptions) -> List[str]:
    """Normalize the four accepted option shapes to an ordered list of strings.

    Accepts a native list, a JSON-encoded list, a newline-delimited string, or an
    object whose values are the option labels. Members that are not strings are
    dropped, the rest are trimmed and empties removed. Any other shape yields
    an empty list.

    Examples:
        >>> normalize_options('["A", " B ", ""]')
        ['A', 'B']
        >>> normalize_options("Open\\nClosed")
        ['Open', 'Closed']
        >>> normalize_options({"a": "Yes", "b": "No"})
        ['Yes', 'No']
    """
    if not raw:
        return []

    if isinstance(raw, str):
        trimmed = raw.strip()
        if not trimmed:
            return []
        try:
            parsed = json.loads(trimmed)
        except ValueError:
            return _clean(_NEWLINES.split(trimmed))
        if isinstance(parsed, list):
            return _clean(parsed)
        return []

    if isinstance(raw, dict):
        return _clean(raw.values())

    if isinstance(raw, (list, tuple)):
        return _clean(raw)

    return []


def _clean(items: Iterable[Any]) -> List[str]:
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _parse_type(raw: str, field_name: str) -> FieldType:
    try:
        return FieldType(raw.strip().lower())
    except ValueError:
        logger.warning("Unknown field_type %r on %s, rendering as text", raw, field_name)
        return FieldType.TEXT


@dataclass(frozen=True)
class FieldDefinition:
    """One configurable custom field.

    Attributes:
        id: Definition identifier (compared as a string)
        field_name: Storage key, unique per entity
        field_label: Display key and submission payload key
        field_type: Declared type
        is_required: Must hold a valid value before submission
        is_hidden: Excluded from rendering, validation and payloads
        is_read_only: Rendered but not editable
        options: Normalized option list (select, radio, multiselect)
        placeholder: Input placeholder text
        default_value: Seed value for new records
        sort_order: Display order
        lookup_type: Target entity for lookup fields
        sub_field_ids: Ordered sub-field ids (composite only)
        dependent_on_field_id: Id of the controlling field, if gated

    Examples:
        >>> fd = FieldDefinition.from_dict({
        ...     "id": 7, "field_name": "Field_7", "field_label": "Zip Code",
        ...     "field_type": "number", "is_required": True, "is_hidden": False,
        ... })
        >>> fd.id, fd.field_type
        ('7', <FieldType.NUMBER: 'number'>)
    """
    id: str
    field_name: str
    field_label: str
    field_type: FieldType = FieldType.TEXT
    is_required: bool = False
    is_hidden: bool = False
    is_read_only: bool = False
    options: Tuple[str, ...] = ()
    placeholder: str = ""
    default_value: Any = None
    sort_order: float = 0
    lookup_type: Optional[str] = None
    sub_field_ids: Tuple[str, ...] = ()
    dependent_on_field_id: Optional[str] = None
    raw_options: Any = field(default=None, compare=False, repr=False)

    @property
    def label_key(self) -> str:
        """Lower-cased, trimmed label used by every label heuristic."""
        return (self.field_label or "").strip().lower()

    @property
    def name_key(self) -> str:
        return (self.field_name or "").strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the field-management payload shape."""
        result: Dict[str, Any] = {
            "id": self.id,
            "field_name": self.field_name,
            "field_label": self.field_label,
            "field_type": self.field_type.value,
            "is_required": self.is_required,
            "is_hidden": self.is_hidden,
            "is_read_only": self.is_read_only,
            "options": list(self.options),
            "placeholder": self.placeholder,
            "default_value": self.default_value,
            "sort_order": self.sort_order,
        }
        if self.lookup_type is not None:
            result["lookup_type"] = self.lookup_type
        if self.sub_field_ids:
            result["sub_field_ids"] = list(self.sub_field_ids)
        if self.dependent_on_field_id is not None:
            result["dependent_on_field_id"] = self.dependent_on_field_id
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDefinition":
        """Create FieldDefinition from a field-management payload entry."""
        field_name = data["field_name"]
        sub_ids = data.get("sub_field_ids") or []
        return cls(
            id=_as_id(data.get("id")) or field_name,
            field_name=field_name,
            field_label=data.get("field_label") or "",
            field_type=_parse_type(data.get("field_type") or "text", field_name),
            is_required=_as_bool(data.get("is_required")),
            is_hidden=_as_bool(data.get("is_hidden")),
            is_read_only=_as_bool(data.get("is_read_only")),
            options=tuple(normalize_options(data.get("options"))),
            placeholder=data.get("placeholder") or "",
            default_value=data.get("default_value"),
            sort_order=data.get("sort_order") or 0,
            lookup_type=data.get("lookup_type") or None,
            sub_field_ids=tuple(str(i) for i in sub_ids),
            dependent_on_field_id=_as_id(data.get("dependent_on_field_id")),
            raw_options=data.get("options"),
        )


def load_definitions(payload: Union[List[Dict[str, Any]], Dict[str, Any]]) -> List[FieldDefinition]:
    """Validate a definition payload and build sorted FieldDefinitions.

    Args:
        payload: A list of definition dicts, or ``{"customFields": [...]}``

    Returns:
        Definitions sorted by ``sort_order`` (stable for ties)

    Raises:
        FieldDefinitionError: If the payload does not match the schema or
            repeats a ``field_name``
    """
    if isinstance(payload, dict):
        payload = payload.get("customFields") or []

    schema_errors = sorted(_payload_validator.iter_errors(payload), key=lambda e: list(e.path))
    if schema_errors:
        errors = [_translate_schema_error(e) for e in schema_errors]
        raise FieldDefinitionError(
            f"Field definition payload is invalid: {errors[0].message}", errors
        )

    definitions = [FieldDefinition.from_dict(item) for item in payload]

    seen: Dict[str, int] = {}
    duplicates: List[FieldError] = []
    for index, definition in enumerate(definitions):
        if definition.field_name in seen:
            duplicates.append(FieldError(
                field_name=f"{index}.field_name",
                code=FieldErrorCode.INVALID_VALUE,
                message=f"Duplicate field_name '{definition.field_name}'",
                received=definition.field_name,
            ))
        seen[definition.field_name] = index
    if duplicates:
        raise FieldDefinitionError(duplicates[0].message, duplicates)

    ordered = sorted(definitions, key=lambda d: d.sort_order)
    logger.debug("Loaded %d field definitions", len(ordered))
    return ordered


def _translate_schema_error(error: Any) -> FieldError:
    path = ".".join(str(p) for p in error.path)
    if error.validator == "required":
        missing = error.message.split("'")[1] if "'" in error.message else "field"
        full_path = f"{path}.{missing}" if path else missing
        return FieldError(
            field_name=full_path,
            code=FieldErrorCode.REQUIRED,
            message=f"Definition property '{full_path}' is required",
        )
    if error.validator == "type":
        return FieldError(
            field_name=path,
            code=FieldErrorCode.INVALID_TYPE,
            message=f"Definition property '{path}' has invalid type, expected {error.validator_value}",
            received=type(error.instance).__name__,
        )
    return FieldError(
        field_name=path,
        code=FieldErrorCode.INVALID_VALUE,
        message=f"Definition property '{path}' is invalid: {error.message}",
        received=error.instance,
    )


def index_by_id(definitions: Iterable[FieldDefinition]) -> Dict[str, FieldDefinition]:
    return {d.id: d for d in definitions}


def index_by_name(definitions: Iterable[FieldDefinition]) -> Dict[str, FieldDefinition]:
    return {d.field_name: d for d in definitions}


def composite_owners(definitions: Iterable[FieldDefinition]) -> Dict[str, str]:
    """Map each composite-owned sub-field name to its composite's field name.

    A sub-field claimed by more than one composite belongs to the first one.
    """
    definitions = list(definitions)
    by_id = index_by_id(definitions)
    owners: Dict[str, str] = {}
    for definition in definitions:
        if definition.field_type is not FieldType.COMPOSITE:
            continue
        for sub_id in definition.sub_field_ids:
            sub = by_id.get(sub_id)
            if sub is None or sub.field_name == definition.field_name:
                continue
            owners.setdefault(sub.field_name, definition.field_name)
    return owners


def sub_fields_of(composite: FieldDefinition, definitions: Iterable[FieldDefinition]) -> List[FieldDefinition]:
    """Resolve a composite's ``sub_field_ids`` in order, dropping unknown ids."""
    by_id = index_by_id(definitions)
    return [
        by_id[sub_id] for sub_id in composite.sub_field_ids
        if sub_id in by_id and by_id[sub_id].field_name != composite.field_name
    ]


__all__ = [
    "FIELD_DEFINITION_SCHEMA",
    "DEFINITIONS_PAYLOAD_SCHEMA",
    "FieldDefinition",
    "normalize_options",
    "load_definitions",
    "index_by_id",
    "index_by_name",
    "composite_owners",
    "sub_fields_of",
]
