"""Submission payload mapping.

Create, edit and bulk-update flows all send custom-field values keyed by
``field_label``. ``SubmissionMapper`` builds that payload from the value store
and applies the boundary conversions the backend expects:

- dates are sent as ``YYYY-MM-DD``
- zips are sent as strings
- multi-values are sent as lists, or comma-joined when configured
- currency is sent without ``$`` and thousands separators
- percentages are sent without ``%``

Hidden fields, including hidden composite sub-fields, never appear in a
payload.
"""

import re
from typing import Any, Dict, Iterable, Mapping

from crmfields.classify import classify
from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import FieldDefinition, composite_owners, sub_fields_of
from crmfields.formatters import is_blank, join_multi, split_multi, to_iso
from crmfields.types import MULTI_VALUED_KINDS, SemanticKind

_CURRENCY_DECORATION = re.compile(r"[$,]")

_DATE_KINDS = frozenset({SemanticKind.DATE, SemanticKind.DATE_ADDED})


class SubmissionMapper:
    """Maps store values to the label-keyed submission payload.

    Examples:
        >>> from crmfields.types import FieldType
        >>> mapper = SubmissionMapper([
        ...     FieldDefinition(id="1", field_name="Field_1", field_label="Start Date",
        ...         field_type=FieldType.DATE),
        ...     FieldDefinition(id="2", field_name="Field_2", field_label="Secret",
        ...         is_hidden=True),
        ... ])
        >>> mapper.to_payload({"Field_1": "03/09/2024", "Field_2": "x"})
        {'Start Date': '2024-03-09'}
    """

    def __init__(self, definitions: Iterable[FieldDefinition], config: EngineConfig = DEFAULT_CONFIG):
        self.definitions = list(definitions)
        self.config = config
        self._owners = composite_owners(self.definitions)

    def map_value(self, definition: FieldDefinition, value: Any) -> Any:
        """Convert one stored value to its payload form."""
        kind = classify(definition)

        if kind in MULTI_VALUED_KINDS:
            members = split_multi(value)
            return join_multi(members) if self.config.multiselect_as_string else members

        if kind is SemanticKind.COMPOSITE:
            nested = value if isinstance(value, Mapping) else {}
            return {
                sub.field_label: self.map_value(sub, nested.get(sub.field_name, ""))
                for sub in sub_fields_of(definition, self.definitions)
                if not sub.is_hidden
            }

        if value is None:
            return ""
        if kind in _DATE_KINDS:
            return to_iso(value)
        if kind is SemanticKind.ZIP:
            return str(value).strip()
        if kind is SemanticKind.CURRENCY:
            return _CURRENCY_DECORATION.sub("", str(value)).strip()
        if kind is SemanticKind.PERCENTAGE:
            return str(value).replace("%", "").strip()
        return value

    def _included(self, definition: FieldDefinition) -> bool:
        return (
            not definition.is_hidden
            and definition.field_name not in self._owners
            and classify(definition) is not SemanticKind.ADDRESS_GROUP
        )

    def to_payload(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Build the ``{field_label: value}`` payload for create and update."""
        return {
            d.field_label: self.map_value(d, values.get(d.field_name))
            for d in self.definitions
            if self._included(d)
        }

    def bulk_update_payload(self, definition: FieldDefinition, value: Any) -> Dict[str, Any]:
        """Payload for setting one field across many records."""
        return {definition.field_label: self.map_value(definition, value)}

    def standard_columns(self, values: Mapping[str, Any], entity_type: str) -> Dict[str, Any]:
        """Extract standard entity columns from custom-field values.

        Labels found in the entity's label -> column table are copied to their
        column when the value is non-empty.
        """
        columns = self.config.columns_for(entity_type)
        result: Dict[str, Any] = {}
        for definition in self.definitions:
            column = columns.get(definition.field_label)
            if column is None or not self._included(definition):
                continue
            value = values.get(definition.field_name)
            if is_blank(value):
                continue
            result.setdefault(column, self.map_value(definition, value))
        return result


def to_payload(
    definitions: Iterable[FieldDefinition],
    values: Mapping[str, Any],
    config: EngineConfig = DEFAULT_CONFIG,
) -> Dict[str, Any]:
    return SubmissionMapper(definitions, config).to_payload(values)


__all__ = [
    "SubmissionMapper",
    "to_payload",
]
