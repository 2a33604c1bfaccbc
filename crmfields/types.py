"""Core type definitions for the crmfields custom-field engine.

This module defines the fundamental enums used throughout the engine:
- FieldType: Declared field types as authored in the field-management admin
- SemanticKind: Classified behavior of a field (what the engine actually does)
- DependencyState: Enabled/disabled state of a dependent field
- EventType: Event types emitted by the value store and resolvers
- FieldErrorCode: Validation error codes for individual fields
- ValueSource: Origin of a write into the value store

These types form the contract between the field-definition payload, the
value store, and the renderer/validator dispatch.
"""

from enum import Enum


class FieldType(str, Enum):
    """Declared field types.

    These are the raw ``field_type`` strings the field-management service
    returns. Unknown strings degrade to TEXT when definitions are loaded.
    """
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    PHONE = "phone"
    ZIP = "zip"
    URL = "url"
    LINK = "link"
    EMAIL = "email"
    DATE = "date"
    DATETIME = "datetime"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    MULTISELECT = "multiselect"
    MULTICHECKBOX = "multicheckbox"
    LOOKUP = "lookup"
    MULTISELECT_LOOKUP = "multiselect_lookup"
    COMPOSITE = "composite"
    ADDRESS_GROUP = "address-group"
    FILE = "file"


class SemanticKind(str, Enum):
    """Classified field behavior.

    A field's semantic kind is derived from its declared type plus label and
    name heuristics (see ``crmfields.classify``). Every kind has exactly one
    handler in the dispatch registry.
    """
    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    NUMBER = "number"
    YEAR = "year"
    COUNTER = "counter"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    PHONE = "phone"
    ZIP = "zip"
    URL = "url"
    DATE = "date"
    DATE_ADDED = "date_added"
    DATETIME = "datetime"
    SELECT = "select"
    RADIO = "radio"
    CREDENTIALS = "credentials"
    CHECKBOX = "checkbox"
    MULTISELECT = "multiselect"
    LOOKUP = "lookup"
    MULTISELECT_LOOKUP = "multiselect_lookup"
    COMPOSITE = "composite"
    ADDRESS_GROUP = "address_group"
    FULL_ADDRESS = "full_address"
    FILE = "file"


# Kinds whose stored value is an ordered list of strings
MULTI_VALUED_KINDS = frozenset({
    SemanticKind.MULTISELECT,
    SemanticKind.MULTISELECT_LOOKUP,
    SemanticKind.CREDENTIALS,
})


class DependencyState(str, Enum):
    """State of a field gated by ``dependent_on_field_id``."""
    ENABLED = "enabled"
    DISABLED = "disabled"


class EventType(str, Enum):
    """Event types emitted by the store, resolvers and form session."""
    DEFINITIONS_LOADED = "definitions.loaded"
    VALUES_SEEDED = "values.seeded"
    VALUE_CHANGED = "value.changed"
    RECORD_LOADED = "record.loaded"
    DEPENDENCY_ENABLED = "dependency.enabled"
    DEPENDENCY_DISABLED = "dependency.disabled"
    ADDRESS_COMBINED = "address.combined"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    INVALID_FORMAT = "invalid_format"
    INVALID_VALUE = "invalid_value"
    OUT_OF_RANGE = "out_of_range"
    INVALID_TYPE = "invalid_type"
    NOT_CONFIGURED = "not_configured"


class ValueSource(str, Enum):
    """Who wrote a value into the store."""
    USER = "user"
    SEED = "seed"
    RECORD = "record"
    DEPENDENCY = "dependency"
    ADDRESS = "address"
    AUTOFILL = "autofill"


__all__ = [
    "FieldType",
    "SemanticKind",
    "MULTI_VALUED_KINDS",
    "DependencyState",
    "EventType",
    "FieldErrorCode",
    "ValueSource",
]
