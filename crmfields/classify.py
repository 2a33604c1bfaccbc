"""Semantic classification of field definitions.

Administrators reuse generic declared types (a zip code is often declared as
``number``, a phone as ``text``), so the engine decides behavior from the
declared type plus label and storage-name heuristics. All of those heuristics
live here; every consumer (renderer, validators, address detection, store
normalization, submission mapping) calls ``classify`` instead of re-deriving
them.

Order matters and is part of the contract:

1. Full Address label (fuzzy) on any non-structural type
2. Declared ``date``: "Date Added" vs ordinary date
3. Declared ``select`` labelled "Credentials" (checkbox multi-select)
4. Free-entry types: zip, then phone, then url, then the number sub-policies
   (year, non-negative counter, unrestricted)
5. Declared type, one-to-one
"""

from typing import Dict

from crmfields.definitions import FieldDefinition
from crmfields.types import FieldType, SemanticKind

FREE_ENTRY_TYPES = frozenset({
    FieldType.TEXT,
    FieldType.TEXTAREA,
    FieldType.NUMBER,
    FieldType.ZIP,
    FieldType.PHONE,
    FieldType.URL,
    FieldType.LINK,
    FieldType.EMAIL,
})

_STRUCTURAL_TYPES = frozenset({FieldType.COMPOSITE, FieldType.ADDRESS_GROUP})

_COUNTER_LABEL_WORDS = ("employees", "offices", "oasis key")
_COUNTER_NAME_WORDS = ("employees", "offices", "oasis")

DECLARED_KINDS: Dict[FieldType, SemanticKind] = {
    FieldType.TEXT: SemanticKind.TEXT,
    FieldType.TEXTAREA: SemanticKind.TEXTAREA,
    FieldType.EMAIL: SemanticKind.EMAIL,
    FieldType.NUMBER: SemanticKind.NUMBER,
    FieldType.CURRENCY: SemanticKind.CURRENCY,
    FieldType.PERCENTAGE: SemanticKind.PERCENTAGE,
    FieldType.PHONE: SemanticKind.PHONE,
    FieldType.ZIP: SemanticKind.ZIP,
    FieldType.URL: SemanticKind.URL,
    FieldType.LINK: SemanticKind.URL,
    FieldType.DATE: SemanticKind.DATE,
    FieldType.DATETIME: SemanticKind.DATETIME,
    FieldType.SELECT: SemanticKind.SELECT,
    FieldType.RADIO: SemanticKind.RADIO,
    FieldType.CHECKBOX: SemanticKind.CHECKBOX,
    FieldType.MULTISELECT: SemanticKind.MULTISELECT,
    FieldType.MULTICHECKBOX: SemanticKind.MULTISELECT,
    FieldType.LOOKUP: SemanticKind.LOOKUP,
    FieldType.MULTISELECT_LOOKUP: SemanticKind.MULTISELECT_LOOKUP,
    FieldType.COMPOSITE: SemanticKind.COMPOSITE,
    FieldType.ADDRESS_GROUP: SemanticKind.ADDRESS_GROUP,
    FieldType.FILE: SemanticKind.FILE,
}


def _normalize_label(label: str) -> str:
    collapsed = (label or "").lower().replace("_", " ").replace("-", " ")
    return " ".join(collapsed.split())


def is_close_match(word: str, target: str) -> bool:
    """True when ``word`` equals ``target`` or differs by one character.

    Lengths may differ by at most one; positions are compared pairwise, so a
    dropped letter in the middle of the word shifts every later position and
    fails, while a dropped or extra trailing letter passes.

    Examples:
        >>> is_close_match("addres", "address")
        True
        >>> is_close_match("adress", "address")
        False
        >>> is_close_match("ful", "full")
        True
        >>> is_close_match("fall", "full")
        True
        >>> is_close_match("city", "full")
        False
    """
    if word == target:
        return True
    if abs(len(word) - len(target)) > 1:
        return False
    mismatches = 0
    for a, b in zip(word, target):
        if a != b:
            mismatches += 1
            if mismatches > 1:
                return False
    return True


def is_full_address_label(label: str) -> bool:
    """True for labels like "Full Address", "full_address", "Ful Adress".

    Examples:
        >>> is_full_address_label("Full Address")
        True
        >>> is_full_address_label("Address")
        False
    """
    words = _normalize_label(label).split(" ")
    has_full = any(is_close_match(w, "full") for w in words if w)
    has_address = any(is_close_match(w, "address") for w in words if w)
    return has_full and has_address


def is_zip_field(field: FieldDefinition) -> bool:
    label = field.label_key
    return (
        field.field_type is FieldType.ZIP
        or "zip" in label
        or "postal code" in label
        or "zip" in field.name_key
    )


def is_phone_field(field: FieldDefinition) -> bool:
    if field.field_type is FieldType.DATE or "date" in field.label_key:
        return False
    return field.field_type is FieldType.PHONE or "phone" in field.label_key


def is_url_field(field: FieldDefinition) -> bool:
    label = field.label_key
    return (
        field.field_type in (FieldType.URL, FieldType.LINK)
        or "website" in label
        or "url" in label
    )


def is_year_field(field: FieldDefinition) -> bool:
    return "year" in field.label_key or "year" in field.name_key


def is_counter_field(field: FieldDefinition) -> bool:
    label, name = field.label_key, field.name_key
    return (
        any(word in label for word in _COUNTER_LABEL_WORDS)
        or any(word in name for word in _COUNTER_NAME_WORDS)
    )


def classify(field: FieldDefinition) -> SemanticKind:
    """Return the semantic kind that drives rendering, validation and mapping.

    Examples:
        >>> zip_as_number = FieldDefinition(id="1", field_name="Field_24",
        ...     field_label="Zip Code", field_type=FieldType.NUMBER)
        >>> classify(zip_as_number)
        <SemanticKind.ZIP: 'zip'>
    """
    declared = field.field_type

    if declared not in _STRUCTURAL_TYPES and is_full_address_label(field.field_label):
        return SemanticKind.FULL_ADDRESS

    if declared is FieldType.DATE:
        if field.label_key == "date added":
            return SemanticKind.DATE_ADDED
        return SemanticKind.DATE

    if declared is FieldType.SELECT and field.label_key == "credentials":
        return SemanticKind.CREDENTIALS

    if declared in FREE_ENTRY_TYPES:
        if is_zip_field(field):
            return SemanticKind.ZIP
        if is_phone_field(field):
            return SemanticKind.PHONE
        if is_url_field(field):
            return SemanticKind.URL
        if declared is FieldType.NUMBER:
            if is_year_field(field):
                return SemanticKind.YEAR
            if is_counter_field(field):
                return SemanticKind.COUNTER
            return SemanticKind.NUMBER

    return DECLARED_KINDS[declared]


__all__ = [
    "FREE_ENTRY_TYPES",
    "DECLARED_KINDS",
    "classify",
    "is_close_match",
    "is_full_address_label",
    "is_zip_field",
    "is_phone_field",
    "is_url_field",
    "is_year_field",
    "is_counter_field",
]
