"""Type handler registry.

Every ``SemanticKind`` has exactly one ``TypeHandler`` bundling the four things
the engine does with a value of that kind:

- ``render``: build the headless ``Control``
- ``check``: return the validation ``FieldError`` or None
- ``format``: read-only display text
- ``mask``: normalize raw user input before it is stored

The registry is checked for exhaustiveness at import time, so adding a kind
without a handler fails immediately instead of falling through to text.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from crmfields import checks, renderer
from crmfields.checks import Check
from crmfields.classify import classify
from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import FieldDefinition
from crmfields.errors import FieldError
from crmfields.formatters import (
    EMPTY_DISPLAY,
    clamp_percentage,
    digits_only,
    format_currency,
    format_date_display,
    format_percentage,
    format_plain_number,
    is_blank,
    join_multi,
    mask_currency,
    mask_date_input,
    mask_phone,
    mask_zip,
    parse_amount,
    parse_date,
    split_multi,
    to_iso,
)
from crmfields.renderer import Control, RenderContext
from crmfields.types import FieldErrorCode, SemanticKind

Render = Callable[[FieldDefinition, Any, RenderContext], Control]
Format = Callable[[FieldDefinition, Any, EngineConfig], str]
Mask = Callable[[Any, Any], Any]


@dataclass(frozen=True)
class TypeHandler:
    """Behavior bundle for one semantic kind."""
    kind: SemanticKind
    widget: str
    render: Render
    check: Check
    format: Format
    mask: Mask


# -- display formatting -----------------------------------------------------

def _plain(value: Any) -> str:
    return "" if value is None else str(value).strip()


def format_plain(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    return _plain(value) or EMPTY_DISPLAY


def format_phone(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    return mask_phone(value) or EMPTY_DISPLAY


def format_date(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    return format_date_display(value) or EMPTY_DISPLAY


def format_datetime(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    text = _plain(value)
    return text[:16].replace("T", " ") if text else EMPTY_DISPLAY


def format_money(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    if is_blank(value):
        return EMPTY_DISPLAY
    return format_currency(value) or _plain(value)


def format_percent(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    if is_blank(value):
        return EMPTY_DISPLAY
    return format_percentage(value)


def format_choice(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    if checks.is_placeholder(value, config):
        return EMPTY_DISPLAY
    return format_plain(field_def, value, config)


def format_multi(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    return join_multi(split_multi(value)) or EMPTY_DISPLAY


def format_checkbox(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    return "Yes" if value is True or _plain(value).lower() == "true" else "No"


def format_file(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return EMPTY_DISPLAY
    return getattr(value, "name", None) or str(value)


def format_composite(field_def: FieldDefinition, value: Any, config: EngineConfig) -> str:
    if not isinstance(value, dict):
        return EMPTY_DISPLAY
    parts = [_plain(v) for v in value.values() if not is_blank(v) and not isinstance(v, (list, dict))]
    return ", ".join(parts) or EMPTY_DISPLAY


# -- input masks ------------------------------------------------------------

def keep(raw: Any, previous: Any) -> Any:
    return raw


def mask_year(raw: Any, previous: Any) -> str:
    return digits_only(raw)[:4]


def mask_amount(raw: Any, previous: Any) -> str:
    return mask_currency(raw)


def mask_percent(raw: Any, previous: Any) -> Any:
    return clamp_percentage(raw, previous)


def mask_date(raw: Any, previous: Any) -> str:
    """Store a complete valid date as ISO, otherwise the progressive mask."""
    if parse_date(raw) is not None:
        return to_iso(raw)
    masked = mask_date_input(raw)
    if parse_date(masked) is not None:
        return to_iso(masked)
    return masked


def mask_multi(raw: Any, previous: Any) -> Any:
    return split_multi(raw)


def mask_counter(raw: Any, previous: Any) -> Any:
    if is_blank(raw):
        return ""
    amount = parse_amount(raw)
    if amount is None:
        return previous
    return "0" if amount < 0 else format_plain_number(amount)


def _handler(kind, widget, render, check, fmt=format_plain, mask=keep) -> TypeHandler:
    return TypeHandler(kind=kind, widget=widget, render=render, check=check, format=fmt, mask=mask)


HANDLERS: Dict[SemanticKind, TypeHandler] = {
    h.kind: h for h in (
        _handler(SemanticKind.TEXT, "text", renderer.render_text, checks.check_text),
        _handler(SemanticKind.TEXTAREA, "textarea", renderer.render_textarea, checks.check_text),
        _handler(SemanticKind.EMAIL, "email", renderer.render_email, checks.check_text),
        _handler(SemanticKind.NUMBER, "number", renderer.render_number, checks.check_number),
        _handler(SemanticKind.YEAR, "number", renderer.render_year, checks.check_year, mask=mask_year),
        _handler(SemanticKind.COUNTER, "number", renderer.render_counter, checks.check_counter,
                 mask=mask_counter),
        _handler(SemanticKind.CURRENCY, "currency", renderer.render_currency, checks.check_currency,
                 format_money, mask_amount),
        _handler(SemanticKind.PERCENTAGE, "percentage", renderer.render_percentage,
                 checks.check_percentage, format_percent, mask_percent),
        _handler(SemanticKind.PHONE, "tel", renderer.render_phone, checks.check_phone,
                 format_phone, lambda raw, previous: mask_phone(raw)),
        _handler(SemanticKind.ZIP, "zip", renderer.render_zip, checks.check_zip,
                 mask=lambda raw, previous: mask_zip(raw)),
        _handler(SemanticKind.URL, "url", renderer.render_url, checks.check_url),
        _handler(SemanticKind.DATE, "date", renderer.render_date, checks.check_date,
                 format_date, mask_date),
        _handler(SemanticKind.DATE_ADDED, "date", renderer.render_date_added,
                 checks.check_always_valid, format_date, mask_date),
        _handler(SemanticKind.DATETIME, "datetime", renderer.render_datetime, checks.check_text,
                 format_datetime),
        _handler(SemanticKind.SELECT, "select", renderer.render_select, checks.check_select,
                 format_choice),
        _handler(SemanticKind.RADIO, "radio", renderer.render_radio, checks.check_select,
                 format_choice),
        _handler(SemanticKind.CREDENTIALS, "checkbox-group", renderer.render_credentials,
                 checks.check_multi, format_multi, mask_multi),
        _handler(SemanticKind.CHECKBOX, "checkbox", renderer.render_checkbox, checks.check_checkbox,
                 format_checkbox),
        _handler(SemanticKind.MULTISELECT, "multiselect", renderer.render_multiselect,
                 checks.check_multi, format_multi, mask_multi),
        _handler(SemanticKind.LOOKUP, "lookup", renderer.render_lookup, checks.check_text),
        _handler(SemanticKind.MULTISELECT_LOOKUP, "multiselect-lookup",
                 renderer.render_multiselect_lookup, checks.check_multi, format_multi, mask_multi),
        _handler(SemanticKind.COMPOSITE, "composite", renderer.render_composite,
                 checks.check_composite, format_composite),
        _handler(SemanticKind.ADDRESS_GROUP, "address-group", renderer.render_address_group,
                 checks.check_always_valid),
        _handler(SemanticKind.FULL_ADDRESS, "text", renderer.render_full_address, checks.check_text),
        _handler(SemanticKind.FILE, "file", renderer.render_file, checks.check_file, format_file),
    )
}

_missing = [kind.value for kind in SemanticKind if kind not in HANDLERS]
if _missing:
    raise RuntimeError(f"No type handler registered for: {', '.join(_missing)}")


def handler_for(field_def: FieldDefinition) -> TypeHandler:
    return HANDLERS[classify(field_def)]


def check_value(
    field_def: FieldDefinition, value: Any, config: EngineConfig = DEFAULT_CONFIG
) -> Optional[FieldError]:
    """Validate one value against its field's type rule."""
    return handler_for(field_def).check(field_def, value, config)


def is_valid(field_def: FieldDefinition, value: Any, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    """Type predicate: True when the value passes its field's check.

    Examples:
        >>> from crmfields.types import FieldType
        >>> zip_field = FieldDefinition(id="1", field_name="zip", field_label="Zip",
        ...     field_type=FieldType.ZIP)
        >>> is_valid(zip_field, "01234"), is_valid(zip_field, "1234")
        (True, False)
    """
    return check_value(field_def, value, config) is None


def format_value(field_def: FieldDefinition, value: Any, config: EngineConfig = DEFAULT_CONFIG) -> str:
    return handler_for(field_def).format(field_def, value, config)


def mask_value(field_def: FieldDefinition, raw: Any, previous: Any = "") -> Any:
    return handler_for(field_def).mask(raw, previous)


def render_field(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    """Render one field, including its live validation message.

    Dependent fields listed in ``context.disabled_fields`` render as inert
    placeholders. A non-empty value that fails its check carries the check's
    message in ``Control.error``.
    """
    if context.render_child is None:
        context = replace(context, render_child=render_field)

    handler = handler_for(field_def)
    if field_def.field_name in context.disabled_fields:
        return renderer.disabled_control(field_def, handler.widget)

    control = handler.render(field_def, value, context)
    if not is_blank(value) and handler.kind is not SemanticKind.COMPOSITE:
        error = handler.check(field_def, value, context.config)
        if error is not None and error.code is not FieldErrorCode.REQUIRED:
            control.error = error.message
    return control


__all__ = [
    "TypeHandler",
    "HANDLERS",
    "handler_for",
    "check_value",
    "is_valid",
    "format_value",
    "mask_value",
    "render_field",
]
