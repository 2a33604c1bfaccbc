"""Headless rendering of field definitions into a control tree.

The engine does not draw widgets. Each render function turns a definition and
its current value into a ``Control``: the widget kind a front end should draw,
the value and display text to show, the options, flags and child controls.
A front end maps controls onto its own toolkit.

Render functions are pure. Composite and address-group controls render their
children through ``RenderContext.render_child``, which the dispatch layer
supplies, so nested fields get exactly the same treatment as top-level ones.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import FieldDefinition, index_by_name, sub_fields_of
from crmfields.formatters import (
    date_to_display,
    format_currency,
    format_datetime_input,
    is_blank,
    mask_phone,
    parse_amount,
    split_multi,
    to_display,
)

DISABLED_PLACEHOLDER = "— (select dependent field first)"
NO_OPTIONS_NOTICE = "No options configured for this field."
NO_SUB_FIELDS_NOTICE = "Composite field is not configured (no sub-fields found)."
NO_ADDRESS_FIELDS_NOTICE = "No address fields configured."
LOOKUP_PLACEHOLDER = "Type to search..."
DEFAULT_LOOKUP_TYPE = "organizations"


@dataclass
class Control:
    """One rendered input.

    Attributes:
        field_name: Storage key of the rendered field
        label: Display label
        widget: Widget kind ("text", "tel", "select", "composite", ...)
        value: Value the widget is bound to
        display: Text the widget shows
        required: Field must be filled before submission
        read_only: Widget does not accept input
        disabled: Field is gated by an empty controller
        placeholder: Placeholder text
        options: Choices for option-based widgets
        props: Widget-specific extras (min/max, accept, lookupType, ...)
        children: Nested controls (composite, address group)
        notice: Configuration notice shown instead of, or next to, the input
        error: Live validation message for a non-empty invalid value
    """
    field_name: str
    label: str
    widget: str
    value: Any = ""
    display: str = ""
    required: bool = False
    read_only: bool = False
    disabled: bool = False
    placeholder: str = ""
    options: List[str] = field(default_factory=list)
    props: Dict[str, Any] = field(default_factory=dict)
    children: List["Control"] = field(default_factory=list)
    notice: Optional[str] = None
    error: Optional[str] = None

    def find(self, field_name: str) -> Optional["Control"]:
        """Depth-first search for a control by field name."""
        if self.field_name == field_name:
            return self
        for child in self.children:
            found = child.find(field_name)
            if found is not None:
                return found
        return None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "fieldName": self.field_name,
            "label": self.label,
            "widget": self.widget,
            "value": self.value,
            "display": self.display,
            "required": self.required,
            "readOnly": self.read_only,
            "disabled": self.disabled,
            "placeholder": self.placeholder,
            "options": list(self.options),
            "props": dict(self.props),
            "children": [c.to_dict() for c in self.children],
        }
        if self.notice is not None:
            result["notice"] = self.notice
        if self.error is not None:
            result["error"] = self.error
        return result


RenderChild = Callable[[FieldDefinition, Any, "RenderContext"], Control]


@dataclass(frozen=True)
class RenderContext:
    """Everything a render function may look at besides its own field.

    Attributes:
        definitions: All definitions of the form, used to resolve sub-fields
        values: Current value snapshot (composite values nested)
        config: Engine configuration
        organization_id: Organization the record belongs to; filters
            hiring-manager lookups
        disabled_fields: Names of dependent fields whose controller is empty
        address_fields: Ordered names of detected address sub-fields
        address_complete: Completeness of the detected address group
        address_combined: Current combined address line
        render_child: Callback used for nested controls
    """
    definitions: Sequence[FieldDefinition] = ()
    values: Mapping[str, Any] = field(default_factory=dict)
    config: EngineConfig = DEFAULT_CONFIG
    organization_id: Optional[str] = None
    disabled_fields: FrozenSet[str] = frozenset()
    address_fields: Tuple[str, ...] = ()
    address_complete: Optional[bool] = None
    address_combined: str = ""
    render_child: Optional[RenderChild] = None

    def child(self, definition: FieldDefinition, value: Any) -> Control:
        if self.render_child is None:
            raise RuntimeError("RenderContext.render_child is not set")
        return self.render_child(definition, value, self)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def base_control(field_def: FieldDefinition, value: Any, widget: str, **overrides: Any) -> Control:
    """Control with the flags every widget shares; keyword overrides win."""
    values: Dict[str, Any] = {
        "field_name": field_def.field_name,
        "label": field_def.field_label,
        "widget": widget,
        "value": "" if value is None else value,
        "display": _text(value),
        "required": field_def.is_required,
        "read_only": field_def.is_read_only,
        "placeholder": field_def.placeholder,
    }
    values.update(overrides)
    return Control(**values)


def _with_options(control: Control, field_def: FieldDefinition) -> Control:
    control.options = list(field_def.options)
    if not control.options:
        control.notice = NO_OPTIONS_NOTICE
    return control


def disabled_control(field_def: FieldDefinition, widget: str) -> Control:
    """Inert placeholder for a dependent field whose controller is empty."""
    return base_control(
        field_def, "", widget,
        display="",
        read_only=True,
        disabled=True,
        placeholder=DISABLED_PLACEHOLDER,
    )


# -- free-entry widgets -----------------------------------------------------

def render_text(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "text")


def render_textarea(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "textarea")


def render_email(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "email")


def render_number(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "number")


def render_year(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(
        field_def, value, "number",
        placeholder=field_def.placeholder or "YYYY",
        props={"min": 2000, "max": 2100, "maxLength": 4},
    )


def render_counter(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "number", props={"min": 0, "step": 1})


def render_currency(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    display = format_currency(value) if parse_amount(value) is not None else _text(value)
    return base_control(field_def, value, "currency", display=display, props={"prefix": "$"})


def render_percentage(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(
        field_def, value, "percentage",
        props={"min": 0, "max": 100, "step": 0.01, "suffix": "%"},
    )


def render_phone(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(
        field_def, value, "tel",
        display=mask_phone(value),
        placeholder=field_def.placeholder or "(XXX) XXX-XXXX",
        props={"maxLength": 14},
    )


def render_zip(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(
        field_def, _text(value), "zip",
        placeholder=field_def.placeholder or "12345",
        props={"maxLength": 5, "inputMode": "numeric", "pattern": "[0-9]{5}"},
    )


def render_url(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(
        field_def, value, "url",
        placeholder=field_def.placeholder or "https://example.com",
    )


# -- dates ------------------------------------------------------------------

def render_date(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(
        field_def, value, "date",
        display=to_display(value),
        placeholder=field_def.placeholder or "mm/dd/yyyy",
        props={"maxLength": 10},
    )


def render_date_added(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    display = to_display(value) if not is_blank(value) else date_to_display(context.config.today())
    return base_control(field_def, value, "date", display=display, read_only=True)


def render_datetime(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "datetime", display=format_datetime_input(value))


# -- option widgets ---------------------------------------------------------

def render_select(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    control = base_control(
        field_def, value, "select",
        placeholder=field_def.placeholder or context.config.select_placeholder,
    )
    return _with_options(control, field_def)


def render_radio(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return _with_options(base_control(field_def, value, "radio"), field_def)


def render_credentials(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    members = split_multi(value)
    control = base_control(field_def, members, "checkbox-group", display=", ".join(members))
    return _with_options(control, field_def)


def render_checkbox(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    checked = value is True or _text(value).strip().lower() == "true"
    return base_control(field_def, checked, "checkbox", display="Yes" if checked else "No")


def render_multiselect(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    members = split_multi(value)
    control = base_control(
        field_def, members, "multiselect",
        display=", ".join(members),
        props={"declaredType": field_def.field_type.value},
    )
    return _with_options(control, field_def)


def _lookup_props(field_def: FieldDefinition, context: RenderContext) -> Dict[str, Any]:
    lookup_type = field_def.lookup_type or DEFAULT_LOOKUP_TYPE
    props: Dict[str, Any] = {"lookupType": lookup_type}
    if lookup_type == "hiring-managers" and context.organization_id:
        props["filterBy"] = {"organization_id": context.organization_id}
    return props


def render_lookup(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    return base_control(field_def, value, "lookup", props=_lookup_props(field_def, context))


def render_multiselect_lookup(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    members = split_multi(value)
    return base_control(
        field_def, members, "multiselect-lookup",
        display=", ".join(members),
        placeholder=field_def.placeholder or LOOKUP_PLACEHOLDER,
        props=_lookup_props(field_def, context),
    )


# -- structural widgets -----------------------------------------------------

def render_composite(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    nested = value if isinstance(value, dict) else {}
    control = base_control(field_def, dict(nested), "composite", display="")
    subs = [s for s in sub_fields_of(field_def, context.definitions) if not s.is_hidden]
    if not subs:
        control.notice = NO_SUB_FIELDS_NOTICE
        return control
    control.children = [context.child(sub, nested.get(sub.field_name, "")) for sub in subs]
    return control


def render_address_group(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    control = base_control(
        field_def, "", "address-group",
        display=context.address_combined,
        props={"complete": bool(context.address_complete)},
    )
    by_name = index_by_name(context.definitions)
    members = [by_name[name] for name in context.address_fields if name in by_name]
    if not members:
        control.notice = NO_ADDRESS_FIELDS_NOTICE
        return control
    control.children = [context.child(m, context.values.get(m.field_name, "")) for m in members]
    return control


def render_full_address(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    display = _text(value) if not is_blank(value) else context.address_combined
    return base_control(field_def, value, "text", display=display, props={"computed": True})


def render_file(field_def: FieldDefinition, value: Any, context: RenderContext) -> Control:
    display = getattr(value, "name", None) or ("" if value is None else _text(value))
    return base_control(
        field_def, value, "file",
        display=display,
        props={"accept": ",".join(context.config.accepted_file_types)},
    )


__all__ = [
    "Control",
    "RenderContext",
    "RenderChild",
    "DISABLED_PLACEHOLDER",
    "NO_OPTIONS_NOTICE",
    "NO_SUB_FIELDS_NOTICE",
    "NO_ADDRESS_FIELDS_NOTICE",
    "LOOKUP_PLACEHOLDER",
    "DEFAULT_LOOKUP_TYPE",
    "base_control",
    "disabled_control",
    "render_text",
    "render_textarea",
    "render_email",
    "render_number",
    "render_year",
    "render_counter",
    "render_currency",
    "render_percentage",
    "render_phone",
    "render_zip",
    "render_url",
    "render_date",
    "render_date_added",
    "render_datetime",
    "render_select",
    "render_radio",
    "render_credentials",
    "render_checkbox",
    "render_multiselect",
    "render_lookup",
    "render_multiselect_lookup",
    "render_composite",
    "render_address_group",
    "render_full_address",
    "render_file",
]
