"""Builders shared by the test modules."""

from crmfields.definitions import FieldDefinition
from crmfields.types import FieldType


def make_field(name, label, field_type=FieldType.TEXT, **kwargs):
    """Build a FieldDefinition whose id defaults to its field_name."""
    return FieldDefinition(
        id=kwargs.pop("id", name),
        field_name=name,
        field_label=label,
        field_type=field_type,
        **kwargs,
    )
