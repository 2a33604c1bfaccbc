"""crmfields: dynamic custom-field engine for CRM record forms.

Administrators define custom fields per entity (leads, organizations, job
seekers, hiring managers, jobs). crmfields turns those definitions into:
- Headless input controls with type-specific masking and live validation
- Dependent fields gated by a controlling field's value
- A Full Address line combined from the address sub-fields
- The label-keyed submission payload shared by create, edit and bulk update

Basic usage:
    >>> from crmfields import FormSession
    >>> session = FormSession([
    ...     {"id": 1, "field_name": "Field_1", "field_label": "Zip Code",
    ...      "field_type": "number", "is_required": True},
    ... ])
    >>> session.update("Field_1", "62704")
    True
    >>> session.to_payload()
    {'Zip Code': '62704'}
"""

__version__ = "0.1.0"
__author__ = "crmfields Team"

VERSION = (0, 1, 0)

from crmfields.config import EngineConfig
from crmfields.definitions import FieldDefinition, load_definitions
from crmfields.errors import FieldDefinitionError, FieldEngineError, FieldError, UnknownFieldError
from crmfields.form import FormSession
from crmfields.validation import ValidationResult, validate

__all__ = [
    "__version__",
    "VERSION",
    "EngineConfig",
    "FieldDefinition",
    "FieldDefinitionError",
    "FieldEngineError",
    "FieldError",
    "FormSession",
    "UnknownFieldError",
    "ValidationResult",
    "load_definitions",
    "validate",
]
