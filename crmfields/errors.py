"""Structured error types for the crmfields engine.

Field-level failures are reported as immutable ``FieldError`` records that carry
the failing field, an error code and the human-readable message shown to the
user. Exceptions are reserved for programming and payload errors (a definition
payload that does not match the schema, a write addressed to a field that does
not exist); type predicates and resolvers never raise.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from crmfields.types import FieldErrorCode


@dataclass(frozen=True)
class FieldError:
    """Per-field validation error details.

    Attributes:
        field_name: Storage key of the failing field (or a payload path for
            definition-schema errors, e.g. "3.field_label")
        code: Specific validation error code
        message: Human-readable error description
        label: Optional - display label of the failing field
        received: Optional - the value that failed

    Examples:
        >>> err = FieldError(
        ...     field_name="Field_7",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Zip Code must be exactly 5 digits",
        ...     label="Zip Code",
        ...     received="123",
        ... )
        >>> err.code.value
        'invalid_format'
    """
    field_name: str
    code: FieldErrorCode
    message: str
    label: Optional[str] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "fieldName": self.field_name,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.label is not None:
            result["label"] = self.label
        if self.received is not None:
            result["received"] = self.received
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            field_name=data["fieldName"],
            code=code,
            message=data["message"],
            label=data.get("label"),
            received=data.get("received"),
        )


class FieldEngineError(Exception):
    """Base class for all crmfields exceptions."""


class FieldDefinitionError(FieldEngineError):
    """Raised when a field-definition payload does not match the expected shape.

    Attributes:
        errors: One FieldError per schema violation, in payload order
    """

    def __init__(self, message: str, errors: Optional[List[FieldError]] = None):
        self.errors = list(errors or [])
        super().__init__(message)


class UnknownFieldError(FieldEngineError, KeyError):
    """Raised when a write or lookup names a field that has no definition."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"No field definition named '{field_name}'")

    def __str__(self) -> str:
        return self.args[0]


__all__ = [
    "FieldError",
    "FieldEngineError",
    "FieldDefinitionError",
    "UnknownFieldError",
]
