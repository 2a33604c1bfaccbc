"""Form validation engine.

``ValidationEngine`` checks a value map against a definition set before
submission. It walks the definitions in display order and reports the first
required, visible field whose value fails its type check, with the message the
user should see. Hidden fields are never validated, and fields disabled by an
empty controller are skipped: their emptiness is repaired by the dependency
resolver, not reported.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, Iterable, List, Mapping, Optional

from typing_extensions import TypedDict

from crmfields.config import DEFAULT_CONFIG, EngineConfig
from crmfields.definitions import FieldDefinition, composite_owners
from crmfields.dispatch import check_value
from crmfields.errors import FieldError


class ValidationResultDict(TypedDict):
    isValid: bool
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a form.

    Attributes:
        is_valid: Whether every required, visible field passed
        message: Message for the first failure ("" when valid)
        error: The first failing field's error, if any
        errors: Every failure, when collected with ``validate_all``

    Examples:
        >>> ValidationResult(is_valid=True).to_dict()
        {'isValid': True, 'message': ''}
    """
    is_valid: bool
    message: str = ""
    error: Optional[FieldError] = None
    errors: List[FieldError] = field(default_factory=list)

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failed(cls, errors: List[FieldError]) -> "ValidationResult":
        return cls(is_valid=False, message=errors[0].message, error=errors[0], errors=list(errors))

    def to_dict(self) -> ValidationResultDict:
        return {"isValid": self.is_valid, "message": self.message}


class ValidationEngine:
    """Validates value maps against one definition set.

    Attributes:
        definitions: Definitions in display order
        config: Engine configuration (select placeholder, ...)

    Examples:
        >>> from crmfields.types import FieldType
        >>> engine = ValidationEngine([
        ...     FieldDefinition(id="1", field_name="Field_1", field_label="Zip Code",
        ...         field_type=FieldType.ZIP, is_required=True),
        ... ])
        >>> engine.validate({"Field_1": "123"}).message
        'Zip Code must be exactly 5 digits'
    """

    def __init__(self, definitions: Iterable[FieldDefinition], config: EngineConfig = DEFAULT_CONFIG):
        self.definitions = list(definitions)
        self.config = config
        self._owners = composite_owners(self.definitions)
        self._hidden = {d.field_name for d in self.definitions if d.is_hidden}

    def _value_of(self, values: Mapping[str, Any], field_name: str) -> Any:
        owner = self._owners.get(field_name)
        if owner is None:
            return values.get(field_name)
        nested = values.get(owner)
        return nested.get(field_name) if isinstance(nested, Mapping) else None

    def _candidates(self, skip: AbstractSet[str]) -> List[FieldDefinition]:
        return [
            d for d in self.definitions
            if d.is_required
            and not d.is_hidden
            and self._owners.get(d.field_name) not in self._hidden
            and d.field_name not in skip
        ]

    def check_field(self, definition: FieldDefinition, values: Mapping[str, Any]) -> Optional[FieldError]:
        return check_value(definition, self._value_of(values, definition.field_name), self.config)

    def validate(self, values: Mapping[str, Any], skip: AbstractSet[str] = frozenset()) -> ValidationResult:
        """Return the first failure among required, visible fields.

        Args:
            values: field_name -> value (composite values nested)
            skip: Field names to leave out, e.g. disabled dependents

        Returns:
            ValidationResult; ``message`` names the first failing field
        """
        for definition in self._candidates(skip):
            error = self.check_field(definition, values)
            if error is not None:
                return ValidationResult.failed([error])
        return ValidationResult.passed()

    def validate_all(self, values: Mapping[str, Any], skip: AbstractSet[str] = frozenset()) -> ValidationResult:
        """Like ``validate`` but collects every failure, in definition order."""
        errors = [
            error for error in (self.check_field(d, values) for d in self._candidates(skip))
            if error is not None
        ]
        if errors:
            return ValidationResult.failed(errors)
        return ValidationResult.passed()

    def errors_by_field(self, values: Mapping[str, Any], skip: AbstractSet[str] = frozenset()) -> Dict[str, str]:
        return {e.field_name: e.message for e in self.validate_all(values, skip).errors}


def validate(
    definitions: Iterable[FieldDefinition],
    values: Mapping[str, Any],
    config: EngineConfig = DEFAULT_CONFIG,
) -> ValidationResult:
    """Validate ``values`` against ``definitions``, stopping at the first failure."""
    return ValidationEngine(definitions, config).validate(values)


__all__ = [
    "ValidationEngine",
    "ValidationResult",
    "ValidationResultDict",
    "validate",
]
