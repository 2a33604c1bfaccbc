"""Per-kind validity checks.

Each check takes a field definition, its current value and the engine config and
returns ``None`` when the value is acceptable, or a ``FieldError`` whose message
is the one the user sees. Checks never raise: anything unexpected degrades to an
error record.
"""

import re
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from crmfields.config import EngineConfig
from crmfields.definitions import FieldDefinition
from crmfields.errors import FieldError
from crmfields.formatters import (
    PHONE_MASK,
    digits_only,
    is_blank,
    parse_amount,
    parse_date,
    parse_number,
    split_multi,
)
from crmfields.types import FieldErrorCode

Check = Callable[[FieldDefinition, Any, EngineConfig], Optional[FieldError]]

_URL_PREFIX = re.compile(r"^(https?://|www\.).+", re.IGNORECASE)
_FIVE_DIGITS = re.compile(r"^\d{5}$")
_FOUR_DIGITS = re.compile(r"^\d{4}$")

YEAR_MIN = 2000
YEAR_MAX = 2100


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _error(field: FieldDefinition, code: FieldErrorCode, suffix: str, value: Any = None) -> FieldError:
    return FieldError(
        field_name=field.field_name,
        code=code,
        message=f"{field.field_label} {suffix}",
        label=field.field_label,
        received=value,
    )


def required_error(field: FieldDefinition) -> FieldError:
    return _error(field, FieldErrorCode.REQUIRED, "is required")


def check_text(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if is_blank(value):
        return required_error(field)
    return None


def check_always_valid(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    return None


def check_zip(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    text = _text(value)
    if not text:
        return required_error(field)
    if not _FIVE_DIGITS.match(text):
        return _error(field, FieldErrorCode.INVALID_FORMAT, "must be exactly 5 digits", text)
    return None


def is_valid_nanp(phone: str) -> bool:
    """Area code and exchange code must both start with 2-9.

    Examples:
        >>> is_valid_nanp("(212) 555-0100")
        True
        >>> is_valid_nanp("(112) 555-0100")
        False
    """
    digits = digits_only(phone)
    return len(digits) == 10 and digits[0] in "23456789" and digits[3] in "23456789"


def check_phone(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    text = _text(value)
    if not text:
        return required_error(field)
    if len(digits_only(text)) != 10:
        return _error(
            field, FieldErrorCode.INVALID_FORMAT, "must be a complete 10-digit phone number", text
        )
    if not PHONE_MASK.match(text):
        return _error(field, FieldErrorCode.INVALID_FORMAT, "must be formatted as (XXX) XXX-XXXX", text)
    if not is_valid_nanp(text):
        return _error(
            field,
            FieldErrorCode.INVALID_VALUE,
            "contains an invalid area code or exchange code (must start with 2-9)",
            text,
        )
    return None


def _has_complete_domain(host: str) -> bool:
    labels = host.split(".")
    return len(labels) >= 2 and labels[0] != "" and len(labels[-1]) >= 2


def is_valid_url(value: Any) -> bool:
    """Prefix and domain-structure check for website/link fields.

    Examples:
        >>> is_valid_url("www.example.com")
        True
        >>> is_valid_url("www.al")
        False
        >>> is_valid_url("ftp://example.com")
        False
    """
    text = _text(value)
    if not _URL_PREFIX.match(text) or any(ch.isspace() for ch in text):
        return False

    if text.lower().startswith("www."):
        if not _has_complete_domain(text[4:].split("/")[0]):
            return False
        candidate = f"https://{text}"
    else:
        candidate = text

    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        return False
    return bool(hostname) and _has_complete_domain(hostname)


def check_url(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    text = _text(value)
    if not text:
        return required_error(field)
    if not _URL_PREFIX.match(text):
        return _error(
            field, FieldErrorCode.INVALID_FORMAT, "must start with http://, https://, or www.", text
        )
    if not is_valid_url(text):
        return _error(field, FieldErrorCode.INVALID_FORMAT, "must be a valid URL", text)
    return None


def check_date(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    text = _text(value)
    if not text:
        return required_error(field)
    if parse_date(text) is None:
        return _error(field, FieldErrorCode.INVALID_FORMAT, "must be a valid date (mm/dd/yyyy)", text)
    return None


def check_year(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    text = _text(value)
    if not text:
        return required_error(field)
    if not _FOUR_DIGITS.match(text) or not YEAR_MIN <= int(text) <= YEAR_MAX:
        return _error(
            field,
            FieldErrorCode.OUT_OF_RANGE,
            f"must be a 4-digit year between {YEAR_MIN} and {YEAR_MAX}",
            text,
        )
    return None


def check_counter(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if is_blank(value):
        return required_error(field)
    number = parse_number(value)
    if number is None:
        return _error(field, FieldErrorCode.INVALID_TYPE, "must be a number", value)
    if number < 0:
        return _error(field, FieldErrorCode.OUT_OF_RANGE, "must be 0 or greater", value)
    return None


def check_number(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if is_blank(value):
        return required_error(field)
    if parse_number(value) is None:
        return _error(field, FieldErrorCode.INVALID_TYPE, "must be a number", value)
    return None


def check_currency(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if is_blank(value):
        return required_error(field)
    amount = parse_amount(value)
    if amount is None or amount < 0:
        return _error(field, FieldErrorCode.INVALID_FORMAT, "must be a valid amount", value)
    return None


def check_percentage(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if is_blank(value):
        return required_error(field)
    number = parse_number(str(value).replace("%", ""))
    if number is None or not 0 <= number <= 100:
        return _error(field, FieldErrorCode.OUT_OF_RANGE, "must be between 0 and 100", value)
    return None


def is_placeholder(value: Any, config: EngineConfig) -> bool:
    return _text(value).lower() == config.select_placeholder.lower()


def check_select(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if is_blank(value) or is_placeholder(value, config):
        return required_error(field)
    return None


def check_multi(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if not split_multi(value):
        return required_error(field)
    return None


def check_checkbox(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if value is True or _text(value).lower() == "true":
        return None
    return required_error(field)


def check_file(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return required_error(field)
    return None


def check_composite(field: FieldDefinition, value: Any, config: EngineConfig) -> Optional[FieldError]:
    if isinstance(value, dict) and any(not is_blank(v) for v in value.values()):
        return None
    return required_error(field)


__all__ = [
    "Check",
    "required_error",
    "is_valid_nanp",
    "is_valid_url",
    "is_placeholder",
    "check_text",
    "check_always_valid",
    "check_zip",
    "check_phone",
    "check_url",
    "check_date",
    "check_year",
    "check_counter",
    "check_number",
    "check_currency",
    "check_percentage",
    "check_select",
    "check_multi",
    "check_checkbox",
    "check_file",
    "check_composite",
]
