"""Input masks and display formatting.

Pure functions, no field definitions involved: each one takes raw text as a user
typed it (or as the backend stored it) and returns the masked, normalized or
display form. The per-type checks in ``crmfields.checks`` and the handlers in
``crmfields.dispatch`` are built on top of these.
"""

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

EMPTY_DISPLAY = "—"

PHONE_MAX_DIGITS = 10
ZIP_LENGTH = 5

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DISPLAY_DATE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
PHONE_MASK = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")

_NON_DIGITS = re.compile(r"\D")
_NON_AMOUNT = re.compile(r"[^0-9.]")
_AMOUNT_DECORATION = re.compile(r"[$,\s]")
_CENTS = Decimal("0.01")


def digits_only(value: Any) -> str:
    return _NON_DIGITS.sub("", "" if value is None else str(value))


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings and empty lists/dicts."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


# -- phone ------------------------------------------------------------------

def mask_phone(value: Any) -> str:
    """Progressively mask digits as ``(XXX) XXX-XXXX``, capped at 10 digits.

    Examples:
        >>> mask_phone("55")
        '(55'
        >>> mask_phone("5551")
        '(555) 1'
        >>> mask_phone("555-123-45678")
        '(555) 123-4567'
        >>> mask_phone("(555) 123-4567")
        '(555) 123-4567'
    """
    digits = digits_only(value)[:PHONE_MAX_DIGITS]
    if len(digits) >= 6:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) >= 3:
        return f"({digits[:3]}) {digits[3:]}"
    if digits:
        return f"({digits}"
    return ""


def _position_after_digit(formatted: str, digit_count: int) -> Optional[int]:
    seen = 0
    for index, char in enumerate(formatted):
        if char.isdigit():
            seen += 1
            if seen == digit_count:
                return index + 1
    return None


def mask_phone_edit(old_value: str, new_input: str, cursor: int) -> Tuple[str, int]:
    """Re-mask an edited phone input and compute where the cursor belongs.

    The cursor is tracked by how many digits sit before it, so inserting,
    deleting or replacing a digit keeps the caret next to the same digit after
    the punctuation is rebuilt.

    Args:
        old_value: The masked value before the edit
        new_input: The raw input text after the edit
        cursor: Caret position reported by the input after the edit

    Returns:
        (masked value, new caret position)
    """
    old_value = old_value or ""
    old_digits = digits_only(old_value)
    new_digits = digits_only(new_input)
    digits_before_cursor = len(digits_only(old_value[:cursor]))
    formatted = mask_phone(new_input)
    position = len(formatted)

    if len(new_digits) < len(old_digits):
        found = _position_after_digit(formatted, digits_before_cursor)
        if found is not None:
            position = found
        if digits_before_cursor == 0 and formatted.startswith("("):
            position = 1
    elif len(new_digits) > len(old_digits):
        found = _position_after_digit(formatted, digits_before_cursor + 1)
        if found is not None:
            position = found
        if len(new_digits) >= PHONE_MAX_DIGITS:
            position = len(formatted)
    else:
        found = _position_after_digit(formatted, digits_before_cursor)
        if found is not None:
            position = found

    return formatted, position


# -- zip --------------------------------------------------------------------

def mask_zip(value: Any) -> str:
    """Keep digits only, at most five; always a string.

    Examples:
        >>> mask_zip("0123a45")
        '01234'
    """
    return digits_only(value)[:ZIP_LENGTH]


# -- numbers, currency, percentage ------------------------------------------

def parse_number(value: Any) -> Optional[float]:
    """Parse a plain number; None for blanks, junk, NaN and infinities."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def format_plain_number(number: float) -> str:
    """Render without a trailing ``.0``; at most two decimals, half up.

    Examples:
        >>> format_plain_number(50.0)
        '50'
        >>> format_plain_number(12.345)
        '12.35'
        >>> format_plain_number(12.5)
        '12.5'
    """
    quantized = Decimal(str(number)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    if quantized == quantized.to_integral_value():
        return str(int(quantized))
    return format(quantized.normalize(), "f")


def mask_currency(value: Any) -> str:
    """Strip to digits and one decimal point, at most two decimals.

    Examples:
        >>> mask_currency("$1,234.567")
        '1234.56'
        >>> mask_currency("1.2.3")
        '1.23'
    """
    text = _NON_AMOUNT.sub("", "" if value is None else str(value))
    parts = text.split(".")
    if len(parts) > 2:
        text = parts[0] + "." + "".join(parts[1:])
    if "." in text:
        whole, fraction = text.split(".", 1)
        text = whole + "." + fraction[:2]
    return text


def parse_amount(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return parse_number(value)
    return parse_number(_AMOUNT_DECORATION.sub("", "" if value is None else str(value)))


def format_currency(value: Any) -> str:
    """Display an amount as ``$1,234.50``; empty string when not a number."""
    amount = parse_amount(value)
    if amount is None:
        return ""
    return f"${amount:,.2f}"


def clamp_percentage(value: Any, previous: Any = "") -> Any:
    """Clamp percentage input to 0-100, two decimals.

    Blank input clears the value; input that is not a number is ignored and
    ``previous`` is kept.

    Examples:
        >>> clamp_percentage("150")
        '100'
        >>> clamp_percentage("-3")
        '0'
        >>> clamp_percentage("12.345")
        '12.35'
        >>> clamp_percentage("abc", previous="40")
        '40'
    """
    if is_blank(value):
        return ""
    number = parse_number(str(value).replace("%", ""))
    if number is None:
        return previous
    if number < 0:
        return "0"
    if number > 100:
        return "100"
    return format_plain_number(number)


def format_percentage(value: Any) -> str:
    cleaned = str(value).strip().replace("%", "")
    if cleaned == "" or parse_number(cleaned) is None:
        return str(value)
    return f"{cleaned}%"


# -- dates ------------------------------------------------------------------

def to_display(value: Any) -> str:
    """``YYYY-MM-DD`` -> ``mm/dd/yyyy``; display values pass through.

    Examples:
        >>> to_display("2024-03-09")
        '03/09/2024'
        >>> to_display("03/09/2024")
        '03/09/2024'
    """
    if value is None:
        return ""
    text = str(value).strip()
    if not text or DISPLAY_DATE.match(text):
        return text
    if ISO_DATE.match(text):
        year, month, day = text.split("-")
        return f"{month}/{day}/{year}"
    return text


def to_iso(value: Any) -> str:
    """``mm/dd/yyyy`` -> ``YYYY-MM-DD``; ISO values pass through.

    Examples:
        >>> to_iso("03/09/2024")
        '2024-03-09'
        >>> to_iso("2024-03-09")
        '2024-03-09'
    """
    if value is None:
        return ""
    text = str(value).strip()
    if not text or ISO_DATE.match(text):
        return text
    if DISPLAY_DATE.match(text):
        month, day, year = text.split("/")
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return text


def parse_date(value: Any) -> Optional[date]:
    """Strictly parse an ISO or display date; None if not a real calendar day."""
    iso = to_iso(value)
    if not ISO_DATE.match(iso):
        return None
    try:
        return datetime.strptime(iso, "%Y-%m-%d").date()
    except ValueError:
        return None


def date_to_display(day: date) -> str:
    return day.strftime("%m/%d/%Y")


def mask_date_input(value: Any) -> str:
    """Progressively mask typed digits as ``mm/dd/yyyy``.

    Examples:
        >>> mask_date_input("0309")
        '03/09'
        >>> mask_date_input("03092024")
        '03/09/2024'
    """
    digits = digits_only(value)
    formatted = digits[:2]
    if len(digits) >= 3:
        formatted += "/" + digits[2:4]
    if len(digits) >= 5:
        formatted += "/" + digits[4:8]
    return formatted[:10]


def format_date_display(value: Any) -> str:
    """Display any date-ish value as ``mm/dd/yyyy``.

    Exact ISO and display dates convert losslessly; other strings (timestamps
    such as ``2024-03-09T14:00:00Z``) are parsed leniently. Unparseable text is
    returned unchanged.
    """
    if isinstance(value, datetime):
        return date_to_display(value.date())
    if isinstance(value, date):
        return date_to_display(value)
    text = "" if value is None else str(value).strip()
    if not text:
        return ""
    if ISO_DATE.match(text) or DISPLAY_DATE.match(text):
        return to_display(text)
    try:
        return date_to_display(date_parser.parse(text).date())
    except (ValueError, OverflowError):
        return text


def strip_time(value: Any) -> Any:
    """Drop the time part of an ISO timestamp (``2024-03-09T10:00`` -> ``2024-03-09``)."""
    if isinstance(value, str) and "T" in value and ISO_DATE.match(value.split("T")[0]):
        return value.split("T")[0]
    return value


def format_datetime_input(value: Any) -> str:
    return str(value)[:16] if value else ""


# -- multi-valued -----------------------------------------------------------

def split_multi(value: Any) -> List[str]:
    """Normalize a list or comma-separated string to ordered unique strings.

    Examples:
        >>> split_multi("A, B,,A")
        ['A', 'B']
        >>> split_multi(["x", " ", "y"])
        ['x', 'y']
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items: Iterable[Any] = value
    else:
        items = str(value).split(",")
    result: List[str] = []
    for item in items:
        text = str(item).strip()
        if text and text not in result:
            result.append(text)
    return result


def join_multi(values: Iterable[str]) -> str:
    return ", ".join(values)


__all__ = [
    "EMPTY_DISPLAY",
    "PHONE_MASK",
    "ISO_DATE",
    "DISPLAY_DATE",
    "digits_only",
    "is_blank",
    "mask_phone",
    "mask_phone_edit",
    "mask_zip",
    "parse_number",
    "format_plain_number",
    "mask_currency",
    "parse_amount",
    "format_currency",
    "clamp_percentage",
    "format_percentage",
    "to_display",
    "to_iso",
    "parse_date",
    "date_to_display",
    "mask_date_input",
    "format_date_display",
    "strip_time",
    "format_datetime_input",
    "split_multi",
    "join_multi",
]
