"""Unit tests for input masks and display formatting."""

from datetime import date

import pytest

from crmfields.formatters import (
    clamp_percentage,
    format_currency,
    format_date_display,
    format_percentage,
    is_blank,
    join_multi,
    mask_currency,
    mask_date_input,
    mask_phone,
    mask_phone_edit,
    mask_zip,
    parse_amount,
    parse_date,
    parse_number,
    split_multi,
    strip_time,
    to_display,
    to_iso,
)


class TestPhoneMask:
    """Test progressive phone masking."""

    @pytest.mark.parametrize("raw, expected", [
        ("", ""),
        ("5", "(5"),
        ("555", "(555) "),
        ("5551", "(555) 1"),
        ("555123", "(555) 123-"),
        ("5551234567", "(555) 123-4567"),
        ("555.123.4567 ext 9", "(555) 123-4567"),
    ])
    def test_progressive(self, raw, expected):
        assert mask_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["5", "5551", "555123", "5551234567", "(212) 555-0100", "12345678901"])
    def test_idempotent(self, raw):
        """Masking an already masked value changes nothing."""
        once = mask_phone(raw)
        assert mask_phone(once) == once


class TestPhoneCursor:
    """Test cursor tracking while editing a masked phone."""

    def test_typing_at_end(self):
        assert mask_phone_edit("(555) 12", "(555) 123", 9) == ("(555) 123-", 9)

    def test_deleting_in_middle(self):
        """Cursor stays after the digit that preceded the deleted one."""
        assert mask_phone_edit("(555) 123-4567", "(555) 23-4567", 6) == ("(555) 234-567", 4)

    def test_last_digit_moves_cursor_to_end(self):
        formatted, position = mask_phone_edit("(555) 123-456", "(555) 123-4567", 14)
        assert formatted == "(555) 123-4567"
        assert position == len(formatted)

    def test_deleting_first_digit(self):
        formatted, position = mask_phone_edit("(555) 123", "(55) 123", 1)
        assert formatted == "(551) 23"
        assert position == 1


class TestZipAndNumbers:
    """Test zip, number, currency and percentage helpers."""

    def test_zip_keeps_leading_zeros(self):
        assert mask_zip("01234") == "01234"
        assert mask_zip("0123456") == "01234"

    def test_parse_number_rejects_junk(self):
        assert parse_number("12.5") == 12.5
        assert parse_number("1e3") == 1000.0
        for junk in ("", "abc", "nan", "inf", True, None):
            assert parse_number(junk) is None

    def test_currency_mask(self):
        assert mask_currency("$1,234.567") == "1234.56"
        assert mask_currency("12..5") == "12.5"

    def test_currency_display(self):
        assert format_currency("1234.5") == "$1,234.50"
        assert format_currency(1000) == "$1,000.00"
        assert format_currency("abc") == ""

    def test_parse_amount(self):
        assert parse_amount("$1,234.50") == 1234.5
        assert parse_amount("-") is None

    def test_percentage_clamp(self):
        assert clamp_percentage("") == ""
        assert clamp_percentage("12.5%") == "12.5"
        assert clamp_percentage("100.001") == "100"
        assert clamp_percentage("x", previous="7") == "7"

    def test_percentage_display(self):
        assert format_percentage("12.5") == "12.5%"
        assert format_percentage("12.5%") == "12.5%"


class TestDates:
    """Test date storage/display conversions."""

    @pytest.mark.parametrize("iso", ["2024-03-09", "1999-12-31", "2024-02-29"])
    def test_iso_round_trip(self, iso):
        assert to_iso(to_display(iso)) == iso

    @pytest.mark.parametrize("display", ["03/09/2024", "12/31/1999"])
    def test_display_round_trip(self, display):
        assert to_display(to_iso(display)) == display

    def test_parse_date_is_strict(self):
        assert parse_date("02/29/2024") == date(2024, 2, 29)
        assert parse_date("2023-02-29") is None
        assert parse_date("13/01/2024") is None
        assert parse_date("03/09") is None

    def test_mask_date_input(self):
        assert mask_date_input("03") == "03"
        assert mask_date_input("030") == "03/0"
        assert mask_date_input("03/09/2024extra") == "03/09/2024"

    def test_display_of_timestamps(self):
        """Loose timestamps are parsed leniently for display."""
        assert format_date_display("2024-03-09T14:00:00Z") == "03/09/2024"
        assert format_date_display(date(2024, 3, 9)) == "03/09/2024"
        assert format_date_display("soon") == "soon"

    def test_strip_time(self):
        assert strip_time("2024-03-09T10:00:00") == "2024-03-09"
        assert strip_time("03/09/2024") == "03/09/2024"


class TestMultiValues:
    """Test multi-value normalization."""

    def test_split_comma_string(self):
        assert split_multi("A, B,,A , C") == ["A", "B", "C"]

    def test_split_list(self):
        assert split_multi(["B", "A", "B", ""]) == ["B", "A"]

    def test_join(self):
        assert join_multi(["A", "B"]) == "A, B"

    def test_is_blank(self):
        assert is_blank(None) and is_blank("  ") and is_blank([]) and is_blank({})
        assert not is_blank(0)
        assert not is_blank(False)
