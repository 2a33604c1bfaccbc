"""Unit tests for per-kind validity checks and the handler registry."""

import pytest

from crmfields.dispatch import HANDLERS, check_value, format_value, is_valid, mask_value
from crmfields.types import FieldErrorCode, FieldType, SemanticKind
from tests.factories import make_field

ZIP = make_field("zip", "Zip Code", FieldType.NUMBER)
PHONE = make_field("phone", "Main Phone", FieldType.TEXT)
WEBSITE = make_field("site", "Website", FieldType.URL)
START = make_field("start", "Start Date", FieldType.DATE)
ADDED = make_field("added", "Date Added", FieldType.DATE)
YEAR = make_field("year", "Year Founded", FieldType.NUMBER)
EMPLOYEES = make_field("emp", "# of Employees", FieldType.NUMBER)
SCORE = make_field("score", "Score", FieldType.NUMBER)
FEE = make_field("fee", "Fee", FieldType.CURRENCY)
PERM = make_field("perm", "Perm Fee", FieldType.PERCENTAGE)
STATUS = make_field("status", "Status", FieldType.SELECT, options=("Open", "Closed"))
TAGS = make_field("tags", "Tags", FieldType.MULTISELECT, options=("A", "B"))
AGREE = make_field("agree", "Agree", FieldType.CHECKBOX)
RESUME = make_field("resume", "Resume", FieldType.FILE)
NOTES = make_field("notes", "Notes", FieldType.TEXTAREA)


def message(field, value):
    error = check_value(field, value)
    return error.message if error is not None else None


class TestRegistry:
    """Test the handler registry itself."""

    def test_every_kind_has_a_handler(self):
        assert set(HANDLERS) == set(SemanticKind)

    def test_handler_kind_matches_key(self):
        for kind, handler in HANDLERS.items():
            assert handler.kind is kind


class TestZipCheck:
    """Test zip validity."""

    def test_valid(self):
        assert is_valid(ZIP, "12345")
        assert is_valid(ZIP, "01234")

    @pytest.mark.parametrize("value", ["1234", "123456", "abcde", "1234a"])
    def test_invalid(self, value):
        assert message(ZIP, value) == "Zip Code must be exactly 5 digits"

    def test_missing(self):
        assert message(ZIP, "") == "Zip Code is required"


class TestPhoneCheck:
    """Test phone validity and message precedence."""

    def test_valid(self):
        assert is_valid(PHONE, "(212) 555-0100")

    def test_incomplete(self):
        assert message(PHONE, "(212) 555") == "Main Phone must be a complete 10-digit phone number"

    def test_not_masked(self):
        assert message(PHONE, "2125550100") == "Main Phone must be formatted as (XXX) XXX-XXXX"

    @pytest.mark.parametrize("value", ["(112) 555-0100", "(212) 155-0100", "(012) 555-0100"])
    def test_bad_area_or_exchange(self, value):
        error = check_value(PHONE, value)
        assert error.code is FieldErrorCode.INVALID_VALUE
        assert "must start with 2-9" in error.message


class TestUrlCheck:
    """Test URL prefix and domain checks."""

    @pytest.mark.parametrize("value", [
        "https://example.com", "http://sub.example.org/path", "www.example.com", "WWW.Example.com",
    ])
    def test_valid(self, value):
        assert is_valid(WEBSITE, value)

    @pytest.mark.parametrize("value", ["www.al", "https://localhost", "https://example.c", "https://.com"])
    def test_bad_domain(self, value):
        assert message(WEBSITE, value) == "Website must be a valid URL"

    @pytest.mark.parametrize("value", ["ftp://example.com", "example.com"])
    def test_missing_prefix(self, value):
        assert message(WEBSITE, value) == "Website must start with http://, https://, or www."


class TestDateChecks:
    """Test date and Date Added validity."""

    def test_valid_in_both_formats(self):
        assert is_valid(START, "03/09/2024")
        assert is_valid(START, "2024-03-09")

    def test_impossible_date(self):
        assert message(START, "02/30/2024") == "Start Date must be a valid date (mm/dd/yyyy)"

    def test_date_added_always_valid(self):
        assert is_valid(ADDED, "")
        assert is_valid(ADDED, "garbage")


class TestNumberChecks:
    """Test the number sub-policies."""

    def test_year(self):
        assert is_valid(YEAR, "2024")
        for value in ("1999", "2101", "24", "20x4"):
            assert message(YEAR, value) == "Year Founded must be a 4-digit year between 2000 and 2100"

    def test_counter(self):
        assert is_valid(EMPLOYEES, "0")
        assert message(EMPLOYEES, "-1") == "# of Employees must be 0 or greater"
        assert message(EMPLOYEES, "many") == "# of Employees must be a number"

    def test_unrestricted_number(self):
        assert is_valid(SCORE, "-3.5")
        assert message(SCORE, "abc") == "Score must be a number"

    def test_currency(self):
        assert is_valid(FEE, "$1,200.00")
        assert message(FEE, "-5") == "Fee must be a valid amount"

    def test_percentage(self):
        assert is_valid(PERM, "25%")
        assert message(PERM, "101") == "Perm Fee must be between 0 and 100"


class TestChoiceChecks:
    """Test selects, multi-values, checkboxes and files."""

    def test_select_placeholder_is_missing(self):
        assert message(STATUS, "select an option") == "Status is required"
        assert is_valid(STATUS, "Open")

    def test_multiselect(self):
        assert is_valid(TAGS, ["A"])
        assert is_valid(TAGS, "A, B")
        assert message(TAGS, [" ", ""]) == "Tags is required"

    def test_checkbox_must_be_checked(self):
        assert is_valid(AGREE, True)
        assert is_valid(AGREE, "TRUE")
        assert not is_valid(AGREE, False)
        assert not is_valid(AGREE, "")

    def test_file_handle(self):
        class Upload:
            name = "cv.pdf"

        assert is_valid(RESUME, Upload())
        assert not is_valid(RESUME, None)

    def test_text_trimmed(self):
        assert message(NOTES, "   ") == "Notes is required"


class TestMasksAndFormats:
    """Test the mask and display callables."""

    def test_date_mask_stores_iso_when_complete(self):
        assert mask_value(START, "03092024") == "2024-03-09"
        assert mask_value(START, "0309") == "03/09"
        assert mask_value(START, "2024-03-09") == "2024-03-09"

    def test_percentage_mask_keeps_previous_on_junk(self):
        assert mask_value(PERM, "abc", "40") == "40"

    def test_counter_mask(self):
        assert mask_value(EMPLOYEES, "-4") == "0"
        assert mask_value(EMPLOYEES, "1,000") == "1000"

    def test_display(self):
        assert format_value(PHONE, "2125550100") == "(212) 555-0100"
        assert format_value(FEE, "1200") == "$1,200.00"
        assert format_value(TAGS, ["A", "B"]) == "A, B"
        assert format_value(AGREE, True) == "Yes"
        assert format_value(STATUS, "Select an option") == "—"
        assert format_value(NOTES, "") == "—"
        assert format_value(START, "2024-03-09") == "03/09/2024"
