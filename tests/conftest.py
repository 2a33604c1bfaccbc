"""Shared fixtures for crmfields tests."""

from datetime import date

import pytest

from crmfields.config import EngineConfig
from crmfields.types import FieldType
from tests.factories import make_field


@pytest.fixture
def fixed_config():
    """Engine config whose clock always returns 2024-03-09."""
    return EngineConfig().with_today(lambda: date(2024, 3, 9))


@pytest.fixture
def address_definitions():
    return [
        make_field("f_addr", "Address", sort_order=1),
        make_field("f_addr2", "Address 2", sort_order=2),
        make_field("f_city", "City", sort_order=3),
        make_field("f_state", "State", FieldType.SELECT, options=("IL", "NY"), sort_order=4),
        make_field("f_zip", "Zip Code", FieldType.NUMBER, sort_order=5),
        make_field("f_full", "Full Address", sort_order=6),
    ]
