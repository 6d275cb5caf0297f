"""
Unit tests for display formatters.
"""
import pytest
from datetime import datetime
from decimal import Decimal

from app.services.formatting import (
    format_date, format_date_time, format_distance, format_duration, format_price, format_time
)


class TestFormatPrice:
    def test_euro_suffix_and_decimal_comma(self):
        assert format_price(23) == "23,00 €"
        assert format_price(Decimal("46.5")) == "46,50 €"

    def test_rounds_half_up(self):
        assert format_price(2.675) == "2,68 €"
        assert format_price(Decimal("8.605")) == "8,61 €"

    def test_other_currency(self):
        assert format_price(12.3, "USD") == "12,30 USD"

    @pytest.mark.parametrize("value", [None, float("nan")])
    def test_missing_value(self, value):
        assert format_price(value) == "0,00 €"


class TestFormatDistance:
    def test_one_decimal(self):
        assert format_distance(12.46) == "12,5 km"
        assert format_distance(10) == "10,0 km"

    def test_missing_value(self):
        assert format_distance(None) == "0 km"


class TestFormatDuration:
    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (25, "25 min"),
            (59.4, "59 min"),
            (60, "1 h"),
            (95, "1 h 35 min"),
            (119.7, "2 h"),
            (150.2, "2 h 30 min"),
        ],
    )
    def test_durations(self, minutes, expected):
        assert format_duration(minutes) == expected

    def test_missing_value(self):
        assert format_duration(float("nan")) == "0 min"


class TestFormatDateTime:
    def test_date_and_time(self):
        dt = datetime(2026, 3, 7, 8, 5)
        assert format_date(dt) == "07/03/2026"
        assert format_time(dt) == "08:05"
        assert format_date_time(dt) == "07/03/2026 à 08:05"

    def test_missing_value(self):
        assert format_date_time(None) == ""
