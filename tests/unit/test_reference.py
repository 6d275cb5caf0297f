"""
Unit tests for booking reference generation.
"""
import random
import re

from app.services.reference import generate_booking_reference

REFERENCE_RE = re.compile(r"^APS-\d{6}[0-9A-Z]{3}$")


class TestBookingReference:
    def test_format(self):
        assert REFERENCE_RE.match(generate_booking_reference())

    def test_time_derived_suffix(self):
        ref = generate_booking_reference(now=1_700_000_482.0, rng=random.Random(7))
        # epoch ms 1700000482000 -> last six digits
        assert ref[4:10] == "482000"

    def test_short_clock_is_zero_padded(self):
        ref = generate_booking_reference(now=0.042, rng=random.Random(7))
        assert ref[4:10] == "000042"

    def test_custom_prefix(self):
        assert generate_booking_reference("TAXI").startswith("TAXI-")

    def test_random_part_comes_from_rng(self):
        a = generate_booking_reference(now=1.0, rng=random.Random(3))
        b = generate_booking_reference(now=1.0, rng=random.Random(3))
        assert a == b
