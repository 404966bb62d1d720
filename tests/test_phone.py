"""
Tests for phone number detection and normalization.
"""

import pytest

from msp_toolkit.dial import find_phone_numbers, normalize_to_tel


class TestNormalizeToTel:
    """Tests for normalize_to_tel."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("(870) 830-4352", "+18708304352"),
            ("870-830-4352", "+18708304352"),
            ("870.830.4352", "+18708304352"),
            ("8708304352", "+18708304352"),
            ("+1 870 830 4352", "+18708304352"),
            ("1-870-830-4352", "+18708304352"),
            ("+44 20 7946 0958", "+442079460958"),
        ],
    )
    def test_formats(self, raw, expected):
        assert normalize_to_tel(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("870-830-4352 x12", "+18708304352;ext=12"),
            ("870-830-4352 ext. 205", "+18708304352;ext=205"),
            ("870-830-4352 ext 7", "+18708304352;ext=7"),
            ("(870) 830-4352 extension 1234", "+18708304352;ext=1234"),
        ],
    )
    def test_extensions(self, raw, expected):
        assert normalize_to_tel(raw) == expected

    def test_too_few_digits(self):
        assert normalize_to_tel("830-4352") is None

    def test_too_many_digits(self):
        assert normalize_to_tel("1234567890123456") is None


class TestFindPhoneNumbers:
    """Tests for find_phone_numbers."""

    def test_finds_numbers_with_positions(self):
        text = "Call (870) 830-4352 or 870.555.0100 x3 today"

        matches = find_phone_numbers(text)

        assert [m.raw for m in matches] == ["(870) 830-4352", "870.555.0100 x3"]
        assert [m.tel for m in matches] == ["+18708304352", "+18705550100;ext=3"]
        assert text[matches[0].start : matches[0].end] == "(870) 830-4352"
        assert matches[1].href == "tel:+18705550100;ext=3"

    def test_ignores_longer_digit_runs(self):
        """Test numbers embedded in order numbers or serials are not matched."""
        assert find_phone_numbers("Order 98708304352123 shipped") == []

    def test_ignores_short_numbers(self):
        assert find_phone_numbers("Room 4352, floor 3") == []

    def test_plain_text(self):
        assert find_phone_numbers("No numbers here") == []
