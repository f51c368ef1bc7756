"""
Unit tests for the color model.

Tests RGB/HSL/hex conversions, achromatic handling and hex validation.
"""

import itertools

import pytest

from avatar_color.services.colors.color_model import (
    HSLColor, InvalidHexError, get_hex_with_hash, hex_to_rgb, hsl_to_rgb, hsl_to_rgba,
    is_valid_hex_string, relative_luminance, rgb_to_hex, rgb_to_hsl
)


class TestRgbHslConversion:
    """Test RGB <-> HSL conversion"""

    def test_primary_colors(self):
        red = rgb_to_hsl(255, 0, 0)
        assert red.h == pytest.approx(0.0)
        assert red.s == pytest.approx(1.0)
        assert red.l == pytest.approx(0.5)

        green = rgb_to_hsl(0, 255, 0)
        assert green.h == pytest.approx(120.0)

        blue = rgb_to_hsl(0, 0, 255)
        assert blue.h == pytest.approx(240.0)

    def test_achromatic_has_zero_hue_and_saturation(self):
        """Gray, black and white map to hue 0, saturation 0"""
        for value in (0, 128, 255):
            hsl = rgb_to_hsl(value, value, value)
            assert hsl.h == 0.0
            assert hsl.s == 0.0
            assert hsl.l == pytest.approx(value / 255.0)

    def test_alpha_is_preserved(self):
        hsl = rgb_to_hsl(10, 200, 30, a=0.4)
        assert hsl.a == 0.4
        assert hsl_to_rgba(hsl.h, hsl.s, hsl.l, hsl.a)[3] == 0.4
        assert hsl.to_rgba()[3] == 0.4

    def test_round_trip_within_one_unit(self):
        """hsl_to_rgb(rgb_to_hsl(x)) stays within ±1 per channel"""
        levels = [0, 1, 17, 64, 127, 128, 200, 254, 255]
        for r, g, b in itertools.product(levels, repeat=3):
            hsl = rgb_to_hsl(r, g, b)
            back = hsl_to_rgb(hsl.h, hsl.s, hsl.l)
            assert all(abs(x - y) <= 1 for x, y in zip(back, (r, g, b))), (r, g, b, back)

    def test_hue_wraps(self):
        assert hsl_to_rgb(360.0, 1.0, 0.5) == hsl_to_rgb(0.0, 1.0, 0.5)
        assert hsl_to_rgb(-120.0, 1.0, 0.5) == hsl_to_rgb(240.0, 1.0, 0.5)

    def test_hsl_color_to_rgb(self):
        assert HSLColor(h=0.0, s=1.0, l=0.5).to_rgb() == (255, 0, 0)


class TestHex:
    """Test hex formatting, parsing and validation"""

    def test_rgb_to_hex_zero_padded(self):
        assert rgb_to_hex((255, 0, 0)) == "#FF0000"
        assert rgb_to_hex((1, 2, 3)) == "#010203"
        assert rgb_to_hex((225, 138, 36)) == "#E18A24"

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#e18a24") == (225, 138, 36)
        assert hex_to_rgb("E18A24") == (225, 138, 36)
        assert hex_to_rgb("#fff") == (255, 255, 255)
        assert hex_to_rgb("#1a2") == (17, 170, 34)

    @pytest.mark.parametrize("value", ["#abc", "abc", "#A1B2C3", "a1b2c3"])
    def test_valid_hex_strings(self, value):
        assert is_valid_hex_string(value)

    @pytest.mark.parametrize("value", ["", "#", "#abcd", "#ggg", "##abc", "#abcdef0", "red", None])
    def test_invalid_hex_strings(self, value):
        assert not is_valid_hex_string(value)

    def test_hex_to_rgb_rejects_malformed(self):
        with pytest.raises(InvalidHexError):
            hex_to_rgb("#12345")

    def test_invalid_hex_error_is_value_error(self):
        with pytest.raises(ValueError):
            hex_to_rgb("nope")

    def test_get_hex_with_hash(self):
        assert get_hex_with_hash("abc") == "#abc"
        assert get_hex_with_hash("#abc") == "#abc"


def test_relative_luminance():
    assert relative_luminance((0, 0, 0)) == 0.0
    assert relative_luminance((255, 255, 255)) == pytest.approx(1.0)
    assert relative_luminance((10, 10, 10)) == pytest.approx(10 / 255)
