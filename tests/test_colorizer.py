"""Tests for colorizer.py."""

import pytest

from funnel_model.colorizer import (
    CATEGORY10,
    Colorizer,
    FunctionPalette,
    ListPalette,
    expand_hex,
    is_hex_color,
    linear_gradient_stops,
    normalize_hex,
    shade,
    validate_colors,
)
from funnel_model.errors import InvalidColorError


class TestShade:
    @pytest.mark.parametrize("color", ["#abc", "#1F77B4", "#000000", "#fff"])
    def test_zero_amount_normalizes(self, color):
        assert shade(color, 0) == normalize_hex(color)

    @pytest.mark.parametrize("color", ["#abc", "#1f77b4", "#ffffff"])
    def test_full_darken_is_black(self, color):
        assert shade(color, -1) == "#000000"

    @pytest.mark.parametrize("color", ["#abc", "#1f77b4", "#000"])
    def test_full_lighten_is_white(self, color):
        assert shade(color, 1) == "#ffffff"

    def test_partial_darken(self):
        assert shade("#808080", -0.5) == "#404040"

    def test_rounds_half_up(self):
        # 127.5 rounds up like Math.round
        assert shade("#000000", 0.5) == "#808080"

    def test_negative_rounding(self):
        # 255 - 63.75 -> 191
        assert shade("#ff0000", -0.25) == "#bf0000"

    def test_three_digit_input(self):
        assert shade("#f00", 0) == "#ff0000"

    @pytest.mark.parametrize("color", ["red", "#ggg", "#12345", "123456", None])
    def test_invalid_color(self, color):
        with pytest.raises(InvalidColorError):
            shade(color, 0.1)

    def test_amount_out_of_range(self):
        with pytest.raises(ValueError):
            shade("#fff", 1.5)


class TestHex:
    def test_expand_hex(self):
        assert expand_hex("abc") == "aabbcc"

    @pytest.mark.parametrize("digits", ["abcd", "xyz", "aabbcc", ""])
    def test_expand_hex_rejects(self, digits):
        with pytest.raises(InvalidColorError):
            expand_hex(digits)

    def test_normalize_lowercases(self):
        assert normalize_hex("#ABCDEF") == "#abcdef"

    def test_is_hex_color(self):
        assert is_hex_color("#FFF")
        assert is_hex_color("#a1b2c3")
        assert not is_hex_color("#a1b2c")
        assert not is_hex_color(0xFFFFFF)


class TestValidateColors:
    def test_accepts_valid_list(self):
        validate_colors(["#fff", "#000000"])

    @pytest.mark.parametrize("colors", [[], "#fff", None])
    def test_rejects_empty_or_non_list(self, colors):
        with pytest.raises(InvalidColorError):
            validate_colors(colors)

    def test_rejects_bad_entry(self):
        with pytest.raises(InvalidColorError):
            validate_colors(["#fff", "blue"])


class TestLinearGradientStops:
    def test_stops(self):
        stops = linear_gradient_stops(["#fff", "#000000"], [0, 100], [100, 50])
        assert stops == [(0, "#fff", 1.0), (100, "#000000", 0.5)]

    def test_invalid_color(self):
        with pytest.raises(InvalidColorError):
            linear_gradient_stops(["#fff", "white"], [0, 100], [100, 100])

    def test_missing_ratio(self):
        with pytest.raises(ValueError):
            linear_gradient_stops(["#fff", "#000"], [0], [100, 100])


class TestPalettes:
    def test_list_palette_cycles(self):
        palette = ListPalette(["#111", "#222"])
        assert [palette.color_at(i) for i in range(4)] == ["#111", "#222", "#111", "#222"]

    def test_list_palette_validates(self):
        with pytest.raises(InvalidColorError):
            ListPalette(["#111", "nope"])

    def test_function_palette(self):
        palette = FunctionPalette(lambda index: "#00000" + str(index))
        assert palette.color_at(3) == "#000003"

    def test_function_palette_requires_callable(self):
        with pytest.raises(TypeError):
            FunctionPalette("#fff")

    def test_function_palette_rejects_non_hex_result(self):
        palette = FunctionPalette(lambda index: "red")
        with pytest.raises(InvalidColorError, match="block 2"):
            palette.color_at(2)


class TestColorizer:
    def setup_method(self):
        self.colorizer = Colorizer(ListPalette(CATEGORY10), "#fff")

    def test_row_color_wins(self):
        assert self.colorizer.block_fill(["A", 1, "#123456"], 0) == "#123456"

    def test_invalid_row_color_falls_back_to_palette(self):
        assert self.colorizer.block_fill(["A", 1, "red"], 2) == CATEGORY10[2]

    def test_missing_row_color_uses_palette(self):
        assert self.colorizer.block_fill(["A", 1], 1) == CATEGORY10[1]

    def test_label_fill(self):
        assert self.colorizer.label_fill(["A", 1, None, "#000"]) == "#000"
        assert self.colorizer.label_fill(["A", 1, "#123", "black"]) == "#fff"
        assert self.colorizer.label_fill(["A", 1]) == "#fff"
