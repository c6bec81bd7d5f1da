"""Tests for blocks.py."""

import numpy as np
import pytest

from funnel_model.blocks import get_raw_count, standardize, validate_data
from funnel_model.colorizer import CATEGORY10, Colorizer, ListPalette
from funnel_model.errors import DegenerateLayoutError, InvalidDataError
from funnel_model.label_formatter import LabelFormatter


def _standardize(rows, height=300.0):
    return standardize(rows, height, Colorizer(ListPalette(CATEGORY10), "#fff"), LabelFormatter("{l}: {f}"))


class TestValidateData:
    @pytest.mark.parametrize("rows", [
        "not rows",
        None,
        [],
        (),
        [["A"]],
        [["A", 1], "B"],
        [["A", 1], ["B"]],
        [["A", "ten"]],
        [["A", [10]]],
        [["A", ["10", "ten"]]],
        [["A", True]],
    ])
    def test_rejects(self, rows):
        with pytest.raises(InvalidDataError):
            validate_data(rows)

    def test_accepts_numbers_and_pairs(self):
        validate_data([["A", 10], ("B", [5.5, "5.5"]), ["C", np.int64(3), "#fff"]])


class TestGetRawCount:
    def test_number(self):
        assert get_raw_count(["A", 12]) == 12

    def test_pair(self):
        assert get_raw_count(["A", [12, "twelve"]]) == 12

    def test_numpy_scalar(self):
        count = get_raw_count(["A", np.float64(2.5)])
        assert count == 2.5
        assert type(count) is float


class TestStandardize:
    def test_ratios_sum_to_one(self):
        blocks = _standardize([["A", 50], ["B", 30], ["C", 20]])
        assert [block.ratio for block in blocks] == pytest.approx([0.5, 0.3, 0.2])
        assert sum(block.ratio for block in blocks) == pytest.approx(1.0)

    def test_fields(self):
        blocks = _standardize([["A", 1234, "#123456", "#000"], ["B", [766, "766 leads"]]])

        first, second = blocks
        assert first.index == 0
        assert first.value == 1234
        assert first.height == pytest.approx(300 * 1234 / 2000)
        assert first.fill == "#123456"
        assert first.label.raw == "A"
        assert first.label.formatted == "A: 1,234"
        assert first.label.color == "#000"

        assert second.index == 1
        assert second.value == 766
        assert second.fill == CATEGORY10[1]
        assert second.label.formatted == "B: 766 leads"
        assert second.label.color == "#fff"

    def test_order_preserved(self):
        blocks = _standardize([["Z", 1], ["A", 100], ["M", 10]])
        assert [block.label.raw for block in blocks] == ["Z", "A", "M"]

    def test_zero_total(self):
        with pytest.raises(DegenerateLayoutError):
            _standardize([["A", 0], ["B", 0]])

    def test_cancelling_values(self):
        with pytest.raises(DegenerateLayoutError):
            _standardize([["A", 5], ["B", -5]])

    def test_invalid_rows(self):
        with pytest.raises(InvalidDataError):
            _standardize([])

    def test_to_dict(self):
        block = _standardize([["A", 1]])[0]
        assert block.to_dict() == {
            "index": 0,
            "value": 1,
            "ratio": 1.0,
            "height": 300.0,
            "fill": CATEGORY10[0],
            "label": {"raw": "A", "formatted": "A: 1", "color": "#fff"},
        }
