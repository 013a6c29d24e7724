"""Unit tests for scaler helpers."""

import math

import pytest

from frames import SampleMatrix
from scaler import ValueRange, scale_matrix, scale_value

WIDTH = 20


def test_values_inside_range_map_into_columns() -> None:
    value_range = ValueRange(min=-3.5, max=12.0)
    for step in range(101):
        value = value_range.min + value_range.span * step / 100
        idx = scale_value(value, value_range, WIDTH)
        assert idx is not None
        assert 0 <= idx < WIDTH


def test_bounds_map_to_first_and_last_column() -> None:
    value_range = ValueRange(min=0.0, max=19.0)
    assert scale_value(0.0, value_range, WIDTH) == 0
    assert scale_value(19.0, value_range, WIDTH) == WIDTH - 1
    assert scale_value(9.99, value_range, WIDTH) == 9


def test_scale_is_monotonic() -> None:
    value_range = ValueRange(min=1.0, max=2.0)
    previous = -1
    for step in range(200):
        idx = scale_value(1.0 + step / 199, value_range, WIDTH)
        assert idx is not None
        assert idx >= previous
        previous = idx


def test_value_just_above_max_still_lands_in_last_column() -> None:
    # 100.5 * 19 / 100 = 19.095: точка ще в межах полотна.
    assert scale_value(100.5, ValueRange(min=0.0, max=100.0), WIDTH) == WIDTH - 1


@pytest.mark.parametrize("value", [-0.01, 106.0, math.nan, math.inf, -math.inf, None])
def test_out_of_range_or_invalid_values_are_dropped(value) -> None:
    assert scale_value(value, ValueRange(min=0.0, max=100.0), WIDTH) is None


@pytest.mark.parametrize("value", [5.0, 4.0, 6.0, 0.0])
def test_degenerate_range_drops_everything(value: float) -> None:
    assert scale_value(value, ValueRange(min=5.0, max=5.0), WIDTH) is None


def test_value_range_from_first_matrix() -> None:
    matrix = SampleMatrix.from_series([1, 2, 3], [[1.0, None, 4.0], [-2.0, 8.5, "bad"]])

    value_range = ValueRange.from_matrix(matrix)

    assert value_range == ValueRange(min=-2.0, max=8.5)


def test_value_range_without_samples_is_inverted_infinity() -> None:
    matrix = SampleMatrix.from_series([1, 2], [[None, None]])

    value_range = ValueRange.from_matrix(matrix)

    assert value_range.min == math.inf
    assert value_range.max == -math.inf
    assert scale_value(0.0, value_range, WIDTH) is None


def test_scale_matrix_keeps_gaps() -> None:
    matrix = SampleMatrix.from_series([1, 2, 3], [[0.0, None, 19.0]])

    quantized = scale_matrix(matrix, ValueRange(min=0.0, max=19.0), WIDTH)

    assert quantized == [[0, None, 19]]
