"""Tests for aggregation.reductions module."""

import math

import pytest

from aggregation.reductions import (
    coerce_value,
    custom_value_func,
    get_count,
    get_max,
    get_mean,
    get_min,
    get_sum,
    get_value_func,
    unit_weight,
)
from shared.constants import AggregationKind


def identity(v):
    return v


class TestCoerceValue:
    """Tests for coerce_value function."""

    def test_int_and_float(self):
        """Real numbers should be returned as float."""
        assert coerce_value(3) == 3.0
        assert coerce_value(2.5) == 2.5

    def test_non_numeric_is_nan(self):
        """Strings, None and bools should become NaN."""
        assert math.isnan(coerce_value('1'))
        assert math.isnan(coerce_value(None))
        assert math.isnan(coerce_value(True))


class TestReductions:
    """Tests for sum/mean/min/max/count reductions."""

    def test_sum_skips_non_finite(self):
        """Non-finite values should not contribute to the sum."""
        assert get_sum([1, math.nan, 2, math.inf, 'x'], identity) == 3.0

    def test_mean_uses_only_finite_values(self):
        """Mean should divide by the number of finite values."""
        assert get_mean([1, None, 3, -math.inf], identity) == 2.0

    def test_min_max(self):
        """Min/max should ignore NaN."""
        values = [4.0, math.nan, -2.0, 7.5]
        assert get_min(values, identity) == -2.0
        assert get_max(values, identity) == 7.5

    @pytest.mark.parametrize('reduce', [get_sum, get_mean, get_min, get_max])
    def test_no_finite_values_is_none(self, reduce):
        """Without finite values a reduction reports no data."""
        assert reduce([math.nan, None, 'a'], identity) is None
        assert reduce([], identity) is None

    def test_count_ignores_accessor(self):
        """Count should be the number of points regardless of their values."""
        assert get_count([math.nan, None, 1], identity) == 3.0
        assert get_count([], identity) is None

    def test_accessor_is_applied(self):
        """Values should be read through the accessor."""
        points = [{'w': 2}, {'w': 4}]
        assert get_mean(points, lambda p: p['w']) == 3.0


class TestGetValueFunc:
    """Tests for get_value_func function."""

    def test_binds_reduction(self):
        """Returned callable should apply the requested reduction."""
        value_of = get_value_func(AggregationKind.MAX, identity)
        assert value_of([1, 5, 3]) == 5.0

    def test_accepts_string_kind(self):
        """Aggregation may be given by its string value."""
        value_of = get_value_func('sum', identity)
        assert value_of([1, 2]) == 3.0

    def test_unknown_kind_raises(self):
        """Unknown aggregation should raise ValueError."""
        with pytest.raises(ValueError):
            get_value_func('median', identity)

    def test_unit_weight(self):
        """Default weight accessor should return 1."""
        assert unit_weight(object()) == 1.0


class TestCustomValueFunc:
    """Tests for custom_value_func function."""

    def test_receives_all_points(self):
        """The wrapped function sees every point of the cell."""
        seen = []

        def median(pts):
            seen.extend(pts)
            ordered = sorted(pts)
            return ordered[len(ordered) // 2]

        value_of = custom_value_func(median)
        assert value_of([5, 1, 3]) == 3.0
        assert seen == [5, 1, 3]

    @pytest.mark.parametrize('result', [None, math.nan, math.inf, 'high', True])
    def test_no_data_results(self, result):
        """None, non-finite and non-numeric results mean no data."""
        value_of = custom_value_func(lambda _: result)
        assert value_of([1]) is None

    def test_int_result_coerced(self):
        """Integer results become floats."""
        assert custom_value_func(len)([1, 2]) == 2.0
