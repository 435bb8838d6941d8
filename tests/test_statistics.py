"""
Unit tests for numeric guards and measurement statistics
"""

import math

import numpy as np
import pytest

from emfad.utils.constants import FREE_SPACE_IMPEDANCE, MU_0, angular_frequency
from emfad.utils.numeric import (
    all_finite,
    clamp,
    clamp_unit,
    ratio_balance,
    safe_divide,
    safe_log10,
    weighted_sum,
)
from emfad.utils.statistics import (
    calculate_statistics,
    coefficient_of_variation,
    moving_average,
    population_std,
)


class TestNumericGuards:
    def test_clamp(self):
        assert clamp(5.0, 0.0, 1.0) == 1.0
        assert clamp(-5.0, 0.0, 1.0) == 0.0
        assert clamp(float("nan"), 0.0, 1.0) == 0.0
        assert clamp_unit(math.inf) == 1.0
        assert clamp_unit(-math.inf) == 0.0

    def test_safe_divide(self):
        assert safe_divide(1.0, 4.0) == 0.25
        assert safe_divide(1.0, 0.0) == 0.0
        assert safe_divide(1.0, 0.0, default=-1.0) == -1.0
        assert safe_divide(1.0, float("nan")) == 0.0
        assert safe_divide(1e308, 1e-308) == 0.0  # overflow -> default

    def test_safe_log10(self):
        assert safe_log10(1e7) == pytest.approx(7.0)
        assert safe_log10(0.0) == pytest.approx(-20.0)
        assert safe_log10(-100.0) == pytest.approx(2.0)
        assert safe_log10(float("nan")) == pytest.approx(-20.0)

    def test_ratio_balance(self):
        assert ratio_balance(2.0, 8.0) == pytest.approx(0.25)
        assert ratio_balance(-8.0, 2.0) == pytest.approx(0.25)
        assert ratio_balance(0.0, 0.0) == 0.0

    def test_weighted_sum_clamps_terms(self):
        # Test Case 1: 정상 범위
        assert weighted_sum([1.0, 0.5], [0.5, 0.5]) == pytest.approx(0.75)

        # Test Case 2: 범위를 벗어난 항은 잘린다
        assert weighted_sum([10.0, -3.0], [0.5, 0.5]) == pytest.approx(0.5)
        assert weighted_sum([math.inf, math.nan], [0.6, 0.4]) == pytest.approx(0.6)

        # Test Case 3: 길이 불일치
        with pytest.raises(ValueError):
            weighted_sum([1.0], [0.5, 0.5])

    def test_all_finite(self):
        assert all_finite([1.0, 2.0])
        assert not all_finite([1.0, math.inf])


class TestStatistics:
    def test_calculate_statistics(self):
        stats = calculate_statistics([1.0, 2.0, 3.0, 4.0])
        assert stats.minimum == 1.0
        assert stats.maximum == 4.0
        assert stats.average == pytest.approx(2.5)
        assert stats.standard_deviation == pytest.approx(np.std([1.0, 2.0, 3.0, 4.0]))
        assert stats.count == 4

    def test_empty_series(self):
        stats = calculate_statistics([])
        assert stats.count == 0
        assert stats.average == 0.0
        assert population_std([]) == 0.0
        assert coefficient_of_variation([]) == 0.0

    def test_moving_average(self):
        result = moving_average([1.0, 2.0, 3.0, 4.0], 2)
        assert result == pytest.approx([1.5, 2.5, 3.5, 4.0])
        assert moving_average([1.0, 2.0], 0) == [1.0, 2.0]

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([5.0, 5.0, 5.0]) == 0.0
        assert coefficient_of_variation([-1.0, 1.0]) == 0.0  # zero mean
        assert coefficient_of_variation([1.0, 3.0]) == pytest.approx(0.5)


def test_constants():
    assert angular_frequency(1.0) == pytest.approx(2 * math.pi)
    assert MU_0 == pytest.approx(4e-7 * math.pi)
    assert FREE_SPACE_IMPEDANCE == 377.0
