"""
Unit tests for TrendAnalyzer
"""

from datetime import datetime, timedelta

import pytest

from emfad.analysis.trend_analyzer import TrendAnalyzer, TrendDirection
from emfad.core.material_database import MaterialType

T0 = datetime(2024, 5, 1, 12, 0, 0)


def at(seconds: int) -> datetime:
    return T0 + timedelta(seconds=seconds)


def test_single_entry_has_no_trend():
    analyzer = TrendAnalyzer()
    assert analyzer.add(MaterialType.WATER, 0.5, at(0)) is None


def test_stable_when_type_never_changes():
    analyzer = TrendAnalyzer()
    for i, conf in enumerate([0.2, 0.9, 0.1]):
        trend = analyzer.add(MaterialType.FERROUS_METAL, conf, at(i))

    assert trend.direction == TrendDirection.STABLE
    assert trend.strength == 1.0
    assert trend.last_change == at(0)


def test_increasing_trend():
    analyzer = TrendAnalyzer()
    analyzer.add(MaterialType.CAVITY, 0.2, at(0))
    analyzer.add(MaterialType.CAVITY, 0.5, at(1))
    trend = analyzer.add(MaterialType.FERROUS_METAL, 0.8, at(2))

    assert trend.direction == TrendDirection.INCREASING
    assert trend.strength == pytest.approx(0.3)
    assert trend.last_change == at(2)


def test_decreasing_trend():
    analyzer = TrendAnalyzer()
    analyzer.add(MaterialType.WATER, 0.9, at(0))
    analyzer.add(MaterialType.CAVITY, 0.6, at(1))
    trend = analyzer.add(MaterialType.CAVITY, 0.3, at(2))

    assert trend.direction == TrendDirection.DECREASING
    assert trend.strength == pytest.approx(0.3)
    assert trend.last_change == at(1)


def test_small_changes_are_stable():
    analyzer = TrendAnalyzer(change_threshold=0.1)
    analyzer.add(MaterialType.WATER, 0.50, at(0))
    trend = analyzer.add(MaterialType.CAVITY, 0.55, at(1))

    assert trend.direction == TrendDirection.STABLE
    assert trend.strength == pytest.approx(0.05)


def test_window_eviction():
    analyzer = TrendAnalyzer(window_size=2)
    analyzer.add(MaterialType.WATER, 0.1, at(0))
    analyzer.add(MaterialType.CAVITY, 0.2, at(1))
    trend = analyzer.add(MaterialType.CAVITY, 0.3, at(2))

    assert [e.timestamp for e in analyzer.history()] == [at(1), at(2)]
    assert trend.direction == TrendDirection.STABLE
    assert trend.strength == 1.0


def test_clear():
    analyzer = TrendAnalyzer()
    analyzer.add(MaterialType.WATER, 0.1)
    analyzer.clear()
    assert analyzer.history() == []
    assert analyzer.analyze_trend() is None


def test_invalid_window():
    with pytest.raises(ValueError):
        TrendAnalyzer(window_size=1)
