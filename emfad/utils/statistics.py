"""
Measurement Statistics

측정값 요약 통계 및 이동평균 필터.
"""

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np


@dataclass
class MeasurementStatistics:
    minimum: float
    maximum: float
    average: float
    standard_deviation: float
    count: int = 0


def calculate_statistics(values: Sequence[float]) -> MeasurementStatistics:
    """
    Min/max/mean/population std of a series.

    Empty input yields an all-zero record rather than NaN.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return MeasurementStatistics(0.0, 0.0, 0.0, 0.0, 0)
    return MeasurementStatistics(
        minimum=float(arr.min()),
        maximum=float(arr.max()),
        average=float(arr.mean()),
        standard_deviation=float(arr.std()),
        count=int(arr.size),
    )


def moving_average(values: Sequence[float], window: int) -> List[float]:
    """
    Forward-looking moving average; windows shrink near the end of the series.

    Output has the same length as the input; window <= 0 returns a copy.
    """
    if window <= 0:
        return list(values)
    arr = np.asarray(values, dtype=np.float64)
    out = []
    for i in range(arr.size):
        out.append(float(arr[i : i + window].mean()))
    return out


def population_std(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(arr.std())


def coefficient_of_variation(values: Sequence[float]) -> float:
    """std / mean; 0.0 for empty input or zero mean."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    mean = float(arr.mean())
    if mean == 0.0:
        return 0.0
    return float(arr.std()) / abs(mean)
