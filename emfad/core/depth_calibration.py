"""
Linear Depth Calibration

재질별 기준 깊이 측정값으로 depth = factor * value + offset 직선을 맞춘다.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
from scipy import stats

from emfad.core.material_database import MaterialType
from emfad.utils.numeric import clamp_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepthCalibrationPoint:
    material_type: MaterialType
    depth: float  # reference depth (m)
    value: float  # raw instrument value
    frequency: float


@dataclass(frozen=True)
class CalibrationFactors:
    factor: float
    offset: float

    def apply(self, value: float) -> float:
        return self.factor * value + self.offset


class DepthCalibration:
    MIN_POINTS = 2

    def __init__(self) -> None:
        self._points: List[DepthCalibrationPoint] = []

    def add_calibration_point(self, point: DepthCalibrationPoint) -> None:
        self._points.append(point)

    def remove_calibration_point(self, point: DepthCalibrationPoint) -> bool:
        try:
            self._points.remove(point)
        except ValueError:
            return False
        return True

    def points_for(self, material_type: MaterialType) -> List[DepthCalibrationPoint]:
        return [p for p in self._points if p.material_type is material_type]

    def get_calibration_factors(self, material_type: MaterialType) -> Optional[CalibrationFactors]:
        """
        Least-squares fit for one material type.

        Returns:
            CalibrationFactors, or None with fewer than 2 points or when every
            raw value is identical (vertical line).
        """
        points = self.points_for(material_type)
        if len(points) < self.MIN_POINTS:
            return None
        values = np.array([p.value for p in points], dtype=np.float64)
        depths = np.array([p.depth for p in points], dtype=np.float64)
        if np.ptp(values) == 0:
            logger.warning(f"Depth calibration for {material_type.name}: all raw values identical, no fit")
            return None
        fit = stats.linregress(values, depths)
        return CalibrationFactors(float(fit.slope), float(fit.intercept))

    def apply_calibration(self, raw_value: float, material_type: MaterialType) -> float:
        factors = self.get_calibration_factors(material_type)
        if factors is None:
            return raw_value
        return factors.apply(raw_value)

    def calibration_quality(self, material_type: MaterialType) -> float:
        """Coefficient of determination R² of the fit, clamped to [0, 1]; 0.0 without a fit."""
        factors = self.get_calibration_factors(material_type)
        if factors is None:
            return 0.0
        points = self.points_for(material_type)
        depths = np.array([p.depth for p in points], dtype=np.float64)
        predicted = np.array([factors.apply(p.value) for p in points], dtype=np.float64)
        ss_total = float(np.sum((depths - depths.mean()) ** 2))
        ss_residual = float(np.sum((depths - predicted) ** 2))
        if ss_total == 0:
            return 1.0 if np.isclose(ss_residual, 0.0) else 0.0
        return clamp_unit(1.0 - ss_residual / ss_total)

    def summary(self) -> Dict[MaterialType, Optional[CalibrationFactors]]:
        types = sorted({p.material_type for p in self._points}, key=lambda t: t.name)
        return {t: self.get_calibration_factors(t) for t in types}
