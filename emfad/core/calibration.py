"""
Automatic Calibration Engine

기준점(알려진 임피던스) 측정값을 모아 모드별 임피던스 보정 계수를 계산한다.

State machine::

    IDLE --add--> ACCUMULATING --calibrate(success)--> CALIBRATED
      ^                                                    |
      +------------------ set_mode / clear ----------------+

The engine keeps mutable state and is not thread-safe; callers sharing an
instance must serialize access themselves.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from emfad.core.measurement_mode import MeasurementMode
from emfad.utils.complex_math import Complex, ComplexDivisionError
from emfad.utils.constants import FREE_SPACE_IMPEDANCE
from emfad.utils.geometry import Point3D
from emfad.utils.numeric import safe_divide, weighted_sum

logger = logging.getLogger(__name__)


class CalibrationModeError(ValueError):
    """Calibration point recorded in a different mode than the engine's current mode"""

    pass


class CalibrationState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    CALIBRATED = "calibrated"


def _default_reference_impedances() -> Dict[MeasurementMode, float]:
    return {mode: FREE_SPACE_IMPEDANCE for mode in MeasurementMode}


@dataclass
class CalibrationConfig:
    min_points: int = 3
    max_points: int = 10
    min_confidence: float = 0.7
    outlier_sigma: float = 2.0
    reference_impedances: Dict[MeasurementMode, float] = field(default_factory=_default_reference_impedances)


@dataclass(frozen=True)
class CalibrationPoint:
    position: Point3D
    impedance: Complex
    frequency: float
    mode: MeasurementMode
    expected_impedance: Optional[Complex] = None


@dataclass
class CalibrationResult:
    success: bool
    calibration_factor: float
    confidence: float
    mode: MeasurementMode
    timestamp: datetime = field(default_factory=datetime.now)
    points_used: int = 0


class AutomaticCalibration:
    """
    Bounded FIFO of calibration points for a single measurement mode.

    Args:
        mode: 초기 측정 모드
        config: 보정 설정
    """

    def __init__(
        self,
        mode: MeasurementMode = MeasurementMode.BA_VERTICAL,
        config: Optional[CalibrationConfig] = None,
    ) -> None:
        self.config: CalibrationConfig = config or CalibrationConfig()
        self._mode = mode
        self._points: List[CalibrationPoint] = []
        self._state = CalibrationState.IDLE
        self._last_result: Optional[CalibrationResult] = None
        self._active_factor = 1.0

    @property
    def mode(self) -> MeasurementMode:
        return self._mode

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def last_result(self) -> Optional[CalibrationResult]:
        return self._last_result

    @property
    def calibration_factor(self) -> float:
        """
        Factor of the last successful calibration, 1.0 before any.

        Adding or removing points keeps the factor in force until the next
        successful calibrate(); set_mode() and clear_calibration_points()
        reset it to 1.0.
        """
        return self._active_factor

    def set_mode(self, mode: MeasurementMode) -> None:
        if mode is not self._mode:
            logger.info(f"Calibration mode changed: {self._mode.name} -> {mode.name}")
        self._mode = mode
        self._reset()

    def add_calibration_point(self, point: CalibrationPoint) -> None:
        """
        Raises:
            CalibrationModeError: point.mode가 현재 모드와 다를 때
        """
        if point.mode is not self._mode:
            raise CalibrationModeError(
                f"Calibration point mode {point.mode.name} does not match current mode {self._mode.name}"
            )
        if len(self._points) >= self.config.max_points:
            evicted = self._points.pop(0)
            logger.debug(f"Calibration buffer full, evicted point at {evicted.position}")
        self._points.append(point)
        self._state = CalibrationState.ACCUMULATING

    def remove_calibration_point(self, index: int) -> bool:
        """Remove point at index; out-of-range indices are ignored (returns False)."""
        if not 0 <= index < len(self._points):
            return False
        self._points.pop(index)
        self._state = CalibrationState.ACCUMULATING if self._points else CalibrationState.IDLE
        return True

    def clear_calibration_points(self) -> None:
        self._reset()

    def get_calibration_points(self) -> List[CalibrationPoint]:
        return list(self._points)

    def calibrate(self) -> CalibrationResult:
        """
        Compute the calibration factor from the buffered points.

        Returns:
            CalibrationResult. Fewer than min_points yields
            success=False, factor=1.0, confidence=0.0.

        Raises:
            ComplexDivisionError: 관측 임피던스 크기가 0인 기준점
        """
        cfg = self.config
        if len(self._points) < cfg.min_points:
            logger.warning(
                f"Calibration needs at least {cfg.min_points} points, have {len(self._points)}"
            )
            result = CalibrationResult(False, 1.0, 0.0, self._mode, points_used=len(self._points))
            self._last_result = result
            return result

        factors = [self.point_factor(p) for p in self._points]
        kept = self.remove_outliers(factors, cfg.outlier_sigma)
        factor = float(np.mean(kept))
        confidence = self.calculate_confidence(factors, factor)
        success = confidence >= cfg.min_confidence

        result = CalibrationResult(success, factor, confidence, self._mode, points_used=len(kept))
        self._last_result = result
        if success:
            self._state = CalibrationState.CALIBRATED
            self._active_factor = factor
        logger.info(
            f"Calibration {self._mode.name}: factor={factor:.4f}, confidence={confidence:.3f}, "
            f"success={success} ({len(kept)}/{len(factors)} points)"
        )
        return result

    def apply(self, impedance: Complex) -> Complex:
        """Scale an impedance by the last successful calibration factor."""
        return Complex.coerce(impedance) * self.calibration_factor

    def point_factor(self, point: CalibrationPoint) -> float:
        """
        |expected| / |observed| for one calibration point.

        Raises:
            ComplexDivisionError: 관측 임피던스가 0이거나 계수가 overflow 되는 경우
        """
        observed = point.impedance.magnitude
        if observed == 0:
            raise ComplexDivisionError(f"Calibration point at {point.position} has zero impedance")
        if point.expected_impedance is not None:
            expected = point.expected_impedance.magnitude
        else:
            expected = self.config.reference_impedances.get(point.mode, FREE_SPACE_IMPEDANCE)
        factor = expected / observed
        if not math.isfinite(factor):
            raise ComplexDivisionError(
                f"Calibration point at {point.position}: |Z|={observed:.3g} gives a non-finite factor"
            )
        return factor

    @staticmethod
    def remove_outliers(values: List[float], sigma: float = 2.0) -> List[float]:
        """Drop values beyond sigma population standard deviations; lists of <= 2 pass through."""
        if len(values) <= 2:
            return list(values)
        arr = np.asarray(values, dtype=np.float64)
        mean = arr.mean()
        std = arr.std()
        kept = [float(v) for v in arr if abs(v - mean) <= sigma * std]
        return kept or list(values)

    def calculate_confidence(self, factors: List[float], factor: float) -> float:
        cfg = self.config
        factor_arr = np.asarray(factors, dtype=np.float64)
        freq_arr = np.asarray([p.frequency for p in self._points], dtype=np.float64)

        count_term = len(self._points) / cfg.max_points
        spread_term = 1.0 - safe_divide(float(factor_arr.std()), float(factor_arr.mean()))
        deviation_term = 1.0 - abs(factor - 1.0)
        frequency_term = 1.0 - safe_divide(float(freq_arr.std()), float(freq_arr.mean()))
        return weighted_sum(
            (count_term, spread_term, deviation_term, frequency_term),
            (0.3, 0.3, 0.2, 0.2),
        )

    def _reset(self) -> None:
        self._points.clear()
        self._state = CalibrationState.IDLE
        self._last_result = None
        self._active_factor = 1.0
