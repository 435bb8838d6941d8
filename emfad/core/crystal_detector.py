"""
Crystal Detector

배경 임피던스 대비 변화량으로 결정(보석) 신호를 검출하고
유전율 범위로 결정 종류를 판별한다.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from emfad.utils.complex_math import Complex
from emfad.utils.constants import MU_0, angular_frequency
from emfad.utils.numeric import clamp_unit, weighted_sum

logger = logging.getLogger(__name__)


class CrystalType(Enum):
    RUBY = "ruby"
    EMERALD = "emerald"
    DIAMOND = "diamond"
    TOURMALINE = "tourmaline"
    QUARTZ = "quartz"


@dataclass(frozen=True)
class CrystalRange:
    permittivity_min: float
    permittivity_max: float
    density_min: float
    density_max: float

    def contains(self, permittivity: float) -> bool:
        return self.permittivity_min <= permittivity <= self.permittivity_max

    def centrality(self, permittivity: float) -> float:
        """1.0 at the range centre, 0.0 at (and beyond) its edges."""
        half_width = (self.permittivity_max - self.permittivity_min) / 2.0
        if half_width <= 0:
            return 1.0 if permittivity == self.permittivity_min else 0.0
        centre = (self.permittivity_max + self.permittivity_min) / 2.0
        return clamp_unit(1.0 - abs(permittivity - centre) / half_width)


def _default_crystal_table() -> Dict[CrystalType, CrystalRange]:
    # Insertion order is the match priority (Emerald and Diamond overlap).
    return {
        CrystalType.RUBY: CrystalRange(9.3, 10.0, 3.9, 4.1),
        CrystalType.EMERALD: CrystalRange(6.0, 8.0, 2.7, 2.8),
        CrystalType.DIAMOND: CrystalRange(5.5, 7.0, 3.5, 3.6),
        CrystalType.TOURMALINE: CrystalRange(12.0, 15.0, 3.0, 3.3),
        CrystalType.QUARTZ: CrystalRange(4.0, 5.0, 2.6, 2.7),
    }


@dataclass
class CrystalDetectorConfig:
    alpha: float = 1.5
    snr_full_scale: float = 10.0
    snr_weight: float = 0.4
    type_weight: float = 0.3
    range_weight: float = 0.3
    crystal_table: Dict[CrystalType, CrystalRange] = field(default_factory=_default_crystal_table)


@dataclass
class CrystalDetectionResult:
    is_crystal: bool
    confidence: float
    permittivity: Complex
    impedance_delta: Complex
    crystal_type: Optional[CrystalType] = None
    snr: float = 0.0


class CrystalDetector:
    def __init__(self, config: Optional[CrystalDetectorConfig] = None) -> None:
        self.config: CrystalDetectorConfig = config or CrystalDetectorConfig()

    def detect_crystal(
        self,
        measured_z: Complex,
        background_z: Complex,
        frequency: float,
        noise_std_dev: float,
        alpha: Optional[float] = None,
    ) -> CrystalDetectionResult:
        """
        Flag a crystal when |Δz| exceeds alpha noise standard deviations.

        Args:
            measured_z: 측정 임피던스
            background_z: 배경(모암) 임피던스
            frequency: 측정 주파수 (Hz)
            noise_std_dev: 임피던스 노이즈 표준편차 (Ω)
            alpha: 검출 임계 배수 (기본값: config.alpha = 1.5)

        Returns:
            CrystalDetectionResult

        Raises:
            ValueError: frequency <= 0 또는 noise_std_dev < 0
        """
        if not frequency > 0:
            raise ValueError(f"Frequency must be positive, got {frequency}")
        if not noise_std_dev >= 0:
            raise ValueError(f"Noise standard deviation must be non-negative, got {noise_std_dev}")
        alpha = self.config.alpha if alpha is None else alpha

        delta = Complex.coerce(measured_z) - Complex.coerce(background_z)
        permittivity = self.calculate_local_permittivity(delta, frequency)
        delta_mag = delta.magnitude

        is_crystal = delta_mag > alpha * noise_std_dev
        crystal_type = self.identify_crystal_type(permittivity.real) if is_crystal else None

        snr = self._snr(delta_mag, noise_std_dev)
        confidence = self.calculate_confidence(snr, permittivity.real, crystal_type)

        logger.debug(
            f"Crystal check: |Δz|={delta_mag:.4g}, threshold={alpha * noise_std_dev:.4g}, "
            f"εr={permittivity.real:.4g}, type={crystal_type}"
        )
        return CrystalDetectionResult(
            is_crystal=is_crystal,
            confidence=confidence,
            permittivity=permittivity,
            impedance_delta=delta,
            crystal_type=crystal_type,
            snr=snr,
        )

    @staticmethod
    def calculate_local_permittivity(impedance_delta: Complex, frequency: float) -> Complex:
        """ε_local = |Δz|²·(ω·μ0 / 2), constant permeability assumed."""
        omega = angular_frequency(frequency)
        return Complex(impedance_delta.magnitude_squared * (omega * MU_0 / 2.0), 0.0)

    def identify_crystal_type(self, permittivity: float) -> Optional[CrystalType]:
        for crystal_type, crystal_range in self.config.crystal_table.items():
            if crystal_range.contains(permittivity):
                return crystal_type
        return None

    def calculate_confidence(self, snr: float, permittivity: float, crystal_type: Optional[CrystalType]) -> float:
        cfg = self.config
        snr_term = snr / cfg.snr_full_scale
        type_term = 1.0 if crystal_type is not None else 0.0
        range_term = 0.0
        if crystal_type is not None:
            range_term = cfg.crystal_table[crystal_type].centrality(permittivity)
        return weighted_sum(
            (snr_term, type_term, range_term),
            (cfg.snr_weight, cfg.type_weight, cfg.range_weight),
        )

    @staticmethod
    def _snr(delta_magnitude: float, noise_std_dev: float) -> float:
        if noise_std_dev == 0:
            return math.inf if delta_magnitude > 0 else 0.0
        return delta_magnitude / noise_std_dev
