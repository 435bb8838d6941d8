"""
Metal Analyzer

주파수 스윕 임피던스 곡선에서 표피효과/전도도를 추정해 금속 종류를 판별한다.

Per-sample conductivity uses the good-conductor surface impedance
|Z_s| = sqrt(ω·μ0 / σ), i.e. σ = ω·μ0 / |Z|².
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from emfad.utils.complex_math import Complex
from emfad.utils.constants import MU_0, angular_frequency
from emfad.utils.numeric import clamp_unit, weighted_sum
from emfad.utils.statistics import coefficient_of_variation

logger = logging.getLogger(__name__)

ImpedanceCurve = Sequence[Tuple[float, Complex]]


class MetalAnalysisError(ValueError):
    """Raised for sweeps containing unusable samples"""

    pass


class MetalType(Enum):
    GOLD = "gold"
    SILVER = "silver"
    COPPER = "copper"
    BRONZE = "bronze"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MetalProperties:
    conductivity: float  # S/m
    permeability: float
    density: float  # g/cm³
    color: str


def _default_metal_table() -> Dict[MetalType, MetalProperties]:
    return {
        MetalType.GOLD: MetalProperties(4.1e7, 1.0, 19.32, "#FFD700"),
        MetalType.SILVER: MetalProperties(6.3e7, 1.0, 10.49, "#C0C0C0"),
        MetalType.COPPER: MetalProperties(5.8e7, 1.0, 8.96, "#B87333"),
        MetalType.BRONZE: MetalProperties(1.0e6, 1.0, 8.73, "#CD7F32"),
        MetalType.UNKNOWN: MetalProperties(0.0, 1.0, 0.0, "#808080"),
    }


def _default_buckets() -> Tuple[Tuple[float, MetalType], ...]:
    # Checked in order; first exceeded threshold wins.
    return (
        (5.0e7, MetalType.SILVER),
        (4.0e7, MetalType.GOLD),
        (5.0e6, MetalType.COPPER),
        (1.0e6, MetalType.BRONZE),
    )


@dataclass
class MetalAnalyzerConfig:
    conductivity_buckets: Tuple[Tuple[float, MetalType], ...] = field(default_factory=_default_buckets)
    metal_table: Dict[MetalType, MetalProperties] = field(default_factory=_default_metal_table)
    frequency_weight: float = 0.3
    skin_effect_weight: float = 0.3
    conductivity_weight: float = 0.2
    impedance_weight: float = 0.2


@dataclass
class MetalAnalysisResult:
    """
    Attributes:
        metal_type: 판별된 금속
        conductivity: 스윕 평균 전도도 (S/m)
        skin_depth: 첫 샘플의 표피 깊이 (m), 샘플이 없으면 None
        confidence: 신뢰도 (0~1)
        properties: 판별 금속의 기준 물성
        skin_depths: 샘플별 표피 깊이
    """

    metal_type: MetalType
    conductivity: float
    skin_depth: Optional[float]
    confidence: float
    properties: MetalProperties
    skin_depths: List[float] = field(default_factory=list)


class MetalAnalyzer:
    def __init__(self, config: Optional[MetalAnalyzerConfig] = None) -> None:
        self.config: MetalAnalyzerConfig = config or MetalAnalyzerConfig()

    def analyze_metal(self, impedance_curve: ImpedanceCurve, frequency: Optional[float] = None) -> MetalAnalysisResult:
        """
        Classify a metal from an impedance sweep.

        Args:
            impedance_curve: [(주파수 Hz, 임피던스)] 스윕
            frequency: 기준 측정 주파수 (로그 기록용, 생략 가능)

        Returns:
            MetalAnalysisResult. An empty sweep yields UNKNOWN with confidence 0.0.

        Raises:
            MetalAnalysisError: 0 이하 주파수 또는 크기 0 임피던스 샘플
        """
        samples = [(float(f), Complex.coerce(z)) for f, z in impedance_curve]
        if not samples:
            logger.warning("Metal analysis called with an empty impedance curve")
            unknown = self.config.metal_table[MetalType.UNKNOWN]
            return MetalAnalysisResult(MetalType.UNKNOWN, 0.0, None, 0.0, unknown)

        for f, z in samples:
            if not f > 0:
                raise MetalAnalysisError(f"Sweep frequency must be positive, got {f}")
            # |Z|² underflows to 0 for subnormal impedances
            if z.magnitude_squared == 0.0:
                raise MetalAnalysisError(f"Zero-magnitude impedance at {f} Hz")

        conductivities = [self.calculate_conductivity(z, f) for f, z in samples]
        if not all(math.isfinite(sigma) for sigma in conductivities):
            raise MetalAnalysisError("Sweep impedance too small; conductivity overflows")
        skin_depths = [self.calculate_skin_depth(f, sigma) for (f, _), sigma in zip(samples, conductivities)]
        avg_conductivity = float(np.mean(conductivities))

        metal_type = self.determine_metal_type(avg_conductivity)
        properties = self.config.metal_table[metal_type]
        confidence = self.calculate_confidence(samples, skin_depths, avg_conductivity, properties)

        logger.debug(
            f"Metal sweep ({len(samples)} samples, ref f={frequency}): σ_avg={avg_conductivity:.4g} -> "
            f"{metal_type.name}, confidence={confidence:.3f}"
        )
        return MetalAnalysisResult(
            metal_type=metal_type,
            conductivity=avg_conductivity,
            skin_depth=skin_depths[0],
            confidence=confidence,
            properties=properties,
            skin_depths=skin_depths,
        )

    @staticmethod
    def calculate_conductivity(impedance: Complex, frequency: float) -> float:
        """σ = ω·μ0 / |Z|²"""
        return angular_frequency(frequency) * MU_0 / impedance.magnitude_squared

    @staticmethod
    def calculate_skin_depth(frequency: float, conductivity: float) -> float:
        denom = angular_frequency(frequency) * MU_0 * conductivity
        if denom <= 0:
            return math.inf
        return math.sqrt(2.0 / denom)

    def determine_metal_type(self, conductivity: float) -> MetalType:
        for threshold, metal_type in self.config.conductivity_buckets:
            if conductivity > threshold:
                return metal_type
        return MetalType.UNKNOWN

    def calculate_confidence(
        self,
        samples: List[Tuple[float, Complex]],
        skin_depths: List[float],
        avg_conductivity: float,
        properties: MetalProperties,
    ) -> float:
        cfg = self.config
        terms = (
            self._frequency_confidence(samples),
            self._skin_effect_confidence(samples, skin_depths),
            self._conductivity_confidence(avg_conductivity, properties.conductivity),
            self._impedance_confidence(samples),
        )
        weights = (cfg.frequency_weight, cfg.skin_effect_weight, cfg.conductivity_weight, cfg.impedance_weight)
        return weighted_sum(terms, weights)

    @staticmethod
    def _frequency_confidence(samples: List[Tuple[float, Complex]]) -> float:
        """Pearson correlation of frequency vs |Z| mapped from [-1, 1] to [0, 1]."""
        if len(samples) < 2:
            return 0.5
        freqs = np.array([f for f, _ in samples], dtype=np.float64)
        mags = np.array([z.magnitude for _, z in samples], dtype=np.float64)
        if np.std(freqs) == 0 or np.std(mags) == 0:
            return 0.5
        with np.errstate(all="ignore"):
            correlation = float(np.corrcoef(freqs, mags)[0, 1])
        if not math.isfinite(correlation):
            return 0.5
        return clamp_unit((correlation + 1.0) / 2.0)

    @staticmethod
    def _skin_effect_confidence(samples: List[Tuple[float, Complex]], skin_depths: List[float]) -> float:
        """
        δ ∝ f^-1/2, so δ_first/δ_last should equal sqrt(f_last/f_first).
        Single-sample sweeps are trivially consistent.
        """
        if len(samples) < 2:
            return 1.0
        f_first, f_last = samples[0][0], samples[-1][0]
        d_first, d_last = skin_depths[0], skin_depths[-1]
        if not (math.isfinite(d_first) and math.isfinite(d_last)) or d_last == 0:
            return 0.0
        expected = math.sqrt(f_last / f_first)
        actual = d_first / d_last
        return clamp_unit(1.0 - abs(expected - actual) / expected)

    @staticmethod
    def _conductivity_confidence(measured: float, reference: float) -> float:
        lo, hi = sorted((measured, reference))
        if hi <= 0:
            return 0.0
        return clamp_unit(lo / hi)

    @staticmethod
    def _impedance_confidence(samples: List[Tuple[float, Complex]]) -> float:
        mags = [z.magnitude for _, z in samples]
        return clamp_unit(1.0 - coefficient_of_variation(mags))
