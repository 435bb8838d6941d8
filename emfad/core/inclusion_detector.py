"""
Inclusion Detector

공기층-매질 2층 전송선로 모델로 유효 임피던스를 구하고, 유효 임피던스에서
역산한 물성으로 매질 속 포함물(금속/결정/공동)을 판별한다.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from emfad.core.material_database import MaterialProperties
from emfad.utils.complex_math import ONE, Complex
from emfad.utils.constants import EPSILON_0, FREE_SPACE_IMPEDANCE, MU_0, angular_frequency
from emfad.utils.numeric import clamp, clamp_unit, safe_divide, safe_log10, weighted_sum

logger = logging.getLogger(__name__)


class InclusionDetectionError(ValueError):
    """Raised when frequency or depth cannot describe a physical measurement"""

    pass


class InclusionType(Enum):
    METAL = "metal"
    CRYSTAL = "crystal"
    VOID = "void"
    UNKNOWN = "unknown"


def _default_densities() -> Dict[InclusionType, float]:
    # Midpoints of 8-10 g/cm³ (metal), 2.5-4 (crystal), 1-2 (other)
    return {
        InclusionType.METAL: 9.0,
        InclusionType.CRYSTAL: 3.25,
        InclusionType.VOID: 1.5,
        InclusionType.UNKNOWN: 1.5,
    }


@dataclass
class InclusionConfig:
    detection_threshold: float = 0.7
    metal_conductivity: float = 1e6
    crystal_conductivity: float = 1e-10
    crystal_permittivity: float = 5.0
    void_conductivity: float = 1e-12
    void_permittivity: float = 1.1
    reference_depth: float = 10.0  # m, depth term reaches 0 here
    signal_full_scale: float = 1000.0  # Ω
    contrast_cap: float = 10.0
    impedance_contrast_weight: float = 0.3
    material_contrast_weight: float = 0.3
    depth_weight: float = 0.2
    signal_weight: float = 0.2
    densities: Dict[InclusionType, float] = field(default_factory=_default_densities)


@dataclass(frozen=True)
class InclusionProperties:
    conductivity: float
    permittivity: Complex
    permeability: float
    density: float


@dataclass
class InclusionDetectionResult:
    has_inclusion: bool
    inclusion_type: InclusionType
    depth: float
    size: float
    confidence: float
    properties: InclusionProperties
    effective_impedance: Complex = field(default_factory=lambda: Complex(FREE_SPACE_IMPEDANCE, 0.0))


class InclusionDetector:
    def __init__(self, config: Optional[InclusionConfig] = None) -> None:
        self.config: InclusionConfig = config or InclusionConfig()

    def detect_inclusion(
        self,
        measured_z: Complex,
        frequency: float,
        depth: float,
        surrounding_material: MaterialProperties,
    ) -> InclusionDetectionResult:
        """
        매질 속 포함물 검출

        Args:
            measured_z: 측정 임피던스 (Ω)
            frequency: 측정 주파수 (Hz, > 0)
            depth: 포함물까지의 깊이 (m, >= 0)
            surrounding_material: 주변 매질의 기준 물성

        Returns:
            InclusionDetectionResult (has_inclusion = confidence > 0.7)

        Raises:
            InclusionDetectionError: frequency <= 0, depth < 0 또는 유효 임피던스 overflow
            ComplexDivisionError: 전송선로 분모가 0이 되는 경우
        """
        if not (math.isfinite(frequency) and frequency > 0):
            raise InclusionDetectionError(f"Frequency must be positive, got {frequency}")
        if not (math.isfinite(depth) and depth >= 0):
            raise InclusionDetectionError(f"Depth must be non-negative, got {depth}")

        effective_z = self.calculate_effective_impedance(Complex.coerce(measured_z), frequency, depth)
        if not effective_z.is_finite():
            raise InclusionDetectionError(f"Effective impedance overflows for Z={measured_z} at depth {depth}")
        properties = self.derive_properties(effective_z, frequency)
        inclusion_type = self.classify(properties.conductivity, properties.permittivity.magnitude)
        properties = InclusionProperties(
            conductivity=properties.conductivity,
            permittivity=properties.permittivity,
            permeability=properties.permeability,
            density=self.config.densities[inclusion_type],
        )
        size = self.estimate_size(effective_z, depth, properties)
        confidence = self.calculate_confidence(effective_z, surrounding_material, properties, depth)
        has_inclusion = confidence > self.config.detection_threshold

        logger.debug(
            f"Inclusion: Z_eff={effective_z}, σ={properties.conductivity:.4g}, "
            f"type={inclusion_type.name}, confidence={confidence:.3f}"
        )
        return InclusionDetectionResult(
            has_inclusion=has_inclusion,
            inclusion_type=inclusion_type,
            depth=depth,
            size=size,
            confidence=confidence,
            properties=properties,
            effective_impedance=effective_z,
        )

    @staticmethod
    def calculate_effective_impedance(measured_z: Complex, frequency: float, depth: float) -> Complex:
        """Z_eff = (Z1 + j·Z2·tan(kd)) / (1 + j·(Z2/Z1)·tan(kd)), Z1 = free space."""
        omega = angular_frequency(frequency)
        k = omega * math.sqrt(MU_0 * EPSILON_0)
        tan_kd = math.tan(k * depth)
        z1 = Complex(FREE_SPACE_IMPEDANCE, 0.0)
        j_tan = Complex(0.0, tan_kd)
        numerator = z1 + measured_z * j_tan
        denominator = ONE + (measured_z / z1) * j_tan
        return numerator / denominator

    @staticmethod
    def derive_properties(effective_z: Complex, frequency: float) -> InclusionProperties:
        omega = angular_frequency(frequency)
        mag_sq = effective_z.magnitude_squared
        conductivity = safe_divide(effective_z.imag * omega * EPSILON_0, mag_sq)
        permittivity = Complex(
            effective_z.real / (omega * MU_0),
            -conductivity / (omega * EPSILON_0),
        )
        permeability = mag_sq / (omega * MU_0)
        return InclusionProperties(conductivity, permittivity, permeability, density=0.0)

    def classify(self, conductivity: float, permittivity_magnitude: float) -> InclusionType:
        cfg = self.config
        if conductivity > cfg.metal_conductivity:
            return InclusionType.METAL
        if conductivity < cfg.crystal_conductivity and permittivity_magnitude > cfg.crystal_permittivity:
            return InclusionType.CRYSTAL
        if conductivity < cfg.void_conductivity and permittivity_magnitude < cfg.void_permittivity:
            return InclusionType.VOID
        return InclusionType.UNKNOWN

    @staticmethod
    def estimate_size(effective_z: Complex, depth: float, properties: InclusionProperties) -> float:
        return depth * (effective_z.magnitude / FREE_SPACE_IMPEDANCE) * (properties.permittivity.magnitude / 10.0)

    def calculate_confidence(
        self,
        effective_z: Complex,
        surrounding: MaterialProperties,
        properties: InclusionProperties,
        depth: float,
    ) -> float:
        cfg = self.config
        impedance_contrast = abs(effective_z.magnitude - FREE_SPACE_IMPEDANCE) / FREE_SPACE_IMPEDANCE
        material_contrast = self.calculate_material_contrast(surrounding, properties)
        depth_term = 1.0 - depth / cfg.reference_depth
        signal_term = effective_z.magnitude / cfg.signal_full_scale
        return weighted_sum(
            (impedance_contrast, material_contrast, depth_term, signal_term),
            (cfg.impedance_contrast_weight, cfg.material_contrast_weight, cfg.depth_weight, cfg.signal_weight),
        )

    def calculate_material_contrast(self, surrounding: MaterialProperties, inclusion: InclusionProperties) -> float:
        cap = self.config.contrast_cap
        sigma_contrast = clamp(abs(safe_log10(surrounding.conductivity) - safe_log10(inclusion.conductivity)), 0.0, cap)
        eps_contrast = clamp(abs(surrounding.permittivity.magnitude - inclusion.permittivity.magnitude), 0.0, cap)
        return clamp_unit((sigma_contrast / cap + eps_contrast / cap) / 2.0)
