"""
Material Physics Analyzer

원시 측정값 (자기장, 전기장, 주파수, 위상, 깊이) -> 복소 임피던스 -> 물성
(전도도/유전율/투자율) -> 물질 분류 및 깊이/크기/질량 추정.

Every call is a pure batch computation: all sub-results are produced even
when the caller only needs one of them, and no state survives between calls.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from emfad.core.material_database import (
    AnomalyShape,
    GemstoneDetection,
    MaterialDatabase,
    MaterialProperties,
    MaterialType,
    VeinOrStructureDetection,
)
from emfad.utils.complex_math import Complex
from emfad.utils.constants import EPSILON_0, MU_0, angular_frequency
from emfad.utils.numeric import clamp_unit, ratio_balance, safe_divide

logger = logging.getLogger(__name__)


class PhysicsAnalysisError(ValueError):
    """Raised for readings that cannot be converted to an impedance"""

    pass


class AnomalyType(Enum):
    MAGNETIC = "magnetic"
    ELECTRIC = "electric"
    COMBINED = "combined"


@dataclass(frozen=True)
class MeasurementReading:
    """
    Decoded scanner reading.

    Attributes:
        magnetic_field: 자기장 세기 (µT)
        electric_field: 전기장 세기 (V/m)
        frequency: 측정 주파수 (Hz)
        phase: E/H 위상차 (rad)
        depth: 깊이 힌트 (m)
    """

    magnetic_field: float
    electric_field: float
    frequency: float
    phase: float
    depth: float


@dataclass(frozen=True)
class ImpedanceSample:
    impedance: Complex
    frequency: float
    depth: float


@dataclass(frozen=True)
class DerivedProperties:
    conductivity: float  # S/m
    permittivity: float  # relative
    permeability: float  # relative


@dataclass
class LayerAnalysis:
    depth: float
    material_type: MaterialType
    conductivity: float
    permittivity: float
    frequency: float
    reliability: float


@dataclass
class AnomalyAnalysis:
    type: AnomalyType
    intensity: float
    depth: float
    reliability: float


@dataclass
class MaterialPhysicsAnalysis:
    """
    Full analysis record of one reading.

    Attributes:
        material_type: 임계값 분류 결과
        impedance: 보정 적용된 복소 임피던스 (Ω)
        depth: 깊이 (m)
        depth_confidence: 깊이 추정 신뢰도 (0~1)
        size: 특성 크기 (m, 부피의 세제곱근)
        skin_depth: 표피 깊이 (m), 절연체는 inf
        mass_estimate: 질량 (kg), 밀도가 0이면 None
        matched_material: 데이터베이스 최근접 물질, 거리 초과 시 None
        confidence: 종합 신뢰도 (0~1)
    """

    material_type: MaterialType
    impedance: Complex
    depth: float
    depth_confidence: float
    size: float
    conductivity: float
    permittivity: float
    permeability: float
    magnetic_gradient: float
    electric_gradient: float
    anomaly_shape: AnomalyShape
    aspect_ratio: float
    symmetry: float
    skin_depth: float
    volume_estimate: float
    mass_estimate: Optional[float]
    confidence: float
    calibration_factor: float = 1.0
    matched_material: Optional[MaterialProperties] = None
    layer_analysis: List[LayerAnalysis] = field(default_factory=list)
    anomalies: List[AnomalyAnalysis] = field(default_factory=list)
    gemstone_detection: Optional[GemstoneDetection] = None
    vein_or_structure_detection: Optional[VeinOrStructureDetection] = None


def _default_shape_factors() -> Dict[MaterialType, float]:
    return {
        MaterialType.FERROUS_METAL: 0.5,
        MaterialType.NON_FERROUS_METAL: 0.3,
        MaterialType.CAVITY: 0.8,
        MaterialType.WATER: 0.6,
    }


def _default_densities() -> Dict[MaterialType, float]:
    return {
        MaterialType.FERROUS_METAL: 7.8,
        MaterialType.NON_FERROUS_METAL: 8.9,
        MaterialType.CAVITY: 0.0,
        MaterialType.WATER: 1.0,
    }


def _default_type_reliability() -> Dict[MaterialType, float]:
    return {
        MaterialType.FERROUS_METAL: 0.9,
        MaterialType.NON_FERROUS_METAL: 0.8,
        MaterialType.CAVITY: 0.7,
        MaterialType.WATER: 0.85,
    }


@dataclass
class PhysicsConfig:
    """
    Empirical thresholds of the physics pipeline.

    The material cutoffs are device-specific and meant to be tuned via
    config/default.json rather than edited here.
    """

    ferrous_conductivity: float = 1e6
    non_ferrous_conductivity: float = 1e4
    water_permittivity: float = 50.0
    cavity_phase: float = -math.pi / 4

    strong_gradient: float = 0.5
    weak_gradient: float = 0.2
    near_zero_gradient: float = 0.1
    layer_phase_gradient: float = 0.3

    anomaly_gradient: float = 0.1
    anomaly_reliability_scale: float = 0.5

    layer_phase_jump: float = math.pi / 6
    layer_frequency_factors: Tuple[float, ...] = (0.5, 1.0, 2.0)

    default_shape_factor: float = 0.4
    default_density: float = 2.5
    default_type_reliability: float = 0.5
    shape_factors: Dict[MaterialType, float] = field(default_factory=_default_shape_factors)
    type_densities: Dict[MaterialType, float] = field(default_factory=_default_densities)
    type_reliability: Dict[MaterialType, float] = field(default_factory=_default_type_reliability)

    # field balance, phase reliability, type reliability
    confidence_weights: Tuple[float, float, float] = (1.0 / 3.0, 1.0 / 3.0, 1.0 / 3.0)

    depth_tiers: Tuple[Tuple[float, float], ...] = ((0.1, 0.9), (0.5, 0.8), (1.0, 0.6))
    deep_reliability: float = 0.4

    max_match_distance: float = 3.0
    enable_layer_analysis: bool = True


def compute_impedance(magnetic_field: float, electric_field: float, phase: float) -> Complex:
    """
    Z = (E/B)·(cos φ, sin φ).

    Raises:
        PhysicsAnalysisError: magnetic_field == 0
    """
    if magnetic_field == 0:
        raise PhysicsAnalysisError("Magnetic field is zero; impedance E/B is undefined")
    return Complex.from_polar(electric_field / magnetic_field, phase)


def derive_properties(impedance: Complex, frequency: float) -> DerivedProperties:
    """
    Impedance -> (σ, εr, μr).

    σ  = ω·μ0·|Z|² / (|Z|² + 2·Re(Z)·|Z| + Re(Z)²)
    εr = -Im(Z) / (ω·ε0·|Z|²)
    μr = Re(Z) / (ω·μ0)

    Zero denominators (no response, or purely negative real Z) yield 0.0.
    """
    omega = angular_frequency(frequency)
    mag_sq = impedance.magnitude_squared
    mag = impedance.magnitude
    re = impedance.real

    sigma_den = mag_sq + 2.0 * re * mag + re * re
    conductivity = safe_divide(omega * MU_0 * mag_sq, sigma_den)
    permittivity = safe_divide(-impedance.imag, omega * EPSILON_0 * mag_sq)
    permeability = safe_divide(re, omega * MU_0)
    return DerivedProperties(conductivity, permittivity, permeability)


class MaterialPhysicsAnalyzer:
    """
    Reading -> MaterialPhysicsAnalysis.

    Steps: impedance, material properties, threshold classification, gradients
    and anomaly shape, volume/mass, layer decomposition, confidence.
    """

    def __init__(self, database: Optional[MaterialDatabase] = None, config: Optional[PhysicsConfig] = None) -> None:
        self.database: MaterialDatabase = database or MaterialDatabase.default()
        self.config: PhysicsConfig = config or PhysicsConfig()

    def analyze(self, reading: MeasurementReading, calibration_factor: float = 1.0) -> MaterialPhysicsAnalysis:
        """
        Analyze a single reading.

        Args:
            reading: 원시 측정값
            calibration_factor: 보정 엔진이 산출한 임피던스 배율

        Returns:
            MaterialPhysicsAnalysis

        Raises:
            PhysicsAnalysisError: 0 자기장, 0 이하 깊이/주파수, 유한하지 않은 입력
        """
        self._validate(reading, calibration_factor)
        cfg = self.config
        B, E = reading.magnetic_field, reading.electric_field
        f, phase, depth = reading.frequency, reading.phase, reading.depth

        # 1. Impedance
        impedance = compute_impedance(B, E, phase) * calibration_factor

        # 2. Material properties
        props = derive_properties(impedance, f)
        logger.debug(
            f"Z={impedance}, σ={props.conductivity:.4g} S/m, εr={props.permittivity:.4g}, "
            f"μr={props.permeability:.4g}"
        )

        # 3. Base classification
        material_type = self.classify_material_type(props, phase)

        # 4. Gradients and anomaly geometry
        magnetic_gradient = B / (depth * depth)
        electric_gradient = E / (depth * depth)
        anomaly_shape = self.determine_anomaly_shape(B, phase, depth)
        aspect_ratio = self.calculate_aspect_ratio(B, depth)
        symmetry = self.calculate_symmetry(B, E, phase)
        anomalies = self.analyze_anomalies(magnetic_gradient, electric_gradient, depth)

        # Database lookups
        matched = self._match_material(props)
        gemstone = self.database.detect_gemstone(
            props.conductivity, props.permittivity, props.permeability, magnetic_gradient, anomaly_shape
        )
        vein_or_structure = self.database.detect_vein_or_structure(
            props.conductivity,
            props.permittivity,
            props.permeability,
            magnetic_gradient,
            anomaly_shape,
            aspect_ratio,
            symmetry,
            depth,
        )

        if matched is not None:
            skin_depth = self.database.calculate_skin_depth(f, matched)
        else:
            skin_depth = self.estimate_skin_depth(props.conductivity, f)

        # 5. Volume / mass
        density = matched.density if matched is not None else self._type_density(material_type)
        volume, mass = self.calculate_volume_and_mass(depth, material_type, density)

        # 6. Layers
        layers = self.analyze_layers(B, E, f, phase, depth) if cfg.enable_layer_analysis else []

        # 7. Confidence
        confidence = self.calculate_reliability(B, E, phase, material_type)
        depth_confidence = self.calculate_depth_confidence(B, E, phase, depth)

        return MaterialPhysicsAnalysis(
            material_type=material_type,
            impedance=impedance,
            depth=depth,
            depth_confidence=depth_confidence,
            size=volume ** (1.0 / 3.0),
            conductivity=props.conductivity,
            permittivity=props.permittivity,
            permeability=props.permeability,
            magnetic_gradient=magnetic_gradient,
            electric_gradient=electric_gradient,
            anomaly_shape=anomaly_shape,
            aspect_ratio=aspect_ratio,
            symmetry=symmetry,
            skin_depth=skin_depth,
            volume_estimate=volume,
            mass_estimate=mass,
            confidence=confidence,
            calibration_factor=calibration_factor,
            matched_material=matched,
            layer_analysis=layers,
            anomalies=anomalies,
            gemstone_detection=gemstone,
            vein_or_structure_detection=vein_or_structure,
        )

    def impedance_sample(self, reading: MeasurementReading, calibration_factor: float = 1.0) -> ImpedanceSample:
        self._validate(reading, calibration_factor)
        z = compute_impedance(reading.magnetic_field, reading.electric_field, reading.phase) * calibration_factor
        return ImpedanceSample(impedance=z, frequency=reading.frequency, depth=reading.depth)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------
    def classify_material_type(self, props: DerivedProperties, phase: float) -> MaterialType:
        cfg = self.config
        if props.conductivity > cfg.ferrous_conductivity:
            return MaterialType.FERROUS_METAL
        if props.conductivity > cfg.non_ferrous_conductivity:
            return MaterialType.NON_FERROUS_METAL
        if props.permittivity > cfg.water_permittivity:
            return MaterialType.WATER
        if phase < cfg.cavity_phase:
            return MaterialType.CAVITY
        return MaterialType.UNKNOWN

    def determine_anomaly_shape(self, magnetic_field: float, phase: float, depth: float) -> AnomalyShape:
        cfg = self.config
        horizontal = magnetic_field / (depth * depth)
        vertical = magnetic_field / (depth * depth * depth)
        phase_gradient = phase / depth

        if vertical > cfg.strong_gradient and horizontal < cfg.weak_gradient:
            return AnomalyShape.CREVICE
        if abs(vertical - horizontal) < cfg.near_zero_gradient:
            return AnomalyShape.POINT
        if horizontal > cfg.strong_gradient and vertical < cfg.weak_gradient:
            return AnomalyShape.VEIN
        if abs(phase_gradient) > cfg.strong_gradient and vertical < cfg.weak_gradient and horizontal < cfg.weak_gradient:
            return AnomalyShape.CAVITY
        if abs(vertical - horizontal) < cfg.weak_gradient and abs(phase_gradient) > cfg.layer_phase_gradient:
            return AnomalyShape.LAYER
        return AnomalyShape.UNKNOWN

    @staticmethod
    def calculate_aspect_ratio(magnetic_field: float, depth: float) -> float:
        horizontal = magnetic_field / (depth * depth)
        vertical = magnetic_field / (depth * depth * depth)
        return safe_divide(horizontal, vertical, default=1.0)

    @staticmethod
    def calculate_symmetry(magnetic_field: float, electric_field: float, phase: float) -> float:
        phase_symmetry = clamp_unit(1.0 - abs(phase) / math.pi)
        return (ratio_balance(magnetic_field, electric_field) + phase_symmetry) / 2.0

    def analyze_anomalies(self, magnetic_gradient: float, electric_gradient: float, depth: float) -> List[AnomalyAnalysis]:
        threshold = self.config.anomaly_gradient
        if abs(magnetic_gradient) <= threshold and abs(electric_gradient) <= threshold:
            return []

        if magnetic_gradient > threshold and electric_gradient < threshold:
            anomaly_type = AnomalyType.MAGNETIC
        elif electric_gradient > threshold and magnetic_gradient < threshold:
            anomaly_type = AnomalyType.ELECTRIC
        else:
            anomaly_type = AnomalyType.COMBINED

        intensity = max(abs(magnetic_gradient), abs(electric_gradient))
        reliability = clamp_unit(intensity / self.config.anomaly_reliability_scale)
        return [AnomalyAnalysis(type=anomaly_type, intensity=intensity, depth=depth, reliability=reliability)]

    # ------------------------------------------------------------------
    # Volume, layers
    # ------------------------------------------------------------------
    def calculate_volume_and_mass(
        self, depth: float, material_type: MaterialType, density: float
    ) -> Tuple[float, Optional[float]]:
        """
        Volume (m³) from depth³ and a type shape factor; mass in kg from a
        density in g/cm³. Mass is None when the density is not positive.
        """
        factor = self.config.shape_factors.get(material_type, self.config.default_shape_factor)
        volume = depth * depth * depth * factor
        if density <= 0:
            return volume, None
        return volume, volume * density * 1000.0

    def analyze_layers(
        self, magnetic_field: float, electric_field: float, frequency: float, phase: float, depth: float
    ) -> List[LayerAnalysis]:
        """
        Layer boundaries from phase jumps across a small frequency sweep.

        The phase lag of a diffusive field grows with sqrt(f) (d/δ, δ ∝ f^-1/2),
        so the phase at f' is modelled as φ·sqrt(f'/f).
        """
        cfg = self.config
        frequencies = [frequency * k for k in cfg.layer_frequency_factors]
        phases = [phase * math.sqrt(fk / frequency) for fk in frequencies]

        layers: List[LayerAnalysis] = []
        for i in range(len(phases) - 1):
            phase_diff = abs(phases[i + 1] - phases[i])
            if phase_diff <= cfg.layer_phase_jump:
                continue
            z = compute_impedance(magnetic_field, electric_field, phases[i])
            props = derive_properties(z, frequencies[i])
            layers.append(
                LayerAnalysis(
                    depth=depth * (i + 1) / len(frequencies),
                    material_type=self.classify_material_type(props, phases[i]),
                    conductivity=props.conductivity,
                    permittivity=props.permittivity,
                    frequency=frequencies[i],
                    reliability=min(1.0, phase_diff / (math.pi / 2)),
                )
            )
        return layers

    # ------------------------------------------------------------------
    # Confidence
    # ------------------------------------------------------------------
    def calculate_reliability(
        self, magnetic_field: float, electric_field: float, phase: float, material_type: MaterialType
    ) -> float:
        cfg = self.config
        field_ratio = ratio_balance(magnetic_field, electric_field)
        phase_reliability = clamp_unit(1.0 - abs(phase) / math.pi)
        type_reliability = cfg.type_reliability.get(material_type, cfg.default_type_reliability)
        w = cfg.confidence_weights
        total = sum(w)
        if total <= 0:
            return 0.0
        score = (w[0] * field_ratio + w[1] * phase_reliability + w[2] * type_reliability) / total
        return clamp_unit(score)

    def calculate_depth_confidence(
        self, magnetic_field: float, electric_field: float, phase: float, depth: float
    ) -> float:
        cfg = self.config
        field_ratio = ratio_balance(magnetic_field, electric_field)
        phase_reliability = clamp_unit(1.0 - abs(phase) / math.pi)
        depth_reliability = cfg.deep_reliability
        for limit, value in cfg.depth_tiers:
            if depth < limit:
                depth_reliability = value
                break
        return clamp_unit((field_ratio + phase_reliability + depth_reliability) / 3.0)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def estimate_skin_depth(conductivity: float, frequency: float) -> float:
        denom = angular_frequency(frequency) * MU_0 * conductivity
        if denom <= 0:
            return math.inf
        return math.sqrt(2.0 / denom)

    def _match_material(self, props: DerivedProperties) -> Optional[MaterialProperties]:
        match = self.database.find_matching_material(props.conductivity, props.permittivity, props.permeability)
        if match is None:
            return None
        distance = self.database.material_distance(
            match, props.conductivity, props.permittivity, props.permeability
        )
        if distance > self.config.max_match_distance:
            logger.debug(f"Nearest material {match.key} too far (distance={distance:.3f})")
            return None
        return match

    def _type_density(self, material_type: MaterialType) -> float:
        return self.config.type_densities.get(material_type, self.config.default_density)

    @staticmethod
    def _validate(reading: MeasurementReading, calibration_factor: float) -> None:
        values = (
            reading.magnetic_field,
            reading.electric_field,
            reading.frequency,
            reading.phase,
            reading.depth,
            calibration_factor,
        )
        if not all(math.isfinite(v) for v in values):
            raise PhysicsAnalysisError(f"Reading contains non-finite values: {reading}")
        if reading.magnetic_field == 0:
            raise PhysicsAnalysisError("Magnetic field is zero; impedance E/B is undefined")
        if reading.frequency <= 0:
            raise PhysicsAnalysisError(f"Frequency must be positive, got {reading.frequency}")
        if reading.depth <= 0:
            raise PhysicsAnalysisError(f"Depth must be positive, got {reading.depth}")
        depth = reading.depth
        cube = depth * depth * depth
        if cube == 0 or not math.isfinite(cube):
            raise PhysicsAnalysisError(f"Depth {depth} m is outside the representable range")
        gradients = (
            reading.magnetic_field / (depth * depth),
            reading.magnetic_field / cube,
            reading.electric_field / (depth * depth),
            reading.electric_field / cube,
        )
        if not all(math.isfinite(g) for g in gradients):
            raise PhysicsAnalysisError(f"Field gradients overflow at depth {depth} m")
        if calibration_factor <= 0:
            raise PhysicsAnalysisError(f"Calibration factor must be positive, got {calibration_factor}")
