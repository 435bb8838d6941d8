"""
Material Analysis Pipeline Module

물리 분석 → 결정/포함물/금속 검출 → 최종 재질 판정을 잇는 엔드투엔드 파이프라인.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from emfad.analysis.cluster_analyzer import MeasurementPoint
from emfad.analysis.trend_analyzer import MaterialTrend, TrendAnalyzer
from emfad.core.calibration import AutomaticCalibration, CalibrationConfig
from emfad.core.crystal_detector import CrystalDetectionResult, CrystalDetector, CrystalDetectorConfig
from emfad.core.field_classifier import FieldClassification, FieldClassifier, FieldThresholds
from emfad.core.inclusion_detector import (
    InclusionConfig,
    InclusionDetectionError,
    InclusionDetectionResult,
    InclusionDetector,
)
from emfad.core.material_database import DatabaseConfig, MaterialDatabase, MaterialType
from emfad.core.measurement_mode import get_mode_config, measurement_confidence, parse_mode
from emfad.core.metal_analyzer import (
    ImpedanceCurve,
    MetalAnalysisError,
    MetalAnalysisResult,
    MetalAnalyzer,
    MetalAnalyzerConfig,
    MetalType,
)
from emfad.core.physics_analyzer import (
    MaterialPhysicsAnalysis,
    MaterialPhysicsAnalyzer,
    MeasurementReading,
    PhysicsAnalysisError,
    PhysicsConfig,
)
from emfad.utils.complex_math import Complex, ComplexDivisionError
from emfad.utils.geometry import Point3D

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """파이프라인 실행 중 발생하는 예외"""

    pass


@dataclass
class PipelineConfig:
    """
    Attributes:
        mode: 측정 모드 이름 (MeasurementMode)
        background_impedance_real: 결정 검출용 배경 임피던스 실수부 (Ω)
        background_impedance_imag: 결정 검출용 배경 임피던스 허수부 (Ω)
        noise_std_dev: 임피던스 노이즈 표준편차 (Ω)
        surrounding_material: 포함물 검출용 주변 매질 키 (material database)
        low_confidence_warning: 이 값 미만의 최종 신뢰도는 WARNING으로 기록
        trend_window: 추세 분석 창 크기
    """

    mode: str = "BA_VERTICAL"
    background_impedance_real: float = 377.0
    background_impedance_imag: float = 0.0
    noise_std_dev: float = 1.0
    surrounding_material: str = "basalt"
    low_confidence_warning: float = 0.5
    trend_window: int = 5


@dataclass
class ClassificationResult:
    """
    최종 판정 결과

    Attributes:
        material_type: 최종 재질 유형
        material_name: 판정 근거가 된 물질/결정/금속 이름 (없으면 None)
        depth: 깊이 (m)
        confidence: 최종 신뢰도 (0~1)
        decided_by: 최종 판정을 내린 단계 ("metal", "gemstone", "crystal", "physics")
    """

    material_type: MaterialType
    material_name: Optional[str]
    depth: float
    confidence: float
    decided_by: str
    physics: MaterialPhysicsAnalysis
    field_classification: FieldClassification
    crystal: CrystalDetectionResult
    inclusion: InclusionDetectionResult
    metal: Optional[MetalAnalysisResult] = None
    trend: Optional[MaterialTrend] = None
    measurement_confidence: float = 0.0
    calibration_factor: float = 1.0
    timestamp: datetime = field(default_factory=datetime.now)
    processing_time_ms: float = 0.0


class MaterialAnalysisPipeline:
    """
    엔드투엔드 재질 분석 파이프라인.

    PhysicsAnalyzer → FieldClassifier → CrystalDetector → InclusionDetector
    → (MetalAnalyzer, 주파수 스윕이 있을 때) → 최종 판정 → TrendAnalyzer
    """

    def __init__(
        self,
        pipeline_config: Optional[PipelineConfig] = None,
        physics_config: Optional[PhysicsConfig] = None,
        database_config: Optional[DatabaseConfig] = None,
        crystal_config: Optional[CrystalDetectorConfig] = None,
        metal_config: Optional[MetalAnalyzerConfig] = None,
        inclusion_config: Optional[InclusionConfig] = None,
        calibration_config: Optional[CalibrationConfig] = None,
        field_thresholds: Optional[FieldThresholds] = None,
        database: Optional[MaterialDatabase] = None,
    ):
        """
        파이프라인 초기화.

        Raises:
            PipelineError: 알 수 없는 측정 모드 또는 주변 매질 키
        """
        self.config = pipeline_config or PipelineConfig()
        if database is None:
            database = MaterialDatabase(config=database_config) if database_config else MaterialDatabase.default()
        self.database = database

        try:
            mode = parse_mode(self.config.mode)
        except ValueError as e:
            raise PipelineError(str(e))
        self.mode_config = get_mode_config(mode)

        surrounding = self.database.get_material(self.config.surrounding_material)
        if surrounding is None:
            raise PipelineError(f"Unknown surrounding material '{self.config.surrounding_material}'")
        self.surrounding_material = surrounding
        self.background_impedance = Complex(self.config.background_impedance_real, self.config.background_impedance_imag)

        self.physics_analyzer = MaterialPhysicsAnalyzer(self.database, physics_config)
        self.field_classifier = FieldClassifier(field_thresholds)
        self.crystal_detector = CrystalDetector(crystal_config)
        self.inclusion_detector = InclusionDetector(inclusion_config)
        self.metal_analyzer = MetalAnalyzer(metal_config)
        self.calibration = AutomaticCalibration(mode, calibration_config)
        self.trend_analyzer = TrendAnalyzer(self.config.trend_window)

        logger.info(
            f"MaterialAnalysisPipeline initialized (mode={mode.name}, "
            f"surrounding={surrounding.key}, database={len(self.database)} materials)"
        )

    def process(
        self,
        reading: MeasurementReading,
        impedance_curve: Optional[ImpedanceCurve] = None,
    ) -> ClassificationResult:
        """
        단일 측정값 처리.

        Args:
            reading: 원시 측정값
            impedance_curve: 금속 분석용 [(주파수, 임피던스)] 스윕 (옵션)

        Returns:
            ClassificationResult: 최종 판정 결과

        Raises:
            PipelineError: 파이프라인 실행 중 오류 발생 시
        """
        start_time = datetime.now()
        calibration_factor = self.calibration.calibration_factor
        logger.info(
            f"Processing reading: B={reading.magnetic_field}, E={reading.electric_field}, "
            f"f={reading.frequency} Hz, depth={reading.depth} m"
        )

        try:
            # 1. 물리 분석
            logger.debug("Step 1: Physics analysis")
            physics = self.physics_analyzer.analyze(reading, calibration_factor)

            # 2. 자기장/전기장 임계값 분류
            logger.debug("Step 2: Field-threshold classification")
            field_classification = self.field_classifier.classify(reading)

            # 3. 결정 검출
            logger.debug("Step 3: Crystal detection")
            crystal = self.crystal_detector.detect_crystal(
                physics.impedance, self.background_impedance, reading.frequency, self.config.noise_std_dev
            )

            # 4. 포함물 검출
            logger.debug("Step 4: Inclusion detection")
            inclusion = self.inclusion_detector.detect_inclusion(
                physics.impedance, reading.frequency, reading.depth, self.surrounding_material
            )

            # 5. 금속 분석 (스윕이 있을 때만)
            metal = None
            if impedance_curve is not None:
                logger.debug("Step 5: Metal sweep analysis")
                metal = self.metal_analyzer.analyze_metal(impedance_curve, reading.frequency)

        except (PhysicsAnalysisError, MetalAnalysisError, InclusionDetectionError) as e:
            logger.error(f"Analysis stage rejected the reading: {e}")
            raise PipelineError(f"Pipeline failed: {e}")

        except ComplexDivisionError as e:
            logger.error(f"Impedance arithmetic failed: {e}")
            raise PipelineError(f"Pipeline failed at impedance arithmetic: {e}")

        except Exception as e:
            logger.error(f"Unexpected error in pipeline: {e}", exc_info=True)
            raise PipelineError(f"Pipeline failed: {e}")

        # 6. 최종 판정
        material_type, material_name, confidence, decided_by = self.resolve(physics, crystal, metal)
        trend = self.trend_analyzer.add(material_type, confidence)

        mode_config = self.mode_config
        if self.calibration.last_result is not None and self.calibration.last_result.success:
            mode_config = mode_config.with_calibration(calibration_factor)
        meas_confidence = measurement_confidence(physics.impedance, reading.depth, mode_config)

        processing_time = (datetime.now() - start_time).total_seconds() * 1000
        if confidence < self.config.low_confidence_warning:
            logger.warning(f"Low classification confidence: {confidence:.2f} ({material_type.name})")
        logger.info(
            f"Processing complete: {material_type.name} ({material_name or '-'}) by {decided_by}, "
            f"confidence={confidence:.2f}, time={processing_time:.1f}ms"
        )

        return ClassificationResult(
            material_type=material_type,
            material_name=material_name,
            depth=reading.depth,
            confidence=confidence,
            decided_by=decided_by,
            physics=physics,
            field_classification=field_classification,
            crystal=crystal,
            inclusion=inclusion,
            metal=metal,
            trend=trend,
            measurement_confidence=meas_confidence,
            calibration_factor=calibration_factor,
            processing_time_ms=processing_time,
        )

    @staticmethod
    def resolve(
        physics: MaterialPhysicsAnalysis,
        crystal: CrystalDetectionResult,
        metal: Optional[MetalAnalysisResult],
    ) -> Tuple[MaterialType, Optional[str], float, str]:
        """
        Pick the final classification.

        Priority: identified metal sweep, database gemstone match, crystal
        detector hit, then the physics threshold classification.
        """
        if metal is not None and metal.metal_type is not MetalType.UNKNOWN:
            return MaterialType.NON_FERROUS_METAL, metal.metal_type.name.capitalize(), metal.confidence, "metal"
        if physics.gemstone_detection is not None:
            gem = physics.gemstone_detection
            return MaterialType.CRYSTAL, gem.material.name, gem.confidence, "gemstone"
        if crystal.is_crystal and crystal.crystal_type is not None:
            return MaterialType.CRYSTAL, crystal.crystal_type.name.capitalize(), crystal.confidence, "crystal"
        name = physics.matched_material.name if physics.matched_material is not None else None
        return physics.material_type, name, physics.confidence, "physics"

    def process_batch(
        self,
        readings: List[MeasurementReading],
        continue_on_error: bool = True,
    ) -> List[ClassificationResult]:
        """
        배치 처리.

        Args:
            readings: 측정값 리스트
            continue_on_error: 오류 발생 시 계속 진행 여부

        Returns:
            List[ClassificationResult]: 성공한 판정 결과 리스트
        """
        logger.info(f"Batch processing {len(readings)} readings")
        results = []
        errors = 0
        for i, reading in enumerate(readings):
            try:
                results.append(self.process(reading))
            except PipelineError as e:
                logger.error(f"Error processing reading {i}: {e}")
                errors += 1
                if not continue_on_error:
                    raise
        logger.info(f"Batch processing complete: {len(results)} succeeded, {errors} failed")
        return results

    @staticmethod
    def to_measurement_point(result: ClassificationResult, position: Point3D) -> MeasurementPoint:
        """Convert a classification into a clustering input at the given survey position."""
        physics = result.physics
        return MeasurementPoint(
            impedance=physics.impedance,
            conductivity=physics.conductivity,
            permittivity=Complex(physics.permittivity, 0.0),
            permeability=physics.permeability,
            depth=physics.depth,
            position=position,
        )
