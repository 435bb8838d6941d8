"""
Unit tests for MaterialPhysicsAnalyzer
"""

import math

import pytest

from emfad.core.material_database import AnomalyShape, MaterialType
from emfad.core.physics_analyzer import (
    AnomalyType,
    DerivedProperties,
    MaterialPhysicsAnalyzer,
    MeasurementReading,
    PhysicsAnalysisError,
    PhysicsConfig,
    compute_impedance,
    derive_properties,
)
from emfad.utils.complex_math import Complex

# ================================================================
# Fixtures
# ================================================================


@pytest.fixture
def analyzer(database):
    return MaterialPhysicsAnalyzer(database=database)


def _reading(**overrides):
    values = dict(magnetic_field=120.0, electric_field=10.0, frequency=1000.0, phase=0.2, depth=1.0)
    values.update(overrides)
    return MeasurementReading(**values)


# ================================================================
# Impedance and property inversion
# ================================================================


def test_compute_impedance():
    # Test Case 1: 위상 0 -> 실수 임피던스
    assert compute_impedance(2.0, 10.0, 0.0) == Complex(5.0, 0.0)

    # Test Case 2: 위상 π/2 -> 순허수
    z = compute_impedance(1.0, 3.0, math.pi / 2)
    assert z.real == pytest.approx(0.0, abs=1e-12)
    assert z.imag == pytest.approx(3.0)

    # Test Case 3: 0 자기장
    with pytest.raises(PhysicsAnalysisError):
        compute_impedance(0.0, 10.0, 0.0)


def test_derive_properties_zero_impedance():
    props = derive_properties(Complex(0.0, 0.0), 1000.0)
    assert props == DerivedProperties(0.0, 0.0, 0.0)


def test_derive_properties_finite():
    props = derive_properties(Complex(0.05, -0.02), 1000.0)
    assert props.conductivity > 0
    assert props.permittivity > 0  # negative reactance -> positive permittivity
    assert all(math.isfinite(v) for v in (props.conductivity, props.permittivity, props.permeability))


class TestClassification:
    @pytest.mark.parametrize(
        "props,phase,expected",
        [
            (DerivedProperties(2e6, 1.0, 1.0), 0.0, MaterialType.FERROUS_METAL),
            (DerivedProperties(5e4, 1.0, 1.0), 0.0, MaterialType.NON_FERROUS_METAL),
            (DerivedProperties(1.0, 80.0, 1.0), 0.0, MaterialType.WATER),
            (DerivedProperties(1e-3, 5.0, 1.0), -1.0, MaterialType.CAVITY),
            (DerivedProperties(1e-3, 5.0, 1.0), 0.0, MaterialType.UNKNOWN),
        ],
    )
    def test_threshold_cascade(self, analyzer, props, phase, expected):
        assert analyzer.classify_material_type(props, phase) == expected

    def test_first_match_wins(self, analyzer):
        # 전도도가 높으면 유전율/위상과 무관하게 FERROUS
        props = DerivedProperties(5e6, 80.0, 1.0)
        assert analyzer.classify_material_type(props, -3.0) == MaterialType.FERROUS_METAL

    def test_thresholds_are_configurable(self, database):
        analyzer = MaterialPhysicsAnalyzer(database, PhysicsConfig(ferrous_conductivity=1e8))
        props = DerivedProperties(5e6, 1.0, 1.0)
        assert analyzer.classify_material_type(props, 0.0) == MaterialType.NON_FERROUS_METAL


class TestAnomalyGeometry:
    def test_point(self, analyzer):
        assert analyzer.determine_anomaly_shape(0.6, 0.0, 1.0) == AnomalyShape.POINT

    def test_crevice(self, analyzer):
        # horizontal = 0.15, vertical = 0.75
        assert analyzer.determine_anomaly_shape(0.006, 0.0, 0.2) == AnomalyShape.CREVICE

    def test_vein(self, analyzer):
        # horizontal = 0.625, vertical = 0.156
        assert analyzer.determine_anomaly_shape(10.0, 0.0, 4.0) == AnomalyShape.VEIN

    def test_aspect_ratio_equals_depth(self, analyzer):
        assert analyzer.calculate_aspect_ratio(10.0, 4.0) == pytest.approx(4.0)

    def test_symmetry_range(self, analyzer):
        assert analyzer.calculate_symmetry(10.0, 10.0, 0.0) == pytest.approx(1.0)
        assert analyzer.calculate_symmetry(10.0, 0.0, math.pi) == pytest.approx(0.0)

    def test_anomalies(self, analyzer):
        assert analyzer.analyze_anomalies(0.05, 0.05, 1.0) == []

        magnetic = analyzer.analyze_anomalies(2.0, 0.0, 1.0)
        assert magnetic[0].type == AnomalyType.MAGNETIC
        assert magnetic[0].reliability == 1.0

        combined = analyzer.analyze_anomalies(2.0, 2.0, 1.0)
        assert combined[0].type == AnomalyType.COMBINED


class TestVolumeAndLayers:
    def test_volume_and_mass(self, analyzer):
        volume, mass = analyzer.calculate_volume_and_mass(2.0, MaterialType.FERROUS_METAL, 7.8)
        assert volume == pytest.approx(4.0)  # 2³ × 0.5
        assert mass == pytest.approx(31200.0)  # 4 m³ × 7.8 g/cm³ × 1000

    def test_zero_density_has_no_mass(self, analyzer):
        volume, mass = analyzer.calculate_volume_and_mass(1.0, MaterialType.CAVITY, 0.0)
        assert volume == pytest.approx(0.8)
        assert mass is None

    def test_no_layers_without_phase(self, analyzer):
        assert analyzer.analyze_layers(120.0, 10.0, 1000.0, 0.0, 1.0) == []

    def test_layers_from_phase_jumps(self, analyzer):
        layers = analyzer.analyze_layers(120.0, 10.0, 1000.0, 2.0, 3.0)

        assert len(layers) == 2
        assert [layer.frequency for layer in layers] == pytest.approx([500.0, 1000.0])
        assert [layer.depth for layer in layers] == pytest.approx([1.0, 2.0])
        assert all(0.0 <= layer.reliability <= 1.0 for layer in layers)

    def test_skin_depth_estimate(self, analyzer):
        assert math.isinf(analyzer.estimate_skin_depth(0.0, 1000.0))
        assert analyzer.estimate_skin_depth(1e7, 1000.0) < analyzer.estimate_skin_depth(1e7, 100.0)


# ================================================================
# Full analysis
# ================================================================


class TestAnalyze:
    def test_analyze_reading(self, analyzer, reading):
        result = analyzer.analyze(reading)

        assert result.impedance.magnitude == pytest.approx(10.0 / 120.0)
        assert result.depth == 1.0
        assert 0.0 <= result.confidence <= 1.0
        assert 0.0 <= result.depth_confidence <= 1.0
        assert result.size == pytest.approx(result.volume_estimate ** (1.0 / 3.0))
        assert result.magnetic_gradient == pytest.approx(120.0)
        assert result.calibration_factor == 1.0

    def test_calibration_factor_scales_impedance(self, analyzer, reading):
        plain = analyzer.analyze(reading)
        scaled = analyzer.analyze(reading, calibration_factor=2.0)

        assert scaled.impedance.magnitude == pytest.approx(2.0 * plain.impedance.magnitude)
        assert scaled.calibration_factor == 2.0

    def test_analysis_is_repeatable(self, analyzer, reading):
        first = analyzer.analyze(reading)
        second = analyzer.analyze(reading)
        assert first.impedance == second.impedance
        assert first.material_type == second.material_type
        assert first.confidence == second.confidence

    def test_layer_analysis_can_be_disabled(self, database):
        analyzer = MaterialPhysicsAnalyzer(database, PhysicsConfig(enable_layer_analysis=False))
        result = analyzer.analyze(_reading(phase=2.0, depth=3.0))
        assert result.layer_analysis == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"magnetic_field": 0.0},
            {"frequency": 0.0},
            {"frequency": -50.0},
            {"depth": 0.0},
            {"depth": -1.0},
            {"electric_field": float("nan")},
            {"phase": float("inf")},
            {"depth": 1e-200},
            {"depth": 1e-100, "magnetic_field": 1e10},
            {"depth": 1e120},
        ],
    )
    def test_invalid_readings(self, analyzer, overrides):
        with pytest.raises(PhysicsAnalysisError):
            analyzer.analyze(_reading(**overrides))

    def test_invalid_calibration_factor(self, analyzer, reading):
        with pytest.raises(PhysicsAnalysisError):
            analyzer.analyze(reading, calibration_factor=0.0)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"magnetic_field": 1e6, "electric_field": 1e-6, "frequency": 1e-3, "depth": 1e-3},
            {"magnetic_field": 1e-6, "electric_field": 1e6, "frequency": 1e9, "phase": 3.0, "depth": 100.0},
            {"magnetic_field": -5.0, "electric_field": 0.0, "phase": -3.1},
        ],
    )
    def test_confidence_bounded_for_extreme_inputs(self, analyzer, overrides):
        result = analyzer.analyze(_reading(**overrides))
        assert 0.0 <= result.confidence <= 1.0
        assert 0.0 <= result.depth_confidence <= 1.0
        for layer in result.layer_analysis:
            assert 0.0 <= layer.reliability <= 1.0

    def test_impedance_sample(self, analyzer, reading):
        sample = analyzer.impedance_sample(reading, calibration_factor=1.5)
        assert sample.frequency == reading.frequency
        assert sample.impedance.magnitude == pytest.approx(1.5 * 10.0 / 120.0)
