"""
Tests for input schemas and result serialization
"""

import json
import math
from datetime import datetime
from enum import Enum

import numpy as np
import pytest
from pydantic import ValidationError

from emfad.core.measurement_mode import MeasurementMode
from emfad.converters import classification_summary, to_jsonable
from emfad.pipeline import MaterialAnalysisPipeline
from emfad.schemas import (
    CalibrationDocument,
    CalibrationPointInput,
    MeasurementPointInput,
    PointsDocument,
    ReadingInput,
)
from emfad.utils.complex_math import Complex
from emfad.utils.geometry import Point3D

# ================================================================
# Schemas
# ================================================================


class TestReadingInput:
    def test_valid_reading(self):
        reading = ReadingInput(magnetic_field=120.0, electric_field=10.0, frequency=1000.0, depth=1.0)
        domain = reading.to_domain()

        assert domain.phase == 0.0
        assert domain.magnetic_field == 120.0
        assert reading.sweep_curve() is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"magnetic_field": 0.0},
            {"frequency": 0.0},
            {"depth": -1.0},
            {"electric_field": float("nan")},
        ],
    )
    def test_invalid_reading(self, overrides):
        values = dict(magnetic_field=120.0, electric_field=10.0, frequency=1000.0, depth=1.0)
        values.update(overrides)
        with pytest.raises(ValidationError):
            ReadingInput(**values)

    def test_sweep(self):
        reading = ReadingInput(
            magnetic_field=5.0,
            electric_field=40.0,
            frequency=1000.0,
            depth=0.5,
            sweep=[{"frequency": 1000.0, "impedance": {"real": 1e-5, "imag": 2e-6}}],
        )
        assert reading.sweep_curve() == [(1000.0, Complex(1e-5, 2e-6))]


class TestPointDocuments:
    def test_measurement_point(self):
        point = MeasurementPointInput(
            impedance={"real": 50.0},
            conductivity=1e-12,
            permittivity={"real": 5.0, "imag": -0.1},
            depth=2.0,
            position={"x": 1.0, "y": 2.0},
        ).to_domain()

        assert point.impedance == Complex(50.0, 0.0)
        assert point.permeability == 1.0
        assert point.position == Point3D(1.0, 2.0, 0.0)

    def test_points_document(self):
        document = PointsDocument(points=[])
        assert document.points == []

    def test_calibration_point_mode(self):
        raw = {"position": {"x": 0, "y": 0}, "impedance": {"real": 377.0}, "frequency": 1000.0}

        # Test Case 1: 모드 생략 -> 요청 모드 사용
        point = CalibrationPointInput(**raw).to_domain(MeasurementMode.DEPTH_PRO)
        assert point.mode == MeasurementMode.DEPTH_PRO
        assert point.expected_impedance is None

        # Test Case 2: 명시 모드
        point = CalibrationPointInput(**raw, mode="ab_horizontal").to_domain(MeasurementMode.DEPTH_PRO)
        assert point.mode == MeasurementMode.AB_HORIZONTAL

        # Test Case 3: 잘못된 모드
        with pytest.raises(ValidationError):
            CalibrationPointInput(**raw, mode="sideways")

    def test_calibration_document(self):
        document = CalibrationDocument(
            points=[
                {
                    "position": {"x": 0, "y": 0},
                    "impedance": {"real": 300.0},
                    "frequency": 1000.0,
                    "expected_impedance": {"real": 377.0},
                }
            ]
        )
        point = document.points[0].to_domain(MeasurementMode.BA_VERTICAL)
        assert point.expected_impedance == Complex(377.0, 0.0)


# ================================================================
# Converters
# ================================================================


class Color(Enum):
    RED = "red"


class TestToJsonable:
    def test_scalars(self):
        assert to_jsonable(None) is None
        assert to_jsonable("text") == "text"
        assert to_jsonable(True) is True
        assert to_jsonable(np.bool_(False)) is False
        assert to_jsonable(np.int64(3)) == 3
        assert to_jsonable(np.float32(0.5)) == 0.5
        assert to_jsonable(math.inf) is None
        assert to_jsonable(float("nan")) is None

    def test_structures(self):
        data = {
            Color.RED: Complex(1.0, -2.0),
            "items": (1, complex(0, 1)),
            "array": np.array([1.0, np.inf]),
            "when": datetime(2024, 1, 2, 3, 4, 5),
            "point": Point3D(1.0, 2.0, 3.0),
        }
        result = to_jsonable(data)

        assert result["RED"] == {"real": 1.0, "imag": -2.0}
        assert result["items"] == [1, {"real": 0.0, "imag": 1.0}]
        assert result["array"] == [1.0, None]
        assert result["when"] == "2024-01-02T03:04:05"
        assert result["point"] == {"x": 1.0, "y": 2.0, "z": 3.0}
        json.dumps(result)

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            to_jsonable(object())


def test_classification_result_serializes(database, reading):
    result = MaterialAnalysisPipeline(database=database).process(reading)

    payload = to_jsonable(result)
    summary = classification_summary(result)

    text = json.dumps({"summary": summary, "result": payload})
    assert "material_type" in text
    assert summary["material_type"] == result.material_type.name
    assert summary["anomaly_shape"] == result.physics.anomaly_shape.name
    assert payload["physics"]["impedance"]["real"] == pytest.approx(result.physics.impedance.real)
