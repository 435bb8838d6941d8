import json
from pathlib import Path

import pytest

from emfad.core.material_database import MaterialDatabase
from emfad.core.physics_analyzer import MeasurementReading
from emfad.utils.complex_math import Complex


@pytest.fixture
def tmp_json(tmp_path: Path):
    def _make(data, name="sample.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def database():
    return MaterialDatabase()


@pytest.fixture
def reading():
    # 전형적인 BA 수직 모드 측정값
    return MeasurementReading(magnetic_field=120.0, electric_field=10.0, frequency=1000.0, phase=0.2, depth=1.0)


@pytest.fixture
def free_space():
    return Complex(377.0, 0.0)
