"""
CLI tests (emfad.main)
"""

import json
import math

import pytest

from emfad.main import main


def point_dict(x, y, impedance=50.0):
    return {
        "impedance": {"real": impedance},
        "conductivity": 1e-12,
        "permittivity": {"real": 5.0},
        "depth": 2.0,
        "position": {"x": x, "y": y},
    }


def calibration_dict(x, impedance):
    return {"position": {"x": x, "y": 0.0}, "impedance": {"real": impedance}, "frequency": 1000.0}


ANALYZE_ARGS = ["analyze", "--magnetic", "120", "--electric", "10", "--phase", "0.2", "--depth", "1.0"]


# ================================================================
# analyze
# ================================================================


class TestAnalyze:
    def test_writes_output(self, tmp_path, capsys):
        output = tmp_path / "result.json"
        code = main(ANALYZE_ARGS + ["--frequency", "1000", "--output", str(output)])

        assert code == 0
        assert "Material Analysis Result" in capsys.readouterr().out
        data = json.loads(output.read_text(encoding="utf-8"))
        assert set(data) == {"summary", "result"}
        assert data["summary"]["decided_by"] in ("metal", "gemstone", "crystal", "physics")

    def test_with_sweep(self, tmp_json, tmp_path):
        sweep = [
            {"frequency": f, "impedance": {"real": math.sqrt(2.0 * math.pi * f * 4e-7 * math.pi / 6.3e7)}}
            for f in (1000.0, 2000.0, 5000.0)
        ]
        output = tmp_path / "result.json"
        code = main(ANALYZE_ARGS + ["--frequency", "1000", "--sweep", str(tmp_json(sweep)), "--output", str(output)])

        assert code == 0
        assert json.loads(output.read_text(encoding="utf-8"))["summary"]["decided_by"] == "metal"

    def test_invalid_frequency(self):
        assert main(ANALYZE_ARGS + ["--frequency", "0"]) == 1


# ================================================================
# cluster / calibrate
# ================================================================


def test_cluster_command(tmp_json, tmp_path, capsys):
    points = [
        point_dict(0.1 * math.cos(2 * math.pi * k / 5), 0.1 * math.sin(2 * math.pi * k / 5)) for k in range(5)
    ]
    points.append(point_dict(100.0, 100.0))
    output = tmp_path / "clusters.json"

    code = main(["cluster", str(tmp_json(points)), "--output", str(output)])

    assert code == 0
    assert "Cluster Analysis" in capsys.readouterr().out
    data = json.loads(output.read_text(encoding="utf-8"))
    assert len(data["clusters"]) == 1
    assert len(data["outliers"]) == 1


class TestCalibrate:
    def test_success(self, tmp_json, tmp_path):
        document = {"points": [calibration_dict(float(i), 300.0) for i in range(3)]}
        output = tmp_path / "calibration.json"

        code = main(["calibrate", str(tmp_json(document)), "--mode", "depth_pro", "--output", str(output)])

        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["success"] is True
        assert data["mode"] == "DEPTH_PRO"
        assert data["calibration_factor"] == pytest.approx(377.0 / 300.0)

    def test_too_few_points(self, tmp_json):
        document = [calibration_dict(0.0, 377.0)]
        assert main(["calibrate", str(tmp_json(document))]) == 1

    def test_unknown_mode(self, tmp_json):
        document = [calibration_dict(float(i), 377.0) for i in range(3)]
        assert main(["calibrate", str(tmp_json(document)), "--mode", "sideways"]) == 1


# ================================================================
# config
# ================================================================


class TestConfigCommand:
    def test_get(self, capsys):
        assert main(["config", "--get", "cluster.outlier_sigma"]) == 0
        assert "2.0" in capsys.readouterr().out

    def test_set_and_save(self, tmp_path):
        output = tmp_path / "override.json"
        code = main(["config", "--set", "crystal.alpha=2.5", "--set", "pipeline.mode=DEPTH_PRO", "--output", str(output)])

        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["crystal"]["alpha"] == 2.5
        assert data["pipeline"]["mode"] == "DEPTH_PRO"

    def test_edit_existing_file(self, tmp_json, tmp_path):
        path = tmp_json({"cluster": {"min_cluster_size": 4}})
        output = tmp_path / "edited.json"

        assert main(["config", "--config", str(path), "--set", "cluster.outlier_sigma=3", "--output", str(output)]) == 0
        assert json.loads(output.read_text(encoding="utf-8")) == {"cluster": {"min_cluster_size": 4, "outlier_sigma": 3}}

    @pytest.mark.parametrize("item", ["crystal.alpha=high", "crystal.alpha"])
    def test_invalid_set(self, item):
        assert main(["config", "--set", item]) == 1


# ================================================================
# General
# ================================================================


def test_no_command(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_missing_input_file(tmp_path):
    assert main(["cluster", str(tmp_path / "missing.json")]) == 1


def test_invalid_config_file(tmp_json):
    path = tmp_json({"crystal": {"alpha": "high"}})
    assert main(ANALYZE_ARGS + ["--frequency", "1000", "--config", str(path)]) == 1
