"""
Unit tests for ClusterAnalyzer
"""

import math

import numpy as np
import pytest

from emfad.analysis.cluster_analyzer import (
    Cluster,
    ClusterAnalyzer,
    ClusterConfig,
    ClusterType,
    MeasurementPoint,
)
from emfad.utils.complex_math import Complex
from emfad.utils.geometry import Point3D

# ================================================================
# Fixtures
# ================================================================


def make_point(x, y, z=0.0, impedance=50.0, conductivity=1e-12, permittivity=5.0, depth=2.0):
    return MeasurementPoint(
        impedance=Complex(impedance, 0.0),
        conductivity=conductivity,
        permittivity=Complex(permittivity, 0.0),
        permeability=1.0,
        depth=depth,
        position=Point3D(x, y, z),
    )


@pytest.fixture
def pentagon():
    """
    정오각형 위의 동일 물성 5점 (반지름 0.1 m)
    """
    return [
        make_point(0.1 * math.cos(2 * math.pi * k / 5), 0.1 * math.sin(2 * math.pi * k / 5))
        for k in range(5)
    ]


@pytest.fixture
def analyzer():
    return ClusterAnalyzer()


# ================================================================
# Clustering
# ================================================================


def test_tight_group_with_outlier(analyzer, pentagon):
    outlier = make_point(100.0, 100.0)
    result = analyzer.analyze_clusters(pentagon + [outlier])

    assert len(result.clusters) == 1
    assert result.clusters[0].size == 5
    assert result.outliers == [outlier]
    assert result.threshold is not None

    cluster = result.clusters[0]
    assert cluster.centroid.x == pytest.approx(0.0, abs=1e-12)
    assert cluster.centroid.y == pytest.approx(0.0, abs=1e-12)
    assert cluster.radius == pytest.approx(0.1)


def test_cluster_typing_and_confidence(analyzer, pentagon):
    result = analyzer.analyze_clusters(pentagon + [make_point(100.0, 100.0)])
    cluster = result.clusters[0]

    # 절연체, 대칭, 얕음 -> 인공 구조물
    assert cluster.symmetry == pytest.approx(1.0)
    assert cluster.aspect_ratio == 1.0
    assert cluster.type == ClusterType.ARTIFICIAL_STRUCTURE

    # 0.3·(5/10) + 0.3·1 + 0.2·(5/6) + 0.2·1
    assert result.confidence == pytest.approx(0.15 + 0.3 + 0.2 * 5 / 6 + 0.2)


def test_tight_line_without_outlier(analyzer):
    points = [make_point(0.01 * i, 0.0) for i in range(5)]
    result = analyzer.analyze_clusters(points)

    assert len(result.clusters) == 1
    assert result.clusters[0].size == 5
    assert result.outliers == []
    assert result.confidence > 0.0


def test_two_separated_groups(analyzer):
    # 0.25 m 정사각형 두 개, 50 m 간격
    square = [(0.0, 0.0), (0.25, 0.0), (0.0, 0.25), (0.25, 0.25)]
    left = [make_point(x, y) for x, y in square]
    right = [make_point(50.0 + x, y) for x, y in square]
    result = analyzer.analyze_clusters(left + right)

    assert len(result.clusters) == 2
    assert [c.size for c in result.clusters] == [4, 4]
    assert result.outliers == []
    assert result.clusters[0].points == left
    assert result.clusters[1].points == right
    assert ClusterAnalyzer.cluster_separation(result.clusters) == 1.0


def test_chain_grows_through_core_points(analyzer):
    # 끝점끼리는 임계값보다 멀지만 이웃을 따라 하나의 군집으로 연결
    points = [make_point(0.5 * i, 0.0) for i in range(8)]
    result = analyzer.analyze_clusters(points)

    assert len(result.clusters) == 1
    assert result.clusters[0].size == 8
    assert result.threshold < 3.5


def test_identical_points_form_one_cluster(analyzer):
    points = [make_point(1.0, 1.0) for _ in range(4)]
    result = analyzer.analyze_clusters(points)

    assert result.threshold == 0.0
    assert len(result.clusters) == 1
    assert result.clusters[0].radius == 0.0


@pytest.mark.parametrize("count", [0, 1, 2])
def test_too_few_points(analyzer, count):
    points = [make_point(float(i), 0.0) for i in range(count)]
    result = analyzer.analyze_clusters(points)

    assert result.clusters == []
    assert result.outliers == points
    assert result.confidence == 0.0


def test_min_cluster_size_configurable(pentagon):
    analyzer = ClusterAnalyzer(ClusterConfig(min_cluster_size=6))
    result = analyzer.analyze_clusters(pentagon + [make_point(100.0, 100.0)])

    assert result.clusters == []
    assert len(result.outliers) == 6
    assert result.confidence == 0.0


def test_extreme_values_do_not_break_clustering(analyzer, pentagon):
    extreme = make_point(1e300, -1e300, impedance=1e300, conductivity=1e300)
    result = analyzer.analyze_clusters(pentagon + [extreme])

    assert extreme in result.outliers
    assert 0.0 <= result.confidence <= 1.0


# ================================================================
# Distance and shape helpers
# ================================================================


class TestDistanceMatrix:
    def test_spatial_distance(self, analyzer):
        matrix = analyzer.distance_matrix([make_point(0.0, 0.0), make_point(3.0, 4.0)])
        assert matrix[0, 1] == pytest.approx(5.0)
        assert matrix[1, 0] == pytest.approx(5.0)
        assert np.all(np.diag(matrix) == 0.0)

    def test_feature_weights(self, analyzer):
        matrix = analyzer.distance_matrix([make_point(0.0, 0.0, impedance=50.0), make_point(0.0, 0.0, impedance=60.0)])
        assert matrix[0, 1] == pytest.approx(math.sqrt(0.3 * 100.0))

    def test_conductivity_on_log_scale(self, analyzer):
        matrix = analyzer.distance_matrix(
            [make_point(0.0, 0.0, conductivity=1e-3), make_point(0.0, 0.0, conductivity=1e2)]
        )
        assert matrix[0, 1] == pytest.approx(math.sqrt(0.2 * 25.0))

    def test_overflow_is_capped(self, analyzer):
        matrix = analyzer.distance_matrix([make_point(0.0, 0.0), make_point(1e300, 1e300)])
        assert np.all(np.isfinite(matrix))


class TestShape:
    def test_aspect_ratio(self):
        points = [make_point(0.0, 0.0, 0.0), make_point(10.0, 1.0, 1.0), make_point(20.0, 0.0, 0.0)]
        assert ClusterAnalyzer.calculate_aspect_ratio(points) == pytest.approx(20.0)

    def test_aspect_ratio_flat(self, pentagon):
        assert ClusterAnalyzer.calculate_aspect_ratio(pentagon) == 1.0

    def test_symmetry_with_centre_point(self):
        points = [make_point(0, 0), make_point(0.1, 0), make_point(0, 0.1), make_point(0.1, 0.1), make_point(0.05, 0.05)]
        assert ClusterAnalyzer.calculate_symmetry(points) == pytest.approx(0.5)

    def test_cluster_types(self, analyzer, pentagon):
        vein_points = [make_point(p.position.x, p.position.y, conductivity=1e5, depth=3.0) for p in pentagon]
        vein = Cluster(vein_points, Point3D(0, 0, 0), 0.1, aspect_ratio=15.0, symmetry=0.2)
        assert analyzer.determine_cluster_type(vein) == ClusterType.NATURAL_VEIN

        crystal = Cluster(pentagon, Point3D(0, 0, 0), 0.1, aspect_ratio=5.0, symmetry=0.9)
        assert analyzer.determine_cluster_type(crystal) == ClusterType.CRYSTAL_FORMATION

        unknown_points = [make_point(p.position.x, p.position.y, conductivity=1.0) for p in pentagon]
        unknown = Cluster(unknown_points, Point3D(0, 0, 0), 0.1, aspect_ratio=5.0, symmetry=0.5)
        assert analyzer.determine_cluster_type(unknown) == ClusterType.UNKNOWN

    def test_separation(self, pentagon):
        a = Cluster(pentagon, Point3D(0, 0, 0), 1.0)
        b = Cluster(pentagon, Point3D(10, 0, 0), 1.0)
        c = Cluster(pentagon, Point3D(1, 0, 0), 1.0)

        assert ClusterAnalyzer.cluster_separation([a]) == 1.0
        assert ClusterAnalyzer.cluster_separation([a, b]) == 1.0  # 10 / 2 / 2 -> clamp
        assert ClusterAnalyzer.cluster_separation([a, c]) == pytest.approx(0.25)
