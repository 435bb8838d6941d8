"""
Cluster Analyzer

측정점 묶음을 특징공간+공간 거리로 군집화하고 각 군집을 광맥/인공구조물/결정체로 분류한다.

DBSCAN grouping on a precomputed weighted distance
matrix. The neighbourhood radius is global: mean + 2·std of each point's
nearest-neighbour distance.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
from sklearn.cluster import DBSCAN
from sklearn.neighbors import NearestNeighbors

from emfad.utils.complex_math import Complex
from emfad.utils.constants import CONDUCTIVITY_LOG_FLOOR
from emfad.utils.geometry import Point3D, axis_ranges, centroid
from emfad.utils.numeric import clamp_unit, safe_divide, weighted_sum

logger = logging.getLogger(__name__)

_FLOAT_MAX = np.finfo(np.float64).max
_EPS_FLOOR = np.finfo(np.float64).tiny
_RADIUS_RTOL = 1e-9


class ClusterType(Enum):
    NATURAL_VEIN = "natural_vein"
    ARTIFICIAL_STRUCTURE = "artificial_structure"
    CRYSTAL_FORMATION = "crystal_formation"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MeasurementPoint:
    impedance: Complex
    conductivity: float
    permittivity: Complex
    permeability: float
    depth: float
    position: Point3D


@dataclass
class Cluster:
    points: List[MeasurementPoint]
    centroid: Point3D
    radius: float
    type: ClusterType = ClusterType.UNKNOWN
    aspect_ratio: float = 1.0
    symmetry: float = 1.0

    @property
    def size(self) -> int:
        return len(self.points)


@dataclass
class ClusterAnalysisResult:
    clusters: List[Cluster]
    outliers: List[MeasurementPoint]
    confidence: float
    threshold: Optional[float] = None


@dataclass
class ClusterConfig:
    """군집화 설정 (가중치, 최소 군집 크기, 유형 판정 임계값)"""

    impedance_weight: float = 0.3
    conductivity_weight: float = 0.2
    permittivity_weight: float = 0.2
    permeability_weight: float = 0.1
    depth_weight: float = 0.2
    outlier_sigma: float = 2.0
    min_cluster_size: int = 3
    size_full_scale: float = 10.0

    # NATURAL_VEIN
    vein_min_conductivity: float = 1e4
    vein_min_aspect: float = 10.0
    vein_max_symmetry: float = 0.3
    vein_min_depth: float = 1.5
    # ARTIFICIAL_STRUCTURE
    structure_low_conductivity: float = 1e-9
    structure_high_conductivity: float = 1e6
    structure_max_aspect: float = 3.0
    structure_min_symmetry: float = 0.7
    structure_max_depth: float = 10.0
    # CRYSTAL_FORMATION
    crystal_max_conductivity: float = 1e-10
    crystal_min_symmetry: float = 0.8


class ClusterAnalyzer:
    def __init__(self, config: Optional[ClusterConfig] = None) -> None:
        self.config: ClusterConfig = config or ClusterConfig()

    def analyze_clusters(self, points: Sequence[MeasurementPoint]) -> ClusterAnalysisResult:
        """
        군집 분석 수행

        Args:
            points: 측정점 목록

        Returns:
            ClusterAnalysisResult. Fewer than min_cluster_size points yields no
            clusters with every point reported as an outlier.
        """
        points = list(points)
        cfg = self.config
        if len(points) < cfg.min_cluster_size:
            if points:
                logger.warning(f"Only {len(points)} points, need {cfg.min_cluster_size} to form a cluster")
            return ClusterAnalysisResult([], points, 0.0)

        matrix = self.distance_matrix(points)
        threshold = self.density_threshold(matrix)
        clusters, outliers = self._group(points, matrix, threshold)
        for cluster in clusters:
            cluster.aspect_ratio = self.calculate_aspect_ratio(cluster.points)
            cluster.symmetry = self.calculate_symmetry(cluster.points)
            cluster.type = self.determine_cluster_type(cluster)

        if not clusters:
            logger.warning(f"All {len(points)} points classified as outliers")
        confidence = self.calculate_confidence(clusters, outliers)
        logger.debug(
            f"Clustering: threshold={threshold:.4g}, clusters={len(clusters)}, "
            f"outliers={len(outliers)}, confidence={confidence:.3f}"
        )
        return ClusterAnalysisResult(clusters, outliers, confidence, threshold)

    def distance_matrix(self, points: Sequence[MeasurementPoint]) -> np.ndarray:
        """
        Weighted feature distance plus Euclidean position distance.

        d(a, b) = sqrt(0.3·|ΔZ|² + 0.2·Δlog10σ² + 0.2·|Δε|² + 0.1·Δμ² + 0.2·Δdepth² + |Δpos|²)
        """
        cfg = self.config
        z = np.array([p.impedance.to_builtin() for p in points], dtype=np.complex128)
        eps = np.array([p.permittivity.to_builtin() for p in points], dtype=np.complex128)
        log_sigma = np.log10(
            np.maximum(np.abs(np.array([p.conductivity for p in points], dtype=np.float64)), CONDUCTIVITY_LOG_FLOOR)
        )
        mu = np.array([p.permeability for p in points], dtype=np.float64)
        depth = np.array([p.depth for p in points], dtype=np.float64)
        pos = np.array([p.position.as_array() for p in points], dtype=np.float64)

        with np.errstate(over="ignore", invalid="ignore"):
            d_z = np.abs(z[:, None] - z[None, :])
            d_eps = np.abs(eps[:, None] - eps[None, :])
            d_sigma = log_sigma[:, None] - log_sigma[None, :]
            d_mu = mu[:, None] - mu[None, :]
            d_depth = depth[:, None] - depth[None, :]
            d_pos = pos[:, None, :] - pos[None, :, :]
            squared = (
                cfg.impedance_weight * d_z * d_z
                + cfg.conductivity_weight * d_sigma * d_sigma
                + cfg.permittivity_weight * d_eps * d_eps
                + cfg.permeability_weight * d_mu * d_mu
                + cfg.depth_weight * d_depth * d_depth
                + np.sum(d_pos * d_pos, axis=-1)
            )
            matrix = np.sqrt(squared)
        matrix = np.nan_to_num(matrix, nan=_FLOAT_MAX, posinf=_FLOAT_MAX)
        np.fill_diagonal(matrix, 0.0)
        return matrix

    def density_threshold(self, matrix: np.ndarray) -> float:
        """mean + outlier_sigma · std of nearest-neighbour distances."""
        nn = NearestNeighbors(n_neighbors=1, metric="precomputed").fit(matrix)
        distances, _ = nn.kneighbors()
        nn_dist = distances[:, 0]
        scale = float(nn_dist.max())
        if scale <= 0:
            return 0.0
        # statistics on the normalised distances so capped entries cannot overflow
        normalised = nn_dist / scale
        threshold = scale * float(normalised.mean() + self.config.outlier_sigma * normalised.std())
        return min(threshold, _FLOAT_MAX)

    def _group(self, points: List[MeasurementPoint], matrix: np.ndarray, threshold: float):
        """
        Density-reachable grouping (DBSCAN) with eps = threshold.

        A point with at least min_cluster_size points (itself included) within
        the threshold is a core point; clusters grow through chains of core
        points. Noise points and clusters smaller than min_cluster_size become
        outliers.
        """
        min_size = self.config.min_cluster_size
        # equal spacings computed by different subtractions differ in the last bits
        eps = min(max(threshold * (1.0 + _RADIUS_RTOL), _EPS_FLOOR), _FLOAT_MAX)
        labels = DBSCAN(eps=eps, min_samples=min_size, metric="precomputed").fit_predict(matrix)

        clusters: List[Cluster] = []
        clustered = np.zeros(len(points), dtype=bool)
        for label in sorted(set(int(v) for v in labels) - {-1}):
            members = np.flatnonzero(labels == label)
            if len(members) < min_size:
                continue
            cluster_points = [points[j] for j in members]
            center = centroid(p.position for p in cluster_points)
            radius = max(p.position.distance_to(center) for p in cluster_points)
            clusters.append(Cluster(cluster_points, center, radius))
            clustered[members] = True

        outliers = [p for p, used in zip(points, clustered) if not used]
        return clusters, outliers

    @staticmethod
    def calculate_aspect_ratio(points: Sequence[MeasurementPoint]) -> float:
        """Longest over shortest axis extent; 1.0 when the shortest extent is zero."""
        ranges = axis_ranges([p.position for p in points])
        lo, hi = float(ranges.min()), float(ranges.max())
        if lo <= 0:
            return 1.0
        return hi / lo

    @staticmethod
    def calculate_symmetry(points: Sequence[MeasurementPoint]) -> float:
        """1 - coefficient of variation of distances to the centroid."""
        center = centroid(p.position for p in points)
        distances = np.array([p.position.distance_to(center) for p in points], dtype=np.float64)
        spread = safe_divide(float(distances.std()), float(distances.mean()))
        return 1.0 - clamp_unit(spread)

    def determine_cluster_type(self, cluster: Cluster) -> ClusterType:
        cfg = self.config
        sigma = float(np.mean([p.conductivity for p in cluster.points]))
        depth = float(np.mean([p.depth for p in cluster.points]))
        aspect = cluster.aspect_ratio
        symmetry = cluster.symmetry

        if (
            sigma > cfg.vein_min_conductivity
            and aspect > cfg.vein_min_aspect
            and symmetry < cfg.vein_max_symmetry
            and depth > cfg.vein_min_depth
        ):
            return ClusterType.NATURAL_VEIN
        if (
            (sigma < cfg.structure_low_conductivity or sigma > cfg.structure_high_conductivity)
            and aspect < cfg.structure_max_aspect
            and symmetry > cfg.structure_min_symmetry
            and depth < cfg.structure_max_depth
        ):
            return ClusterType.ARTIFICIAL_STRUCTURE
        if sigma < cfg.crystal_max_conductivity and symmetry > cfg.crystal_min_symmetry:
            return ClusterType.CRYSTAL_FORMATION
        return ClusterType.UNKNOWN

    def calculate_confidence(self, clusters: List[Cluster], outliers: List[MeasurementPoint]) -> float:
        if not clusters:
            return 0.0
        avg_size = float(np.mean([c.size for c in clusters]))
        total = sum(c.size for c in clusters) + len(outliers)
        outlier_ratio = len(outliers) / total
        typed = sum(1 for c in clusters if c.type is not ClusterType.UNKNOWN) / len(clusters)
        return weighted_sum(
            (avg_size / self.config.size_full_scale, self.cluster_separation(clusters), 1.0 - outlier_ratio, typed),
            (0.3, 0.3, 0.2, 0.2),
        )

    @staticmethod
    def cluster_separation(clusters: List[Cluster]) -> float:
        """min over pairs of centroid distance / (r_i + r_j), halved and clamped; 1.0 for < 2 clusters."""
        if len(clusters) < 2:
            return 1.0
        min_separation = math.inf
        for i in range(len(clusters)):
            for j in range(i + 1, len(clusters)):
                gap = clusters[i].centroid.distance_to(clusters[j].centroid)
                radii = clusters[i].radius + clusters[j].radius
                if radii > 0:
                    separation = gap / radii
                else:
                    separation = math.inf if gap > 0 else 0.0
                min_separation = min(min_separation, separation)
        return clamp_unit(min_separation / 2.0)
