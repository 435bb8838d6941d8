"""
Analysis modules - clustering of measurement points and classification trends
"""

from emfad.analysis.cluster_analyzer import (
    Cluster,
    ClusterAnalysisResult,
    ClusterAnalyzer,
    ClusterConfig,
    ClusterType,
    MeasurementPoint,
)
from emfad.analysis.trend_analyzer import MaterialTrend, TrendAnalyzer, TrendDirection

__all__ = [
    "Cluster",
    "ClusterAnalysisResult",
    "ClusterAnalyzer",
    "ClusterConfig",
    "ClusterType",
    "MeasurementPoint",
    "MaterialTrend",
    "TrendAnalyzer",
    "TrendDirection",
]
