"""
Core Algorithm Modules

Contains the main physics components of the material analysis engine:
- MaterialDatabase: Reference material catalog and similarity matching
- MaterialPhysicsAnalyzer: Impedance inversion, anomaly geometry, layers
- CrystalDetector: Crystal detection against a background impedance
- MetalAnalyzer: Metal identification from frequency sweeps
- InclusionDetector: Two-layer transmission-line inclusion model
- AutomaticCalibration / DepthCalibration: Impedance and depth correction
- FieldClassifier: Raw field-strength threshold classification
"""

from emfad.core.calibration import AutomaticCalibration, CalibrationModeError, CalibrationPoint, CalibrationResult
from emfad.core.crystal_detector import CrystalDetector
from emfad.core.depth_calibration import CalibrationFactors, DepthCalibration, DepthCalibrationPoint
from emfad.core.field_classifier import FieldClassifier
from emfad.core.inclusion_detector import InclusionDetectionError, InclusionDetector
from emfad.core.material_database import MaterialDatabase, MaterialProperties, MaterialType
from emfad.core.measurement_mode import MeasurementMode, parse_mode
from emfad.core.metal_analyzer import MetalAnalysisError, MetalAnalyzer
from emfad.core.physics_analyzer import MaterialPhysicsAnalyzer, MeasurementReading, PhysicsAnalysisError

__all__ = [
    "AutomaticCalibration",
    "CalibrationFactors",
    "CalibrationModeError",
    "CalibrationPoint",
    "CalibrationResult",
    "CrystalDetector",
    "DepthCalibration",
    "DepthCalibrationPoint",
    "FieldClassifier",
    "InclusionDetectionError",
    "InclusionDetector",
    "MaterialDatabase",
    "MaterialPhysicsAnalyzer",
    "MaterialProperties",
    "MaterialType",
    "MeasurementMode",
    "MeasurementReading",
    "MetalAnalysisError",
    "MetalAnalyzer",
    "PhysicsAnalysisError",
    "parse_mode",
]
