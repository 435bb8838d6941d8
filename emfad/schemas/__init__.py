"""
Input Schemas Package

Pydantic models for validating JSON measurement documents.
"""

from .measurement_schemas import (
    CalibrationDocument,
    CalibrationPointInput,
    ComplexInput,
    MeasurementPointInput,
    PointsDocument,
    PositionInput,
    ReadingInput,
    SweepSampleInput,
)

__all__ = [
    "CalibrationDocument",
    "CalibrationPointInput",
    "ComplexInput",
    "MeasurementPointInput",
    "PointsDocument",
    "PositionInput",
    "ReadingInput",
    "SweepSampleInput",
]
