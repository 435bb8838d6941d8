"""
Measurement Schemas

Pydantic models validating JSON input documents before they become domain records.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from emfad.analysis.cluster_analyzer import MeasurementPoint
from emfad.core.calibration import CalibrationPoint
from emfad.core.measurement_mode import MeasurementMode, parse_mode
from emfad.core.physics_analyzer import MeasurementReading
from emfad.utils.complex_math import Complex
from emfad.utils.geometry import Point3D


class ComplexInput(BaseModel):
    """Complex number as {real, imag}"""

    real: float = Field(..., description="Real part", allow_inf_nan=False)
    imag: float = Field(default=0.0, description="Imaginary part", allow_inf_nan=False)

    def to_domain(self) -> Complex:
        return Complex(self.real, self.imag)


class PositionInput(BaseModel):
    """Survey position (m)"""

    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)
    z: float = Field(default=0.0, allow_inf_nan=False)

    def to_domain(self) -> Point3D:
        return Point3D(self.x, self.y, self.z)


class SweepSampleInput(BaseModel):
    """One sample of a frequency sweep"""

    frequency: float = Field(..., description="Frequency (Hz)", gt=0, allow_inf_nan=False)
    impedance: ComplexInput = Field(..., description="Measured impedance (Ω)")


class ReadingInput(BaseModel):
    """Single scanner reading"""

    magnetic_field: float = Field(..., description="Magnetic field strength (µT)", allow_inf_nan=False)
    electric_field: float = Field(..., description="Electric field strength (V/m)", allow_inf_nan=False)
    frequency: float = Field(..., description="Measurement frequency (Hz)", gt=0, allow_inf_nan=False)
    phase: float = Field(default=0.0, description="E/H phase difference (rad)", allow_inf_nan=False)
    depth: float = Field(..., description="Depth hint (m)", gt=0, allow_inf_nan=False)
    sweep: Optional[List[SweepSampleInput]] = Field(None, description="Optional frequency sweep for metal analysis")

    @field_validator("magnetic_field")
    @classmethod
    def validate_magnetic_field(cls, v):
        if v == 0:
            raise ValueError("magnetic_field must be non-zero")
        return v

    class Config:
        json_schema_extra = {
            "example": {"magnetic_field": 120.0, "electric_field": 10.0, "frequency": 1000.0, "phase": 0.2, "depth": 1.0}
        }

    def to_domain(self) -> MeasurementReading:
        return MeasurementReading(
            magnetic_field=self.magnetic_field,
            electric_field=self.electric_field,
            frequency=self.frequency,
            phase=self.phase,
            depth=self.depth,
        )

    def sweep_curve(self) -> Optional[List[Tuple[float, Complex]]]:
        if self.sweep is None:
            return None
        return [(s.frequency, s.impedance.to_domain()) for s in self.sweep]


class MeasurementPointInput(BaseModel):
    """Clustering input point"""

    impedance: ComplexInput
    conductivity: float = Field(..., description="Conductivity (S/m)", allow_inf_nan=False)
    permittivity: ComplexInput
    permeability: float = Field(default=1.0, allow_inf_nan=False)
    depth: float = Field(..., description="Depth (m)", allow_inf_nan=False)
    position: PositionInput

    def to_domain(self) -> MeasurementPoint:
        return MeasurementPoint(
            impedance=self.impedance.to_domain(),
            conductivity=self.conductivity,
            permittivity=self.permittivity.to_domain(),
            permeability=self.permeability,
            depth=self.depth,
            position=self.position.to_domain(),
        )


class CalibrationPointInput(BaseModel):
    """Reference measurement for the calibration engine"""

    position: PositionInput
    impedance: ComplexInput
    frequency: float = Field(..., description="Frequency (Hz)", gt=0, allow_inf_nan=False)
    mode: Optional[str] = Field(None, description="Measurement mode name; defaults to the requested mode")
    expected_impedance: Optional[ComplexInput] = Field(None, description="Known reference impedance")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v):
        if v is not None:
            parse_mode(v)
        return v

    def to_domain(self, default_mode: MeasurementMode) -> CalibrationPoint:
        mode = parse_mode(self.mode) if self.mode is not None else default_mode
        expected = self.expected_impedance.to_domain() if self.expected_impedance is not None else None
        return CalibrationPoint(
            position=self.position.to_domain(),
            impedance=self.impedance.to_domain(),
            frequency=self.frequency,
            mode=mode,
            expected_impedance=expected,
        )


class PointsDocument(BaseModel):
    points: List[MeasurementPointInput] = Field(default_factory=list)


class CalibrationDocument(BaseModel):
    points: List[CalibrationPointInput] = Field(default_factory=list)
