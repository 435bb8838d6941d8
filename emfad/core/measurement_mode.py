"""
Measurement Modes

Antenna arrangement presets and the per-mode measurement confidence score.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Union

from emfad.utils.complex_math import Complex
from emfad.utils.constants import FREE_SPACE_IMPEDANCE
from emfad.utils.numeric import weighted_sum


class MeasurementMode(Enum):
    BA_VERTICAL = "ba_vertical"
    AB_HORIZONTAL = "ab_horizontal"
    ANTENNA_A = "antenna_a"
    DEPTH_PRO = "depth_pro"


@dataclass(frozen=True)
class ModeConfig:
    """
    Attributes:
        mode: 측정 모드
        frequency: 기본 측정 주파수 (Hz)
        antenna_distance: 송수신 안테나 간격 (m), 단일 안테나는 0
        depth_reference: 깊이 신뢰도가 0이 되는 깊이 (m)
        calibration_factor: 적용 중인 보정 계수
        is_calibrated: 보정 완료 여부
    """

    mode: MeasurementMode
    frequency: float
    antenna_distance: float
    depth_reference: float
    calibration_factor: float = 1.0
    is_calibrated: bool = False

    def with_calibration(self, factor: float) -> "ModeConfig":
        return replace(self, calibration_factor=factor, is_calibrated=True)


DEFAULT_MODE_CONFIGS: Dict[MeasurementMode, ModeConfig] = {
    MeasurementMode.BA_VERTICAL: ModeConfig(MeasurementMode.BA_VERTICAL, 1000.0, 1.0, 5.0),
    MeasurementMode.AB_HORIZONTAL: ModeConfig(MeasurementMode.AB_HORIZONTAL, 2000.0, 0.5, 3.0),
    MeasurementMode.ANTENNA_A: ModeConfig(MeasurementMode.ANTENNA_A, 500.0, 0.0, 2.0),
    MeasurementMode.DEPTH_PRO: ModeConfig(MeasurementMode.DEPTH_PRO, 5000.0, 1.5, 10.0),
}

# Frequency term saturates at the highest preset frequency
MAX_MODE_FREQUENCY = 5000.0


def parse_mode(value: Union[str, MeasurementMode]) -> MeasurementMode:
    """
    Accepts an enum member, its name ("BA_VERTICAL") or its value ("ba_vertical").

    Raises:
        ValueError: 알 수 없는 모드 이름
    """
    if isinstance(value, MeasurementMode):
        return value
    key = str(value).strip()
    try:
        return MeasurementMode[key.upper()]
    except KeyError:
        valid = ", ".join(m.name for m in MeasurementMode)
        raise ValueError(f"Unknown measurement mode '{value}'. Valid modes: {valid}")


def get_mode_config(mode: Union[str, MeasurementMode]) -> ModeConfig:
    return DEFAULT_MODE_CONFIGS[parse_mode(mode)]


def measurement_confidence(impedance: Complex, depth: float, config: ModeConfig) -> float:
    """
    0.3 signal strength + 0.3 depth + 0.2 calibration + 0.2 frequency.

    Signal strength is |Z| relative to free space; uncalibrated modes get
    half credit on the calibration term.
    """
    signal = impedance.magnitude / FREE_SPACE_IMPEDANCE
    depth_term = 1.0 - depth / config.depth_reference
    calibration_term = 1.0 if config.is_calibrated else 0.5
    frequency_term = config.frequency / MAX_MODE_FREQUENCY
    return weighted_sum((signal, depth_term, calibration_term, frequency_term), (0.3, 0.3, 0.2, 0.2))
