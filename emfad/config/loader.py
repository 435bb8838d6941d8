from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from emfad.analysis.cluster_analyzer import ClusterConfig
from emfad.core.calibration import CalibrationConfig
from emfad.core.crystal_detector import CrystalDetectorConfig
from emfad.core.field_classifier import FieldThresholds
from emfad.core.inclusion_detector import InclusionConfig
from emfad.core.material_database import DatabaseConfig
from emfad.core.metal_analyzer import MetalAnalyzerConfig
from emfad.core.physics_analyzer import PhysicsConfig
from emfad.pipeline import PipelineConfig

logger = logging.getLogger(__name__)

_SCALARS = (bool, int, float, str)


class ConfigError(ValueError):
    """Invalid configuration file or override key"""

    pass


@dataclass
class EngineConfig:
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    crystal: CrystalDetectorConfig = field(default_factory=CrystalDetectorConfig)
    metal: MetalAnalyzerConfig = field(default_factory=MetalAnalyzerConfig)
    inclusion: InclusionConfig = field(default_factory=InclusionConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    field_thresholds: FieldThresholds = field(default_factory=FieldThresholds)
    sources: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


SECTIONS: Dict[str, Type] = {
    "pipeline": PipelineConfig,
    "database": DatabaseConfig,
    "physics": PhysicsConfig,
    "crystal": CrystalDetectorConfig,
    "metal": MetalAnalyzerConfig,
    "inclusion": InclusionConfig,
    "calibration": CalibrationConfig,
    "cluster": ClusterConfig,
    "field_thresholds": FieldThresholds,
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _unknown_keys(base: Dict[str, Any], override: Dict[str, Any], prefix: str = "") -> List[str]:
    unknown: List[str] = []
    for key, value in override.items():
        path = f"{prefix}{key}"
        if key not in base:
            unknown.append(path)
            continue
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            unknown.extend(_unknown_keys(base[key], value, prefix=f"{path}."))
    return unknown


def _scalar_fields(instance: Any) -> Dict[str, Any]:
    return {f.name: getattr(instance, f.name) for f in fields(instance) if isinstance(getattr(instance, f.name), _SCALARS)}


def default_config_dict() -> Dict[str, Dict[str, Any]]:
    """Tunable scalar settings of every section at their built-in defaults."""
    return {name: _scalar_fields(cls()) for name, cls in SECTIONS.items()}


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be an object: {path}")
    return data


def _coerce(section: str, key: str, default: Any, value: Any) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{section}.{key} must be a boolean, got {value!r}")
        return value
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
        if isinstance(default, float):
            return float(value)
        if not float(value).is_integer():
            raise ConfigError(f"{section}.{key} must be an integer, got {value!r}")
        return int(value)
    if isinstance(default, str) and not isinstance(value, str):
        raise ConfigError(f"{section}.{key} must be a string, got {value!r}")
    return value


def build_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a merged settings dict into section dataclass instances."""
    built: Dict[str, Any] = {}
    for name, cls in SECTIONS.items():
        defaults = cls()
        values = data.get(name, {})
        if not isinstance(values, dict):
            raise ConfigError(f"Section '{name}' must be an object")
        scalars = _scalar_fields(defaults)
        changes = {k: _coerce(name, k, scalars[k], v) for k, v in values.items() if k in scalars}
        built[name] = replace(defaults, **changes)
    return built


def load_config(path: Optional[str] = None, strict_unknown: bool = False) -> EngineConfig:
    """
    Built-in defaults deep-merged with an optional JSON override.

    Args:
        path: override JSON 경로 (None이면 기본값만 사용)
        strict_unknown: True면 알 수 없는 키를 ConfigError로 처리

    Returns:
        EngineConfig

    Raises:
        ConfigError: 파일 없음, 잘못된 JSON, 잘못된 값 타입, (strict) 알 수 없는 키
    """
    base = default_config_dict()
    sources: List[str] = []
    warnings: List[str] = []
    merged = base

    if path is not None:
        override = _read_json(Path(path))
        warnings = _unknown_keys(base, override)
        if warnings:
            if strict_unknown:
                raise ConfigError(f"Unknown config keys: {', '.join(warnings)}")
            logger.warning(f"Ignoring unknown config keys: {', '.join(warnings)}")
        merged = deep_merge(deepcopy(base), override)
        sources.append(str(path))

    built = build_config(merged)
    return EngineConfig(
        pipeline=built["pipeline"],
        database=built["database"],
        physics=built["physics"],
        crystal=built["crystal"],
        metal=built["metal"],
        inclusion=built["inclusion"],
        calibration=built["calibration"],
        cluster=built["cluster"],
        field_thresholds=built["field_thresholds"],
        sources=sources,
        warnings=warnings,
    )

