"""
Result serialization helpers.

Turns analysis records into plain JSON-compatible structures in one place.
"""

from __future__ import annotations

import math
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict

import numpy as np

from emfad.utils.complex_math import Complex


def to_jsonable(obj: Any) -> Any:
    """
    Recursively convert a result record to JSON-compatible data.

    Enums become their names, Complex becomes {"real", "imag"}, non-finite
    floats become None, datetimes become ISO strings, dataclasses become dicts.
    """
    if obj is None or isinstance(obj, str):
        return obj
    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    if isinstance(obj, Enum):
        return obj.name
    if isinstance(obj, Complex):
        return {"real": to_jsonable(obj.real), "imag": to_jsonable(obj.imag)}
    if isinstance(obj, complex):
        return {"real": to_jsonable(obj.real), "imag": to_jsonable(obj.imag)}
    if isinstance(obj, (int, np.integer)):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        value = float(obj)
        return value if math.isfinite(value) else None
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, np.ndarray):
        return [to_jsonable(v) for v in obj.tolist()]
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {_key(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in obj]
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _key(key: Any) -> str:
    if isinstance(key, Enum):
        return key.name
    return str(key)


def classification_summary(result: Any) -> Dict[str, Any]:
    """Compact view of a ClassificationResult for console and JSON output."""
    physics = result.physics
    return {
        "material_type": result.material_type.name,
        "material_name": result.material_name,
        "decided_by": result.decided_by,
        "depth": to_jsonable(result.depth),
        "confidence": to_jsonable(result.confidence),
        "measurement_confidence": to_jsonable(result.measurement_confidence),
        "impedance": to_jsonable(physics.impedance),
        "conductivity": to_jsonable(physics.conductivity),
        "permittivity": to_jsonable(physics.permittivity),
        "permeability": to_jsonable(physics.permeability),
        "skin_depth": to_jsonable(physics.skin_depth),
        "anomaly_shape": physics.anomaly_shape.name,
        "mass_estimate": to_jsonable(physics.mass_estimate),
        "is_crystal": result.crystal.is_crystal,
        "has_inclusion": result.inclusion.has_inclusion,
        "inclusion_type": result.inclusion.inclusion_type.name,
        "field_classification": result.field_classification.material_type.name,
        "timestamp": result.timestamp.isoformat(),
    }
