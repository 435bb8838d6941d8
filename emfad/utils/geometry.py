"""
3D Geometry Helpers
"""

import math
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np


@dataclass(frozen=True)
class Point3D:
    x: float
    y: float
    z: float

    def distance_to(self, other: "Point3D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y, self.z - other.z)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


def centroid(points: Iterable[Point3D]) -> Point3D:
    """Arithmetic mean position. Raises ValueError for an empty iterable."""
    coords = np.array([p.as_array() for p in points], dtype=np.float64)
    if coords.size == 0:
        raise ValueError("centroid of an empty point set is undefined")
    cx, cy, cz = coords.mean(axis=0)
    return Point3D(float(cx), float(cy), float(cz))


def axis_ranges(points: List[Point3D]) -> np.ndarray:
    """Extent along x, y, z."""
    coords = np.array([p.as_array() for p in points], dtype=np.float64)
    return coords.max(axis=0) - coords.min(axis=0)
