"""
Utility modules - complex arithmetic, physical constants, numeric guards, statistics
"""

from emfad.utils.complex_math import Complex, ComplexDivisionError
from emfad.utils.geometry import Point3D

__all__ = ["Complex", "ComplexDivisionError", "Point3D"]
