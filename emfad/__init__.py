"""
EMFAD Material Analysis Engine

Physics-based subsurface material classification from handheld EM scanner
readings: impedance inversion, skin depth, material database matching,
gemstone/vein/structure discrimination, calibration and spatial clustering.
"""

__version__ = "0.1.0"
__author__ = "EMFAD Team"
