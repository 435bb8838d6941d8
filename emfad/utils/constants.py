"""
Physical Constants

SI values used by every impedance/material conversion in the engine.
"""

import math

MU_0 = 4.0 * math.pi * 1e-7  # H/m, vacuum permeability
EPSILON_0 = 8.854e-12  # F/m, vacuum permittivity
SPEED_OF_LIGHT = 299792458.0  # m/s
FREE_SPACE_IMPEDANCE = 377.0  # Ohm, rounded sqrt(MU_0 / EPSILON_0)

# Floor applied before log10 of a conductivity (perfect insulators have σ = 0)
CONDUCTIVITY_LOG_FLOOR = 1e-20


def angular_frequency(frequency: float) -> float:
    """ω = 2πf"""
    return 2.0 * math.pi * frequency
