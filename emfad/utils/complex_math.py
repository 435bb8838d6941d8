"""
Complex Arithmetic Kernel

임피던스 계산의 기반이 되는 불변 복소수 타입.
Division by a zero-magnitude operand raises ComplexDivisionError instead of
producing NaN/Inf, so invalid impedances never leak into confidence scores.
"""

import math
from dataclasses import dataclass
from typing import Union

Number = Union[int, float]


class ComplexDivisionError(ZeroDivisionError):
    """Raised when dividing by a complex number whose magnitude is zero"""

    pass


@dataclass(frozen=True)
class Complex:
    """
    Immutable complex value.

    Attributes:
        real: 실수부
        imag: 허수부
    """

    real: float
    imag: float = 0.0

    @classmethod
    def from_polar(cls, magnitude: float, angle: float) -> "Complex":
        return cls(magnitude * math.cos(angle), magnitude * math.sin(angle))

    @classmethod
    def coerce(cls, value: Union["Complex", complex, Number]) -> "Complex":
        if isinstance(value, Complex):
            return value
        if isinstance(value, complex):
            return cls(value.real, value.imag)
        if isinstance(value, (int, float)):
            return cls(float(value), 0.0)
        raise TypeError(f"Cannot convert {type(value).__name__} to Complex")

    @property
    def magnitude(self) -> float:
        return math.hypot(self.real, self.imag)

    @property
    def magnitude_squared(self) -> float:
        return self.real * self.real + self.imag * self.imag

    @property
    def phase(self) -> float:
        return math.atan2(self.imag, self.real)

    def conjugate(self) -> "Complex":
        return Complex(self.real, -self.imag)

    def sqrt(self) -> "Complex":
        """Principal square root: sqrt(r)·(cos(θ/2), sin(θ/2))"""
        r = self.magnitude
        half_theta = self.phase / 2.0
        sqrt_r = math.sqrt(r)
        return Complex(sqrt_r * math.cos(half_theta), sqrt_r * math.sin(half_theta))

    def is_zero(self) -> bool:
        return self.real == 0.0 and self.imag == 0.0

    def is_finite(self) -> bool:
        return math.isfinite(self.real) and math.isfinite(self.imag)

    def to_builtin(self) -> complex:
        return complex(self.real, self.imag)

    def __add__(self, other):
        try:
            o = Complex.coerce(other)
        except TypeError:
            return NotImplemented
        return Complex(self.real + o.real, self.imag + o.imag)

    __radd__ = __add__

    def __sub__(self, other):
        try:
            o = Complex.coerce(other)
        except TypeError:
            return NotImplemented
        return Complex(self.real - o.real, self.imag - o.imag)

    def __rsub__(self, other):
        try:
            o = Complex.coerce(other)
        except TypeError:
            return NotImplemented
        return o - self

    def __mul__(self, other):
        try:
            o = Complex.coerce(other)
        except TypeError:
            return NotImplemented
        return Complex(
            self.real * o.real - self.imag * o.imag,
            self.real * o.imag + self.imag * o.real,
        )

    __rmul__ = __mul__

    def __truediv__(self, other):
        """
        Scaled (Smith) division; |o|² is never formed.

        Raises:
            ComplexDivisionError: 나누는 수가 0 (real == imag == 0)
        """
        try:
            o = Complex.coerce(other)
        except TypeError:
            return NotImplemented
        if o.is_zero():
            raise ComplexDivisionError(f"Division by zero-magnitude complex number: {self} / {o}")
        a, b, c, d = self.real, self.imag, o.real, o.imag
        if abs(c) >= abs(d):
            ratio = d / c
            denom = c + d * ratio
            return Complex((a + b * ratio) / denom, (b - a * ratio) / denom)
        ratio = c / d
        denom = c * ratio + d
        return Complex((a * ratio + b) / denom, (b * ratio - a) / denom)

    def __rtruediv__(self, other):
        try:
            o = Complex.coerce(other)
        except TypeError:
            return NotImplemented
        return o / self

    def __neg__(self) -> "Complex":
        return Complex(-self.real, -self.imag)

    def __abs__(self) -> float:
        return self.magnitude

    def __str__(self) -> str:
        sign = "+" if self.imag >= 0 else "-"
        return f"({self.real:g} {sign} {abs(self.imag):g}j)"


ZERO = Complex(0.0, 0.0)
ONE = Complex(1.0, 0.0)
J = Complex(0.0, 1.0)
