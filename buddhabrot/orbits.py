"""Scalar orbit primitives for the Buddhabrot."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import ConfigurationError

ESCAPE_THRESHOLD = 2.0


@dataclass(frozen=True)
class Complex:
    """A point of the complex plane."""

    real: float = 0.0
    imag: float = 0.0

    @classmethod
    def from_complex(cls, value: complex | Complex) -> Complex:
        if isinstance(value, Complex):
            return value
        value = complex(value)
        return cls(float(value.real), float(value.imag))

    def __complex__(self) -> complex:
        return complex(self.real, self.imag)

    def __mul__(self, other: Complex) -> Complex:
        # (a + bi)(c + di)
        return Complex(
            self.real * other.real - self.imag * other.imag,
            self.real * other.imag + self.imag * other.real,
        )

    def __add__(self, other: Complex) -> Complex:
        return Complex(self.real + other.real, self.imag + other.imag)

    def sqmagnitude(self) -> float:
        return self.real * self.real + self.imag * self.imag


@dataclass(frozen=True)
class PlaneWindow:
    """Axis-aligned rectangle of the complex plane that gets rendered."""

    minimum: Complex
    maximum: Complex

    def __post_init__(self) -> None:
        object.__setattr__(self, "minimum", Complex.from_complex(self.minimum))
        object.__setattr__(self, "maximum", Complex.from_complex(self.maximum))

    @property
    def real_span(self) -> float:
        return self.maximum.real - self.minimum.real

    @property
    def imag_span(self) -> float:
        return self.maximum.imag - self.minimum.imag

    def validate(self) -> None:
        values = (self.minimum.real, self.minimum.imag, self.maximum.real, self.maximum.imag)
        if not all(math.isfinite(v) for v in values):
            raise ConfigurationError(f"plane window bounds must be finite, got {self}")
        if not self.real_span > 0:
            raise ConfigurationError(
                f"plane window has no extent on the real axis: [{self.minimum.real}, {self.maximum.real}]"
            )
        if not self.imag_span > 0:
            raise ConfigurationError(
                f"plane window has no extent on the imaginary axis: [{self.minimum.imag}, {self.maximum.imag}]"
            )

    def contains(self, point: Complex) -> bool:
        """Inclusive on all four edges."""

        return (
            self.minimum.real <= point.real <= self.maximum.real
            and self.minimum.imag <= point.imag <= self.maximum.imag
        )


def escape_trajectory(c: complex | Complex, iterations: int) -> list[Complex]:
    """Return the orbit of ``c`` under ``z -> z*z + c`` if it escapes.

    The orbit starts from ``z = 0`` and every new ``z`` is recorded, including
    the one whose squared magnitude first exceeds ``ESCAPE_THRESHOLD``. Orbits
    still bounded after ``iterations`` steps are treated as members of the
    Mandelbrot set and yield an empty list.
    """

    if iterations <= 0:
        raise ConfigurationError(f"iteration bound must be positive, got {iterations}")

    c = Complex.from_complex(c)
    z = Complex()
    n = 0
    points: list[Complex] = []
    while n < iterations and z.sqmagnitude() <= ESCAPE_THRESHOLD:
        z = z * z + c
        n += 1
        points.append(z)

    if n == iterations:
        return []
    return points


def row_from_real(real: float, min_real: float, max_real: float, height: int) -> int:
    """Map a real coordinate onto a grid row. Values are not clamped."""

    return math.floor((real - min_real) * (height / (max_real - min_real)))


def col_from_imaginary(imag: float, min_imag: float, max_imag: float, width: int) -> int:
    """Map an imaginary coordinate onto a grid column. Values are not clamped."""

    return math.floor((imag - min_imag) * (width / (max_imag - min_imag)))
