import math
import random

import pytest

from buddhabrot import (
    ESCAPE_THRESHOLD,
    Complex,
    ConfigurationError,
    PlaneWindow,
    col_from_imaginary,
    escape_trajectory,
    row_from_real,
)


def test_complex_arithmetic():
    a = Complex(1.0, 2.0)
    b = Complex(3.0, -1.0)
    assert a * b == Complex(5.0, 5.0)
    assert a + b == Complex(4.0, 1.0)
    assert a.sqmagnitude() == 5.0
    assert complex(a) == 1 + 2j
    assert Complex.from_complex(-0.5 + 0.25j) == Complex(-0.5, 0.25)


@pytest.mark.parametrize("c", [3 + 0j, 0 + 2.5j, -1.5 - 1.5j, 2.1 + 0.1j])
def test_points_outside_radius_two_escape_immediately(c):
    orbit = escape_trajectory(c, 50)
    assert len(orbit) == 1
    assert orbit[0] == Complex.from_complex(c)
    assert orbit[0].sqmagnitude() > ESCAPE_THRESHOLD


@pytest.mark.parametrize("iterations", [1, 2, 10, 1000])
def test_origin_never_escapes(iterations):
    assert escape_trajectory(0j, iterations) == []


def test_period_two_point_is_bounded():
    assert escape_trajectory(-1 + 0j, 50) == []


def test_orbit_records_every_iterate_including_the_escaping_one():
    # z1 = c sits exactly on the threshold, z2 = (1+1i)^2 + c = 1+3i escapes.
    orbit = escape_trajectory(1 + 1j, 50)
    assert orbit == [Complex(1.0, 1.0), Complex(1.0, 3.0)]


def test_escape_on_the_last_permitted_iteration_is_discarded():
    assert escape_trajectory(1 + 1j, 2) == []
    assert len(escape_trajectory(1 + 1j, 3)) == 2


def test_returned_orbits_are_shorter_than_the_bound():
    rng = random.Random(1234)
    iterations = 40
    escaped = 0
    for _ in range(300):
        c = complex(rng.uniform(-2.0, 1.0), rng.uniform(-1.5, 1.5))
        orbit = escape_trajectory(c, iterations)
        if orbit:
            escaped += 1
            assert len(orbit) < iterations
            assert orbit[-1].sqmagnitude() > ESCAPE_THRESHOLD
            assert all(p.sqmagnitude() <= ESCAPE_THRESHOLD for p in orbit[:-1])
    assert escaped > 0


def test_non_positive_bound_is_rejected():
    with pytest.raises(ConfigurationError):
        escape_trajectory(0.5 + 0.5j, 0)


def test_mapper_boundaries():
    assert row_from_real(0.0, 0.0, 4.0, 4) == 0
    assert row_from_real(math.nextafter(4.0, -math.inf), 0.0, 4.0, 4) == 3
    assert row_from_real(4.0, 0.0, 4.0, 4) == 4
    assert col_from_imaginary(-1.0, -1.0, 3.0, 8) == 0
    assert col_from_imaginary(math.nextafter(3.0, -math.inf), -1.0, 3.0, 8) == 7
    assert col_from_imaginary(3.0, -1.0, 3.0, 8) == 8


def test_mapper_is_linear():
    assert row_from_real(0.0, -2.0, 2.0, 4) == 2
    assert col_from_imaginary(0.5, -1.0, 3.0, 8) == 3


def test_window_contains_is_inclusive():
    window = PlaneWindow(-2 - 2j, 1 + 2j)
    assert window.contains(Complex(-2.0, -2.0))
    assert window.contains(Complex(1.0, 2.0))
    assert not window.contains(Complex(1.0000001, 0.0))
    assert not window.contains(Complex(0.0, -2.0000001))


@pytest.mark.parametrize(
    "minimum, maximum",
    [(1 + 0j, 1 + 1j), (0 + 1j, 1 + 1j), (2 + 0j, 1 + 1j), (0j, complex(math.inf, 1.0))],
)
def test_window_rejects_empty_spans(minimum, maximum):
    with pytest.raises(ConfigurationError):
        PlaneWindow(minimum, maximum).validate()
