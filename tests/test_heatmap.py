import random

import numpy as np
import pytest

from buddhabrot import (
    Complex,
    DegenerateResultError,
    GridAllocationError,
    Heatmap,
    PlaneWindow,
    scale_value,
)

WINDOW = PlaneWindow(Complex(-4.0, -4.0), Complex(4.0, 4.0))


@pytest.fixture
def heatmap():
    return Heatmap(WINDOW, width=8, height=8)


def test_new_heatmap_is_empty(heatmap):
    assert heatmap.grids.shape == (3, 8, 8)
    assert heatmap.grids.dtype == np.uint32
    assert not heatmap.grids.any()
    assert heatmap.max_value == 0


def test_accumulate_bins_real_to_rows_and_imag_to_cols(heatmap):
    assert heatmap.accumulate(Complex(1.0, 3.0), 0)
    assert heatmap.channel(0)[5, 7] == 1
    assert heatmap.channel(0).sum() == 1
    assert heatmap.max_value == 1


def test_accumulate_is_inclusive_on_every_edge(heatmap):
    assert heatmap.accumulate(Complex(-4.0, -4.0), 1)
    assert heatmap.accumulate(Complex(4.0, 4.0), 1)
    assert heatmap.accumulate(Complex(4.0, -4.0), 1)
    assert heatmap.channel(1)[0, 0] == 1
    assert heatmap.channel(1)[7, 7] == 1
    assert heatmap.channel(1)[7, 0] == 1


def test_points_outside_window_are_dropped(heatmap):
    assert not heatmap.accumulate(Complex(4.5, 0.0), 0)
    assert not heatmap.accumulate(1 - 4.01j, 0)
    assert not heatmap.grids.any()
    assert heatmap.max_value == 0


def test_maximum_is_shared_across_channels(heatmap):
    for _ in range(2):
        heatmap.accumulate(Complex(0.0, 0.0), 0)
    for _ in range(3):
        heatmap.accumulate(Complex(-1.0, 2.0), 2)
    assert heatmap.max_value == 3
    heatmap.accumulate(Complex(0.0, 0.0), 0)
    assert heatmap.max_value == 3
    assert heatmap.max_value == int(heatmap.grids.max())


def test_accumulation_is_order_independent():
    rng = random.Random(7)
    points = [complex(rng.uniform(-5, 5), rng.uniform(-5, 5)) for _ in range(500)]
    points += [0.5 + 0.5j] * 20

    first = Heatmap(WINDOW, width=8, height=8)
    for p in points:
        first.accumulate(p, 0)

    shuffled = list(points)
    rng.shuffle(shuffled)
    second = Heatmap(WINDOW, width=8, height=8)
    for p in shuffled:
        second.accumulate(p, 0)

    np.testing.assert_array_equal(first.grids, second.grids)
    assert first.max_value == second.max_value


def test_add_cells_matches_point_accumulation(heatmap):
    other = Heatmap(WINDOW, width=8, height=8)
    cells = []
    for point in (Complex(1.0, 3.0), Complex(1.0, 3.0), Complex(-3.5, 0.0)):
        heatmap.accumulate(point, 2)
        row, col = other.cell_of(point)
        cells.append(row * other.width + col)
    other.add_cells(2, np.array(cells))

    np.testing.assert_array_equal(heatmap.grids, other.grids)
    assert other.max_value == 2


def test_normalized_spans_zero_to_ceiling(heatmap):
    for _ in range(7):
        heatmap.accumulate(Complex(0.0, 0.0), 0)
    heatmap.accumulate(Complex(1.0, 1.0), 1)
    for _ in range(3):
        heatmap.accumulate(Complex(2.0, 2.0), 2)

    normalized = heatmap.normalized(255)
    assert normalized.shape == (3, 8, 8)
    assert normalized.min() >= 0
    assert normalized.max() == 255
    assert normalized[0, 4, 4] == 255
    assert normalized[1, 5, 5] == 255 // 7
    assert normalized[2, 6, 6] == 3 * 255 // 7


def test_scale_value():
    assert scale_value(0, 9, 255) == 0
    assert scale_value(9, 9, 255) == 255
    assert scale_value(3, 9, 255) == 85
    assert scale_value(1, 3, 100) == 33


def test_empty_heatmap_cannot_be_normalized(heatmap):
    with pytest.raises(DegenerateResultError):
        heatmap.normalized()
    with pytest.raises(DegenerateResultError):
        scale_value(0, 0, 255)


def test_oversized_grid_raises_allocation_error():
    with pytest.raises(GridAllocationError):
        Heatmap(WINDOW, width=10 ** 7, height=10 ** 7)


def test_grid_beyond_index_range_raises_allocation_error():
    with pytest.raises(GridAllocationError):
        Heatmap(WINDOW, width=10 ** 10, height=10 ** 10)
