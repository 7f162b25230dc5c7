"""Visit-count grids shared by the three colour channels."""

from __future__ import annotations

import numpy as np

from .errors import DegenerateResultError, GridAllocationError
from .orbits import Complex, PlaneWindow, col_from_imaginary, row_from_real

COUNTER_DTYPE = np.uint32


def scale_value(raw: int, maximum: int, ceiling: int) -> int:
    """Rescale a raw visit count into ``[0, ceiling]``."""

    if maximum <= 0:
        raise DegenerateResultError("cannot normalise a heatmap whose maximum is zero")
    return int(raw) * int(ceiling) // int(maximum)


class Heatmap:
    """Per-channel visit counters over a plane window.

    All channels live in one contiguous ``(channels, height, width)`` buffer and
    share a single running maximum, ``max_value``, which always equals the
    largest cell of any channel. Rows follow the real axis and columns the
    imaginary axis.
    """

    def __init__(self, window: PlaneWindow, width: int, height: int, channels: int = 3):
        self.window = window
        self.width = int(width)
        self.height = int(height)
        self.channels = int(channels)
        try:
            self.grids = np.zeros((self.channels, self.height, self.width), dtype=COUNTER_DTYPE)
        except (MemoryError, ValueError) as exc:
            # numpy reports shapes beyond its index range as ValueError
            raise GridAllocationError(
                f"cannot allocate {self.channels} heatmap grids of {self.width}x{self.height}"
            ) from exc
        self.max_value = 0

    def channel(self, index: int) -> np.ndarray:
        return self.grids[index]

    def cell_of(self, point: Complex) -> tuple[int, int] | None:
        """Return the ``(row, col)`` cell for ``point`` or None when outside the window."""

        if not self.window.contains(point):
            return None
        lo, hi = self.window.minimum, self.window.maximum
        # Points on the maximum edge map one past the grid; fold them back in.
        row = min(row_from_real(point.real, lo.real, hi.real, self.height), self.height - 1)
        col = min(col_from_imaginary(point.imag, lo.imag, hi.imag, self.width), self.width - 1)
        return row, col

    def accumulate(self, point: complex | Complex, channel: int) -> bool:
        cell = self.cell_of(Complex.from_complex(point))
        if cell is None:
            return False
        grid = self.grids[channel]
        grid[cell] += 1
        value = int(grid[cell])
        if value > self.max_value:
            self.max_value = value
        return True

    def add_cells(self, channel: int, cells: np.ndarray) -> None:
        """Increment the cells at the given flat ``row * width + col`` indices."""

        cells = np.asarray(cells, dtype=np.int64).ravel()
        if cells.size == 0:
            return
        unique, hits = np.unique(cells, return_counts=True)
        flat = self.grids[channel].reshape(-1)
        flat[unique] += hits.astype(COUNTER_DTYPE)
        self.max_value = max(self.max_value, int(flat[unique].max()))

    def normalized(self, ceiling: int = 255) -> np.ndarray:
        """Rescale every channel into ``[0, ceiling]`` using the shared maximum."""

        if self.max_value == 0:
            raise DegenerateResultError(
                "no escaping orbit landed inside the plane window; "
                "check the window bounds and iteration limits"
            )
        scaled = self.grids.astype(np.uint64) * np.uint64(ceiling) // np.uint64(self.max_value)
        return scaled.astype(np.int64)
