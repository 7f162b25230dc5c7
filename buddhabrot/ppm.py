"""Serialisation of normalised channel grids."""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

import numpy as np
import PIL.Image


def _stack_channels(red: np.ndarray, green: np.ndarray, blue: np.ndarray) -> np.ndarray:
    red, green, blue = (np.asarray(c) for c in (red, green, blue))
    if red.ndim != 2 or red.shape != green.shape or red.shape != blue.shape:
        raise ValueError(
            f"channel grids must share one 2D shape, got {red.shape}, {green.shape}, {blue.shape}"
        )
    return np.stack((red, green, blue), axis=-1)


def write_ppm(stream: TextIO, red: np.ndarray, green: np.ndarray, blue: np.ndarray, ceiling: int = 255) -> None:
    """Write a plain-text (P3) PPM image; pixel ``(row, col)`` is grid cell ``[row][col]``."""

    pixels = _stack_channels(red, green, blue)
    height, width = pixels.shape[:2]
    stream.write("P3\n")
    stream.write(f"{width} {height}\n")
    stream.write(f"{int(ceiling)}\n")
    for row in pixels:
        stream.write("   ".join(f"{int(r)} {int(g)} {int(b)}" for r, g, b in row))
        stream.write("\n")


def save_ppm(path: Path, red: np.ndarray, green: np.ndarray, blue: np.ndarray, ceiling: int = 255) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="ascii") as stream:
        write_ppm(stream, red, green, blue, ceiling)


def to_image(red: np.ndarray, green: np.ndarray, blue: np.ndarray) -> PIL.Image.Image:
    """Build an 8-bit RGB Pillow image from grids already scaled into ``[0, 255]``."""

    pixels = _stack_channels(red, green, blue)
    if pixels.size and (pixels.min() < 0 or pixels.max() > 255):
        raise ValueError("8-bit images need channel values within [0, 255]")
    return PIL.Image.fromarray(pixels.astype(np.uint8))
