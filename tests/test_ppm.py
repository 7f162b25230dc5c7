import io

import numpy as np
import pytest

from buddhabrot import save_ppm, to_image, write_ppm


def _grids():
    red = np.array([[0, 1, 2], [3, 4, 5]])
    green = red * 10
    blue = np.full((2, 3), 255)
    return red, green, blue


def test_write_ppm_layout():
    stream = io.StringIO()
    write_ppm(stream, *_grids(), ceiling=255)
    lines = stream.getvalue().splitlines()
    assert lines[:3] == ["P3", "3 2", "255"]
    assert len(lines) == 5
    assert lines[3].split() == ["0", "0", "255", "1", "10", "255", "2", "20", "255"]
    assert lines[4].split() == ["3", "30", "255", "4", "40", "255", "5", "50", "255"]


def test_save_ppm_creates_parent_directories(tmp_path):
    target = tmp_path / "nested" / "out.ppm"
    save_ppm(target, *_grids(), ceiling=1023)
    assert target.read_text(encoding="ascii").splitlines()[2] == "1023"


def test_mismatched_grids_are_rejected():
    red, green, blue = _grids()
    with pytest.raises(ValueError):
        write_ppm(io.StringIO(), red, green[:1], blue)


def test_to_image():
    image = to_image(*_grids())
    assert image.mode == "RGB"
    assert image.size == (3, 2)
    assert image.getpixel((2, 1)) == (5, 50, 255)


def test_to_image_rejects_values_above_eight_bits():
    red, green, blue = _grids()
    with pytest.raises(ValueError):
        to_image(red, green, blue + 1)
