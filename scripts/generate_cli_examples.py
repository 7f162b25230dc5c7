from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = [
    "--x-res", "96",
    "--y-res", "96",
    "--samples", "20000",
    "--green-iterations", "200",
    "--blue-iterations", "1000",
    "--seed", "7",
]


@dataclass
class Expected:
    path: Path
    header: str | None = None


@dataclass
class Example:
    name: str
    args: list[str]
    expected: list[Expected]
    clean: list[Path] | None = None

    def full_args(self) -> list[str]:
        return ["python", "render_buddhabrot.py", *self.args]


def _simple(name: str, extra: list[str], filename: str, header: str | None = "P3") -> Example:
    target = EXAMPLES_ROOT / name / filename
    return Example(
        name=name,
        args=[*BASE_ARGS, *extra, "--output", str(target)],
        expected=[Expected(target, header=header)],
        clean=[EXAMPLES_ROOT / name],
    )


EXAMPLES: list[Example] = [
    _simple("x-res", ["--x-res", "160"], "wide.ppm"),
    _simple("y-res", ["--y-res", "64"], "short.ppm"),
    _simple("real-min", ["--real-min", "-1.5"], "cropped-left.ppm"),
    _simple("real-max", ["--real-max", "0.5"], "cropped-right.ppm"),
    _simple("imag-min", ["--imag-min", "0"], "upper-half.ppm"),
    _simple("imag-max", ["--imag-max", "1"], "lower-band.ppm"),
    _simple("red-iterations", ["--red-iterations", "20"], "long-red.ppm"),
    _simple("green-iterations", ["--green-iterations", "50"], "short-green.ppm"),
    _simple("blue-iterations", ["--blue-iterations", "3000"], "long-blue.ppm"),
    _simple("samples", ["--samples", "50000"], "dense.ppm"),
    Example(
        name="samples-per-pixel",
        args=[
            "--x-res", "64",
            "--y-res", "64",
            "--samples-per-pixel", "4",
            "--blue-iterations", "1000",
            "--output", str(EXAMPLES_ROOT / "samples-per-pixel" / "relative.ppm"),
        ],
        expected=[Expected(EXAMPLES_ROOT / "samples-per-pixel" / "relative.ppm", header="P3")],
        clean=[EXAMPLES_ROOT / "samples-per-pixel"],
    ),
    _simple("ceiling", ["--ceiling", "1023"], "ten-bit.ppm"),
    _simple("seed", ["--seed", "12345"], "reseeded.ppm"),
    _simple("batch-size", ["--batch-size", "2500"], "small-batches.ppm"),
    Example(
        name="engine",
        args=[
            "--x-res", "48",
            "--y-res", "48",
            "--samples", "2000",
            "--green-iterations", "100",
            "--blue-iterations", "300",
            "--engine", "python",
            "--output", str(EXAMPLES_ROOT / "engine" / "reference.ppm"),
        ],
        expected=[Expected(EXAMPLES_ROOT / "engine" / "reference.ppm", header="P3")],
        clean=[EXAMPLES_ROOT / "engine"],
    ),
    _simple("format", ["--format", "png"], "pillow.png", header=None),
    _simple("output", [], "custom-name.ppm"),
    _simple("progress-interval", ["--progress-interval", "1"], "chatty.ppm"),
    _simple("verbose", ["--verbose"], "diagnostic.ppm"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    clean = example.clean or []
    _ensure_clean(clean)
    for expected in example.expected:
        expected.path.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    for expected in example.expected:
        if not expected.path.is_file():
            raise RuntimeError(f"Expected file {expected.path} was not created")
        if expected.header is not None:
            with open(expected.path, encoding="ascii") as stream:
                first_line = stream.readline().strip()
            if first_line != expected.header:
                raise RuntimeError(f"{expected.path} starts with {first_line!r}, expected {expected.header!r}")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        completed = subprocess.run(example.full_args(), check=True)
        if completed.returncode != 0:
            raise RuntimeError(f"Example {example.name} failed with {completed.returncode}")
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
