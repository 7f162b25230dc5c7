"""Sampling passes that turn escaping orbits into Buddhabrot heatmaps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np
import tensorflow as tf

from .errors import ConfigurationError
from .heatmap import Heatmap
from .orbits import ESCAPE_THRESHOLD, Complex, PlaneWindow, escape_trajectory

CHANNEL_LABELS = ("Red", "Green", "Blue")
ENGINES = ("tensorflow", "python")
DEFAULT_BATCH_SIZE = 20000
DEFAULT_WINDOW = PlaneWindow(Complex(-2.0, -2.0), Complex(1.0, 2.0))

ProgressCallback = Callable[[str, int, int], None]


@dataclass(frozen=True)
class ChannelConfig:
    """Iteration bound and sample count for one colour channel."""

    iterations: int
    samples: int
    label: str = ""

    def validate(self) -> None:
        name = self.label or "channel"
        if self.iterations <= 0:
            raise ConfigurationError(f"{name}: iteration bound must be positive, got {self.iterations}")
        if self.samples <= 0:
            raise ConfigurationError(f"{name}: sample count must be positive, got {self.samples}")


@dataclass(frozen=True)
class RenderParameters:
    """Everything needed to render one Buddhabrot image."""

    window: PlaneWindow
    width: int
    height: int
    channels: tuple[ChannelConfig, ...]
    ceiling: int = 255

    def validate(self) -> None:
        self.window.validate()
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(f"grid resolution must be positive, got {self.width}x{self.height}")
        if len(self.channels) != len(CHANNEL_LABELS):
            raise ConfigurationError(
                f"expected {len(CHANNEL_LABELS)} channel configurations, got {len(self.channels)}"
            )
        for channel in self.channels:
            channel.validate()
        if self.ceiling <= 0:
            raise ConfigurationError(f"output ceiling must be positive, got {self.ceiling}")

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> RenderParameters:
        """Build parameters from ``{window, resolution, channel_configs, ceiling}``."""

        unknown = set(config) - {"window", "resolution", "channel_configs", "ceiling"}
        if unknown:
            raise ConfigurationError(f"unknown configuration fields: {', '.join(sorted(unknown))}")
        missing = {"window", "resolution", "channel_configs"} - set(config)
        if missing:
            raise ConfigurationError(f"missing configuration fields: {', '.join(sorted(missing))}")

        channel_configs = list(config["channel_configs"])
        if len(channel_configs) != len(CHANNEL_LABELS):
            raise ConfigurationError(
                f"expected {len(CHANNEL_LABELS)} channel configurations, got {len(channel_configs)}"
            )
        try:
            minimum, maximum = config["window"]
            width, height = config["resolution"]
            channels = tuple(
                ChannelConfig(iterations=int(iterations), samples=int(samples), label=label)
                for (iterations, samples), label in zip(channel_configs, CHANNEL_LABELS)
            )
            params = cls(
                window=PlaneWindow(minimum, maximum),
                width=int(width),
                height=int(height),
                channels=channels,
                ceiling=int(config.get("ceiling", 255)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"malformed configuration: {exc}") from exc
        params.validate()
        return params


@dataclass(frozen=True)
class RenderResult:
    """Normalised channel grids plus the raw counts they were derived from."""

    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray
    counts: np.ndarray
    max_value: int
    params: RenderParameters


def _sqmagnitude(zs: tf.Tensor) -> tf.Tensor:
    return tf.math.square(tf.math.real(zs)) + tf.math.square(tf.math.imag(zs))


@tf.function
def _escape_step(zs: tf.Tensor, cs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single iteration for candidates whose orbit is still bounded."""

    zs_new = zs * zs + cs
    zs = tf.where(active, zs_new, zs)
    ns = ns + tf.cast(active, tf.int32)
    threshold = tf.constant(ESCAPE_THRESHOLD, dtype=tf.float64)
    new_active = tf.logical_and(active, _sqmagnitude(zs) <= threshold)
    return zs, ns, new_active


@tf.function(reduce_retracing=True)
def _escape_run(cs: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Count the iterations each candidate survives, up to ``max_iterations``."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    zs = tf.zeros_like(cs)
    ns = tf.zeros(tf.shape(cs), dtype=tf.int32)
    active = tf.ones(tf.shape(cs), dtype=tf.bool)

    def cond(i: tf.Tensor, zs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tf.Tensor:
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i: tf.Tensor, zs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
        zs, ns, active = _escape_step(zs, cs, ns, active)
        return i + 1, zs, ns, active

    _, _, ns, _ = tf.while_loop(cond, body, (i, zs, ns, active))
    return ns


@tf.function(reduce_retracing=True)
def _orbit_cells(cs: tf.Tensor, ns: tf.Tensor, bounds: tf.Tensor, shape: tf.Tensor) -> tf.Tensor:
    """Replay escaping orbits and return the flat grid cell of every in-window point.

    ``ns`` holds the escape iteration of each candidate, ``bounds`` is
    ``(min_real, min_imag, max_real, max_imag)`` and ``shape`` is
    ``(height, width)``.
    """

    min_re, min_im, max_re, max_im = bounds[0], bounds[1], bounds[2], bounds[3]
    height, width = shape[0], shape[1]
    row_scale = tf.cast(height, tf.float64) / (max_re - min_re)
    col_scale = tf.cast(width, tf.float64) / (max_im - min_im)
    steps = tf.reduce_max(ns)

    cells = tf.TensorArray(
        tf.int64, size=0, dynamic_size=True, infer_shape=False, element_shape=tf.TensorShape([None])
    )

    def cond(i: tf.Tensor, zs: tf.Tensor, cells: tf.TensorArray) -> tf.Tensor:
        return tf.less(i, steps)

    def body(i: tf.Tensor, zs: tf.Tensor, cells: tf.TensorArray) -> tuple[tf.Tensor, tf.Tensor, tf.TensorArray]:
        live = tf.less(i, ns)
        zs = tf.where(live, zs * zs + cs, zs)
        re = tf.math.real(zs)
        im = tf.math.imag(zs)
        inside = tf.logical_and(
            live,
            tf.logical_and(
                tf.logical_and(re >= min_re, re <= max_re),
                tf.logical_and(im >= min_im, im <= max_im),
            ),
        )
        re = tf.boolean_mask(re, inside)
        im = tf.boolean_mask(im, inside)
        rows = tf.minimum(tf.cast(tf.floor((re - min_re) * row_scale), tf.int64), height - 1)
        cols = tf.minimum(tf.cast(tf.floor((im - min_im) * col_scale), tf.int64), width - 1)
        cells = cells.write(i, rows * width + cols)
        return i + 1, zs, cells

    i = tf.constant(0, dtype=tf.int32)
    _, _, cells = tf.while_loop(cond, body, (i, tf.zeros_like(cs), cells))
    return cells.concat()


def _bin_orbits_python(samples: np.ndarray, iterations: int, heatmap: Heatmap, channel: int) -> int:
    binned = 0
    for c in samples:
        for point in escape_trajectory(complex(c), iterations):
            if heatmap.accumulate(point, channel):
                binned += 1
    return binned


def _bin_orbits_tensorflow(
    samples: np.ndarray,
    iterations: int,
    heatmap: Heatmap,
    channel: int,
    device: Optional[str],
) -> int:
    lo, hi = heatmap.window.minimum, heatmap.window.maximum
    bounds = np.array([lo.real, lo.imag, hi.real, hi.imag], dtype=np.float64)
    shape = np.array([heatmap.height, heatmap.width], dtype=np.int64)

    with tf.device(device if device is not None else "/CPU:0"):
        cs = tf.convert_to_tensor(samples, dtype=tf.complex128)
        ns = _escape_run(cs, tf.constant(iterations, dtype=tf.int32))
        escaped = tf.less(ns, iterations)
        if not bool(tf.reduce_any(escaped)):
            return 0
        cells = _orbit_cells(
            tf.boolean_mask(cs, escaped),
            tf.boolean_mask(ns, escaped),
            tf.convert_to_tensor(bounds),
            tf.convert_to_tensor(shape),
        )

    cells = cells.numpy()
    heatmap.add_cells(channel, cells)
    return int(cells.size)


def bin_orbits(
    samples: Sequence[complex] | np.ndarray,
    iterations: int,
    heatmap: Heatmap,
    channel: int,
    *,
    engine: str = "tensorflow",
    device: Optional[str] = None,
) -> int:
    """Accumulate the escaping orbits of ``samples`` into one heatmap channel.

    Returns the number of orbit points that landed inside the window.
    """

    if iterations <= 0:
        raise ConfigurationError(f"iteration bound must be positive, got {iterations}")
    samples = np.asarray(samples, dtype=np.complex128).ravel()
    if samples.size == 0:
        return 0
    if engine == "python":
        return _bin_orbits_python(samples, iterations, heatmap, channel)
    if engine == "tensorflow":
        return _bin_orbits_tensorflow(samples, iterations, heatmap, channel, device)
    raise ConfigurationError(f"unknown engine '{engine}', expected one of: {', '.join(ENGINES)}")


def generate_channel(
    params: RenderParameters,
    channel: int,
    heatmap: Heatmap,
    rng: np.random.Generator,
    *,
    engine: str = "tensorflow",
    batch_size: int = DEFAULT_BATCH_SIZE,
    progress: Optional[ProgressCallback] = None,
    device: Optional[str] = None,
) -> int:
    """Run the sampling pass of one channel and return the number of binned points."""

    if batch_size <= 0:
        raise ConfigurationError(f"batch size must be positive, got {batch_size}")

    config = params.channels[channel]
    lo, hi = params.window.minimum, params.window.maximum
    done = 0
    binned = 0
    while done < config.samples:
        count = min(batch_size, config.samples - done)
        real = rng.uniform(lo.real, hi.real, count)
        imag = rng.uniform(lo.imag, hi.imag, count)
        binned += bin_orbits(
            real + 1j * imag,
            config.iterations,
            heatmap,
            channel,
            engine=engine,
            device=device,
        )
        done += count
        if progress is not None:
            progress(config.label, done, config.samples)
    return binned


def render_buddhabrot(
    params: RenderParameters,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    engine: str = "tensorflow",
    batch_size: int = DEFAULT_BATCH_SIZE,
    progress: Optional[ProgressCallback] = None,
    device: Optional[str] = None,
) -> RenderResult:
    """Render all channels one after another and normalise them together."""

    params.validate()
    if engine not in ENGINES:
        raise ConfigurationError(f"unknown engine '{engine}', expected one of: {', '.join(ENGINES)}")
    if batch_size <= 0:
        raise ConfigurationError(f"batch size must be positive, got {batch_size}")
    if rng is None:
        rng = np.random.default_rng(seed)

    heatmap = Heatmap(params.window, params.width, params.height, channels=len(params.channels))
    for channel in range(len(params.channels)):
        generate_channel(
            params,
            channel,
            heatmap,
            rng,
            engine=engine,
            batch_size=batch_size,
            progress=progress,
            device=device,
        )

    normalized = heatmap.normalized(params.ceiling)
    return RenderResult(
        red=normalized[0],
        green=normalized[1],
        blue=normalized[2],
        counts=heatmap.grids,
        max_value=heatmap.max_value,
        params=params,
    )


def default_channels(samples: int, iterations: Sequence[int] = (5, 500, 5000)) -> tuple[ChannelConfig, ...]:
    """Red, green and blue channels with increasing iteration bounds."""

    return tuple(
        ChannelConfig(iterations=int(n), samples=int(samples), label=label)
        for n, label in zip(iterations, CHANNEL_LABELS)
    )
