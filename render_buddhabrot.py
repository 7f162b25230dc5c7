import os
import sys
import time
import warnings
from dataclasses import dataclass
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


# Import libraries for simulation
import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

from buddhabrot import (
    BuddhabrotError,
    ChannelConfig,
    Complex,
    PlaneWindow,
    RenderParameters,
    render_buddhabrot,
    save_ppm,
    to_image,
)
from buddhabrot.renderer import CHANNEL_LABELS, DEFAULT_BATCH_SIZE, ENGINES

log("TensorFlow version: %s" % tf.__version__)

# Place the orbit computation on the first visible GPU when there is one and
# fall back to the CPU otherwise.
gpus = tf.config.list_physical_devices('GPU')
if gpus:
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
        DEVICE = '/GPU:0'
        log("GPU found, using %s" % gpus[0].name)
    except RuntimeError as e:
        log(e)
        DEVICE = '/CPU:0'
else:
    DEVICE = '/CPU:0'
    log("No GPU found, using CPU")

from argparse import ArgumentParser


@dataclass
class OutputConfig:
    path: Path
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render a Buddhabrot: the density of escaping orbits of z -> z^2 + c.')

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='number of image columns (imaginary axis)',
                        metavar='X_RES', default=512)

    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='number of image rows (real axis)',
                        metavar='Y_RES', default=512)

    parser.add_argument('--real-min', type=float,
                        dest='real_min', help='lower bound of the window on the real axis',
                        metavar='REAL_MIN', default=-2.0)

    parser.add_argument('--real-max', type=float,
                        dest='real_max', help='upper bound of the window on the real axis',
                        metavar='REAL_MAX', default=1.0)

    parser.add_argument('--imag-min', type=float,
                        dest='imag_min', help='lower bound of the window on the imaginary axis',
                        metavar='IMAG_MIN', default=-2.0)

    parser.add_argument('--imag-max', type=float,
                        dest='imag_max', help='upper bound of the window on the imaginary axis',
                        metavar='IMAG_MAX', default=2.0)

    parser.add_argument('--red-iterations', type=int,
                        dest='red_iterations', help='iteration bound for the red channel (short-lived orbits)',
                        metavar='RED_ITERATIONS', default=5)

    parser.add_argument('--green-iterations', type=int,
                        dest='green_iterations', help='iteration bound for the green channel',
                        metavar='GREEN_ITERATIONS', default=500)

    parser.add_argument('--blue-iterations', type=int,
                        dest='blue_iterations', help='iteration bound for the blue channel (long-lived orbits)',
                        metavar='BLUE_ITERATIONS', default=5000)

    parser.add_argument('--samples', type=int,
                        dest='samples', help='random candidates drawn per channel. Overrides --samples-per-pixel.',
                        metavar='SAMPLES', default=None)

    parser.add_argument('--samples-per-pixel', type=float,
                        dest='samples_per_pixel', help='random candidates per channel, relative to the pixel count',
                        metavar='SAMPLES_PER_PIXEL', default=20.0)

    parser.add_argument('--ceiling', type=int,
                        dest='ceiling', help='maximum channel value of the output image',
                        metavar='CEILING', default=255)

    parser.add_argument('--seed', type=int,
                        dest='seed', help='seed for the random candidate generator',
                        metavar='SEED', default=None)

    parser.add_argument('--batch-size', type=int,
                        dest='batch_size', help='candidates iterated together in one vectorised pass',
                        metavar='BATCH_SIZE', default=DEFAULT_BATCH_SIZE)

    parser.add_argument('--engine', choices=ENGINES, default='tensorflow',
                        help='orbit engine: "tensorflow" (vectorised) or "python" (point by point reference).')

    parser.add_argument('--format', type=str,
                        dest='format', help='image format. "ppm" writes plain-text P3; anything else is handed to Pillow. Default: taken from --output, else "ppm".',
                        metavar='FORMAT', default=None)

    parser.add_argument('--output', dest='output', type=str,
                        help='destination image file. Default: out.<format>.')

    parser.add_argument('--progress-interval', type=float, default=30.0,
                        help='seconds between progress lines (the first one appears after 5 seconds).')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    output_arg = getattr(opt, "output", None)
    image_format = (getattr(opt, "format", None) or "").lower().lstrip(".")

    if output_arg:
        output_path = Path(output_arg).expanduser()
        if str(output_arg).endswith(tuple(filter(None, {os.sep, os.altsep}))) or str(output_arg).endswith("/"):
            parser.error("--output must be a file path.")
        if output_path.exists() and output_path.is_dir():
            parser.error("--output must point to a file, not a directory.")
        suffix = output_path.suffix.lower().lstrip(".")
        if suffix and image_format and suffix != image_format:
            parser.error(f"--output extension .{suffix} does not match --format {image_format}.")
        image_format = image_format or suffix or "ppm"
        if not suffix:
            output_path = output_path.with_suffix(f".{image_format}")
    else:
        image_format = image_format or "ppm"
        output_path = Path(f"out.{image_format}")

    if image_format != "ppm" and opt.ceiling > 255:
        parser.error("--ceiling above 255 is only supported for ppm output.")

    return OutputConfig(path=output_path.expanduser().resolve(), image_format=image_format)


def resolve_sample_count(opt, parser: ArgumentParser) -> int:
    if opt.samples is not None:
        samples = opt.samples
    else:
        samples = int(opt.x_res * opt.y_res * opt.samples_per_pixel)
    if samples <= 0:
        parser.error("the sample count per channel must be positive.")
    return samples


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_image(result, output: OutputConfig) -> None:
    """Write the normalised channels of ``result`` to ``output.path``."""

    if output.image_format == "ppm":
        save_ppm(output.path, result.red, result.green, result.blue, result.params.ceiling)
        return
    image = to_image(result.red, result.green, result.blue)
    output.path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output.path), format=_pil_format_name(output.image_format))


class ProgressReporter:
    """Print channel progress, throttled to one line per ``interval`` seconds."""

    def __init__(self, interval: float = 30.0, first_delay: float = 5.0, clock=time.monotonic):
        self.interval = interval
        self.clock = clock
        self.next_report = clock() + first_delay

    def __call__(self, label: str, done: int, total: int) -> None:
        now = self.clock()
        if done < total and now < self.next_report:
            return
        self.next_report = now + self.interval
        print("{0} Channel: Samples Taken: {1}/{2}".format(label, done, total), end='\r' if done < total else '\n')


def format_elapsed(seconds: float) -> str:
    """Format a duration as "1 Days, 2 Hours, 3 Minutes, 4 Seconds, 5 Milliseconds"."""

    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)

    parts = []
    if hours > 24:
        parts.append(f"{hours // 24} Days")
        parts.append(f"{hours % 24} Hours")
    elif hours > 0:
        parts.append(f"{hours} Hours")
    if minutes > 0:
        parts.append(f"{minutes} Minutes")
    if secs > 0:
        parts.append(f"{secs} Seconds")
    if millis > 0 or not parts:
        parts.append(f"{millis} Milliseconds")
    return ", ".join(parts)


def build_params(opt, samples: int) -> RenderParameters:
    window = PlaneWindow(Complex(opt.real_min, opt.imag_min), Complex(opt.real_max, opt.imag_max))
    iterations = (opt.red_iterations, opt.green_iterations, opt.blue_iterations)
    channels = tuple(
        ChannelConfig(iterations=n, samples=samples, label=label)
        for n, label in zip(iterations, CHANNEL_LABELS)
    )
    return RenderParameters(window=window, width=opt.x_res, height=opt.y_res, channels=channels, ceiling=opt.ceiling)


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    output_config = resolve_output_config(opt, parser)
    samples = resolve_sample_count(opt, parser)
    params = build_params(opt, samples)

    log("Window: [{0}, {1}] x [{2}, {3}]".format(opt.real_min, opt.real_max, opt.imag_min, opt.imag_max))
    log("Resolution: {0}x{1} | Samples per channel: {2}".format(opt.x_res, opt.y_res, samples))
    log("Iterations: red {0}, green {1}, blue {2}".format(opt.red_iterations, opt.green_iterations, opt.blue_iterations))

    start = time.monotonic()
    try:
        result = render_buddhabrot(
            params,
            seed=opt.seed,
            engine=opt.engine,
            batch_size=opt.batch_size,
            progress=ProgressReporter(interval=opt.progress_interval),
            device=DEVICE,
        )
        write_image(result, output_config)
    except BuddhabrotError as exc:
        print("Could not render the Buddhabrot: {0}".format(exc), file=sys.stderr)
        return 1
    except OSError as exc:
        print("Could not write {0}: {1}".format(output_config.path, exc), file=sys.stderr)
        return 1

    log("Maximum visit count: {0}".format(result.max_value))
    print("Time elapsed: {0}".format(format_elapsed(time.monotonic() - start)))
    print("Image written to {0}".format(output_config.path))
    return 0


if __name__ == '__main__':
    sys.exit(main())
