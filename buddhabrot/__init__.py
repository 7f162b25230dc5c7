"""Public API for Buddhabrot rendering utilities."""

from .errors import BuddhabrotError, ConfigurationError, DegenerateResultError, GridAllocationError
from .heatmap import Heatmap, scale_value
from .orbits import (
    ESCAPE_THRESHOLD,
    Complex,
    PlaneWindow,
    col_from_imaginary,
    escape_trajectory,
    row_from_real,
)
from .ppm import save_ppm, to_image, write_ppm
from .renderer import (
    CHANNEL_LABELS,
    DEFAULT_WINDOW,
    ChannelConfig,
    RenderParameters,
    RenderResult,
    bin_orbits,
    default_channels,
    generate_channel,
    render_buddhabrot,
)

__all__ = [
    "BuddhabrotError",
    "CHANNEL_LABELS",
    "ChannelConfig",
    "Complex",
    "ConfigurationError",
    "DEFAULT_WINDOW",
    "DegenerateResultError",
    "ESCAPE_THRESHOLD",
    "GridAllocationError",
    "Heatmap",
    "PlaneWindow",
    "RenderParameters",
    "RenderResult",
    "bin_orbits",
    "col_from_imaginary",
    "default_channels",
    "escape_trajectory",
    "generate_channel",
    "render_buddhabrot",
    "row_from_real",
    "save_ppm",
    "scale_value",
    "to_image",
    "write_ppm",
]
