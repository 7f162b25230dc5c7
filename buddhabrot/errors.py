"""Exceptions raised by the Buddhabrot generator."""


class BuddhabrotError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(BuddhabrotError, ValueError):
    """Raised before sampling when the render parameters cannot produce an image."""


class DegenerateResultError(BuddhabrotError, RuntimeError):
    """Raised when no escaping orbit ever landed inside the plane window."""


class GridAllocationError(BuddhabrotError, MemoryError):
    """Raised when the heatmap grids do not fit in memory."""
