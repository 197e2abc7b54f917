"""Public API for banded grayscale Mandelbrot rendering."""

from .errors import ImageWriteError, InvalidBoundsError, MandelbandError
from .renderer import (
    BACKENDS,
    DEFAULT_BACKEND,
    ESCAPE_LIMIT,
    PixelBounds,
    Viewport,
    escape_intensity,
    escape_time,
    pixel_to_point,
    render_band,
)
from .bands import (
    DEFAULT_WORKER_COUNT,
    Band,
    partition_bands,
    render_image,
    render_parallel,
    rows_per_band,
)
from .parsing import parse_complex, parse_dimensions, parse_pair
from .image import write_image

__all__ = [
    "BACKENDS",
    "Band",
    "DEFAULT_BACKEND",
    "DEFAULT_WORKER_COUNT",
    "ESCAPE_LIMIT",
    "ImageWriteError",
    "InvalidBoundsError",
    "MandelbandError",
    "PixelBounds",
    "Viewport",
    "escape_intensity",
    "escape_time",
    "parse_complex",
    "parse_dimensions",
    "parse_pair",
    "partition_bands",
    "pixel_to_point",
    "render_band",
    "render_image",
    "render_parallel",
    "rows_per_band",
    "write_image",
]
