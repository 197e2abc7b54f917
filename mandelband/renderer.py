"""Rendering primitives for grayscale Mandelbrot bands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .errors import InvalidBoundsError

ESCAPE_THRESHOLD = 4.0
ESCAPE_LIMIT = 255

BACKENDS = ("python", "tensorflow")
DEFAULT_BACKEND = "tensorflow"

_DEVICE = "/CPU:0"


@dataclass(frozen=True)
class PixelBounds:
    """Dimensions of a row-major raster in pixels."""

    width: int
    height: int

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class Viewport:
    """Axis-aligned rectangle of the complex plane spanned by two corners."""

    upper_left: complex
    lower_right: complex


def check_bounds(bounds: PixelBounds, action: str) -> None:
    """Raise InvalidBoundsError unless both dimensions are positive."""

    if bounds.width <= 0 or bounds.height <= 0:
        raise InvalidBoundsError(f"cannot {action} a {bounds.width}x{bounds.height} raster")


def pixel_to_point(bounds: PixelBounds, pixel: tuple[int, int], viewport: Viewport) -> complex:
    """Map ``pixel`` (column, row) to its point in the complex plane.

    Columns and rows equal to the width or height are accepted and map onto
    the right and bottom edges of ``viewport``; this is how band corners are
    derived.
    """

    check_bounds(bounds, "map pixels onto")

    column, row = pixel
    upper_left = viewport.upper_left
    lower_right = viewport.lower_right
    span_re = lower_right.real - upper_left.real
    span_im = upper_left.imag - lower_right.imag
    return complex(
        upper_left.real + column * span_re / bounds.width,
        upper_left.imag - row * span_im / bounds.height,
    )


def escape_time(c: complex, limit: int = ESCAPE_LIMIT) -> Optional[int]:
    """Return the first iteration at which the orbit of ``c`` leaves radius 2.

    ``None`` means the orbit stayed bounded for ``limit`` iterations. The
    magnitude test runs before each update, so ``z0 = 0`` is always checked
    first.
    """

    z = complex(0.0, 0.0)
    for i in range(limit):
        if z.real * z.real + z.imag * z.imag > ESCAPE_THRESHOLD:
            return i
        z = z * z + c
    return None


def escape_intensity(escape: Optional[int]) -> int:
    """Gray level for an escape result: 0 inside the set, ``255 - i`` outside."""

    if escape is None:
        return 0
    return 255 - escape


@tf.function
def _escape_step(i: tf.Tensor, zr: tf.Tensor, zi: tf.Tensor, cr: tf.Tensor, ci: tf.Tensor,
                 counts: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Record escapes at iteration ``i`` then advance the still bounded orbits."""

    threshold = tf.constant(ESCAPE_THRESHOLD, dtype=zr.dtype)
    escaped = tf.logical_and(active, zr * zr + zi * zi > threshold)
    counts = tf.where(escaped, tf.fill(tf.shape(counts), i), counts)
    active = tf.logical_and(active, tf.logical_not(escaped))

    # Term for term the same as Python's complex multiply.
    zr_new = (zr * zr - zi * zi) + cr
    zi_new = (zr * zi + zi * zr) + ci
    zr = tf.where(active, zr_new, zr)
    zi = tf.where(active, zi_new, zi)
    return zr, zi, counts, active


@tf.function(input_signature=(
    tf.TensorSpec(shape=[None], dtype=tf.float64),
    tf.TensorSpec(shape=[None], dtype=tf.float64),
    tf.TensorSpec(shape=[], dtype=tf.int32),
))
def _escape_run(cr: tf.Tensor, ci: tf.Tensor, limit: tf.Tensor) -> tf.Tensor:
    """Escape iteration per point, or -1 for points that never escape."""

    i = tf.constant(0, dtype=tf.int32)
    zr = tf.zeros_like(cr)
    zi = tf.zeros_like(ci)
    counts = tf.fill(tf.shape(cr), tf.constant(-1, dtype=tf.int32))
    active = tf.ones_like(counts, tf.bool)

    def cond(i, zr, zi, counts, active):
        return tf.logical_and(tf.less(i, limit), tf.reduce_any(active))

    def body(i, zr, zi, counts, active):
        zr, zi, counts, active = _escape_step(i, zr, zi, cr, ci, counts, active)
        return i + 1, zr, zi, counts, active

    _, _, _, counts, _ = tf.while_loop(cond, body, (i, zr, zi, counts, active))
    return counts


def _band_coordinates(bounds: PixelBounds, viewport: Viewport) -> tuple[np.ndarray, np.ndarray]:
    """Row-major real and imaginary parts for every pixel of ``bounds``."""

    upper_left = viewport.upper_left
    lower_right = viewport.lower_right
    span_re = np.float64(lower_right.real - upper_left.real)
    span_im = np.float64(upper_left.imag - lower_right.imag)

    columns = np.arange(bounds.width, dtype=np.float64)
    rows = np.arange(bounds.height, dtype=np.float64)
    re = np.float64(upper_left.real) + columns * span_re / np.float64(bounds.width)
    im = np.float64(upper_left.imag) - rows * span_im / np.float64(bounds.height)
    return np.tile(re, bounds.height), np.repeat(im, bounds.width)


def _render_band_python(pixels: np.ndarray, bounds: PixelBounds, viewport: Viewport) -> None:
    for row in range(bounds.height):
        offset = row * bounds.width
        for column in range(bounds.width):
            point = pixel_to_point(bounds, (column, row), viewport)
            pixels[offset + column] = escape_intensity(escape_time(point, ESCAPE_LIMIT))


def _render_band_tensorflow(pixels: np.ndarray, bounds: PixelBounds, viewport: Viewport) -> None:
    re, im = _band_coordinates(bounds, viewport)
    with tf.device(_DEVICE):
        counts = _escape_run(
            tf.convert_to_tensor(re, dtype=tf.float64),
            tf.convert_to_tensor(im, dtype=tf.float64),
            tf.constant(ESCAPE_LIMIT, dtype=tf.int32),
        ).numpy()
    pixels[:] = np.where(counts < 0, 0, 255 - counts).astype(np.uint8)


def render_band(pixels: np.ndarray, bounds: PixelBounds, viewport: Viewport, *, backend: str = DEFAULT_BACKEND) -> None:
    """Fill ``pixels`` with the gray levels of the band described by ``bounds``.

    ``pixels`` must be a flat uint8 array (usually a view into a larger
    buffer) holding exactly ``bounds.pixel_count`` values. Points are mapped
    with the band's own bounds and viewport, never the whole image's.
    """

    check_bounds(bounds, "render")
    if len(pixels) != bounds.pixel_count:
        raise InvalidBoundsError(
            f"pixel buffer holds {len(pixels)} values but bounds "
            f"{bounds.width}x{bounds.height} need {bounds.pixel_count}"
        )

    if backend == "python":
        _render_band_python(pixels, bounds, viewport)
    elif backend == "tensorflow":
        _render_band_tensorflow(pixels, bounds, viewport)
    else:
        raise ValueError(f"Unknown backend '{backend}'. Valid choices: {', '.join(BACKENDS)}.")
