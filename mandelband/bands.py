"""Split a render into horizontal bands and render them in parallel."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .errors import InvalidBoundsError
from .renderer import DEFAULT_BACKEND, PixelBounds, Viewport, check_bounds, pixel_to_point, render_band

DEFAULT_WORKER_COUNT = 8


@dataclass(frozen=True)
class Band:
    """A run of whole image rows together with the viewport it covers."""

    index: int
    top: int
    bounds: PixelBounds
    viewport: Viewport

    @property
    def start(self) -> int:
        return self.top * self.bounds.width

    @property
    def stop(self) -> int:
        return self.start + self.bounds.pixel_count

    @property
    def rows(self) -> range:
        return range(self.top, self.top + self.bounds.height)


def rows_per_band(height: int, worker_count: int) -> int:
    # Integer division plus one rather than a ceiling; band boundaries depend on it.
    return height // worker_count + 1


def partition_bands(bounds: PixelBounds, viewport: Viewport, worker_count: int = DEFAULT_WORKER_COUNT) -> list[Band]:
    """Cut the image into consecutive, non-overlapping bands.

    Every band but the last holds ``rows_per_band(height, worker_count)``
    rows; the last one takes whatever is left. Band viewports are derived
    from the global bounds so that adjacent bands share their edge.
    """

    if worker_count < 1:
        raise ValueError(f"worker_count must be at least 1, got {worker_count}")
    check_bounds(bounds, "partition")

    band_rows = rows_per_band(bounds.height, worker_count)
    chunk = band_rows * bounds.width
    total = bounds.pixel_count

    bands = []
    for index, offset in enumerate(range(0, total, chunk)):
        top = band_rows * index
        height = min(chunk, total - offset) // bounds.width
        upper_left = pixel_to_point(bounds, (0, top), viewport)
        lower_right = pixel_to_point(bounds, (bounds.width, top + height), viewport)
        bands.append(Band(
            index=index,
            top=top,
            bounds=PixelBounds(bounds.width, height),
            viewport=Viewport(upper_left, lower_right),
        ))
    return bands


def render_parallel(
    pixels: np.ndarray,
    bounds: PixelBounds,
    viewport: Viewport,
    *,
    worker_count: int = DEFAULT_WORKER_COUNT,
    backend: str = DEFAULT_BACKEND,
) -> np.ndarray:
    """Render every band of ``pixels`` concurrently and wait for all of them.

    ``pixels`` must be a flat uint8 ndarray; each worker receives a slice
    view of it, so writes land directly in the shared buffer. The first
    worker exception is re-raised once every worker has finished.
    """

    if not isinstance(pixels, np.ndarray):
        raise TypeError(f"pixels must be a numpy array, got {type(pixels).__name__}")
    if len(pixels) != bounds.pixel_count:
        raise InvalidBoundsError(
            f"pixel buffer holds {len(pixels)} values but bounds "
            f"{bounds.width}x{bounds.height} need {bounds.pixel_count}"
        )

    bands = partition_bands(bounds, viewport, worker_count)
    with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="mandelband") as executor:
        futures = [
            executor.submit(render_band, pixels[band.start:band.stop], band.bounds, band.viewport, backend=backend)
            for band in bands
        ]
    for future in futures:
        future.result()
    return pixels


def render_image(
    bounds: PixelBounds,
    viewport: Viewport,
    *,
    worker_count: int = DEFAULT_WORKER_COUNT,
    backend: str = DEFAULT_BACKEND,
) -> np.ndarray:
    """Allocate a pixel buffer for ``bounds`` and render the whole viewport into it."""

    check_bounds(bounds, "render")
    pixels = np.zeros(bounds.pixel_count, dtype=np.uint8)
    return render_parallel(pixels, bounds, viewport, worker_count=worker_count, backend=backend)
