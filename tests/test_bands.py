import numpy as np
import pytest

import mandelband.bands
from mandelband import (
    InvalidBoundsError,
    PixelBounds,
    Viewport,
    partition_bands,
    pixel_to_point,
    render_image,
    render_parallel,
    rows_per_band,
)


def test_rows_per_band_keeps_plus_one_rounding():
    assert rows_per_band(750, 8) == 94
    assert rows_per_band(8, 8) == 2
    assert rows_per_band(7, 8) == 1
    assert rows_per_band(16, 4) == 5


@pytest.mark.parametrize("width, height, worker_count", [
    (1, 1, 8),
    (3, 7, 8),
    (5, 8, 8),
    (10, 10, 8),
    (4, 17, 3),
    (1000, 750, 8),
    (9, 64, 1),
    (2, 5, 100),
])
def test_bands_cover_every_row_once(width, height, worker_count):
    bounds = PixelBounds(width, height)
    bands = partition_bands(bounds, Viewport(complex(-2, 1), complex(1, -1)), worker_count)

    covered = [row for band in bands for row in band.rows]
    assert covered == list(range(height))
    assert sum(band.bounds.pixel_count for band in bands) == bounds.pixel_count
    assert all(band.bounds.height > 0 for band in bands)
    assert all(band.bounds.width == width for band in bands)
    assert [band.index for band in bands] == list(range(len(bands)))

    offsets = [(band.start, band.stop) for band in bands]
    assert offsets[0][0] == 0
    assert offsets[-1][1] == bounds.pixel_count
    for (_, stop), (start, _) in zip(offsets, offsets[1:]):
        assert stop == start


def test_band_count_can_be_below_worker_count():
    bands = partition_bands(PixelBounds(4, 10), Viewport(complex(-2, 1), complex(1, -1)), 8)
    assert [band.bounds.height for band in bands] == [2, 2, 2, 2, 2]


def test_last_band_takes_the_remainder():
    bands = partition_bands(PixelBounds(4, 750), Viewport(complex(-2, 1), complex(1, -1)), 8)
    assert [band.bounds.height for band in bands] == [94] * 7 + [92]


def test_band_viewports_follow_the_global_mapping():
    bounds = PixelBounds(40, 30)
    viewport = Viewport(complex(-2.2, 1.3), complex(0.8, -1.3))
    bands = partition_bands(bounds, viewport, 4)

    assert bands[0].viewport.upper_left == viewport.upper_left
    for band in bands:
        assert band.viewport.upper_left == pixel_to_point(bounds, (0, band.top), viewport)
        assert band.viewport.lower_right == pixel_to_point(
            bounds, (bounds.width, band.top + band.bounds.height), viewport)
    for upper, lower in zip(bands, bands[1:]):
        assert upper.viewport.lower_right.imag == lower.viewport.upper_left.imag


def test_partition_rejects_bad_arguments():
    viewport = Viewport(complex(-2, 1), complex(1, -1))
    with pytest.raises(ValueError):
        partition_bands(PixelBounds(4, 4), viewport, 0)
    with pytest.raises(InvalidBoundsError):
        partition_bands(PixelBounds(0, 4), viewport, 8)
    with pytest.raises(InvalidBoundsError):
        partition_bands(PixelBounds(4, 0), viewport, 8)


@pytest.mark.parametrize("backend", ["python", "tensorflow"])
@pytest.mark.parametrize("worker_count", [2, 3, 8, 24, 50])
def test_banded_render_matches_single_band(full_view, backend, worker_count):
    bounds, viewport = full_view
    whole = render_image(bounds, viewport, worker_count=1, backend=backend)
    banded = render_image(bounds, viewport, worker_count=worker_count, backend=backend)

    np.testing.assert_array_equal(banded, whole)


def test_render_image_shape_and_content(full_view):
    bounds, viewport = full_view
    pixels = render_image(bounds, viewport, backend="tensorflow")

    assert pixels.dtype == np.uint8
    assert pixels.shape == (bounds.pixel_count,)
    # (-2, 1.5) escapes at the first update; the centre row crosses the set.
    assert pixels[0] == 254
    centre = pixels[12 * bounds.width:13 * bounds.width]
    assert (centre == 0).any()


def test_render_parallel_fills_buffer_in_place(full_view):
    bounds, viewport = full_view
    pixels = np.full(bounds.pixel_count, 1, dtype=np.uint8)
    result = render_parallel(pixels, bounds, viewport, worker_count=4, backend="tensorflow")

    assert result is pixels
    np.testing.assert_array_equal(pixels, render_image(bounds, viewport, worker_count=1, backend="tensorflow"))


def test_render_parallel_rejects_bad_buffers(full_view):
    bounds, viewport = full_view
    with pytest.raises(TypeError):
        render_parallel(bytearray(bounds.pixel_count), bounds, viewport)
    with pytest.raises(InvalidBoundsError):
        render_parallel(np.zeros(bounds.pixel_count - 1, dtype=np.uint8), bounds, viewport)


def test_worker_failure_fails_the_render(full_view, monkeypatch):
    bounds, viewport = full_view
    real_render_band = mandelband.bands.render_band

    def flaky_render_band(pixels, band_bounds, band_viewport, *, backend):
        if band_viewport.upper_left != viewport.upper_left:
            raise RuntimeError("band failed")
        real_render_band(pixels, band_bounds, band_viewport, backend=backend)

    monkeypatch.setattr(mandelband.bands, "render_band", flaky_render_band)
    with pytest.raises(RuntimeError, match="band failed"):
        render_image(bounds, viewport, worker_count=4, backend="python")


@pytest.mark.parametrize("bounds", [PixelBounds(-4, 4), PixelBounds(4, -4), PixelBounds(-4, -4)])
def test_negative_bounds_are_rejected(bounds):
    viewport = Viewport(complex(-2, 1), complex(1, -1))
    with pytest.raises(InvalidBoundsError):
        partition_bands(bounds, viewport, 8)
    with pytest.raises(InvalidBoundsError):
        render_image(bounds, viewport, backend="python")
    with pytest.raises(InvalidBoundsError):
        pixel_to_point(bounds, (0, 0), viewport)


def test_render_parallel_rejects_negative_bounds_with_matching_length():
    # -4 x -4 still claims 16 pixels.
    with pytest.raises(InvalidBoundsError):
        render_parallel(np.zeros(16, dtype=np.uint8), PixelBounds(-4, -4), Viewport(complex(-2, 1), complex(1, -1)))
