import pytest

from mandelband import PixelBounds, Viewport


@pytest.fixture
def full_view():
    # Steps of 3/32 and 1/8 are exact in binary, so band-local remapping is exact too.
    return PixelBounds(32, 24), Viewport(complex(-2.0, 1.5), complex(1.0, -1.5))
