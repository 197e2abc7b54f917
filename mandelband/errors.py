"""Exceptions raised by the Mandelbrot band renderer."""


class MandelbandError(Exception):
    """Base class for rendering pipeline failures."""


class InvalidBoundsError(MandelbandError, ValueError):
    """Pixel bounds are degenerate or do not match the pixel buffer."""


class ImageWriteError(MandelbandError):
    """The rendered buffer could not be persisted as an image."""
