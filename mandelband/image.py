"""Persist rendered pixel buffers as grayscale images."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
import PIL.Image

from .errors import ImageWriteError, InvalidBoundsError
from .renderer import PixelBounds

DEFAULT_FORMAT = "png"


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def resolve_image_format(path: Path, image_format: Optional[str] = None) -> str:
    """Pick the file format: explicit value, then the path suffix, then PNG."""

    chosen = image_format or path.suffix or DEFAULT_FORMAT
    return chosen.lower().lstrip(".") or DEFAULT_FORMAT


def write_image(path, pixels: np.ndarray, bounds: PixelBounds, image_format: Optional[str] = None) -> Path:
    """Write ``pixels`` to ``path`` as a single channel 8-bit image, top row first."""

    if len(pixels) != bounds.pixel_count:
        raise InvalidBoundsError(
            f"pixel buffer holds {len(pixels)} values but bounds "
            f"{bounds.width}x{bounds.height} need {bounds.pixel_count}"
        )

    output_path = Path(path).expanduser()
    pil_format = _pil_format_name(resolve_image_format(output_path, image_format))
    PIL.Image.init()
    if pil_format not in PIL.Image.SAVE:
        raise ImageWriteError(f"Pillow cannot write {pil_format} images")

    raster = np.asarray(pixels, dtype=np.uint8).reshape(bounds.height, bounds.width)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        PIL.Image.fromarray(raster).save(str(output_path), format=pil_format)
    except (OSError, ValueError, KeyError) as exc:
        raise ImageWriteError(f"could not write {output_path} as {pil_format}: {exc}") from exc
    return output_path
