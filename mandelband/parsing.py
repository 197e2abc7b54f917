"""Parsers for the command line's dimension and corner arguments."""

from __future__ import annotations

import re
from typing import Callable, Optional, TypeVar

from .renderer import PixelBounds

T = TypeVar("T")

_DIGITS = re.compile(r"[0-9]+")


def parse_pair(text: str, separator: str, convert: Callable[[str], T]) -> Optional[tuple[T, T]]:
    """Split ``text`` at the first ``separator`` and convert both halves.

    Returns ``None`` when the separator is missing or either half fails to
    convert, e.g. ``parse_pair("10,20", ",", int) == (10, 20)`` while
    ``parse_pair("10,", ",", int) is None``. Halves with surrounding
    whitespace or ``_`` digit separators are rejected even though Python's
    own number parsers accept them.
    """

    head, found, tail = text.partition(separator)
    if not found:
        return None
    for half in (head, tail):
        if half != half.strip() or "_" in half:
            return None
    try:
        return convert(head), convert(tail)
    except ValueError:
        return None


def _pixel_count(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"not a pixel count: {text!r}")
    return int(text)


def parse_dimensions(text: str) -> Optional[PixelBounds]:
    """Parse ``"WIDTHxHEIGHT"`` into pixel bounds; both parts are plain decimal digits."""

    pair = parse_pair(text, "x", _pixel_count)
    if pair is None:
        return None
    return PixelBounds(*pair)


def parse_complex(text: str) -> Optional[complex]:
    """Parse ``"RE,IM"`` into a complex number."""

    pair = parse_pair(text, ",", float)
    if pair is None:
        return None
    return complex(*pair)
