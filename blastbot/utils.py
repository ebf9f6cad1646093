"""Small helpers: bit-string formatting and saving image regions."""

from __future__ import annotations

from os import PathLike

from PIL import Image

_MASK64 = (1 << 64) - 1


def int64_to_binary(n: int) -> str:
    """Return the 64-bit two's-complement form of a signed 64-bit integer."""
    if not -(1 << 63) <= n < (1 << 63):
        raise ValueError(f"{n} does not fit in a signed 64-bit integer")
    return format(n & _MASK64, "064b")


def uint64_to_binary(n: int) -> str:
    """Return the 64-bit binary form of an unsigned 64-bit integer."""
    if not 0 <= n <= _MASK64:
        raise ValueError(f"{n} does not fit in an unsigned 64-bit integer")
    return format(n, "064b")


def save_rect_to_file(
    image: Image.Image, box: tuple[int, int, int, int], filename: str | PathLike[str]
) -> None:
    """Save the part of an image inside box (left, top, right, bottom) as PNG.

    The box is clipped to the image first.
    """
    left, top, right, bottom = box
    width, height = image.size
    left, top = max(left, 0), max(top, 0)
    right, bottom = min(right, width), min(bottom, height)
    if right < left:
        right = left
    if bottom < top:
        bottom = top
    image.crop((left, top, right, bottom)).save(filename, format="PNG")