"""
Resizing of frames to the exact pixel size of a tile grid.
"""

from __future__ import annotations

import PIL.Image

from .interpolation import InterpolationMethod


def resize(
    image: PIL.Image.Image,
    width: int,
    height: int,
    interpolation: InterpolationMethod = InterpolationMethod.LINEAR,
) -> PIL.Image.Image:
    """
    Returns an image stretched to exactly the given resolution.

    The aspect ratio is not preserved. The result is a new image, the source
    stays unmodified, even if it already has the requested size.

    :param image: The source image
    :param width: The target width in pixels
    :param height: The target height in pixels
    :param interpolation: The interpolation method
    :return: The resized image
    """
    if width < 1 or height < 1:
        raise ValueError(f"Invalid target size {width}x{height}")
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    if image.size == (width, height):
        return image.copy()
    return image.resize((width, height), resample=interpolation.to_pil())


__all__ = ["resize"]
