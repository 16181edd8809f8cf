"""
Defines the interpolation methods which can be used when resizing frames.
"""

from __future__ import annotations

from enum import IntEnum

import PIL.Image


class InterpolationMethod(IntEnum):
    """
    Enumeration of the supported interpolation methods
    """

    NEAREST = 0
    "Nearest neighbor, keeps hard pixel edges"
    LINEAR = 1
    "Bilinear interpolation on a 2x2 environment"
    CUBIC = 2
    "Bicubic interpolation on a 4x4 environment"
    LANCZOS = 3
    "Lanczos filter, best quality for downscaling"

    def to_pil(self) -> PIL.Image.Resampling:
        """
        Returns the matching Pillow resampling method

        :return: The Pillow constant
        """
        return {
            InterpolationMethod.NEAREST: PIL.Image.Resampling.NEAREST,
            InterpolationMethod.LINEAR: PIL.Image.Resampling.BILINEAR,
            InterpolationMethod.CUBIC: PIL.Image.Resampling.BICUBIC,
            InterpolationMethod.LANCZOS: PIL.Image.Resampling.LANCZOS,
        }[self]
