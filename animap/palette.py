"""
Reduction of RGBA images to the fixed color palette of the display surfaces.

Each display surface shows one byte per pixel, an index into :class:`Palette`.
The palette consists of a list of base colors, each available in four shades.
The first base color is transparent, so the indices 0 to 3 draw nothing.
"""

from __future__ import annotations

import numpy as np
import PIL.Image

from .exceptions import EncodeError

EMPTY_INDEX = 0
"Palette index of a transparent, empty pixel"

ALPHA_THRESHOLD = 128
"Pixels with an alpha value below this threshold are mapped to EMPTY_INDEX"

SHADE_FACTORS = (180, 220, 255, 135)
"Brightness multipliers (in 1/255) of the four shades of each base color"

BASE_COLORS: tuple[tuple[int, int, int], ...] = (
    (0, 0, 0),  # transparent
    (127, 178, 56),
    (247, 233, 163),
    (199, 199, 199),
    (255, 0, 0),
    (160, 160, 255),
    (167, 167, 167),
    (0, 124, 0),
    (255, 255, 255),
    (164, 168, 184),
    (151, 109, 77),
    (112, 112, 112),
    (64, 64, 255),
    (143, 119, 72),
    (255, 252, 245),
    (216, 127, 51),
    (178, 76, 216),
    (102, 153, 216),
    (229, 229, 51),
    (127, 204, 25),
    (242, 127, 165),
    (76, 76, 76),
    (153, 153, 153),
    (76, 127, 153),
    (127, 63, 178),
    (51, 76, 178),
    (102, 76, 51),
    (102, 127, 51),
    (153, 51, 51),
    (25, 25, 25),
    (250, 238, 77),
    (92, 219, 213),
    (74, 128, 255),
    (0, 217, 58),
    (129, 86, 49),
    (112, 2, 0),
    (209, 177, 161),
    (159, 82, 36),
    (149, 87, 108),
    (112, 108, 138),
    (186, 133, 36),
    (103, 117, 53),
    (160, 77, 78),
    (57, 41, 35),
    (135, 107, 98),
    (87, 92, 92),
    (122, 73, 88),
    (76, 62, 92),
    (76, 50, 35),
    (76, 82, 42),
    (142, 60, 46),
    (37, 22, 16),
    (189, 48, 49),
    (148, 63, 97),
    (92, 25, 29),
    (22, 126, 134),
    (58, 142, 140),
    (86, 44, 62),
    (20, 180, 133),
    (100, 100, 100),
    (216, 175, 147),
    (127, 167, 150),
)

_MATCH_CHUNK = 4096


class Palette:
    """
    A fixed table of representable colors with nearest-color matching.

    Matching uses a red-mean weighted euclidean distance on RGB, which
    approximates perceived color difference far better than plain RGB
    distance. The transparent entries never take part in matching.
    """

    def __init__(
        self,
        base_colors: tuple[tuple[int, int, int], ...] = BASE_COLORS,
        shade_factors: tuple[int, ...] = SHADE_FACTORS,
        transparent_entries: int = 4,
    ):
        """
        :param base_colors: The base colors, the first one is transparent
        :param shade_factors: Brightness multipliers in 1/255 per shade
        :param transparent_entries: Number of leading, transparent entries
        """
        base = np.array(base_colors, dtype=np.int64)
        factors = np.array(shade_factors, dtype=np.int64)
        colors = (base[:, None, :] * factors[None, :, None]) // 255
        self.colors: np.ndarray = colors.reshape(-1, 3).astype(np.uint8)
        "All palette entries as (n, 3) RGB array, indexed by palette index"
        if len(self.colors) > 256:
            raise ValueError("A palette may contain at most 256 entries")
        self.transparent_entries = transparent_entries
        self._candidates = self.colors[transparent_entries:].astype(np.float64)

    def __len__(self) -> int:
        return len(self.colors)

    def color(self, index: int) -> tuple[int, int, int]:
        """
        Returns the RGB value of a palette entry

        :param index: The palette index
        :return: The color as RGB tuple
        """
        return tuple(int(v) for v in self.colors[index])

    def quantize(self, pixel: tuple[int, ...]) -> int:
        """
        Returns the index of the palette entry closest to a single pixel

        :param pixel: An RGB or RGBA tuple
        :return: The palette index
        """
        if len(pixel) == 4 and pixel[3] < ALPHA_THRESHOLD:
            return EMPTY_INDEX
        return int(self._match(np.array([pixel[:3]], dtype=np.float64))[0])

    def quantize_pixels(self, rgba: np.ndarray) -> np.ndarray:
        """
        Maps an array of RGBA pixels onto palette indices

        :param rgba: An (..., 4) uint8 array
        :return: An array of the same leading shape with uint8 indices
        """
        flat = rgba.reshape(-1, 4)
        result = np.full(len(flat), EMPTY_INDEX, dtype=np.uint8)
        opaque = flat[:, 3] >= ALPHA_THRESHOLD
        if np.any(opaque):
            unique, inverse = np.unique(
                flat[opaque, :3], axis=0, return_inverse=True
            )
            matched = np.concatenate(
                [
                    self._match(unique[start : start + _MATCH_CHUNK].astype(np.float64))
                    for start in range(0, len(unique), _MATCH_CHUNK)
                ]
            )
            result[opaque] = matched[inverse.reshape(-1)]
        return result.reshape(rgba.shape[:-1])

    def _match(self, rgb: np.ndarray) -> np.ndarray:
        candidates = self._candidates
        rmean = (rgb[:, None, 0] + candidates[None, :, 0]) / 2.0
        diff = rgb[:, None, :] - candidates[None, :, :]
        weight_r = 2.0 + rmean / 256.0
        weight_b = 2.0 + (255.0 - rmean) / 256.0
        distance = (
            weight_r * diff[..., 0] ** 2
            + 4.0 * diff[..., 1] ** 2
            + weight_b * diff[..., 2] ** 2
        )
        return (np.argmin(distance, axis=1) + self.transparent_entries).astype(
            np.uint8
        )


DEFAULT_PALETTE = Palette()
"The palette of the display surfaces"


class PaletteEncoder:
    """
    Converts square tile images into fixed-length palette index buffers.
    """

    def __init__(self, tile_pixels: int, palette: Palette = DEFAULT_PALETTE):
        """
        :param tile_pixels: The edge length of a tile in pixels
        :param palette: The target palette
        """
        if tile_pixels < 1:
            raise ValueError(f"Invalid tile size: {tile_pixels}")
        self.tile_pixels = tile_pixels
        self.palette = palette
        self._empty = bytes([EMPTY_INDEX]) * self.buffer_length

    @property
    def buffer_length(self) -> int:
        """The number of bytes of each encoded buffer."""
        return self.tile_pixels * self.tile_pixels

    def empty_buffer(self) -> bytes:
        """
        Returns a buffer which shows nothing

        :return: A buffer filled with EMPTY_INDEX
        """
        return self._empty

    def encode(self, image: PIL.Image.Image | np.ndarray) -> bytes:
        """
        Encodes a tile image, one palette index per pixel in row-major order.

        :param image: A PIL image or an (h, w, 3|4) uint8 array
        :return: The buffer of exactly :attr:`buffer_length` bytes
        :raises EncodeError: If the size or pixel format is not supported
        """
        rgba = self._to_rgba(image)
        if rgba.shape[0] != self.tile_pixels or rgba.shape[1] != self.tile_pixels:
            raise EncodeError(
                f"Tile image has size {rgba.shape[1]}x{rgba.shape[0]}, "
                f"expected {self.tile_pixels}x{self.tile_pixels}"
            )
        return self.palette.quantize_pixels(rgba).tobytes()

    @staticmethod
    def _to_rgba(image: PIL.Image.Image | np.ndarray) -> np.ndarray:
        if isinstance(image, PIL.Image.Image):
            if image.mode != "RGBA":
                try:
                    image = image.convert("RGBA")
                except ValueError as err:
                    raise EncodeError(
                        f"Unsupported pixel format: {image.mode}"
                    ) from err
            return np.asarray(image, dtype=np.uint8)
        if isinstance(image, np.ndarray):
            if image.dtype != np.uint8 or image.ndim != 3:
                raise EncodeError(
                    f"Unsupported pixel array: {image.dtype} {image.shape}"
                )
            if image.shape[2] == 4:
                return image
            if image.shape[2] == 3:
                alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
                return np.concatenate([image, alpha], axis=2)
            raise EncodeError(f"Unsupported channel count: {image.shape[2]}")
        raise EncodeError(f"Unsupported image type: {type(image).__name__}")


__all__ = [
    "Palette",
    "PaletteEncoder",
    "DEFAULT_PALETTE",
    "EMPTY_INDEX",
    "ALPHA_THRESHOLD",
]
