# animap - TileList
"""
Splitting of images into a grid of equally sized tiles.

A :class:`TileList` keeps the tile images in row-major order (x varies
fastest) together with the position each tile was cut from, so the tiles can
be merged back into the source image.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import PIL.Image


@dataclass
class TileMeta:
    """Position of a tile within its grid.

    :ivar column: Horizontal grid position
    :ivar row: Vertical grid position
    :ivar size: Edge length in pixels
    :ivar index: Row-major tile index
    """

    column: int = 0
    row: int = 0
    size: int = 0
    index: int = 0

    @property
    def x(self) -> int:
        """Left edge in source pixels."""
        return self.column * self.size

    @property
    def y(self) -> int:
        """Top edge in source pixels."""
        return self.row * self.size

    def to_bbox(self) -> tuple[int, int, int, int]:
        """Return (x1, y1, x2, y2) bounding box tuple."""
        return (self.x, self.y, self.x + self.size, self.y + self.size)


@dataclass
class TileList:
    """The tiles of a single image.

    :ivar images: Tile images, row-major
    :ivar metadata: One TileMeta per image
    :ivar tiles_x: Grid width in tiles
    :ivar tiles_y: Grid height in tiles
    :ivar tile_pixels: Edge length of each tile in pixels
    """

    images: list[PIL.Image.Image] = field(default_factory=list)
    metadata: list[TileMeta] = field(default_factory=list)
    tiles_x: int = 0
    tiles_y: int = 0
    tile_pixels: int = 0

    def __len__(self) -> int:
        return len(self.images)

    def __iter__(self) -> Iterator[PIL.Image.Image]:
        return iter(self.images)

    def __getitem__(self, index: int) -> PIL.Image.Image:
        return self.images[index]

    def add(self, image: PIL.Image.Image, meta: TileMeta) -> None:
        """Add a tile with its position."""
        self.images.append(image)
        self.metadata.append(meta)

    def merge(self) -> PIL.Image.Image:
        """Reassemble the tiles into one image of the full grid size."""
        size = (self.tiles_x * self.tile_pixels, self.tiles_y * self.tile_pixels)
        mode = self.images[0].mode if self.images else "RGBA"
        merged = PIL.Image.new(mode, size)
        for image, meta in zip(self.images, self.metadata):
            merged.paste(image, (meta.x, meta.y))
        return merged


def split_tiles(
    image: PIL.Image.Image, tiles_x: int, tiles_y: int, tile_pixels: int
) -> TileList:
    """
    Cuts an image into a grid of square tiles.

    :param image: The image, exactly tiles_x * tile_pixels pixels wide and
        tiles_y * tile_pixels pixels high
    :param tiles_x: Grid width in tiles
    :param tiles_y: Grid height in tiles
    :param tile_pixels: Edge length of a tile
    :return: The tiles in row-major order
    """
    if tiles_x < 1 or tiles_y < 1 or tile_pixels < 1:
        raise ValueError(f"Invalid tile grid {tiles_x}x{tiles_y} @ {tile_pixels}px")
    expected = (tiles_x * tile_pixels, tiles_y * tile_pixels)
    if image.size != expected:
        raise ValueError(
            f"Image size {image.size[0]}x{image.size[1]} does not match the "
            f"tile grid size {expected[0]}x{expected[1]}"
        )
    tiles = TileList(tiles_x=tiles_x, tiles_y=tiles_y, tile_pixels=tile_pixels)
    for row in range(tiles_y):
        for column in range(tiles_x):
            meta = TileMeta(
                column=column, row=row, size=tile_pixels, index=len(tiles)
            )
            tiles.add(image.crop(meta.to_bbox()), meta)
    return tiles


__all__ = ['TileList', 'TileMeta', 'split_tiles']
