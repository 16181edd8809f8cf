"""
Tile-indexed cache of encoded animation frames.

The cache holds a single immutable :class:`FrameTable`. Rebuilding creates a
completely new table and replaces the reference in one assignment, so readers
either see the old or the new table but never a mix of both.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Sequence

import PIL.Image

from .config import settings
from .interpolation import InterpolationMethod
from .palette import DEFAULT_PALETTE, Palette, PaletteEncoder
from .resample import resize
from .tiling import split_tiles
from .timeline import Timeline, sample_indices

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameTable:
    """
    One generation of cached frames.

    :ivar images: Per tile the RGBA tile images, one per sampled frame
    :ivar colors: Per tile the encoded palette buffers, one per sampled frame
    :ivar tile_pixels: Edge length of a tile in pixels
    """

    images: tuple[tuple[PIL.Image.Image, ...], ...]
    colors: tuple[tuple[bytes, ...], ...]
    tile_pixels: int

    def __post_init__(self):
        if len(self.images) != len(self.colors):
            raise ValueError("Image and color tables differ in tile count")
        if len(self.colors) == 0:
            raise ValueError("A frame table requires at least one tile")
        counts = {len(frames) for frames in self.colors}
        counts.update(len(frames) for frames in self.images)
        if len(counts) != 1:
            raise ValueError(f"Tiles differ in frame count: {sorted(counts)}")
        if 0 in counts:
            raise ValueError("A frame table requires at least one frame")

    @property
    def tile_count(self) -> int:
        """The number of tiles."""
        return len(self.colors)

    @property
    def frame_count(self) -> int:
        """The number of frames per tile."""
        return len(self.colors[0])


def build_frame_table(
    timeline: Timeline,
    tiles_x: int,
    tiles_y: int,
    encoder: PaletteEncoder,
    step: int | None = None,
    interpolation: InterpolationMethod = InterpolationMethod.LINEAR,
) -> FrameTable:
    """
    Runs the full pipeline: samples the timeline, resizes each sampled frame
    to the grid size, cuts it into tiles and encodes every tile.

    Frames which are sampled more than once are only processed once.

    :param timeline: The decoded animation
    :param tiles_x: Grid width in tiles
    :param tiles_y: Grid height in tiles
    :param encoder: The palette encoder, defines the tile size
    :param step: The sampling step in milliseconds
    :param interpolation: The resize interpolation
    :return: The new frame table
    """
    step = settings.TICK_INTERVAL_MS if step is None else step
    tile_pixels = encoder.tile_pixels
    width, height = tiles_x * tile_pixels, tiles_y * tile_pixels
    indices = sample_indices(timeline, step)
    processed: dict[int, tuple[list[PIL.Image.Image], list[bytes]]] = {}
    for index in indices:
        if index in processed:
            continue
        frame = resize(timeline.frames[index].image, width, height, interpolation)
        tiles = split_tiles(frame, tiles_x, tiles_y, tile_pixels)
        processed[index] = (tiles.images, [encoder.encode(tile) for tile in tiles])
    tile_count = tiles_x * tiles_y
    images = tuple(
        tuple(processed[index][0][tile] for index in indices)
        for tile in range(tile_count)
    )
    colors = tuple(
        tuple(processed[index][1][tile] for index in indices)
        for tile in range(tile_count)
    )
    return FrameTable(images=images, colors=colors, tile_pixels=tile_pixels)


def build_from_tiles(
    tile_images: Sequence[Sequence[PIL.Image.Image]], encoder: PaletteEncoder
) -> FrameTable:
    """
    Creates a frame table from tile images which were already resized and
    tiled, e.g. after loading them from disk.

    :param tile_images: Per tile the ordered frame images
    :param encoder: The palette encoder
    :return: The new frame table
    """
    images = tuple(tuple(frames) for frames in tile_images)
    colors = tuple(tuple(encoder.encode(image) for image in frames) for frames in images)
    return FrameTable(images=images, colors=colors, tile_pixels=encoder.tile_pixels)


class AnimationCache:
    """
    Answers which encoded buffer a tile shows at a given animation tick.
    """

    def __init__(
        self,
        tiles_x: int,
        tiles_y: int,
        tile_pixels: int | None = None,
        palette: Palette = DEFAULT_PALETTE,
        sample_step: int | None = None,
        interpolation: InterpolationMethod = InterpolationMethod.LINEAR,
    ):
        """
        :param tiles_x: Grid width in tiles
        :param tiles_y: Grid height in tiles
        :param tile_pixels: Edge length of a tile, settings.TILE_PIXELS by default
        :param palette: The palette to encode against
        :param sample_step: Sampling step in milliseconds,
            settings.TICK_INTERVAL_MS by default
        :param interpolation: The resize interpolation
        """
        if tiles_x < 1 or tiles_y < 1:
            raise ValueError(f"Invalid tile grid {tiles_x}x{tiles_y}")
        self.tiles_x = tiles_x
        self.tiles_y = tiles_y
        self.encoder = PaletteEncoder(
            settings.TILE_PIXELS if tile_pixels is None else tile_pixels, palette
        )
        self.sample_step = (
            settings.TICK_INTERVAL_MS if sample_step is None else sample_step
        )
        self.interpolation = interpolation
        self._table: FrameTable | None = None

    @property
    def tile_pixels(self) -> int:
        """Edge length of a tile in pixels."""
        return self.encoder.tile_pixels

    @property
    def tile_count(self) -> int:
        """The number of tiles of the grid."""
        return self.tiles_x * self.tiles_y

    @property
    def table(self) -> FrameTable | None:
        """The currently published table, None if never built."""
        return self._table

    @property
    def frame_count(self) -> int:
        """Frames per tile, 0 if the cache was never built."""
        table = self._table
        return 0 if table is None else table.frame_count

    def is_built(self) -> bool:
        """Returns if a table was published."""
        return self._table is not None

    def build(self, timeline: Timeline) -> FrameTable:
        """
        Builds a table for this cache's grid without publishing it

        :param timeline: The decoded animation
        :return: The new table
        """
        start = time.perf_counter()
        table = build_frame_table(
            timeline,
            self.tiles_x,
            self.tiles_y,
            self.encoder,
            step=self.sample_step,
            interpolation=self.interpolation,
        )
        logger.debug(
            "Built %d frame(s) for %d tile(s) in %.1f ms",
            table.frame_count,
            table.tile_count,
            (time.perf_counter() - start) * 1000.0,
        )
        return table

    def build_from_tiles(
        self, tile_images: Sequence[Sequence[PIL.Image.Image]]
    ) -> FrameTable:
        """
        Builds a table from already tiled images without publishing it

        :param tile_images: Per tile the ordered frame images
        :return: The new table
        """
        return build_from_tiles(tile_images, self.encoder)

    def publish(self, table: FrameTable) -> FrameTable:
        """
        Makes a table the current one.

        :param table: The new table
        :return: The table
        """
        if table.tile_count != self.tile_count:
            raise ValueError(
                f"Table has {table.tile_count} tiles, grid requires {self.tile_count}"
            )
        if table.tile_pixels != self.tile_pixels:
            raise ValueError(
                f"Table tile size {table.tile_pixels} does not match {self.tile_pixels}"
            )
        self._table = table
        return table

    def rebuild(self, timeline: Timeline) -> FrameTable:
        """
        Builds a new table from a timeline and publishes it

        :param timeline: The decoded animation
        :return: The new table
        """
        return self.publish(self.build(timeline))

    def lookup(self, tile_index: int, tick: int) -> bytes:
        """
        Returns the buffer a tile shows at a tick.

        Never raises. If the cache was not built yet or the tile index is
        outside of the grid an empty buffer is returned.

        :param tile_index: The row-major tile index
        :param tick: The global animation tick
        :return: The encoded buffer
        """
        table = self._table
        if table is None or not 0 <= tile_index < table.tile_count:
            return self.encoder.empty_buffer()
        frames = table.colors[tile_index]
        return frames[tick % len(frames)]


__all__ = ["AnimationCache", "FrameTable", "build_frame_table", "build_from_tiles"]
