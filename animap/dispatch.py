"""
Render-time access to cached frames.

A single :class:`TileRenderDispatcher` serves every tile of an image map: the
host calls it with a tile index whenever a display surface is drawn.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .cache import AnimationCache


@runtime_checkable
class TickSource(Protocol):
    """Anything providing the current global animation tick."""

    def current_tick(self) -> int:
        """Returns the current tick."""
        ...


@runtime_checkable
class Canvas(Protocol):
    """A display surface which accepts palette indices per pixel."""

    def set_pixel(self, x: int, y: int, color: int) -> None:
        """Sets a single pixel to a palette index."""
        ...


class AnimationClock:
    """
    Shared tick counter, advanced by the host scheduler once per tick.
    """

    def __init__(self, start: int = 0):
        self._tick = start
        self._lock = threading.Lock()

    def current_tick(self) -> int:
        return self._tick

    def advance(self, ticks: int = 1) -> int:
        """
        Moves the clock forward

        :param ticks: The number of ticks
        :return: The new tick
        """
        with self._lock:
            self._tick += ticks
            return self._tick


class TileRenderDispatcher:
    """
    Stateless adapter between the host's render calls and an AnimationCache.
    """

    def __init__(self, cache: AnimationCache, clock: TickSource):
        """
        :param cache: The cache to read from
        :param clock: The shared animation clock
        """
        self.cache = cache
        self.clock = clock

    def colors(self, tile_index: int) -> bytes:
        """
        Returns the buffer of a tile for the clock's current tick

        :param tile_index: The row-major tile index
        :return: The encoded buffer
        """
        return self.cache.lookup(tile_index, self.clock.current_tick())

    def render(self, tile_index: int, canvas: Canvas) -> None:
        """
        Draws the current frame of a tile onto a canvas, row by row

        :param tile_index: The row-major tile index
        :param canvas: The target canvas
        """
        colors = self.colors(tile_index)
        width = self.cache.tile_pixels
        for i, color in enumerate(colors):
            canvas.set_pixel(i % width, i // width, color)


__all__ = ["AnimationClock", "Canvas", "TickSource", "TileRenderDispatcher"]
