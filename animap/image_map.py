"""
Implements :class:`AnimatedImageMap`, an animated image from a URL which is
shown on a grid of display surfaces.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Sequence

from .cache import AnimationCache, FrameTable
from .config import settings
from .dispatch import TickSource, TileRenderDispatcher
from .exceptions import LoadError, UpdateError
from .fetch import download
from .manifest import CacheManifest, TileEntry
from .palette import DEFAULT_PALETTE, Palette
from .store import CacheStore
from .timeline import decode_timeline

logger = logging.getLogger(__name__)

Downloader = Callable[[str], bytes]
"Signature of the download capability, raising FetchError on failure"


class AnimatedImageMap:
    """
    An animated image, split over ``width x height`` display surfaces.

    The frames are kept in an :class:`AnimationCache`. :meth:`update`
    downloads and decodes the source again and replaces the cache content
    once the new frames are completely built. Rendering never waits for an
    update and always sees either the old or the new frames.
    """

    def __init__(
        self,
        url: str,
        width: int,
        height: int,
        creator: uuid.UUID | str,
        map_ids: Sequence[int],
        index: int = -1,
        creation_time: int | None = None,
        tile_pixels: int | None = None,
        downloader: Downloader = download,
        palette: Palette = DEFAULT_PALETTE,
        sample_step: int | None = None,
    ):
        """
        :param url: The source URL
        :param width: Grid width in tiles
        :param height: Grid height in tiles
        :param creator: Identity of the creating user
        :param map_ids: The display surface ids, one per tile in row-major order
        :param index: The instance id, defines the storage folder
        :param creation_time: Creation time in epoch milliseconds, now by default
        :param tile_pixels: Edge length of a tile, settings.TILE_PIXELS by default
        :param downloader: The download capability
        :param palette: The palette of the display surfaces
        :param sample_step: Sampling step in milliseconds,
            settings.TICK_INTERVAL_MS by default
        """
        if len(map_ids) != width * height:
            raise ValueError(
                f"{len(map_ids)} map ids passed, grid {width}x{height} "
                f"requires {width * height}"
            )
        self.url = url
        self.width = width
        self.height = height
        self.creator = creator if isinstance(creator, uuid.UUID) else uuid.UUID(creator)
        self.map_ids = list(map_ids)
        self.index = index
        self.creation_time = (
            int(time.time() * 1000) if creation_time is None else creation_time
        )
        self.downloader = downloader
        self.cache = AnimationCache(
            width,
            height,
            tile_pixels=tile_pixels,
            palette=palette,
            sample_step=sample_step,
        )
        self.store = CacheStore(palette=palette)
        self._publish_lock = threading.Lock()
        self._issued_ticket = 0
        self._published_ticket = 0
        self._executor: ThreadPoolExecutor | None = None

    @classmethod
    def create(
        cls,
        url: str,
        width: int,
        height: int,
        creator: uuid.UUID | str,
        map_ids: Sequence[int],
        **params,
    ) -> AnimatedImageMap:
        """
        Creates a new image map and builds its frames

        :param url: The source URL
        :param width: Grid width in tiles
        :param height: Grid height in tiles
        :param creator: Identity of the creating user
        :param map_ids: The display surface ids, one per tile
        :param params: Additional constructor parameters
        :return: The image map
        :raises UpdateError: If the source could not be downloaded or decoded
        """
        image_map = cls(url, width, height, creator, map_ids, **params)
        image_map.update()
        return image_map

    @classmethod
    def load(
        cls,
        folder: Path | str,
        downloader: Downloader = download,
        palette: Palette = DEFAULT_PALETTE,
        sample_step: int | None = None,
    ) -> AnimatedImageMap:
        """
        Restores an image map saved with :meth:`save`

        :param folder: The image map's own folder, containing ``data.json``
        :param downloader: The download capability for later updates
        :param palette: The palette of the display surfaces
        :param sample_step: Sampling step for later updates
        :return: The image map
        :raises LoadError: If the stored data is incomplete or inconsistent
        """
        store = CacheStore(palette=palette)
        stored = store.load(folder)
        manifest = stored.manifest
        try:
            image_map = cls(
                manifest.url,
                manifest.width,
                manifest.height,
                manifest.creator,
                manifest.map_ids,
                index=manifest.index,
                creation_time=manifest.creation_time,
                tile_pixels=manifest.tile_size,
                downloader=downloader,
                palette=palette,
                sample_step=sample_step,
            )
        except ValueError as err:
            raise LoadError(f"Invalid image map data in {folder}: {err}") from err
        if stored.table is not None:
            image_map.cache.publish(stored.table)
        return image_map

    @property
    def tile_count(self) -> int:
        """The number of display surfaces."""
        return self.width * self.height

    def update(self) -> FrameTable:
        """
        Downloads the source again and rebuilds all frames.

        The previous frames stay visible until the new ones are complete. On
        failure they are kept unmodified.

        :return: The new frame table
        :raises UpdateError: FetchError, DecodeError or EncodeError
        """
        with self._publish_lock:
            self._issued_ticket += 1
            ticket = self._issued_ticket
        start = time.perf_counter()
        try:
            data = self.downloader(self.url)
            timeline = decode_timeline(data)
            table = self.cache.build(timeline)
        except UpdateError as err:
            logger.warning("Update of %s failed: %s", self.url, err)
            raise
        with self._publish_lock:
            if ticket < self._published_ticket:
                logger.debug("Discarding outdated update %d of %s", ticket, self.url)
                return self.cache.table
            self.cache.publish(table)
            self._published_ticket = ticket
        logger.info(
            "Updated %s: %d frame(s) on %d tile(s) in %.1f ms",
            self.url,
            table.frame_count,
            table.tile_count,
            (time.perf_counter() - start) * 1000.0,
        )
        return table

    def update_in_background(self, executor: ThreadPoolExecutor | None = None) -> Future:
        """
        Runs :meth:`update` on a worker thread.

        Without an explicit executor the image map's own single worker is used,
        so updates of one image map run one after another.

        :param executor: The executor to run on
        :return: The future of the update, holding the error on failure
        """
        if executor is None:
            with self._publish_lock:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="animap-update"
                    )
                executor = self._executor
        return executor.submit(self.update)

    def close(self) -> None:
        """Shuts the background worker down."""
        with self._publish_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def manifest(self) -> CacheManifest:
        """
        Returns the metadata of this image map without frame files

        :return: The manifest
        """
        return CacheManifest(
            index=self.index,
            url=self.url,
            width=self.width,
            height=self.height,
            tile_size=self.cache.tile_pixels,
            creator=str(self.creator),
            creation_time=self.creation_time,
            mapdata=[TileEntry(map_id=map_id) for map_id in self.map_ids],
        )

    def save(self, data_folder: Path | str | None = None) -> Path:
        """
        Saves the current frames into the folder ``<data_folder>/<index>``

        :param data_folder: The parent folder, settings.DATA_DIR by default
        :return: The image map's folder
        """
        if self.index < 0:
            raise ValueError("The image map has no index assigned")
        data_folder = settings.DATA_DIR if data_folder is None else Path(data_folder)
        folder = data_folder / str(self.index)
        self.store.save(folder, self.manifest(), self.cache.table)
        return folder

    def requires_periodic_animation_service(self) -> bool:
        """Animated maps need a tick for every frame."""
        return True

    def get_raw_animation_colors(self, current_tick: int, tile_index: int) -> bytes:
        """
        Returns the encoded buffer of a tile at a tick

        :param current_tick: The global animation tick
        :param tile_index: The row-major tile index
        :return: The buffer, empty if no frames were built yet
        """
        return self.cache.lookup(tile_index, current_tick)

    def dispatcher(self, clock: TickSource) -> TileRenderDispatcher:
        """
        Creates the render dispatcher to register for all tiles

        :param clock: The shared animation clock
        :return: The dispatcher
        """
        return TileRenderDispatcher(self.cache, clock)


__all__ = ["AnimatedImageMap", "Downloader"]
