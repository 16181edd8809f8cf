"""
Persistence of frame tables as a directory of PNG files plus a manifest.

Layout of a cache directory::

    data.json   - the CacheManifest
    0.png       - tile 0, frame 0
    1.png       - tile 0, frame 1
    ...         - numbered tile by tile, frame by frame

PNG is lossless, so reloading re-derives exactly the same palette buffers.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

import PIL.Image
from pydantic import ValidationError

from .cache import FrameTable, build_from_tiles
from .exceptions import EncodeError, LoadError
from .manifest import CacheManifest, ManifestType, TileEntry
from .palette import DEFAULT_PALETTE, Palette, PaletteEncoder

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "data.json"
"Name of the manifest file within a cache directory"

FRAME_FILE_EXTENSION = ".png"
"Extension of the persisted frame images"

STAGING_SUFFIX = ".saving"
"Suffix of the sibling directory a save is written into before it is swapped in"

BACKUP_SUFFIX = ".previous"
"Suffix the replaced cache directory carries until the swap completed"


@dataclass
class StoredCache:
    """
    A cache read back from disk.

    :ivar manifest: The manifest
    :ivar table: The reconstructed frame table, None if nothing was cached
    """

    manifest: CacheManifest
    table: FrameTable | None


class CacheStore:
    """
    Saves and loads frame tables of one manifest type.
    """

    def __init__(
        self,
        manifest_type: ManifestType = ManifestType.URL_ANIMATED_V1,
        palette: Palette = DEFAULT_PALETTE,
    ):
        """
        :param manifest_type: The type tag written to and expected in manifests
        :param palette: The palette used to re-encode loaded frames
        """
        self.manifest_type = manifest_type
        self.palette = palette

    @staticmethod
    def frame_file_name(number: int) -> str:
        """
        Returns the file name of the n-th persisted frame image

        :param number: The running number over all tiles and frames
        :return: The file name
        """
        return f"{number}{FRAME_FILE_EXTENSION}"

    def save(
        self, target_dir: Path | str, manifest: CacheManifest, table: FrameTable | None
    ) -> CacheManifest:
        """
        Writes a frame table and its manifest into a directory.

        All files are written into a sibling staging directory which then
        takes the place of the target directory. If writing fails, the
        previously saved cache stays untouched.

        :param target_dir: The directory, created if missing
        :param manifest: The manifest providing the metadata and map ids. The
            image lists are replaced.
        :param table: The table to store, None to store an empty cache
        :return: The manifest as written
        """
        target_dir = Path(target_dir)
        if len(manifest.mapdata) != manifest.tile_count:
            raise ValueError(
                f"Manifest lists {len(manifest.mapdata)} tiles, "
                f"grid requires {manifest.tile_count}"
            )
        if table is not None:
            if table.tile_count != manifest.tile_count:
                raise ValueError(
                    f"Table has {table.tile_count} tiles, "
                    f"grid requires {manifest.tile_count}"
                )
            if table.tile_pixels != manifest.tile_size:
                raise ValueError(
                    f"Table tile size {table.tile_pixels} does not match "
                    f"manifest tile size {manifest.tile_size}"
                )
        target_dir.parent.mkdir(parents=True, exist_ok=True)
        staging_dir = target_dir.with_name(target_dir.name + STAGING_SUFFIX)
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        staging_dir.mkdir()
        try:
            written, number = self._write_files(staging_dir, manifest, table)
        except Exception:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise
        self._swap_directories(staging_dir, target_dir)
        logger.info("Saved %d frame image(s) to %s", number, target_dir)
        return written

    def _write_files(
        self, folder: Path, manifest: CacheManifest, table: FrameTable | None
    ) -> tuple[CacheManifest, int]:
        number = 0
        entries = []
        for tile, entry in enumerate(manifest.mapdata):
            names = []
            for image in table.images[tile] if table is not None else ():
                name = self.frame_file_name(number)
                image.save(folder / name, format="PNG")
                names.append(name)
                number += 1
            entries.append(TileEntry(map_id=entry.map_id, images=names))
        written = manifest.model_copy(
            update={"type_name": self.manifest_type.value, "mapdata": entries}
        )
        with open(folder / MANIFEST_FILE_NAME, "w", encoding="utf-8") as f:
            json.dump(written.to_dict(), f, indent=2)
        return written, number

    @staticmethod
    def _swap_directories(staging_dir: Path, target_dir: Path) -> None:
        if not target_dir.exists():
            os.replace(staging_dir, target_dir)
            return
        backup_dir = target_dir.with_name(target_dir.name + BACKUP_SUFFIX)
        if backup_dir.exists():
            shutil.rmtree(backup_dir)
        os.replace(target_dir, backup_dir)
        os.replace(staging_dir, target_dir)
        shutil.rmtree(backup_dir)

    def read_manifest(self, source_dir: Path | str) -> CacheManifest:
        """
        Reads and validates the manifest of a cache directory

        :param source_dir: The cache directory
        :return: The manifest
        :raises LoadError: If the manifest is missing, invalid or of
            another type
        """
        path = Path(source_dir) / MANIFEST_FILE_NAME
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as err:
            raise LoadError(f"Could not read manifest {path}: {err}") from err
        if not isinstance(data, dict):
            raise LoadError(f"Invalid manifest {path}")
        if data.get("type") != self.manifest_type.value:
            raise LoadError(f"Invalid manifest type: {data.get('type')!r}")
        try:
            return CacheManifest.from_dict(data)
        except ValidationError as err:
            raise LoadError(f"Invalid manifest {path}: {err}") from err

    def load(
        self, source_dir: Path | str, manifest: CacheManifest | None = None
    ) -> StoredCache:
        """
        Reads the frame images of a cache directory and rebuilds its table.

        :param source_dir: The cache directory
        :param manifest: An already read manifest, read from the directory
            if not provided
        :return: The manifest and the reconstructed table
        :raises LoadError: If a file is missing or unreadable or the grid is
            inconsistent
        """
        source_dir = Path(source_dir)
        if manifest is None:
            manifest = self.read_manifest(source_dir)
        elif manifest.type_name != self.manifest_type.value:
            raise LoadError(f"Invalid manifest type: {manifest.type_name!r}")
        if len(manifest.mapdata) != manifest.tile_count:
            raise LoadError(
                f"Manifest lists {len(manifest.mapdata)} tiles, "
                f"grid {manifest.width}x{manifest.height} requires {manifest.tile_count}"
            )
        frame_counts = {len(entry.images) for entry in manifest.mapdata}
        if len(frame_counts) != 1:
            raise LoadError(f"Tiles differ in frame count: {sorted(frame_counts)}")
        if frame_counts == {0}:
            logger.info("Loaded empty cache from %s", source_dir)
            return StoredCache(manifest=manifest, table=None)
        tile_images = [
            [
                self._read_frame(source_dir, name, manifest.tile_size)
                for name in entry.images
            ]
            for entry in manifest.mapdata
        ]
        encoder = PaletteEncoder(manifest.tile_size, self.palette)
        try:
            table = build_from_tiles(tile_images, encoder)
        except EncodeError as err:
            raise LoadError(f"Could not encode stored frames: {err}") from err
        logger.info(
            "Loaded %d frame(s) for %d tile(s) from %s",
            table.frame_count,
            table.tile_count,
            source_dir,
        )
        return StoredCache(manifest=manifest, table=table)

    @staticmethod
    def _read_frame(source_dir: Path, name: str, tile_size: int) -> PIL.Image.Image:
        if Path(name).name != name:
            raise LoadError(f"Invalid frame file name: {name!r}")
        path = source_dir / name
        try:
            with PIL.Image.open(path) as handle:
                image = handle.convert("RGBA")
        except PIL.Image.DecompressionBombError as err:
            raise LoadError(f"Frame image {path} is too large: {err}") from err
        except (OSError, ValueError, SyntaxError) as err:
            raise LoadError(f"Could not read frame image {path}: {err}") from err
        if image.size != (tile_size, tile_size):
            raise LoadError(
                f"Frame image {path} has size {image.size[0]}x{image.size[1]}, "
                f"expected {tile_size}x{tile_size}"
            )
        return image


__all__ = [
    "CacheStore",
    "StoredCache",
    "MANIFEST_FILE_NAME",
    "FRAME_FILE_EXTENSION",
]
