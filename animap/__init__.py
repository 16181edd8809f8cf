"""
animap - Tiled, palette-encoded animation caches for animated images
"""

from .exceptions import (
    AnimapError,
    UpdateError,
    FetchError,
    DecodeError,
    EncodeError,
    LoadError,
)
from .interpolation import InterpolationMethod
from .timeline import (
    Frame,
    Timeline,
    decode_timeline,
    sample_frames,
    sample_indices,
    NO_FRAME,
)
from .resample import resize
from .tiling import TileList, TileMeta, split_tiles
from .palette import Palette, PaletteEncoder, DEFAULT_PALETTE, EMPTY_INDEX
from .cache import AnimationCache, FrameTable, build_frame_table, build_from_tiles
from .manifest import CacheManifest, ManifestType, TileEntry
from .store import CacheStore, StoredCache
from .dispatch import AnimationClock, TileRenderDispatcher
from .fetch import download
from .image_map import AnimatedImageMap

__all__ = [
    # Errors
    "AnimapError",
    "UpdateError",
    "FetchError",
    "DecodeError",
    "EncodeError",
    "LoadError",
    # Decoding
    "Frame",
    "Timeline",
    "decode_timeline",
    "sample_frames",
    "sample_indices",
    "NO_FRAME",
    # Resizing and tiling
    "InterpolationMethod",
    "resize",
    "TileList",
    "TileMeta",
    "split_tiles",
    # Palette
    "Palette",
    "PaletteEncoder",
    "DEFAULT_PALETTE",
    "EMPTY_INDEX",
    # Cache
    "AnimationCache",
    "FrameTable",
    "build_frame_table",
    "build_from_tiles",
    # Persistence
    "CacheManifest",
    "ManifestType",
    "TileEntry",
    "CacheStore",
    "StoredCache",
    # Rendering
    "AnimationClock",
    "TileRenderDispatcher",
    # Image maps
    "download",
    "AnimatedImageMap",
]

__version__ = "0.1.0"
