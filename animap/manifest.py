"""
CacheManifest - Pydantic model of the ``data.json`` file of a persisted cache.

Serialization format:
{
    "type": "animap.url_animated/1",
    "index": 3,
    "url": "https://example.com/animation.gif",
    "width": 2,
    "height": 1,
    "tileSize": 128,
    "creator": "0f8fad5b-d9cb-469f-a165-70867728950e",
    "creationTime": 1700000000000,
    "mapdata": [
        {"mapid": 17, "images": ["0.png", "1.png"]},
        {"mapid": 18, "images": ["2.png", "3.png"]}
    ]
}
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ManifestType(str, Enum):
    """Versioned type tags of persisted caches."""

    URL_ANIMATED_V1 = 'animap.url_animated/1'


class TileEntry(BaseModel):
    """A tile's display surface id and its frame files in playback order."""

    map_id: int = Field(alias='mapid')
    images: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class CacheManifest(BaseModel):
    """
    Describes a persisted animation cache.

    The tile entries are stored in row-major tile order, each listing the
    frame files of that tile with frame 0 first.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
    )

    type_name: str = Field(default=ManifestType.URL_ANIMATED_V1.value, alias='type')
    index: int = Field(default=-1)
    url: str
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    tile_size: int = Field(default=128, ge=1, alias='tileSize')
    creator: str
    creation_time: int = Field(
        default_factory=lambda: int(time.time() * 1000), alias='creationTime'
    )
    mapdata: list[TileEntry] = Field(default_factory=list)

    @property
    def tile_count(self) -> int:
        """The number of tiles of the grid."""
        return self.width * self.height

    @property
    def map_ids(self) -> list[int]:
        """The display surface ids in tile order."""
        return [entry.map_id for entry in self.mapdata]

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the persisted dictionary layout.

        Returns:
            Dict with camelCase keys
        """
        return self.model_dump(by_alias=True, mode='json')

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'CacheManifest':
        """
        Create a manifest from its persisted dictionary layout.

        Args:
            data: The parsed ``data.json`` content

        Returns:
            CacheManifest instance

        Raises:
            pydantic.ValidationError: If fields are missing or invalid
        """
        return cls.model_validate(data)
