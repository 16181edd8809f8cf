"""
Tests for resizing frames and splitting them into tiles.
"""

import numpy as np
import PIL.Image
import pytest

from animap import InterpolationMethod, resize, split_tiles
from animap.tiling import TileList, TileMeta


@pytest.fixture
def gradient_image():
    """Create a 3x2 tile grid sized image with unique pixel values."""
    height, width = 2 * 16, 3 * 16
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, 0] = np.arange(width, dtype=np.uint8)[None, :] * 5
    pixels[:, :, 1] = np.arange(height, dtype=np.uint8)[:, None] * 7
    pixels[:, :, 2] = 99
    pixels[:, :, 3] = 255
    return PIL.Image.fromarray(pixels)


class TestResize:
    """Tests for the resampler."""

    @pytest.mark.parametrize("size", [(256, 128), (7, 3), (1, 1), (32, 16), (500, 20)])
    def test_exact_size(self, size):
        """The result always has exactly the requested size."""
        source = PIL.Image.new("RGB", (32, 16), (10, 20, 30))
        result = resize(source, *size)
        assert result.size == size
        assert result.mode == "RGBA"

    def test_deterministic(self, gradient_image):
        """The same input results in byte-identical output."""
        first = resize(gradient_image, 100, 37)
        second = resize(gradient_image, 100, 37)
        assert first.tobytes() == second.tobytes()

    def test_source_unmodified(self, gradient_image):
        """Resizing creates a new image."""
        before = gradient_image.tobytes()
        same_size = resize(gradient_image, *gradient_image.size)
        assert same_size is not gradient_image
        assert same_size.tobytes() == before
        resize(gradient_image, 10, 10)
        assert gradient_image.tobytes() == before

    def test_no_aspect_preservation(self):
        """The image is stretched to fill the target."""
        source = PIL.Image.new("RGB", (10, 10), (0, 0, 255))
        result = resize(source, 40, 5, InterpolationMethod.NEAREST)
        pixels = np.asarray(result)
        assert (pixels[:, :, 2] == 255).all()

    def test_invalid_size(self, gradient_image):
        """Zero or negative sizes are rejected."""
        with pytest.raises(ValueError):
            resize(gradient_image, 0, 10)
        with pytest.raises(ValueError):
            resize(gradient_image, 10, -1)

    def test_interpolation_to_pil(self):
        """Interpolation methods map onto Pillow's resampling filters."""
        assert InterpolationMethod.NEAREST.to_pil() == PIL.Image.Resampling.NEAREST
        assert InterpolationMethod.LINEAR.to_pil() == PIL.Image.Resampling.BILINEAR
        assert InterpolationMethod.CUBIC.to_pil() == PIL.Image.Resampling.BICUBIC
        assert InterpolationMethod.LANCZOS.to_pil() == PIL.Image.Resampling.LANCZOS


class TestSplitTiles:
    """Tests for split_tiles and TileList."""

    @pytest.mark.parametrize("tiles_x,tiles_y,tile_pixels", [(1, 1, 8), (2, 1, 16), (3, 2, 4), (1, 4, 5)])
    def test_count_and_size(self, tiles_x, tiles_y, tile_pixels):
        """The grid yields tiles_x * tiles_y square tiles."""
        image = PIL.Image.new("RGBA", (tiles_x * tile_pixels, tiles_y * tile_pixels))
        tiles = split_tiles(image, tiles_x, tiles_y, tile_pixels)
        assert len(tiles) == tiles_x * tiles_y
        assert all(tile.size == (tile_pixels, tile_pixels) for tile in tiles)

    def test_row_major_order(self, gradient_image):
        """Tiles are ordered row by row with x varying fastest."""
        tiles = split_tiles(gradient_image, 3, 2, 16)
        assert [(m.column, m.row) for m in tiles.metadata] == [
            (0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1),
        ]
        assert [m.index for m in tiles.metadata] == list(range(6))
        # tile 4 is the middle tile of the second row
        expected = np.asarray(gradient_image)[16:32, 16:32]
        assert np.array_equal(np.asarray(tiles[4]), expected)

    def test_merge_restores_image(self, gradient_image):
        """Reassembling the tiles reproduces the source exactly."""
        tiles = split_tiles(gradient_image, 3, 2, 16)
        merged = tiles.merge()
        assert merged.size == gradient_image.size
        assert merged.tobytes() == gradient_image.tobytes()

    def test_size_mismatch(self, gradient_image):
        """The image has to match the grid exactly."""
        with pytest.raises(ValueError):
            split_tiles(gradient_image, 2, 2, 16)
        with pytest.raises(ValueError):
            split_tiles(gradient_image, 0, 2, 16)

    def test_meta_geometry(self):
        """TileMeta derives pixel coordinates from the grid position."""
        meta = TileMeta(column=2, row=1, size=128, index=5)
        assert (meta.x, meta.y) == (256, 128)
        assert meta.to_bbox() == (256, 128, 384, 256)

    def test_empty_list(self):
        """An empty TileList behaves like an empty sequence."""
        tiles = TileList()
        assert len(tiles) == 0
        assert list(tiles) == []
