"""
Tests for the frame table and the animation cache.
"""

import PIL.Image
import pytest

from animap import (
    AnimationCache,
    DEFAULT_PALETTE,
    EMPTY_INDEX,
    FrameTable,
    InterpolationMethod,
    PaletteEncoder,
    build_frame_table,
    decode_timeline,
)
from animap.timeline import Frame, Timeline

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


@pytest.fixture
def built_cache(three_frame_gif):
    """A 2x1 cache with 16 pixel tiles built from the red, green, blue GIF."""
    cache = AnimationCache(2, 1, tile_pixels=16, sample_step=50)
    cache.rebuild(decode_timeline(three_frame_gif))
    return cache


class TestBuildFrameTable:
    """Tests for the build pipeline."""

    def test_full_size_tiles(self, three_frame_gif):
        """100 ms frames sampled at 50 ms give six frames per tile."""
        table = build_frame_table(
            decode_timeline(three_frame_gif), 2, 1, PaletteEncoder(128), step=50
        )
        assert table.tile_count == 2
        assert table.frame_count == 6
        assert table.tile_pixels == 128
        for frames in table.colors:
            assert all(len(buffer) == 128 * 128 for buffer in frames)
        assert all(image.size == (128, 128) for image in table.images[1])

    def test_frame_colors(self, three_frame_gif):
        """Sampled frames follow the source order in every tile."""
        table = build_frame_table(
            decode_timeline(three_frame_gif), 2, 1, PaletteEncoder(16), step=50
        )
        colors = (RED, RED, GREEN, GREEN, BLUE, BLUE)
        expected = [DEFAULT_PALETTE.quantize(c) for c in colors]
        for frames in table.colors:
            assert [buffer[0] for buffer in frames] == expected

    def test_repeated_frames_share_data(self, three_frame_gif):
        """A frame sampled twice is only encoded once."""
        table = build_frame_table(
            decode_timeline(three_frame_gif), 1, 1, PaletteEncoder(8), step=50
        )
        assert table.colors[0][0] is table.colors[0][1]
        assert table.images[0][2] is table.images[0][3]

    def test_spatial_split(self, png_data):
        """Each tile shows its own part of the source."""
        table = build_frame_table(
            decode_timeline(png_data),
            2,
            1,
            PaletteEncoder(8),
            interpolation=InterpolationMethod.NEAREST,
        )
        assert table.frame_count == 1
        assert set(table.colors[0][0]) == {DEFAULT_PALETTE.quantize(RED)}
        assert set(table.colors[1][0]) == {DEFAULT_PALETTE.quantize(BLUE)}


class TestFrameTable:
    """Tests for the FrameTable invariants."""

    def test_uniform_frame_count(self):
        """All tiles need the same number of frames."""
        image = PIL.Image.new("RGBA", (4, 4))
        with pytest.raises(ValueError):
            FrameTable(
                images=((image,), (image, image)),
                colors=((bytes(16),), (bytes(16), bytes(16))),
                tile_pixels=4,
            )

    def test_not_empty(self):
        """A table requires tiles and frames."""
        with pytest.raises(ValueError):
            FrameTable(images=(), colors=(), tile_pixels=4)
        with pytest.raises(ValueError):
            FrameTable(images=((),), colors=((),), tile_pixels=4)


class TestAnimationCache:
    """Tests for AnimationCache."""

    def test_empty_cache(self):
        """An unbuilt cache returns empty buffers for every tile and tick."""
        cache = AnimationCache(2, 2, tile_pixels=8)
        assert not cache.is_built()
        assert cache.frame_count == 0
        for tick in (0, 1, 1000):
            for tile in range(4):
                assert cache.lookup(tile, tick) == bytes([EMPTY_INDEX]) * 64

    def test_lookup_wraps_modulo(self, built_cache):
        """The tick is taken modulo the frame count."""
        assert built_cache.frame_count == 6
        for tile in range(2):
            for tick in range(20):
                assert built_cache.lookup(tile, tick) == built_cache.lookup(tile, tick % 6)
                assert built_cache.lookup(tile, tick) is built_cache.table.colors[tile][tick % 6]

    def test_lookup_out_of_range(self, built_cache):
        """Tiles outside of the grid return the empty buffer."""
        assert built_cache.lookup(2, 0) == bytes(256)
        assert built_cache.lookup(-1, 0) == bytes(256)

    def test_static_image_single_frame(self, single_frame_gif):
        """Static sources result in one frame per tile."""
        cache = AnimationCache(1, 1, tile_pixels=8)
        cache.rebuild(decode_timeline(single_frame_gif))
        assert cache.frame_count == 1
        assert cache.lookup(0, 0) == cache.lookup(0, 12345)

    def test_rebuild_replaces_table(self, built_cache, single_frame_gif):
        """A rebuild publishes a completely new table."""
        previous = built_cache.table
        built_cache.rebuild(decode_timeline(single_frame_gif))
        assert built_cache.table is not previous
        assert built_cache.frame_count == 1

    def test_build_does_not_publish(self, three_frame_gif):
        """Building alone leaves the current table untouched."""
        cache = AnimationCache(2, 1, tile_pixels=8)
        table = cache.build(decode_timeline(three_frame_gif))
        assert table.frame_count == 6
        assert not cache.is_built()

    def test_publish_validates_grid(self, three_frame_gif):
        """Tables of another grid or tile size are rejected."""
        timeline = decode_timeline(three_frame_gif)
        cache = AnimationCache(2, 1, tile_pixels=8)
        with pytest.raises(ValueError):
            cache.publish(AnimationCache(1, 1, tile_pixels=8).build(timeline))
        with pytest.raises(ValueError):
            cache.publish(AnimationCache(2, 1, tile_pixels=16).build(timeline))
        assert not cache.is_built()

    def test_build_from_tiles(self):
        """Pre-tiled images are encoded without resizing."""
        cache = AnimationCache(1, 1, tile_pixels=4)
        white = PIL.Image.new("RGBA", (4, 4), (255, 255, 255, 255))
        clear = PIL.Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        cache.publish(cache.build_from_tiles([[white, clear]]))
        assert cache.lookup(0, 0) == bytes([34]) * 16
        assert cache.lookup(0, 1) == bytes(16)

    def test_invalid_grid(self):
        """Empty grids are rejected."""
        with pytest.raises(ValueError):
            AnimationCache(0, 1)

    def test_looping_source_samples_first_pass(self):
        """A looping source is sampled for one pass only."""
        image = PIL.Image.new("RGBA", (8, 8), (255, 0, 0, 255))
        timeline = Timeline((Frame(image, 100), Frame(image, 100)), loop_count=0)
        cache = AnimationCache(1, 1, tile_pixels=8, sample_step=50)
        assert cache.rebuild(timeline).frame_count == 4
