"""
Pytest fixtures for animap tests
"""

import io
import uuid

import numpy as np
import PIL.Image
import pytest

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


def _encode_gif(frames, durations, loop=None, **params) -> bytes:
    buffer = io.BytesIO()
    if loop is not None:
        params["loop"] = loop
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=durations,
        **params,
    )
    return buffer.getvalue()


@pytest.fixture
def make_gif():
    """
    Returns a factory creating GIF data with one solid color per frame.

    :return: factory(colors, durations, size=(32, 16), loop=None) -> bytes
    """

    def factory(colors, durations, size=(32, 16), loop=None) -> bytes:
        frames = [PIL.Image.new("RGB", size, color) for color in colors]
        return _encode_gif(frames, list(durations), loop=loop)

    return factory


@pytest.fixture
def three_frame_gif(make_gif) -> bytes:
    """
    A non-looping red, green, blue animation showing each frame 100 ms
    """
    return make_gif([RED, GREEN, BLUE], [100, 100, 100])


@pytest.fixture
def single_frame_gif(make_gif) -> bytes:
    """
    A static, white GIF
    """
    return make_gif([(255, 255, 255)], [0])


@pytest.fixture
def delta_gif() -> bytes:
    """
    A three frame animation in which later frames only change small regions,
    so the encoder stores them as partial frames.
    """
    base = np.zeros((32, 32, 3), dtype=np.uint8)
    base[:, :] = RED
    second = base.copy()
    second[4:12, 4:12] = BLUE
    third = second.copy()
    third[20:28, 20:28] = GREEN
    frames = [PIL.Image.fromarray(pixels) for pixels in (base, second, third)]
    return _encode_gif(frames, [100, 100, 100])


@pytest.fixture
def png_data() -> bytes:
    """
    A static 40x20 PNG, left half red and right half blue
    """
    pixels = np.zeros((20, 40, 4), dtype=np.uint8)
    pixels[:, :20] = RED + (255,)
    pixels[:, 20:] = BLUE + (255,)
    buffer = io.BytesIO()
    PIL.Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def creator() -> uuid.UUID:
    """The identity of the user creating image maps"""
    return uuid.UUID("0f8fad5b-d9cb-469f-a165-70867728950e")
