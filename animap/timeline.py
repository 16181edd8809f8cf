"""
Decoding of animated source images into timed frame sequences.

A :class:`Timeline` holds the fully composited frames of a GIF (or the single
frame of a static PNG) together with their display durations and looping
metadata, and maps elapsed time to the frame which is visible at that time.
"""

from __future__ import annotations

import bisect
import io
import itertools
import logging
import struct
from dataclasses import dataclass
from functools import cached_property

import filetype
import PIL.Image
import PIL.ImageSequence

from .exceptions import DecodeError

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = {"image/gif", "image/png"}
"The source formats which can be decoded, one animated and one static"

MIN_FRAME_DURATION = 10
"Minimum display time of a frame in milliseconds (one GIF delay unit)"

NO_FRAME = -1
"Returned by frame lookups once a non-looping animation has ended"

DEFAULT_SAMPLE_STEP = 50
"Default sampling step in milliseconds, one host animation tick"


@dataclass(frozen=True)
class Frame:
    """
    A single decoded frame: the full canvas as RGBA image and the time in
    milliseconds it stays visible.
    """

    image: PIL.Image.Image
    duration: int

    def __post_init__(self):
        if self.duration < 0:
            raise ValueError(f"Frame duration must not be negative: {self.duration}")

    @property
    def display_duration(self) -> int:
        """
        The effective display time. Zero delays are shown for the minimum
        display quantum.
        """
        return max(self.duration, MIN_FRAME_DURATION)


@dataclass(frozen=True)
class Timeline:
    """
    Ordered frames of an animation plus its looping behavior.

    :ivar frames: The frames in playback order
    :ivar loop_count: None if the animation plays once, 0 if it loops forever,
        otherwise the number of additional repetitions
    """

    frames: tuple[Frame, ...]
    loop_count: int | None = None

    def __post_init__(self):
        if len(self.frames) == 0:
            raise ValueError("A timeline requires at least one frame")
        if self.loop_count is not None and self.loop_count < 0:
            raise ValueError(f"Invalid loop count: {self.loop_count}")

    def __len__(self) -> int:
        return len(self.frames)

    @cached_property
    def _frame_ends(self) -> list[int]:
        return list(itertools.accumulate(f.display_duration for f in self.frames))

    @property
    def total_duration(self) -> int:
        """Duration of a single pass through all frames in milliseconds."""
        return self._frame_ends[-1]

    @property
    def loops(self) -> bool:
        """Defines if playback restarts after the last frame."""
        return self.loop_count is not None

    def frame_index_at(self, elapsed: int, first_pass: bool = False) -> int:
        """
        Returns the index of the frame visible after given time.

        Each frame covers the half-open interval from its start to its start
        plus its duration. Past the end of the animation the time wraps around
        if the animation loops, otherwise :data:`NO_FRAME` is returned.

        :param elapsed: The elapsed time in milliseconds
        :param first_pass: If set, looping is ignored and only the first
            pass through the animation is considered
        :return: The frame index or :data:`NO_FRAME`
        """
        if elapsed < 0:
            raise ValueError(f"Elapsed time must not be negative: {elapsed}")
        total = self.total_duration
        if elapsed >= total:
            if first_pass or not self.loops:
                return NO_FRAME
            if self.loop_count and elapsed >= total * (self.loop_count + 1):
                return NO_FRAME
            elapsed %= total
        return bisect.bisect_right(self._frame_ends, elapsed)

    def frame_at(self, elapsed: int, first_pass: bool = False) -> Frame | None:
        """
        Returns the frame visible after given time, see :meth:`frame_index_at`

        :param elapsed: The elapsed time in milliseconds
        :param first_pass: If set, looping is ignored
        :return: The frame or None if playback has ended
        """
        index = self.frame_index_at(elapsed, first_pass=first_pass)
        return None if index == NO_FRAME else self.frames[index]


def decode_timeline(data: bytes) -> Timeline:
    """
    Decodes a GIF or PNG byte stream into a timeline.

    Every frame is returned as the fully composited RGBA canvas, so global and
    local color tables, transparency and the disposal method of the preceding
    frame are already applied.

    :param data: The raw file data
    :return: The decoded timeline
    :raises DecodeError: If the data is no valid, supported image
    """
    kind = filetype.guess(data)
    if kind is None or kind.mime not in SUPPORTED_MIME_TYPES:
        raise DecodeError(
            f"Unsupported image format: {kind.mime if kind else 'unknown signature'}"
        )
    frames = []
    try:
        with PIL.Image.open(io.BytesIO(data)) as handle:
            loop_count = handle.info.get("loop") if kind.mime == "image/gif" else None
            for frame in PIL.ImageSequence.Iterator(handle):
                duration = int(frame.info.get("duration", 0) or 0)
                frames.append(Frame(frame.convert("RGBA"), max(duration, 0)))
    except PIL.Image.DecompressionBombError as err:
        raise DecodeError(f"Image too large: {err}") from err
    except (
        OSError, EOFError, SyntaxError, ValueError, IndexError, struct.error
    ) as err:
        raise DecodeError(f"Invalid or damaged image data: {err}") from err
    if not frames:
        raise DecodeError("Image contains no frames")
    timeline = Timeline(tuple(frames), loop_count=loop_count)
    logger.debug(
        "Decoded %s with %d frame(s), %d ms per pass, loop=%s",
        kind.mime,
        len(frames),
        timeline.total_duration,
        loop_count,
    )
    return timeline


def sample_indices(timeline: Timeline, step: int = DEFAULT_SAMPLE_STEP) -> list[int]:
    """
    Samples the first pass of a timeline at a fixed step.

    :param timeline: The timeline
    :param step: The sampling step in milliseconds
    :return: One frame index per step, starting at time 0
    """
    if step <= 0:
        raise ValueError(f"Sampling step must be positive: {step}")
    indices = []
    for elapsed in itertools.count(0, step):
        index = timeline.frame_index_at(elapsed, first_pass=True)
        if index == NO_FRAME:
            break
        indices.append(index)
    return indices


def sample_frames(
    timeline: Timeline, step: int = DEFAULT_SAMPLE_STEP
) -> list[PIL.Image.Image]:
    """
    Returns the frame image for each sampling step, see :func:`sample_indices`

    :param timeline: The timeline
    :param step: The sampling step in milliseconds
    :return: The sampled images, the same image object may repeat
    """
    return [timeline.frames[i].image for i in sample_indices(timeline, step)]


__all__ = [
    "Frame",
    "Timeline",
    "decode_timeline",
    "sample_indices",
    "sample_frames",
    "NO_FRAME",
    "MIN_FRAME_DURATION",
    "DEFAULT_SAMPLE_STEP",
    "SUPPORTED_MIME_TYPES",
]
