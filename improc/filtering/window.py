"""
Sliding-window iteration with boundary padding.

Instead of visiting one output pixel at a time, the window is walked offset by
offset: for every position (wi, wj) of a (2h+1) x (2w+1) window the caller
receives the source samples seen at that offset by *every* output pixel at
once. The samples come from a padded snapshot, so filters can write into the
live buffer while reading unmodified input.
"""

from enum import Enum
from typing import Iterator, Tuple

import numpy as np

from improc.image.buffer import PixelBuffer


class Padding(Enum):
    """How samples outside the buffer are synthesized."""
    ZEROS = "zeros"    # a pixel filled with the encoding's minimum
    REPEAT = "repeat"  # clamp coordinates to the nearest edge


def padded_snapshot(buffer: PixelBuffer, half_height: int, half_width: int,
                    padding: Padding) -> np.ndarray:
    """Copy of the buffer data grown by the window half-sizes on each side."""
    pad = ((half_height, half_height), (half_width, half_width), (0, 0))
    if padding is Padding.REPEAT:
        return np.pad(buffer.data, pad, mode="edge")
    return np.pad(buffer.data, pad, mode="constant",
                  constant_values=buffer.encoding.min_value)


def sliding_window(buffer: PixelBuffer, half_height: int, half_width: int,
                   padding: Padding = Padding.REPEAT) -> Iterator[Tuple[int, int, np.ndarray]]:
    """
    Yield ``(wi, wj, samples)`` for each window offset in row-major order.

    ``samples[i, j]`` is the source pixel at row ``i + wi - half_height`` and
    column ``j + wj - half_width`` (padded when out of bounds), so ``samples``
    has the same ``(height, width, channels)`` shape as the buffer.
    """
    if half_height < 0 or half_width < 0:
        raise ValueError("Window half-sizes must be non-negative")

    source = padded_snapshot(buffer, half_height, half_width, padding)
    height, width = buffer.height, buffer.width

    for wi in range(2 * half_height + 1):
        for wj in range(2 * half_width + 1):
            yield wi, wj, source[wi:wi + height, wj:wj + width]
