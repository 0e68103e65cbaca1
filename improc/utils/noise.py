"""Synthetic noise for filter evaluation."""

from typing import Optional

import numpy as np
from skimage.util import random_noise

from improc.image.buffer import PixelBuffer


def salt_and_pepper(buffer: PixelBuffer, percentage: float,
                    seed: Optional[int] = None) -> PixelBuffer:
    """
    Replace about ``percentage`` percent of the samples by the minimum or maximum value.

    Every channel sample is corrupted independently, half of the time towards
    the minimum and half towards the maximum. The buffer is modified in place.
    """
    if not 0 <= percentage <= 100:
        raise ValueError(f"percentage must lie in [0, 100], got {percentage}")
    if percentage == 0:
        return buffer

    noisy = random_noise(buffer.as_f32_array(), mode='s&p', amount=percentage / 100.0,
                         salt_vs_pepper=0.5, rng=seed, clip=True)
    buffer.data[...] = buffer.encoding.from_f32(noisy.astype(np.float32))
    return buffer
