"""Linear and rank filters built on the sliding-window primitive."""

import logging
import math
from typing import Callable, Sequence

import numpy as np

from improc.exceptions import PreconditionError
from improc.image.buffer import PixelBuffer, ColorSpace, normalize
from improc.filtering.window import Padding, sliding_window

logger = logging.getLogger(__name__)

# Row-major 3x3 Sobel kernels, applied as correlations
SOBEL_VERTICAL = np.array([1., 2., 1., 0., 0., 0., -1., -2., -1.], dtype=np.float32)
SOBEL_HORIZONTAL = np.array([1., 0., -1., 2., 0., -2., 1., 0., -1.], dtype=np.float32)


def convolve(buffer: PixelBuffer, half_height: int, half_width: int,
             kernel: Sequence[float], padding: Padding = Padding.REPEAT) -> PixelBuffer:
    """
    Weighted sum over a (2h+1) x (2w+1) window, per channel, in place.

    Args:
        buffer: Buffer to filter; read through a snapshot and overwritten
        half_height: Window half-height h
        half_width: Window half-width w
        kernel: (2h+1)(2w+1) weights in row-major order
        padding: Boundary policy

    Returns:
        The filtered buffer
    """
    kernel = np.asarray(kernel, dtype=np.float32).ravel()
    side_h = 2 * half_height + 1
    side_w = 2 * half_width + 1
    if kernel.size != side_h * side_w:
        raise PreconditionError(
            f"Kernel has {kernel.size} weights, a {side_h}x{side_w} window needs {side_h * side_w}"
        )

    encoding = buffer.encoding
    acc = np.zeros(buffer.shape, dtype=np.float32)
    for wi, wj, samples in sliding_window(buffer, half_height, half_width, padding):
        weight = kernel[wi * side_w + wj]
        if weight != 0.0:
            acc += encoding.to_f32(samples) * weight

    buffer.data[...] = encoding.from_f32(acc)
    return buffer


def non_linear_filter(buffer: PixelBuffer, half_height: int, half_width: int,
                      reduce: Callable[[np.ndarray], np.ndarray],
                      padding: Padding = Padding.REPEAT) -> PixelBuffer:
    """
    Apply a reduction to the samples under the window, per channel, in place.

    ``reduce`` receives an array of shape ``(height, width, channels, n)``
    holding the n window samples of each output sample in row-major window
    order, and must return the ``(height, width, channels)`` result.
    """
    stacked = np.stack(
        [samples for _, _, samples in sliding_window(buffer, half_height, half_width, padding)],
        axis=-1,
    )
    buffer.data[...] = reduce(stacked)
    return buffer


def _middle(samples: np.ndarray) -> np.ndarray:
    ordered = np.sort(samples, axis=-1)
    return ordered[..., ordered.shape[-1] // 2]


def median_filter(buffer: PixelBuffer, window: int,
                  padding: Padding = Padding.REPEAT) -> PixelBuffer:
    """Median over a (2*window+1)^2 neighborhood."""
    return non_linear_filter(buffer, window, window, _middle, padding)


def blur(buffer: PixelBuffer, window: int, padding: Padding = Padding.REPEAT) -> PixelBuffer:
    """Box blur with a uniform (2*window+1)^2 kernel."""
    side = 2 * window + 1
    kernel = np.full(side * side, 1.0 / (side * side), dtype=np.float32)
    return convolve(buffer, window, window, kernel, padding)


def gaussian_kernel(window: int, sigma: float) -> np.ndarray:
    """Flat (2*window+1)^2 Gaussian kernel normalized to sum to 1."""
    if sigma <= 0:
        raise PreconditionError("Gaussian sigma must be positive")

    offsets = np.arange(-window, window + 1, dtype=np.float64)
    rows, cols = np.meshgrid(offsets, offsets, indexing="ij")
    s2 = sigma * sigma
    kernel = np.exp(-(rows ** 2 + cols ** 2) / (2.0 * s2)) / (2.0 * math.pi * s2)
    kernel /= kernel.sum()
    return kernel.ravel().astype(np.float32)


def gaussian_blur(buffer: PixelBuffer, window: int, sigma: float,
                  padding: Padding = Padding.REPEAT) -> PixelBuffer:
    """Convolve with a normalized Gaussian kernel."""
    return convolve(buffer, window, window, gaussian_kernel(window, sigma), padding)


def sobel_gradients(buffer: PixelBuffer):
    """Horizontal and vertical Sobel responses of a buffer as float buffers."""
    gx = convolve(buffer.to_f32(), 1, 1, SOBEL_HORIZONTAL, Padding.REPEAT)
    gy = convolve(buffer.to_f32(), 1, 1, SOBEL_VERTICAL, Padding.REPEAT)
    return gx, gy


def sobel(buffer: PixelBuffer) -> PixelBuffer:
    """Gradient magnitude normalized to [0, 1], as a single-channel float Gray buffer."""
    gx, gy = sobel_gradients(buffer)
    gx.data = np.hypot(gx.data, gy.data).astype(np.float32)
    normalize(gx)

    magnitude = PixelBuffer(gx.data[:, :, :1].copy(), gx.encoding, ColorSpace.GRAY)
    logger.debug("Sobel magnitude computed for %dx%d buffer", buffer.width, buffer.height)
    return magnitude
