"""
Color space conversions and pseudo-coloring.

Conversions mutate the buffer in place, update its color tag and return it
so calls can be chained: ``to_rgb(to_hsl(buffer))``.
"""

from typing import List, Tuple

import numpy as np

from improc.exceptions import PreconditionError
from improc.image.buffer import PixelBuffer, ColorSpace
from improc.image.encoding import UINT8

RGBColor = Tuple[int, int, int]

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def to_single_channel(buffer: PixelBuffer) -> PixelBuffer:
    """Return a 1-channel copy of a Gray buffer, keeping the first channel of every pixel."""
    if buffer.color is not ColorSpace.GRAY:
        raise PreconditionError(f"Expected a GRAY buffer, got {buffer.color.name}")
    data = buffer.data[:, :, :1].copy()
    return PixelBuffer(data, buffer.encoding, ColorSpace.GRAY)


def to_three_channels(buffer: PixelBuffer) -> PixelBuffer:
    """Return a 3-channel RGB buffer replicating a 1-channel buffer."""
    buffer.require_channels(1)
    data = np.repeat(buffer.data, 3, axis=2)
    return PixelBuffer(data, buffer.encoding, ColorSpace.RGB)


def _require(buffer: PixelBuffer, color: ColorSpace):
    if buffer.color is not color:
        raise PreconditionError(f"Expected a {color.name} buffer, got {buffer.color.name}")
    buffer.require_channels(3)


def _rgb_to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    _require(buffer, ColorSpace.RGB)

    rgb = buffer.as_f32_array()
    luma = rgb @ LUMA_WEIGHTS
    gray = buffer.encoding.from_f32(luma)

    buffer.data[...] = gray[:, :, np.newaxis]
    buffer.color = ColorSpace.GRAY
    return buffer


def _rgb_to_hsl(buffer: PixelBuffer) -> PixelBuffer:
    buffer.require_channels(3)

    rgb = buffer.as_f32_array()
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    high = rgb.max(axis=2)
    low = rgb.min(axis=2)
    chroma = high - low
    lightness = low + chroma / 2.0

    # Saturation is 0 when lightness sits at either end of [0, 1]
    bound = np.minimum(lightness, 1.0 - lightness)
    saturation = np.zeros_like(lightness)
    np.divide(high - lightness, bound, out=saturation, where=bound > 0)

    safe_chroma = np.where(chroma == 0, 1.0, chroma)
    hue = np.select(
        [chroma == 0, high == r, high == g],
        [0.0,
         60.0 * ((g - b) / safe_chroma),
         60.0 * (2.0 + (b - r) / safe_chroma)],
        default=60.0 * (4.0 + (r - g) / safe_chroma),
    )
    hue = np.mod(hue, 360.0)

    hsl = np.stack([hue / 360.0, np.clip(saturation, 0.0, 1.0), lightness], axis=2)
    buffer.data[...] = buffer.encoding.from_f32(hsl)
    buffer.color = ColorSpace.HSL
    return buffer


def _hsl_to_rgb(buffer: PixelBuffer) -> PixelBuffer:
    _require(buffer, ColorSpace.HSL)

    hsl = buffer.as_f32_array()
    h = hsl[..., 0] * 6.0
    s = hsl[..., 1]
    l = hsl[..., 2]

    c = (1.0 - np.abs(2.0 * l - 1.0)) * s
    x = c * (1.0 - np.abs(np.mod(h, 2.0) - 1.0))
    m = l - c / 2.0
    zero = np.zeros_like(c)

    sectors = [h <= 1.0, h <= 2.0, h <= 3.0, h <= 4.0, h <= 5.0]
    r = np.select(sectors, [c, x, zero, zero, x], default=c)
    g = np.select(sectors, [x, c, c, x, zero], default=zero)
    b = np.select(sectors, [zero, zero, x, c, c], default=x)

    rgb = np.stack([r + m, g + m, b + m], axis=2)
    buffer.data[...] = buffer.encoding.from_f32(rgb)
    buffer.color = ColorSpace.RGB
    return buffer


def _hsl_to_gray(buffer: PixelBuffer) -> PixelBuffer:
    _require(buffer, ColorSpace.HSL)
    return buffer.replace(buffer.data[:, :, 2:3].copy(), ColorSpace.GRAY)


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Convert to Gray in place. RGB keeps its three (identical) channels."""
    if buffer.color is ColorSpace.GRAY:
        return buffer
    if buffer.color is ColorSpace.RGB:
        return _rgb_to_grayscale(buffer)
    return _hsl_to_gray(buffer)


def to_hsl(buffer: PixelBuffer) -> PixelBuffer:
    """Convert to HSL in place; Gray input is treated as achromatic RGB."""
    if buffer.color is ColorSpace.HSL:
        return buffer
    if buffer.color is ColorSpace.GRAY and buffer.channels == 1:
        buffer.replace(np.repeat(buffer.data, 3, axis=2))
    return _rgb_to_hsl(buffer)


def to_rgb(buffer: PixelBuffer) -> PixelBuffer:
    """Convert to RGB in place. Gray input cannot be recolored."""
    if buffer.color is ColorSpace.RGB:
        return buffer
    if buffer.color is ColorSpace.GRAY:
        raise PreconditionError(
            "Unable to recreate color from grayscale, "
            "use to_three_channels or pseudo_color instead"
        )
    return _hsl_to_rgb(buffer)


class Gradient:
    """Piecewise-linear color ramp defined by (color, position) control points."""

    def __init__(self):
        self.colors: List[Tuple[RGBColor, int]] = []

    @classmethod
    def simple(cls, colors: List[RGBColor]) -> "Gradient":
        """Evenly spaced gradient through the given colors."""
        gradient = cls()
        for position, color in enumerate(colors):
            gradient.add(color, position)
        return gradient

    def add(self, color: RGBColor, position: int):
        self.colors.append((tuple(color), int(position)))
        self.colors.sort(key=lambda item: item[1])

    @property
    def min_pos(self) -> int:
        return self.colors[0][1]

    @property
    def max_pos(self) -> int:
        return self.colors[-1][1]

    def get_colors(self, fractions: np.ndarray) -> np.ndarray:
        """Map values in [0, 1] to uint8 RGB triples, shape ``fractions.shape + (3,)``."""
        if not self.colors:
            raise PreconditionError("Gradient has no control points")

        fractions = np.asarray(fractions, dtype=np.float32)
        if np.any((fractions < 0.0) | (fractions > 1.0)):
            raise PreconditionError("Gradient positions must lie in [0, 1]")

        positions = np.array([p for _, p in self.colors], dtype=np.float32)
        table = np.array([c for c, _ in self.colors], dtype=np.float32)
        at = self.min_pos + fractions * (self.max_pos - self.min_pos)

        channels = [np.interp(at, positions, table[:, k]) for k in range(3)]
        return np.stack(channels, axis=-1).astype(np.uint8)

    def get_color(self, fraction: float) -> RGBColor:
        r, g, b = self.get_colors(np.array([fraction]))[0]
        return int(r), int(g), int(b)


def pseudo_color(buffer: PixelBuffer, gradient: Gradient) -> PixelBuffer:
    """Render a single-channel Gray buffer through a gradient into an RGB u8 buffer."""
    if buffer.color is not ColorSpace.GRAY:
        raise PreconditionError("pseudo_color requires a Gray buffer")
    buffer.require_channels(1)

    values = np.clip(buffer.as_f32_array()[:, :, 0], 0.0, 1.0)
    return PixelBuffer(gradient.get_colors(values), UINT8, ColorSpace.RGB)
