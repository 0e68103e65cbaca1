"""Pixel buffer data model."""

from enum import Enum
from typing import Optional

import numpy as np

from improc.exceptions import PreconditionError
from improc.image.encoding import (
    SampleEncoding, UINT8, FLOAT32, BOOL, encoding_for_dtype
)


class ColorSpace(Enum):
    """Color space tag carried by every buffer."""
    RGB = "rgb"
    GRAY = "gray"
    HSL = "hsl"


def default_color(channels: int) -> ColorSpace:
    """Tag for untagged data: 3 channels are RGB, anything else Gray."""
    return ColorSpace.RGB if channels == 3 else ColorSpace.GRAY


class PixelBuffer:
    """
    Height x width x channels image with a sample encoding and a color tag.

    Samples live in a contiguous ``(height, width, channels)`` numpy array, so
    ``data.size == height * width * channels`` always holds.
    """

    def __init__(self, data: np.ndarray, encoding: Optional[SampleEncoding] = None,
                 color: Optional[ColorSpace] = None):
        data = np.asarray(data)
        if data.ndim == 2:
            data = data[:, :, np.newaxis]
        if data.ndim != 3:
            raise PreconditionError(
                f"Pixel data must be 2D or 3D, got shape {data.shape}"
            )

        self.encoding = encoding or encoding_for_dtype(data.dtype)
        self.data = np.ascontiguousarray(data, dtype=self.encoding.dtype)
        self.color = color or default_color(self.data.shape[2])

    @classmethod
    def zeros(cls, height: int, width: int, channels: int,
              encoding: SampleEncoding = UINT8,
              color: Optional[ColorSpace] = None) -> "PixelBuffer":
        """Allocate a buffer filled with the encoding's minimum value."""
        data = np.full((height, width, channels), encoding.min_value, dtype=encoding.dtype)
        return cls(data, encoding, color)

    @classmethod
    def ones(cls, height: int, width: int, channels: int,
             encoding: SampleEncoding = UINT8,
             color: Optional[ColorSpace] = None) -> "PixelBuffer":
        """Allocate a buffer filled with the encoding's maximum value."""
        data = np.full((height, width, channels), encoding.max_value, dtype=encoding.dtype)
        return cls(data, encoding, color)

    @classmethod
    def from_array(cls, array: np.ndarray, color: Optional[ColorSpace] = None) -> "PixelBuffer":
        """
        Wrap a numpy array, inferring the encoding from its dtype.

        Without an explicit color, 3-channel arrays are tagged RGB and all
        others Gray.
        """
        array = np.asarray(array)
        return cls(array.copy(), encoding_for_dtype(array.dtype), color)

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def channels(self) -> int:
        return self.data.shape[2]

    @property
    def shape(self):
        return self.data.shape

    @property
    def flat(self) -> np.ndarray:
        """Flat view of every sample in row-major pixel order."""
        return self.data.reshape(-1)

    def pixel(self, x: int, y: int) -> np.ndarray:
        """Return the mutable channel slice of the pixel at column x, row y."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer"
            )
        return self.data[y, x]

    def pixels(self) -> np.ndarray:
        """View of the samples as a ``(height * width, channels)`` array."""
        return self.data.reshape(-1, self.channels)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.data.copy(), self.encoding, self.color)

    def replace(self, data: np.ndarray, color: Optional[ColorSpace] = None) -> "PixelBuffer":
        """Swap in new sample data (same encoding) and optionally a new color tag."""
        if data.ndim == 2:
            data = data[:, :, np.newaxis]
        self.data = np.ascontiguousarray(data, dtype=self.encoding.dtype)
        if color is not None:
            self.color = color
        return self

    def astype(self, encoding: SampleEncoding) -> "PixelBuffer":
        """Return a copy re-encoded through the float domain (u8 and bool go direct)."""
        if encoding is self.encoding:
            return self.copy()
        if encoding is UINT8:
            data = self.encoding.to_u8(self.data)
        elif encoding is BOOL:
            data = self.encoding.to_bool(self.data)
        else:
            data = encoding.from_f32(self.encoding.to_f32(self.data))
        return PixelBuffer(np.array(data, dtype=encoding.dtype), encoding, self.color)

    def to_u8(self) -> "PixelBuffer":
        return self.astype(UINT8)

    def to_f32(self) -> "PixelBuffer":
        return self.astype(FLOAT32)

    def to_bool(self) -> "PixelBuffer":
        return self.astype(BOOL)

    def as_f32_array(self) -> np.ndarray:
        """Samples converted to the float domain (always a new array)."""
        return np.array(self.encoding.to_f32(self.data), dtype=np.float32)

    def as_u8_array(self) -> np.ndarray:
        """Samples converted to the 8-bit domain (always a new array)."""
        return np.array(self.encoding.to_u8(self.data), dtype=np.uint8)

    def require_channels(self, *allowed: int):
        if self.channels not in allowed:
            raise PreconditionError(
                f"Expected {' or '.join(map(str, allowed))} channel(s), got {self.channels}"
            )

    def __repr__(self) -> str:
        return (f"PixelBuffer(height={self.height}, width={self.width}, "
                f"channels={self.channels}, color={self.color.name}, "
                f"encoding={self.encoding.name})")


def normalize(buffer: PixelBuffer) -> PixelBuffer:
    """Divide a float buffer by its maximum sample, in place."""
    if buffer.encoding is not FLOAT32:
        raise PreconditionError("normalize requires a float buffer")

    peak = float(buffer.data.max()) if buffer.data.size else 0.0
    if peak <= 0.0:
        buffer.data[...] = 0.0
    else:
        buffer.data /= np.float32(peak)
    return buffer


def threshold(buffer: PixelBuffer, value) -> PixelBuffer:
    """Binarize a single-channel buffer: True where the sample is above value."""
    buffer.require_channels(1)
    return PixelBuffer(buffer.data > value, BOOL, ColorSpace.GRAY)
