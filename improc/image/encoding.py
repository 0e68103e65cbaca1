"""
Sample encodings for pixel buffers.

An encoding describes how a single channel sample is stored and how it maps
to the three reference domains: 8-bit integers, normalized floats in [0, 1]
and booleans. Every method works on whole numpy arrays so the per-pixel work
stays vectorized for each concrete encoding.
"""

from abc import ABC, abstractmethod

import numpy as np

INV_255 = 1.0 / 255.0


class SampleEncoding(ABC):
    """Conversion and bound-value contract for a sample representation."""

    name: str = ""
    dtype: np.dtype = None
    min_value = None
    max_value = None

    @abstractmethod
    def to_u8(self, values: np.ndarray) -> np.ndarray:
        """Convert stored samples to uint8."""

    @abstractmethod
    def to_f32(self, values: np.ndarray) -> np.ndarray:
        """Convert stored samples to float32 in [0, 1]."""

    @abstractmethod
    def to_bool(self, values: np.ndarray) -> np.ndarray:
        """Convert stored samples to booleans."""

    @abstractmethod
    def from_u8(self, values: np.ndarray) -> np.ndarray:
        """Build stored samples from uint8 values."""

    @abstractmethod
    def from_f32(self, values: np.ndarray) -> np.ndarray:
        """Build stored samples from float values."""

    @abstractmethod
    def from_bool(self, values: np.ndarray) -> np.ndarray:
        """Build stored samples from booleans."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class UInt8Encoding(SampleEncoding):
    """8-bit unsigned samples in [0, 255]."""

    name = "u8"
    dtype = np.dtype(np.uint8)
    min_value = 0
    max_value = 255

    def to_u8(self, values):
        return np.asarray(values, dtype=np.uint8)

    def to_f32(self, values):
        return np.asarray(values, dtype=np.float32) * np.float32(INV_255)

    def to_bool(self, values):
        return np.asarray(values) != 0

    def from_u8(self, values):
        return np.asarray(values, dtype=np.uint8)

    def from_f32(self, values):
        # Rounding keeps u8 -> f32 -> u8 exact
        scaled = np.rint(np.asarray(values, dtype=np.float32) * 255.0)
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def from_bool(self, values):
        return np.asarray(values, dtype=bool).astype(np.uint8) * np.uint8(255)


class Float32Encoding(SampleEncoding):
    """Normalized float samples, 0.0 is black and 1.0 is white."""

    name = "f32"
    dtype = np.dtype(np.float32)
    min_value = 0.0
    max_value = 1.0

    def to_u8(self, values):
        scaled = np.rint(np.asarray(values, dtype=np.float32) * 255.0)
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def to_f32(self, values):
        return np.asarray(values, dtype=np.float32)

    def to_bool(self, values):
        return np.asarray(values) != 0.0

    def from_u8(self, values):
        return np.asarray(values, dtype=np.float32) * np.float32(INV_255)

    def from_f32(self, values):
        return np.asarray(values, dtype=np.float32)

    def from_bool(self, values):
        return np.asarray(values, dtype=bool).astype(np.float32)


class BoolEncoding(SampleEncoding):
    """Binary samples; False maps to the minimum and True to the maximum."""

    name = "bool"
    dtype = np.dtype(bool)
    min_value = False
    max_value = True

    def to_u8(self, values):
        return np.asarray(values, dtype=bool).astype(np.uint8) * np.uint8(255)

    def to_f32(self, values):
        return np.asarray(values, dtype=bool).astype(np.float32)

    def to_bool(self, values):
        return np.asarray(values, dtype=bool)

    def from_u8(self, values):
        return np.asarray(values) != 0

    def from_f32(self, values):
        return np.asarray(values) != 0.0

    def from_bool(self, values):
        return np.asarray(values, dtype=bool)


UINT8 = UInt8Encoding()
FLOAT32 = Float32Encoding()
BOOL = BoolEncoding()

_BY_DTYPE = {
    UINT8.dtype: UINT8,
    FLOAT32.dtype: FLOAT32,
    BOOL.dtype: BOOL,
}


def encoding_for_dtype(dtype) -> SampleEncoding:
    """Return the encoding that stores samples with the given numpy dtype."""
    dtype = np.dtype(dtype)
    if dtype in _BY_DTYPE:
        return _BY_DTYPE[dtype]
    if np.issubdtype(dtype, np.floating):
        return FLOAT32
    raise ValueError(f"No sample encoding for dtype {dtype}")
