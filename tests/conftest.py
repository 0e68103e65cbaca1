"""Shared synthetic images for the test suite."""

import numpy as np
import pytest

from improc.image.buffer import PixelBuffer


def block_canvas(size: int = 220, blocks: int = 80, seed: int = 7) -> np.ndarray:
    """Dark uint8 canvas sprinkled with small bright 3x3 blocks."""
    rng = np.random.default_rng(seed)
    canvas = np.zeros((size, size), dtype=np.uint8)
    for (y, x), value in zip(rng.integers(0, size - 3, size=(blocks, 2)),
                             rng.integers(120, 256, size=blocks)):
        canvas[y:y + 3, x:x + 3] = value
    return canvas


def rgb(gray: np.ndarray) -> PixelBuffer:
    """3-channel RGB u8 buffer replicating a 2D intensity array."""
    return PixelBuffer(np.repeat(gray[:, :, np.newaxis], 3, axis=2))


@pytest.fixture
def corner_image() -> PixelBuffer:
    """40x40 image, dark except for the bright quadrant starting at (20, 20)."""
    gray = np.zeros((40, 40), dtype=np.uint8)
    gray[20:, 20:] = 255
    return rgb(gray)


@pytest.fixture
def blob_image() -> PixelBuffer:
    """41x41 dark image with a bright 3x3 blob centred on (20, 20)."""
    gray = np.zeros((41, 41), dtype=np.uint8)
    gray[19:22, 19:22] = 255
    return rgb(gray)


@pytest.fixture
def random_rgb() -> PixelBuffer:
    rng = np.random.default_rng(1234)
    return PixelBuffer(rng.integers(0, 256, size=(32, 24, 3), dtype=np.uint8))


@pytest.fixture
def make_canvas():
    """Factory for seeded block canvases."""
    return block_canvas


@pytest.fixture
def make_rgb():
    """Factory turning 2D intensity arrays into RGB buffers."""
    return rgb
