"""Image decoding and encoding through OpenCV."""

from pathlib import Path

import cv2
import numpy as np

from improc.image.buffer import PixelBuffer, ColorSpace
from improc.image.encoding import UINT8


def _from_bgr(image: np.ndarray) -> PixelBuffer:
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    elif image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    else:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return PixelBuffer(image, UINT8, ColorSpace.RGB)


def to_bgr(buffer: PixelBuffer) -> np.ndarray:
    """OpenCV-ordered uint8 array of a buffer (1-channel buffers stay gray)."""
    data = buffer.as_u8_array()
    if buffer.channels == 1:
        return data[:, :, 0]
    if buffer.color is not ColorSpace.RGB and buffer.color is not ColorSpace.GRAY:
        raise ValueError(f"Cannot encode a {buffer.color.name} buffer, convert it to RGB first")
    return cv2.cvtColor(data, cv2.COLOR_RGB2BGR)


def load_image(image_path: str) -> PixelBuffer:
    """Load an image file into a 3-channel RGB u8 buffer."""
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"Failed to load image from {image_path}")
    return _from_bgr(image)


def decode_image(payload: bytes) -> PixelBuffer:
    """Decode encoded image bytes (PNG, JPEG...) into a 3-channel RGB u8 buffer."""
    raw = np.frombuffer(payload, dtype=np.uint8)
    image = cv2.imdecode(raw, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Failed to decode image data")
    return _from_bgr(image)


def save_image(buffer: PixelBuffer, output_path: str):
    """Save buffer to file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(output_path), to_bgr(buffer)):
        raise ValueError(f"Failed to write image to {output_path}")
