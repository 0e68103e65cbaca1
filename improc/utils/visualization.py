"""Visualization utilities for debugging and display."""

from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np

from improc.exceptions import PreconditionError
from improc.image.buffer import PixelBuffer, ColorSpace
from improc.detection.keypoint import KeyPoint
from improc.utils.io_handler import to_bgr

Match = Tuple[KeyPoint, KeyPoint]


def draw_keypoints(buffer: PixelBuffer, keypoints: Iterable[KeyPoint]) -> PixelBuffer:
    """Paint each keypoint's marker into a 3-channel buffer, in place."""
    buffer.require_channels(3)
    encoding = buffer.encoding

    for kp in keypoints:
        color = encoding.from_u8(np.array(kp.color, dtype=np.uint8))
        for x, y in kp.shape_points():
            if 0 <= x < buffer.width and 0 <= y < buffer.height:
                buffer.data[y, x] = color
    return buffer


def horizontal_stack(a: PixelBuffer, b: PixelBuffer) -> PixelBuffer:
    """Place two buffers side by side; the shorter one is padded at the bottom."""
    if a.channels != b.channels or a.encoding is not b.encoding:
        raise PreconditionError("Stacked buffers need the same channels and encoding")

    height = max(a.height, b.height)
    stacked = PixelBuffer.zeros(height, a.width + b.width, a.channels, a.encoding)
    stacked.data[:a.height, :a.width] = a.data
    stacked.data[:b.height, a.width:] = b.data
    stacked.color = a.color
    return stacked


def draw_matches(a: PixelBuffer, b: PixelBuffer, matches: Sequence[Match],
                 thickness: int = 1) -> PixelBuffer:
    """Side-by-side u8 RGB image with a line joining every matched pair."""
    stacked = horizontal_stack(a.to_u8(), b.to_u8())
    offset = a.width

    canvas = np.ascontiguousarray(stacked.data)
    if stacked.channels == 1:
        canvas = np.repeat(canvas, 3, axis=2)
    for source, target in matches:
        start = (int(source.x), int(source.y))
        end = (int(target.x) + offset, int(target.y))
        cv2.line(canvas, start, end, tuple(int(c) for c in source.color), thickness)
    stacked = PixelBuffer(canvas, stacked.encoding, ColorSpace.RGB)

    shifted = [KeyPoint(t.x + offset, t.y, color=t.color, shape=t.shape) for _, t in matches]
    draw_keypoints(stacked, [s for s, _ in matches])
    draw_keypoints(stacked, shifted)
    return stacked


def show(buffer: PixelBuffer, title: str = "improc", wait: int = 0):
    """Display a buffer in an OpenCV window until a key is pressed."""
    cv2.imshow(title, to_bgr(buffer))
    cv2.waitKey(wait)
    cv2.destroyWindow(title)


def visualize_matches(a: PixelBuffer, b: PixelBuffer, matches: Sequence[Match]):
    """Show two buffers side by side with their matches."""
    show(draw_matches(a, b, matches), "Matches")
