"""FAST-12 corner detection."""

import logging
from typing import List, Tuple

import numpy as np

from improc.exceptions import PreconditionError
from improc.image.buffer import PixelBuffer
from improc.detection.harris import grayscale_single_channel
from improc.detection.keypoint import KeyPoint, KeyPointShape
from improc.matching.suppression import non_maximum_suppression

logger = logging.getLogger(__name__)

# Bresenham circle of radius 3 as (dx, dy), clockwise from the top
CIRCLE_OFFSETS = np.array([
    (0, -3), (1, -3), (2, -2), (3, -1),
    (3, 0), (3, 1), (2, 2), (1, 3),
    (0, 3), (-1, 3), (-2, 2), (-3, 1),
    (-3, 0), (-3, -1), (-2, -2), (-1, -3),
])

# North, east, south, west
CARDINAL_INDICES = np.array([0, 4, 8, 12])

MIN_ARC = 12
MIN_MARGIN = 3
DESCRIPTOR_MARGIN = 46


def circle_samples(image: np.ndarray, ys: np.ndarray, xs: np.ndarray,
                   indices: np.ndarray = None) -> np.ndarray:
    """Circle intensities around each (y, x), shape (len(ys), n_offsets)."""
    offsets = CIRCLE_OFFSETS if indices is None else CIRCLE_OFFSETS[indices]
    return image[ys[:, None] + offsets[:, 1], xs[:, None] + offsets[:, 0]]


def has_contiguous_arc(flags: np.ndarray, length: int = MIN_ARC) -> np.ndarray:
    """True for rows of a (n, 16) boolean array with a circular run of at least length."""
    wrapped = np.concatenate([flags, flags[:, :length - 1]], axis=1).astype(np.int16)
    sums = np.cumsum(np.pad(wrapped, ((0, 0), (1, 0))), axis=1)
    windows = sums[:, length:length + flags.shape[1]] - sums[:, :flags.shape[1]]
    return np.any(windows >= length, axis=1)


class FastDetector:
    """FAST corner detector: 12 contiguous circle pixels brighter or darker than the center."""

    def __init__(self, threshold: int = 20, nms_radius: float = 0.0,
                 margin: int = DESCRIPTOR_MARGIN):
        """
        Initialize FAST detector.

        Args:
            threshold: Intensity difference t on the 0-255 scale
            nms_radius: Non-maximum suppression radius, 0 disables it
            margin: Border width (>= 3) in which no corner is reported
        """
        if margin < MIN_MARGIN:
            raise PreconditionError(f"FAST margin must be at least {MIN_MARGIN}, got {margin}")
        self.threshold = int(threshold)
        self.nms_radius = nms_radius
        self.margin = margin

    def candidates(self, image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """(ys, xs) of pixels passing the 4-point cardinal pre-filter."""
        height, width = image.shape
        m = self.margin
        if height <= 2 * m or width <= 2 * m:
            return np.empty(0, dtype=np.intp), np.empty(0, dtype=np.intp)

        center = image[m:height - m, m:width - m]
        up = center + self.threshold
        down = center - self.threshold

        above = np.zeros(center.shape, dtype=np.int8)
        below = np.zeros(center.shape, dtype=np.int8)
        for dx, dy in CIRCLE_OFFSETS[CARDINAL_INDICES]:
            ring = image[m + dy:height - m + dy, m + dx:width - m + dx]
            above += ring > up
            below += ring < down

        ys, xs = np.nonzero((above >= 3) | (below >= 3))
        return ys + m, xs + m

    def corners(self, image: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Run the full segment test on an int16 intensity image.

        Returns:
            Tuple of (ys, xs, scores) for accepted pixels
        """
        ys, xs = self.candidates(image)
        if ys.size == 0:
            return ys, xs, np.empty(0, dtype=np.int64)

        center = image[ys, xs][:, None]
        ring = circle_samples(image, ys, xs)

        brighter = ring > center + self.threshold
        darker = ring < center - self.threshold
        accepted = has_contiguous_arc(brighter) | has_contiguous_arc(darker)

        scores = (16 * center[:, 0].astype(np.int64) - ring.sum(axis=1, dtype=np.int64))
        return ys[accepted], xs[accepted], scores[accepted]

    def detect(self, buffer: PixelBuffer) -> List[KeyPoint]:
        """Detect FAST corners, scored by the sum of center minus neighbor intensities."""
        gray = grayscale_single_channel(buffer)
        image = gray.as_u8_array()[:, :, 0].astype(np.int16)

        ys, xs, scores = self.corners(image)
        keypoints = [
            KeyPoint(float(x), float(y), score=int(s), color=(0, 255, 0), shape=KeyPointShape.CROSS)
            for y, x, s in zip(ys, xs, scores)
        ]
        logger.debug("FAST found %d corners (t=%d)", len(keypoints), self.threshold)

        if self.nms_radius > 0:
            keypoints = non_maximum_suppression(keypoints, self.nms_radius)
        return keypoints


def fast_corners(buffer: PixelBuffer, threshold: int = 20, nms_radius: float = 0.0,
                 margin: int = DESCRIPTOR_MARGIN) -> List[KeyPoint]:
    """Detect FAST corners."""
    return FastDetector(threshold, nms_radius, margin).detect(buffer)
