"""Harris corner detection."""

import logging
from typing import List

import numpy as np

from improc.image.buffer import PixelBuffer, normalize
from improc.image.colors import to_grayscale, to_single_channel
from improc.filtering.filters import gaussian_blur, sobel_gradients
from improc.filtering.window import Padding
from improc.detection.keypoint import KeyPoint, KeyPointShape
from improc.matching.suppression import non_maximum_suppression

logger = logging.getLogger(__name__)


def grayscale_single_channel(buffer: PixelBuffer) -> PixelBuffer:
    """Gray, single-channel copy of any buffer; the input is left untouched."""
    return to_single_channel(to_grayscale(buffer.copy()))


class HarrisDetector:
    """Harris corner detector on the gradient structure tensor."""

    def __init__(self, threshold: float = 0.5, nms_radius: float = 0.0, k: float = 0.05):
        """
        Initialize Harris detector.

        Args:
            threshold: Minimum normalized response in [0, 1]
            nms_radius: Non-maximum suppression radius, 0 disables it
            k: Harris sensitivity constant
        """
        self.threshold = threshold
        self.nms_radius = nms_radius
        self.k = k

    def response(self, gray: PixelBuffer) -> np.ndarray:
        """Normalized Harris response of a single-channel buffer, shape (height, width)."""
        gx, gy = sobel_gradients(gray)

        ixx = PixelBuffer(gx.data * gx.data)
        iyy = PixelBuffer(gy.data * gy.data)
        ixy = PixelBuffer(gx.data * gy.data)

        for component in (ixx, iyy, ixy):
            gaussian_blur(component, 1, 1.0, Padding.REPEAT)

        det = ixx.data * iyy.data - ixy.data * ixy.data
        trace = ixx.data + iyy.data
        r = PixelBuffer((det - self.k * trace * trace).astype(np.float32))

        return normalize(r).data[:, :, 0]

    def detect(self, buffer: PixelBuffer) -> List[KeyPoint]:
        """Detect corners; each keypoint is scored by its grayscale intensity."""
        gray = grayscale_single_channel(buffer)
        r = self.response(gray)
        intensity = gray.as_u8_array()[:, :, 0]

        rows, cols = np.nonzero(r > self.threshold)
        keypoints = [
            KeyPoint(float(x), float(y), score=int(intensity[y, x]),
                     color=(0, 255, 0), shape=KeyPointShape.CROSS)
            for y, x in zip(rows, cols)
        ]
        logger.debug("Harris found %d candidates above %.3f", len(keypoints), self.threshold)

        if self.nms_radius > 0:
            keypoints = non_maximum_suppression(keypoints, self.nms_radius)
        return keypoints


def harris_corners(buffer: PixelBuffer, threshold: float = 0.5,
                   nms_radius: float = 0.0) -> List[KeyPoint]:
    """Detect Harris corners."""
    return HarrisDetector(threshold, nms_radius).detect(buffer)
