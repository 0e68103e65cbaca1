"""
ORB: oriented FAST keypoints with rotated BRIEF descriptors.

The pipeline smooths a grayscale copy of the input, builds a pyramid of
half-resolution levels, detects FAST corners on each level, estimates an
intensity-centroid orientation per corner and samples a 512-bit binary
descriptor along a rotated point-pair pattern. Keypoints are mapped back to
base-image coordinates and suppressed across all octaves at once.
"""

import logging
from typing import List, Sequence

import numpy as np

from improc.image.buffer import PixelBuffer
from improc.filtering.filters import gaussian_blur
from improc.filtering.window import Padding
from improc.detection.harris import grayscale_single_channel
from improc.detection.fast import FastDetector, DESCRIPTOR_MARGIN
from improc.detection.keypoint import (
    KeyPoint, KeyPointShape, Descriptor, DescriptorKind, DESCRIPTOR_BITS
)
from improc.matching.suppression import non_maximum_suppression

logger = logging.getLogger(__name__)

PATCH_RADIUS = 16
PATTERN_HALF_SIZE = 31
PATTERN_SEED = 0x0B1


def _sampling_pattern() -> np.ndarray:
    """512 point pairs as an int array of shape (512, 4): x1, y1, x2, y2."""
    rng = np.random.default_rng(PATTERN_SEED)
    sigma = (2 * PATTERN_HALF_SIZE + 1) / 5.0
    points = rng.normal(0.0, sigma, size=(DESCRIPTOR_BITS, 4))
    return np.clip(np.rint(points), -PATTERN_HALF_SIZE, PATTERN_HALF_SIZE).astype(np.int32)


BRIEF_PATTERN = _sampling_pattern()


def patch_half_widths(radius: int = PATCH_RADIUS) -> np.ndarray:
    """Half-width of the circular patch for each row offset 0..radius."""
    v = np.arange(radius + 1, dtype=np.float64)
    return np.rint(radius * np.sin(np.arccos(np.clip(v / radius, -1.0, 1.0)))).astype(np.int32)


def _patch_offsets(radius: int = PATCH_RADIUS):
    half_widths = patch_half_widths(radius)
    us, vs = [], []
    for v in range(-radius, radius + 1):
        u_max = half_widths[abs(v)]
        for u in range(-u_max, u_max + 1):
            us.append(u)
            vs.append(v)
    return np.array(us, dtype=np.int32), np.array(vs, dtype=np.int32)


PATCH_U, PATCH_V = _patch_offsets()


def rotate_offsets(xs: np.ndarray, ys: np.ndarray, angle: float):
    """Rotate offsets by angle; both outputs use the unrotated x and y."""
    c, s = np.cos(angle), np.sin(angle)
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    return xs * c - ys * s, ys * c + xs * s


def _sample(image: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    height, width = image.shape
    cols = np.clip(np.rint(xs).astype(np.int64), 0, width - 1)
    rows = np.clip(np.rint(ys).astype(np.int64), 0, height - 1)
    return image[rows, cols]


def orientation(image: np.ndarray, x: float, y: float) -> float:
    """Intensity-centroid angle (radians) of the circular patch around (x, y)."""
    intensity = _sample(image, x + PATCH_U, y + PATCH_V).astype(np.float64)
    mx = float(np.sum(PATCH_U * intensity))
    my = float(np.sum(PATCH_V * intensity))
    return float(np.arctan2(my, mx))


def describe(image: np.ndarray, x: float, y: float, angle: float,
             kind: DescriptorKind = DescriptorKind.ROTATED_BRIEF) -> Descriptor:
    """Sample the point-pair pattern around (x, y), rotated by angle."""
    x1, y1 = rotate_offsets(BRIEF_PATTERN[:, 0], BRIEF_PATTERN[:, 1], angle)
    x2, y2 = rotate_offsets(BRIEF_PATTERN[:, 2], BRIEF_PATTERN[:, 3], angle)

    first = _sample(image, x + x1, y + y1)
    second = _sample(image, x + x2, y + y2)
    return Descriptor.from_bools(kind, first < second)


def _intensity_image(buffer: PixelBuffer) -> np.ndarray:
    return grayscale_single_channel(buffer).as_u8_array()[:, :, 0]


def brief_descriptors(buffer: PixelBuffer, keypoints: Sequence[KeyPoint]) -> List[KeyPoint]:
    """Attach unrotated BRIEF descriptors to keypoints (in place) and return them."""
    image = _intensity_image(buffer)
    for kp in keypoints:
        kp.descriptor = describe(image, kp.x, kp.y, 0.0, DescriptorKind.BRIEF)
    return list(keypoints)


def rotated_brief_descriptors(buffer: PixelBuffer, keypoints: Sequence[KeyPoint]) -> List[KeyPoint]:
    """Attach rotated BRIEF descriptors using each keypoint's stored angle."""
    image = _intensity_image(buffer)
    for kp in keypoints:
        kp.descriptor = describe(image, kp.x, kp.y, kp.angle)
    return list(keypoints)


def build_pyramid(buffer: PixelBuffer, levels: int = 4) -> List[PixelBuffer]:
    """
    Gaussian pyramid of a single-channel buffer.

    Level 0 is the input; every next level keeps every second row and column
    of the previous one and is smoothed again.
    """
    pyramid = [buffer]
    current = buffer
    for _ in range(1, levels):
        height, width = current.height // 2, current.width // 2
        if height == 0 or width == 0:
            break
        half = PixelBuffer(current.data[:2 * height:2, :2 * width:2].copy(),
                           current.encoding, current.color)
        current = gaussian_blur(half, 1, 1.0, Padding.REPEAT)
        pyramid.append(current)
    return pyramid


class OrbExtractor:
    """Detect ORB keypoints and compute their rotated BRIEF descriptors."""

    def __init__(self, fast_threshold: int = 20, nms_radius: float = 8.0, levels: int = 4,
                 margin: int = DESCRIPTOR_MARGIN):
        """
        Initialize ORB extractor.

        Args:
            fast_threshold: FAST intensity threshold per pyramid level
            nms_radius: Suppression radius in base-image pixels, 0 disables it
            levels: Number of pyramid levels including the base
            margin: FAST border width, large enough for the rotated pattern
        """
        self.fast_threshold = fast_threshold
        self.nms_radius = nms_radius
        self.levels = levels
        self.detector = FastDetector(fast_threshold, nms_radius=0.0, margin=margin)

    def _level_keypoints(self, level: PixelBuffer, octave: int) -> List[KeyPoint]:
        image = level.as_u8_array()[:, :, 0]
        ys, xs, scores = self.detector.corners(image.astype(np.int16))
        scale = float(2 ** octave)

        keypoints = []
        for y, x, score in zip(ys, xs, scores):
            angle = orientation(image, x, y)
            keypoints.append(KeyPoint(
                x=float(x) * scale,
                y=float(y) * scale,
                score=int(score),
                octave=octave,
                angle=angle,
                descriptor=describe(image, x, y, angle),
                color=(255, 0, 0),
                shape=KeyPointShape.SQUARE,
            ))
        return keypoints

    def detect_and_compute(self, buffer: PixelBuffer) -> List[KeyPoint]:
        """Keypoints with orientation and rotated BRIEF descriptors, in base-image coordinates."""
        base = grayscale_single_channel(buffer).to_u8()
        gaussian_blur(base, 1, 1.0, Padding.REPEAT)

        keypoints = []
        for octave, level in enumerate(build_pyramid(base, self.levels)):
            found = self._level_keypoints(level, octave)
            logger.debug("ORB octave %d (%dx%d): %d keypoints",
                         octave, level.width, level.height, len(found))
            keypoints.extend(found)

        if self.nms_radius > 0:
            keypoints = non_maximum_suppression(keypoints, self.nms_radius)
        return keypoints


def orb(buffer: PixelBuffer, fast_threshold: int = 20, nms_radius: float = 8.0,
        levels: int = 4) -> List[KeyPoint]:
    """Detect ORB keypoints with descriptors."""
    return OrbExtractor(fast_threshold, nms_radius, levels).detect_and_compute(buffer)
