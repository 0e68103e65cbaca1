"""Descriptor matching with Lowe's ratio test."""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import cv2

from improc.detection.keypoint import DescriptorKind, KeyPoint
from improc.exceptions import DescriptorMismatchError

logger = logging.getLogger(__name__)

Match = Tuple[KeyPoint, KeyPoint]


def descriptor_matrix(keypoints: Sequence[KeyPoint],
                      kind: Optional[DescriptorKind] = None) -> Tuple[Optional[DescriptorKind], np.ndarray]:
    """
    Stack keypoint descriptors into an ``(n, 64)`` uint8 matrix.

    Every keypoint must carry a descriptor, and all of them must share one
    variant (``kind`` when given).
    """
    rows = []
    for keypoint in keypoints:
        descriptor = keypoint.descriptor
        if descriptor is None:
            raise DescriptorMismatchError(f"Keypoint at {keypoint.pt} has no descriptor")
        if kind is None:
            kind = descriptor.kind
        elif descriptor.kind is not kind:
            raise DescriptorMismatchError(
                f"Cannot compare {descriptor.kind.name} with {kind.name} descriptors"
            )
        rows.append(descriptor.bits)

    if not rows:
        return kind, np.zeros((0, 64), dtype=np.uint8)
    return kind, np.ascontiguousarray(np.stack(rows), dtype=np.uint8)


class DescriptorMatcher:
    """Match keypoint descriptors between two images."""

    def __init__(self, ratio: float = 0.8):
        if not 0.0 < ratio < 1.0:
            raise ValueError(f"Ratio must lie in (0, 1), got {ratio}")
        self.ratio = ratio
        self.bf = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)

    def accept(self, best: float, second: float) -> bool:
        """Ratio test: the best candidate must be clearly closer than the runner-up."""
        if second <= 0:
            return False
        return best / second < self.ratio

    def match(self, source: Sequence[KeyPoint], target: Sequence[KeyPoint]) -> List[Match]:
        """
        Pair each source keypoint with its nearest target keypoint.

        Source keypoints with fewer than two candidates, or whose best match
        fails the ratio test, are dropped.
        """
        kind, target_bits = descriptor_matrix(target)
        _, source_bits = descriptor_matrix(source, kind)

        if len(source) == 0 or len(target) < 2:
            logger.debug("Nothing to match: %d source, %d target keypoints", len(source), len(target))
            return []

        matches = []
        for pair in self.bf.knnMatch(source_bits, target_bits, k=2):
            if len(pair) < 2:
                continue
            best, second = pair
            if self.accept(best.distance, second.distance):
                matches.append((source[best.queryIdx], target[best.trainIdx]))

        logger.debug("Matched %d of %d keypoints against %d", len(matches), len(source), len(target))
        return matches


def match_descriptors(source: Sequence[KeyPoint], target: Sequence[KeyPoint],
                      ratio: float = 0.8) -> List[Match]:
    """Match descriptors of two keypoint sets with a ratio test."""
    return DescriptorMatcher(ratio).match(source, target)
