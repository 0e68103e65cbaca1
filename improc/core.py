"""
improc Core Processor
Configuration-driven entry point for filtering, detection and matching
"""

import logging
import time
from typing import Any, Dict, List, Optional

from improc.config import DEFAULT_CONFIG, merge_config
from improc.image.buffer import PixelBuffer
from improc.filtering.filters import median_filter, gaussian_blur
from improc.filtering.window import Padding
from improc.detection.keypoint import KeyPoint
from improc.detection.harris import HarrisDetector
from improc.detection.fast import FastDetector
from improc.detection.orb import OrbExtractor, brief_descriptors
from improc.matching.matcher import DescriptorMatcher

logger = logging.getLogger(__name__)

METHODS = ("harris", "fast", "orb")


class FeatureProcessor:
    """Main processor composing filters, detectors and the matcher"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize processor

        Args:
            config: Configuration overrides, merged onto DEFAULT_CONFIG (optional)
        """
        self.config = merge_config(DEFAULT_CONFIG, config or {})

        filtering = self.config["filtering"]
        harris = self.config["harris"]
        fast = self.config["fast"]
        orb = self.config["orb"]

        self.padding = Padding(filtering["padding"])
        self.harris_detector = HarrisDetector(harris["threshold"], harris["nms_radius"], harris["k"])
        self.fast_detector = FastDetector(fast["threshold"], fast["nms_radius"], fast["margin"])
        self.orb_extractor = OrbExtractor(orb["fast_threshold"], orb["nms_radius"],
                                          orb["levels"], orb["margin"])
        self.matcher = DescriptorMatcher(self.config["matching"]["ratio"])

    def denoise(self, buffer: PixelBuffer) -> PixelBuffer:
        """Median filter a copy of the buffer."""
        return median_filter(buffer.copy(), self.config["filtering"]["median_window"], self.padding)

    def smooth(self, buffer: PixelBuffer) -> PixelBuffer:
        """Gaussian blur a copy of the buffer."""
        filtering = self.config["filtering"]
        return gaussian_blur(buffer.copy(), filtering["gaussian_window"],
                             filtering["gaussian_sigma"], self.padding)

    def detect(self, buffer: PixelBuffer, method: str = "orb") -> List[KeyPoint]:
        """
        Detect keypoints with the chosen method

        Harris and FAST keypoints get unrotated BRIEF descriptors so that
        every method's output can be matched.

        Args:
            buffer: Input image
            method: One of "harris", "fast" or "orb"

        Returns:
            Keypoints carrying descriptors
        """
        if method == "orb":
            keypoints = self.orb_extractor.detect_and_compute(buffer)
        elif method == "harris":
            keypoints = brief_descriptors(buffer, self.harris_detector.detect(buffer))
        elif method == "fast":
            keypoints = brief_descriptors(buffer, self.fast_detector.detect(buffer))
        else:
            raise ValueError(f"Unknown detection method '{method}', expected one of {METHODS}")

        logger.info("Detected %d %s keypoints", len(keypoints), method)
        return keypoints

    def match(self, first: PixelBuffer, second: PixelBuffer, method: str = "orb") -> Dict[str, Any]:
        """
        Detect keypoints in two images and match them

        Returns:
            Dictionary with keypoints, matches and processing metadata
        """
        start_time = time.time()

        keypoints_first = self.detect(first, method)
        keypoints_second = self.detect(second, method)
        matches = self.matcher.match(keypoints_first, keypoints_second)

        processing_time = (time.time() - start_time) * 1000
        logger.info("Matched %d keypoint pairs in %.1f ms", len(matches), processing_time)

        return {
            "method": method,
            "keypoints_first": keypoints_first,
            "keypoints_second": keypoints_second,
            "matches": matches,
            "num_matches": len(matches),
            "processing_metadata": {
                "processing_time_ms": round(processing_time, 2),
                "image_sizes": [
                    {"width": first.width, "height": first.height},
                    {"width": second.width, "height": second.height},
                ],
                "ratio": self.matcher.ratio,
            },
        }
