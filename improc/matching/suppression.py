"""Non-maximum suppression over keypoints using a k-d tree."""

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from improc.detection.keypoint import KeyPoint

logger = logging.getLogger(__name__)


def non_maximum_suppression(keypoints: Sequence[KeyPoint], radius: float,
                            score: Optional[Callable[[KeyPoint], float]] = None) -> List[KeyPoint]:
    """
    Keep the keypoints that have no strictly stronger neighbor within radius.

    Neighbors are searched with a Euclidean, inclusive radius. Keypoints with
    equal scores never eliminate each other, so ties all survive. A radius of
    zero (or less) disables suppression.

    Args:
        keypoints: Candidates to filter
        radius: Suppression radius in pixels
        score: Optional ranking function, defaults to ``keypoint.score``

    Returns:
        The surviving keypoints, in input order
    """
    keypoints = list(keypoints)
    if radius <= 0 or len(keypoints) < 2:
        return keypoints

    score = score or (lambda kp: kp.score)
    scores = np.array([score(kp) for kp in keypoints], dtype=np.float64)
    points = np.array([(kp.x, kp.y) for kp in keypoints], dtype=np.float64)

    tree = cKDTree(points)
    neighborhoods = tree.query_ball_point(points, r=radius)

    survivors = [
        kp for kp, own, neighbors in zip(keypoints, scores, neighborhoods)
        if np.all(scores[neighbors] <= own)
    ]

    logger.debug("Suppression kept %d of %d keypoints (radius %.1f)",
                 len(survivors), len(keypoints), radius)
    return survivors
