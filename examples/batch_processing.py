"""Batch keypoint detection over a folder of images."""

import sys
from pathlib import Path

from improc.core import FeatureProcessor
from improc.detection.keypoint import KeyPointShape
from improc.utils.io_handler import load_image, save_image
from improc.utils.visualization import draw_keypoints
from improc.utils.metrics import PerformanceMetrics
from improc.utils.logger import setup_logger


def main(frames_dir: str = "test_data/frames", output_dir: str = "output"):
    """Detect keypoints in every PNG/JPEG of a folder and save annotated copies."""
    logger = setup_logger('batch_processor')
    processor = FeatureProcessor()
    metrics = PerformanceMetrics()

    frame_files = sorted(p for p in Path(frames_dir).iterdir()
                         if p.suffix.lower() in (".png", ".jpg", ".jpeg"))
    logger.info(f"Processing {len(frame_files)} frames...")

    for i, frame_path in enumerate(frame_files):
        try:
            image = load_image(str(frame_path))
        except ValueError:
            logger.warning(f"Could not load {frame_path}")
            continue

        metrics.start_timer(frame_path.name)
        keypoints = processor.detect(image, "orb")
        duration = metrics.stop_timer(frame_path.name)
        logger.info(f"Frame {i+1}/{len(frame_files)} {frame_path.name}: "
                    f"{len(keypoints)} keypoints in {duration:.1f} ms")

        for kp in keypoints:
            kp.shape = KeyPointShape.BIG_DOT
        save_image(draw_keypoints(image, keypoints), f"{output_dir}/{frame_path.stem}_orb.png")

    logger.info("Batch processing complete!")


if __name__ == "__main__":
    main(*sys.argv[1:3])
