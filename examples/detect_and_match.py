"""Detect ORB keypoints in two images and show their matches."""

import argparse

from improc.core import FeatureProcessor
from improc.config import load_config
from improc.utils.io_handler import load_image, save_image
from improc.utils.visualization import draw_matches, show
from improc.utils.logger import setup_logger


def main():
    """Run detection and matching on an image pair."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("first", help="Path to the first image")
    parser.add_argument("second", help="Path to the second image")
    parser.add_argument("--method", default="orb", choices=["harris", "fast", "orb"])
    parser.add_argument("--config", help="YAML configuration overrides")
    parser.add_argument("--output", help="Save the match visualization instead of showing it")
    args = parser.parse_args()

    config = load_config(args.config)
    logger = setup_logger('improc', config["logging"]["level"], config["logging"]["file"])

    first = load_image(args.first)
    second = load_image(args.second)

    processor = FeatureProcessor(config)
    result = processor.match(first, second, method=args.method)

    logger.info(f"{len(result['keypoints_first'])} / {len(result['keypoints_second'])} keypoints, "
                f"{result['num_matches']} matches "
                f"({result['processing_metadata']['processing_time_ms']} ms)")

    output = draw_matches(first, second, result["matches"])
    if args.output:
        save_image(output, args.output)
        logger.info(f"Results saved to {args.output}")
    else:
        show(output, "Matches")


if __name__ == "__main__":
    main()
