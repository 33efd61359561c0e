#!/usr/bin/env python3
"""
Detect lettuce, disease and weeds in an image file.

Loads the ONNX detector from the models directory, runs the full
pipeline (stretch resize, inference, decode) and prints one line per
detection. Optionally writes an annotated copy of the image.

Usage:
    python scripts/detect_image.py field.jpg
    python scripts/detect_image.py field.jpg --threshold 0.5
    python scripts/detect_image.py field.jpg --annotate field_boxes.png
    python scripts/detect_image.py field.jpg --json

Author: Matthew Hong
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import cv2

from lettucesee.config import get_value
from lettucesee.errors import LettuceSeeError
from lettucesee.model.registry import ModelRegistry
from lettucesee.pipeline import DetectionPipeline
from lettucesee.processing.transforms import load_image
from lettucesee.processing.visualize import draw_detections

DEFAULT_MODELS_DIR = Path("models")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the lettuce detector on an image file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/detect_image.py field.jpg                        # Print detections
  python scripts/detect_image.py field.jpg --threshold 0.5        # Stricter threshold
  python scripts/detect_image.py field.jpg --annotate out.png     # Save overlay
  python scripts/detect_image.py field.jpg --json                 # Machine-readable output
        """,
    )

    parser.add_argument("image", type=Path, help="Image file (JPEG, PNG, etc.)")
    parser.add_argument(
        "--threshold",
        type=float,
        default=get_value("decoding", "confidence_threshold"),
        help="Objectness threshold, exclusive (default: %(default)s)",
    )
    parser.add_argument(
        "--models-dir",
        type=Path,
        default=DEFAULT_MODELS_DIR,
        help=f"Directory holding the ONNX detector (default: {DEFAULT_MODELS_DIR})",
    )
    parser.add_argument(
        "--annotate",
        type=Path,
        default=None,
        help="Write the image with detections drawn to this path",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print detections as JSON",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable INFO logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        image = load_image(str(args.image))
        pipeline = DetectionPipeline.from_registry(ModelRegistry(args.models_dir))
        detections, timing = pipeline.detect_with_timing(image, args.threshold)
    except (FileNotFoundError, ValueError, LettuceSeeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(
            json.dumps(
                {
                    "image": str(args.image),
                    "image_width": image.shape[1],
                    "image_height": image.shape[0],
                    "detections": [d.to_dict() for d in detections],
                    "timing": timing,
                },
                indent=2,
            )
        )
    else:
        print(f"{args.image}: {len(detections)} detections ({timing['total_ms']:.1f} ms)")
        for det in detections:
            left, top, right, bottom = det.box.as_tuple()
            print(
                f"  {det.label:<24} "
                f"[{left:.1f}, {top:.1f}, {right:.1f}, {bottom:.1f}]"
            )

    if args.annotate is not None:
        annotated = draw_detections(image, detections)
        if not cv2.imwrite(str(args.annotate), cv2.cvtColor(annotated, cv2.COLOR_RGB2BGR)):
            print(f"Error: failed to write {args.annotate}", file=sys.stderr)
            return 1
        if not args.json:
            print(f"  Annotated image saved to: {args.annotate}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
