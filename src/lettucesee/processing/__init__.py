"""
Processing Module - Preprocessing and Output Decoding

This module provides:
- Preprocessing: stretch resize to 640x640, [-1, 1] normalization, NHWC
- Decoding: raw [1, 5 + num_classes, N] output to image-space detections
- Visualization: detection overlays for display
"""

from lettucesee.processing.transforms import (
    stretch_resize,
    symmetric_normalize,
    load_image,
    load_image_from_bytes,
)

from lettucesee.processing.preprocess import LettucePreprocessor, prepare
from lettucesee.processing.decode import (
    BoundingBox,
    Detection,
    DetectionDecoder,
    decode,
)
from lettucesee.processing.visualize import draw_detections

__all__ = [
    # Low-level transforms
    "stretch_resize",
    "symmetric_normalize",
    "load_image",
    "load_image_from_bytes",
    # Preprocessing
    "LettucePreprocessor",
    "prepare",
    # Decoding
    "BoundingBox",
    "Detection",
    "DetectionDecoder",
    "decode",
    # Display
    "draw_detections",
]
