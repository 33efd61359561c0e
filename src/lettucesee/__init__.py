"""
LettuceSee - On-device Lettuce Health and Weed Detection

Decodes the output of a single-shot detector into labeled boxes for three
classes: normal_lettuce, disease_lettuce and weed.

- processing: Preprocessing (stretch resize, [-1, 1] normalization),
  output decoding and detection overlays
- model: ONNX Runtime inference engine and model registry
- pipeline: preprocess -> inference -> decode
- service: FastAPI detection service
"""

from lettucesee.catalog import ClassCatalog, ClassInfo
from lettucesee.errors import InvalidImage, LettuceSeeError, MalformedTensor
from lettucesee.pipeline import DetectionPipeline, detect_objects
from lettucesee.processing import (
    BoundingBox,
    Detection,
    DetectionDecoder,
    LettucePreprocessor,
    decode,
    prepare,
)

__all__ = [
    "BoundingBox",
    "ClassCatalog",
    "ClassInfo",
    "Detection",
    "DetectionDecoder",
    "DetectionPipeline",
    "InvalidImage",
    "LettucePreprocessor",
    "LettuceSeeError",
    "MalformedTensor",
    "decode",
    "detect_objects",
    "prepare",
]

__version__ = "0.1.0"
