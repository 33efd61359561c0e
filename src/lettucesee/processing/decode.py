"""Detector output decoding.

Turns the raw [1, 5 + num_classes, N] output of the lettuce detector into
Detection objects in original-image pixel coordinates.

Output channel layout per candidate i:
    0..3                 x_center, y_center, width, height (model-input pixels)
    4                    objectness confidence
    5..4+num_classes     per-class scores

Decoding rules:
    - Objectness gates inclusion: confidence must be strictly above the
      threshold.
    - Class = argmax of class scores, ties to the lowest index; a candidate
      whose best score is not strictly positive is dropped.
    - The reported confidence is objectness, not the class score.
    - Boxes are scaled with independent x/y factors (the input was
      stretched, not letterboxed) and are not clipped.
    - No NMS: overlapping candidates each produce a detection. Callers that
      need deduplication run their own suppression on the result.
    - Results keep candidate-index order.

Author: Matthew Hong
"""

from dataclasses import dataclass
from typing import Any

import numpy as np

from lettucesee.catalog import ClassCatalog, RGBColor
from lettucesee.config import get_model_config, get_value
from lettucesee.errors import MalformedTensor
from lettucesee.processing.preprocess import INPUT_SIZE

# =============================================================================
# Constants
# =============================================================================

BOX_CHANNELS: int = 4
"""x_center, y_center, width, height."""

OBJECTNESS_CHANNEL: int = 4

CLASS_CHANNEL_OFFSET: int = 5

DEFAULT_CONFIDENCE_THRESHOLD: float = get_value("decoding", "confidence_threshold")
"""Objectness threshold from detector.yaml (0.25)."""


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in original-image pixel coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class Detection:
    """A single decoded detection.

    Attributes:
        box: Bounding box in original-image pixels
        confidence: Objectness score of the candidate
        class_index: Winning class index
        class_name: Catalog name for class_index (or the fallback name)
        color: Catalog RGB color for class_index (or the fallback color)
    """

    box: BoundingBox
    confidence: float
    class_index: int
    class_name: str
    color: RGBColor

    @property
    def label(self) -> str:
        """Display label, e.g. ``"weed: 87%"``.

        The percent is truncated in float32 arithmetic, so 0.996 shows as 99%.
        """
        percent = int(np.float32(self.confidence) * np.float32(100))
        return f"{self.class_name}: {percent}%"

    def to_dict(self) -> dict[str, Any]:
        return {
            "x1": self.box.left,
            "y1": self.box.top,
            "x2": self.box.right,
            "y2": self.box.bottom,
            "confidence": self.confidence,
            "class_id": self.class_index,
            "class_name": self.class_name,
            "color": list(self.color),
            "label": self.label,
        }


# =============================================================================
# Stateless Candidate Operations
# =============================================================================


def validate_output(output: Any, num_classes: int) -> np.ndarray:
    """Check the output tensor shape and drop the batch dimension.

    Args:
        output: Model output, expected shape [1, 5 + num_classes, N]
        num_classes: Number of classes the decoder is configured for

    Returns:
        Array view with shape [5 + num_classes, N]

    Raises:
        MalformedTensor: If the shape does not match
    """
    try:
        array = np.asarray(output)
    except ValueError as e:
        raise MalformedTensor(f"Output is not a rectangular tensor: {e}") from e

    expected_channels = CLASS_CHANNEL_OFFSET + num_classes

    if array.ndim != 3:
        raise MalformedTensor(
            f"Expected 3D output [1, {expected_channels}, N], got shape {array.shape}"
        )

    if array.shape[0] != 1:
        raise MalformedTensor(f"Expected batch size 1, got {array.shape[0]}")

    if array.shape[1] != expected_channels:
        raise MalformedTensor(
            f"Expected {expected_channels} channels (5 + {num_classes} classes), "
            f"got {array.shape[1]}"
        )

    if not np.issubdtype(array.dtype, np.number):
        raise MalformedTensor(f"Expected numeric output, got dtype {array.dtype}")

    return array[0]


def select_confident(confidences: np.ndarray, threshold: float) -> np.ndarray:
    """Indices of candidates whose objectness is strictly above threshold.

    NaN confidences never pass. Indices are returned in ascending order.
    """
    return np.flatnonzero(confidences > threshold)


def arbitrate_classes(class_scores: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Pick the best class for each candidate.

    Args:
        class_scores: [num_classes, K] scores for K candidates

    Returns:
        Tuple of (class_ids, max_scores), each shape [K]. class_ids is -1
        where no score is strictly greater than 0.
    """
    num_candidates = class_scores.shape[1]
    if class_scores.shape[0] == 0:
        return (
            np.full(num_candidates, -1, dtype=np.int64),
            np.zeros(num_candidates, dtype=np.float32),
        )

    # NaN scores must never win
    scores = np.where(np.isnan(class_scores), -np.inf, class_scores)

    # argmax returns the first maximum, so ties go to the lowest class index
    class_ids = scores.argmax(axis=0).astype(np.int64)
    max_scores = scores.max(axis=0)
    class_ids[~(max_scores > 0)] = -1

    return class_ids, max_scores


def to_image_boxes(
    boxes_cxcywh: np.ndarray,
    x_scale: float,
    y_scale: float,
) -> np.ndarray:
    """Convert center-format model boxes to corner-format image boxes.

    Args:
        boxes_cxcywh: [4, K] rows x_center, y_center, width, height
        x_scale: original_width / input_size
        y_scale: original_height / input_size

    Returns:
        [K, 4] array of [left, top, right, bottom]
    """
    x = boxes_cxcywh[0] * x_scale
    y = boxes_cxcywh[1] * y_scale
    w = boxes_cxcywh[2] * x_scale
    h = boxes_cxcywh[3] * y_scale

    return np.column_stack([x - w / 2, y - h / 2, x + w / 2, y + h / 2])


# =============================================================================
# Decoder Class
# =============================================================================


class DetectionDecoder:
    """Decoder for the lettuce detector output tensor.

    Holds only read-only configuration (catalog, class count, input size),
    so a single instance may decode concurrently from several threads.

    Attributes:
        catalog: Class index to name/color lookup
        num_classes: Number of class score channels
        input_size: Model input side in pixels

    Example:
        >>> decoder = DetectionDecoder(ClassCatalog.from_config())
        >>> output = np.zeros((1, 8, 8400), dtype=np.float32)
        >>> decoder(output, 1280, 960)
        []
    """

    def __init__(
        self,
        catalog: ClassCatalog,
        num_classes: int | None = None,
        input_size: int = INPUT_SIZE,
    ) -> None:
        """Initialize DetectionDecoder.

        Args:
            catalog: Class catalog, shared by reference
            num_classes: Class channel count (default: from detector.yaml)
            input_size: Model input dimension (default: 640)

        Raises:
            ValueError: If num_classes or input_size is not positive
        """
        if num_classes is None:
            num_classes = get_model_config()["num_classes"]

        if num_classes < 1:
            raise ValueError(f"num_classes must be >= 1, got {num_classes}")
        if input_size < 1:
            raise ValueError(f"input_size must be >= 1, got {input_size}")

        self.catalog = catalog
        self.num_classes = num_classes
        self.input_size = input_size

    def __call__(
        self,
        output: Any,
        original_width: float,
        original_height: float,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> list[Detection]:
        return self.decode(output, original_width, original_height, confidence_threshold)

    def decode(
        self,
        output: Any,
        original_width: float,
        original_height: float,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> list[Detection]:
        """Decode a raw output tensor into detections.

        Args:
            output: Model output with shape [1, 5 + num_classes, N]
            original_width: Width of the image before preprocessing
            original_height: Height of the image before preprocessing
            confidence_threshold: Objectness must be strictly above this

        Returns:
            Detections in candidate-index order (possibly empty)

        Raises:
            MalformedTensor: If the output shape does not match
        """
        channels = validate_output(output, self.num_classes)

        keep = select_confident(channels[OBJECTNESS_CHANNEL], confidence_threshold)
        if keep.size == 0:
            return []

        class_scores = channels[
            CLASS_CHANNEL_OFFSET : CLASS_CHANNEL_OFFSET + self.num_classes
        ][:, keep]
        class_ids, _ = arbitrate_classes(class_scores)

        has_class = class_ids >= 0
        keep = keep[has_class]
        class_ids = class_ids[has_class]
        if keep.size == 0:
            return []

        x_scale = original_width / self.input_size
        y_scale = original_height / self.input_size
        boxes = to_image_boxes(channels[:BOX_CHANNELS][:, keep], x_scale, y_scale)
        confidences = channels[OBJECTNESS_CHANNEL][keep]

        detections = []
        for box, confidence, class_id in zip(boxes, confidences, class_ids):
            info = self.catalog.lookup(int(class_id))
            detections.append(
                Detection(
                    box=BoundingBox(
                        left=float(box[0]),
                        top=float(box[1]),
                        right=float(box[2]),
                        bottom=float(box[3]),
                    ),
                    confidence=float(confidence),
                    class_index=int(class_id),
                    class_name=info.name,
                    color=info.color,
                )
            )

        return detections


def decode(
    output: Any,
    original_width: float,
    original_height: float,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    catalog: ClassCatalog | None = None,
) -> list[Detection]:
    """Decode with a decoder built from detector.yaml.

    Args:
        output: Model output with shape [1, 5 + num_classes, N]
        original_width: Width of the image before preprocessing
        original_height: Height of the image before preprocessing
        confidence_threshold: Objectness must be strictly above this
        catalog: Class catalog (default: built from detector.yaml)

    Raises:
        MalformedTensor: If the output shape does not match
    """
    if catalog is None:
        catalog = ClassCatalog.from_config()
    decoder = DetectionDecoder(catalog)
    return decoder.decode(output, original_width, original_height, confidence_threshold)
