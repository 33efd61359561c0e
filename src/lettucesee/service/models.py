"""Pydantic models for API request/response schemas.

Author: Matthew Hong
"""

from pydantic import BaseModel, Field

from lettucesee.processing.decode import Detection


class DetectionBox(BaseModel):
    """One detection in original-image pixel coordinates.

    Attributes:
        x1: Left coordinate
        y1: Top coordinate
        x2: Right coordinate
        y2: Bottom coordinate
        confidence: Objectness score [0, 1]
        class_id: Class index
        class_name: Human-readable class name
        color: RGB display color
        label: Display label, e.g. "weed: 87%"
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    class_name: str
    color: list[int]
    label: str

    @classmethod
    def from_detection(cls, detection: Detection) -> "DetectionBox":
        return cls(**detection.to_dict())


class DetectResponse(BaseModel):
    """Response model for /detect endpoint.

    Attributes:
        request_id: Unique request identifier for tracing
        image_width: Width of the uploaded image
        image_height: Height of the uploaded image
        detections: Detections in candidate order (no suppression applied)
        timing: Per-stage latency in milliseconds
    """

    request_id: str
    image_width: int
    image_height: int
    detections: list[DetectionBox]
    timing: dict[str, float] = Field(
        description="Performance timing breakdown in milliseconds"
    )


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str = "healthy"
    detector_loaded: bool
