"""FastAPI application for the lettuce detection service.

This module provides the HTTP API:
- POST /detect: Detect lettuce, disease and weeds in an uploaded image
- POST /detect/annotated: Same, returned as a PNG with boxes drawn
- GET /health: Service health check

The detector is loaded from MODELS_DIR on startup. Detection runs in a
worker thread bounded by INFERENCE_TIMEOUT_S so a slow model never blocks
the event loop.

Author: Matthew Hong
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import numpy as np
from fastapi import FastAPI, File, HTTPException, Query, Response, UploadFile

from lettucesee.errors import InvalidImage, MalformedTensor
from lettucesee.model.registry import ModelRegistry
from lettucesee.pipeline import DetectionPipeline
from lettucesee.processing.decode import Detection
from lettucesee.processing.transforms import load_image_from_bytes
from lettucesee.processing.visualize import draw_detections, encode_png

from .config import get_settings
from .logger import detection_fields, request_id_var, setup_logging
from .models import DetectionBox, DetectResponse, HealthResponse

# Global pipeline (initialized during lifespan)
pipeline: DetectionPipeline | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Startup: setup logging, load the detector, build the pipeline.
    """
    global pipeline
    settings = get_settings()

    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting detection service", extra={"port": settings.PORT})

    registry = ModelRegistry(Path(settings.MODELS_DIR))
    pipeline = DetectionPipeline.from_registry(
        registry,
        model_name=settings.MODEL_NAME,
        confidence_threshold=settings.CONFIDENCE_THRESHOLD,
    )
    logger.info("Service ready for requests")

    yield

    logger.info("Shutting down detection service")
    registry.clear_cache()
    pipeline = None


app = FastAPI(
    title="LettuceSee Detection Service",
    description="Healthy lettuce, diseased lettuce and weed detection",
    version="1.0.0",
    lifespan=lifespan,
)


async def _detect(
    image_bytes: bytes,
    confidence_threshold: float | None,
    endpoint: str,
) -> tuple[np.ndarray, list[Detection], dict[str, float]]:
    """Decode the upload and run the pipeline off the event loop.

    Raises:
        HTTPException: 400 undecodable or invalid image, 500 model contract
            violation or unexpected failure, 503 not ready, 504 timeout
    """
    if pipeline is None:
        logger.error("Pipeline not initialized", extra={"endpoint": endpoint})
        raise HTTPException(status_code=503, detail="Service not ready")

    try:
        image = load_image_from_bytes(image_bytes)
    except ValueError as e:
        logger.warning(
            f"Undecodable upload: {e}",
            extra={"endpoint": endpoint, "status_code": 400},
        )
        raise HTTPException(status_code=400, detail=str(e))

    settings = get_settings()
    threshold = (
        pipeline.confidence_threshold
        if confidence_threshold is None
        else confidence_threshold
    )

    try:
        detections, timing = await asyncio.wait_for(
            asyncio.to_thread(pipeline.detect_with_timing, image, threshold),
            timeout=settings.INFERENCE_TIMEOUT_S,
        )
    except asyncio.TimeoutError:
        logger.error(
            f"Detection exceeded {settings.INFERENCE_TIMEOUT_S}s",
            extra={"endpoint": endpoint, "status_code": 504},
        )
        raise HTTPException(status_code=504, detail="Inference timed out")
    except InvalidImage as e:
        logger.warning(
            f"Invalid image: {e}",
            extra={"endpoint": endpoint, "status_code": 400},
        )
        raise HTTPException(status_code=400, detail=str(e))
    except MalformedTensor as e:
        logger.error(
            f"Model output rejected: {e}",
            extra={"endpoint": endpoint, "status_code": 500},
        )
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(
            f"Detect failed: {e}",
            extra={"endpoint": endpoint, "status_code": 500},
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(
        "Detect complete",
        extra={
            "endpoint": endpoint,
            "latency_ms": timing["total_ms"],
            "status_code": 200,
            **detection_fields(detections, threshold, image.shape),
        },
    )
    return image, detections, timing


@app.post("/detect", response_model=DetectResponse)
async def detect(
    file: UploadFile = File(...),
    confidence_threshold: float | None = Query(default=None, ge=0.0, le=1.0),
):
    """Run detection on an uploaded image.

    Args:
        file: Uploaded image file (JPEG, PNG, etc.)
        confidence_threshold: Optional override of the default threshold

    Returns:
        DetectResponse with detections and timing
    """
    request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    logger.info("Received detect request", extra={"endpoint": "/detect"})

    image_bytes = await file.read()
    image, detections, timing = await _detect(image_bytes, confidence_threshold, "/detect")

    return DetectResponse(
        request_id=request_id,
        image_width=image.shape[1],
        image_height=image.shape[0],
        detections=[DetectionBox.from_detection(d) for d in detections],
        timing=timing,
    )


@app.post("/detect/annotated")
async def detect_annotated(
    file: UploadFile = File(...),
    confidence_threshold: float | None = Query(default=None, ge=0.0, le=1.0),
):
    """Run detection and return the image with boxes and labels drawn.

    Returns:
        PNG image; X-Request-ID and X-Detections headers carry metadata
    """
    request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    logger.info("Received annotate request", extra={"endpoint": "/detect/annotated"})

    image_bytes = await file.read()
    image, detections, _ = await _detect(
        image_bytes, confidence_threshold, "/detect/annotated"
    )

    png = encode_png(draw_detections(image, detections))

    return Response(
        content=png,
        media_type="image/png",
        headers={"X-Request-ID": request_id, "X-Detections": str(len(detections))},
    )


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    request_id_var.set(str(uuid.uuid4()))

    return HealthResponse(
        status="healthy",
        detector_loaded=pipeline is not None,
    )
