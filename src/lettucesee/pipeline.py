"""Detection pipeline: preprocess, inference, decode.

This module wires the three stages together:
1. LettucePreprocessor (stretch resize + [-1, 1] normalization)
2. Inference engine (ONNX Runtime by default, any InferenceEngine works)
3. DetectionDecoder (threshold, class arbitration, image-space boxes)

The pipeline itself holds no per-call state. The engine call is the only
slow step; callers on an event loop or UI thread should run
detect_objects in a worker thread.

Author: Matthew Hong
"""

import logging
import time

import numpy as np

from lettucesee.catalog import ClassCatalog
from lettucesee.config import get_model_config
from lettucesee.model.registry import InferenceEngine, ModelRegistry
from lettucesee.processing.decode import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    Detection,
    DetectionDecoder,
)
from lettucesee.processing.preprocess import LettucePreprocessor

logger = logging.getLogger(__name__)


class DetectionPipeline:
    """End-to-end lettuce detection.

    Attributes:
        engine: Model runner
        preprocessor: Image to input tensor
        decoder: Output tensor to detections
        confidence_threshold: Default objectness threshold
    """

    def __init__(
        self,
        engine: InferenceEngine,
        preprocessor: LettucePreprocessor | None = None,
        decoder: DetectionDecoder | None = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self.engine = engine
        self.preprocessor = preprocessor or LettucePreprocessor()
        self.decoder = decoder or DetectionDecoder(
            ClassCatalog.from_config(),
            input_size=self.preprocessor.input_size,
        )
        self.confidence_threshold = confidence_threshold

        if self.decoder.input_size != self.preprocessor.input_size:
            raise ValueError(
                f"Decoder input_size {self.decoder.input_size} does not match "
                f"preprocessor input_size {self.preprocessor.input_size}"
            )

    @classmethod
    def from_registry(
        cls,
        registry: ModelRegistry,
        model_name: str | None = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> "DetectionPipeline":
        """Build the default pipeline around a registry-loaded model.

        Raises:
            FileNotFoundError: If the model file is missing
        """
        if model_name is None:
            model_name = get_model_config()["name"]

        logger.info(f"Loading detector '{model_name}'")
        engine = registry.get_engine(model_name)

        catalog = ClassCatalog.from_config()
        logger.info(f"Class catalog: {catalog.names}")

        return cls(
            engine,
            decoder=DetectionDecoder(catalog),
            confidence_threshold=confidence_threshold,
        )

    def detect_objects(
        self,
        image: np.ndarray,
        confidence_threshold: float | None = None,
    ) -> list[Detection]:
        """Detect lettuce, disease and weeds in an RGB image.

        Args:
            image: RGB uint8 array [H, W, 3]
            confidence_threshold: Override for the default threshold

        Returns:
            Detections in original-image pixels, candidate-index order

        Raises:
            InvalidImage: If the image cannot be preprocessed
            MalformedTensor: If the model output shape is wrong
        """
        detections, _ = self.detect_with_timing(image, confidence_threshold)
        return detections

    def detect_with_timing(
        self,
        image: np.ndarray,
        confidence_threshold: float | None = None,
    ) -> tuple[list[Detection], dict[str, float]]:
        """Run the pipeline and report per-stage latency.

        Returns:
            Tuple of (detections, timing) where timing holds
            'preprocess_ms', 'inference_ms', 'decode_ms', 'total_ms'
        """
        if confidence_threshold is None:
            confidence_threshold = self.confidence_threshold

        timing: dict[str, float] = {}
        t0 = time.perf_counter()

        prepared = self.preprocessor(image)
        t1 = time.perf_counter()
        timing["preprocess_ms"] = (t1 - t0) * 1000

        output = self.engine.run(prepared.tensor)
        t2 = time.perf_counter()
        timing["inference_ms"] = (t2 - t1) * 1000

        detections = self.decoder(
            output,
            prepared.original_width,
            prepared.original_height,
            confidence_threshold,
        )
        t3 = time.perf_counter()
        timing["decode_ms"] = (t3 - t2) * 1000
        timing["total_ms"] = (t3 - t0) * 1000

        logger.debug(
            f"Detected {len(detections)} objects in {timing['total_ms']:.1f} ms "
            f"(threshold={confidence_threshold})"
        )

        return detections, timing


def detect_objects(
    image: np.ndarray,
    engine: InferenceEngine,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> list[Detection]:
    """One-shot detection with the default preprocessor and decoder.

    Equivalent to decode(engine.run(prepare(image)), width, height, threshold).
    """
    return DetectionPipeline(engine).detect_objects(image, confidence_threshold)
