"""ONNX Model Registry.

This module provides the inference engine adapter for the lettuce detector
and a registry that loads and caches ONNX Runtime sessions.

Features:
- Lazy loading: Models loaded on first access
- Session caching: Avoid redundant model loading
- Thread configuration: intra_op/inter_op thread settings from detector.yaml
- Engine protocol: anything with run(tensor) -> ndarray can stand in for ONNX

The detector itself is a black box: one float32 input tensor in, one
[1, 5 + num_classes, N] output tensor out.

Author: Matthew Hong
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Protocol

import numpy as np

from lettucesee.config import get_model_config, get_section

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_INTRA_OP_THREADS: int = 2
"""ONNX Runtime intra-op parallelism (within single operator)."""

DEFAULT_INTER_OP_THREADS: int = 1
"""ONNX Runtime inter-op parallelism (across operators)."""


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ModelInfo:
    """Information about a loaded model.

    Attributes:
        name: Model identifier
        path: Path to ONNX file
        input_name: Name of input tensor
        input_shape: Expected input shape
        input_dtype: Expected input dtype
        output_name: Name of output tensor
        output_shape: Expected output shape
        input_layout: "NHWC" or "NCHW" for 4D image inputs, None otherwise
    """

    name: str
    path: Path
    input_name: str
    input_shape: tuple
    input_dtype: np.dtype
    output_name: str
    output_shape: tuple
    input_layout: str | None = None


def detect_input_layout(shape: tuple) -> str | None:
    """Work out the channel layout a model declares for its image input.

    Dynamic dimensions show up as strings or None and are never read as
    the channel axis.

    Args:
        shape: Input shape as reported by ONNX Runtime

    Returns:
        "NHWC", "NCHW", or None when the input is not 4D

    Raises:
        ValueError: If a 4D input has no 3-channel axis in position 1 or 3
    """
    if len(shape) != 4:
        return None
    if shape[3] == 3:
        return "NHWC"
    if shape[1] == 3:
        return "NCHW"
    raise ValueError(
        f"Unsupported input layout {shape}: expected [1, H, W, 3] or [1, 3, H, W]"
    )


@dataclass
class SessionConfig:
    """Configuration for ONNX Runtime inference session.

    Attributes:
        intra_op_threads: Number of threads for intra-op parallelism
        inter_op_threads: Number of threads for inter-op parallelism
        providers: Execution providers (default: CPUExecutionProvider)
    """

    intra_op_threads: int = DEFAULT_INTRA_OP_THREADS
    inter_op_threads: int = DEFAULT_INTER_OP_THREADS
    providers: list[str] = field(default_factory=lambda: ["CPUExecutionProvider"])

    @classmethod
    def from_config(cls) -> "SessionConfig":
        """Build from the ``onnx_runtime`` section of detector.yaml."""
        onnx_config = get_section("onnx_runtime")
        return cls(
            intra_op_threads=onnx_config.get("intra_op_num_threads", DEFAULT_INTRA_OP_THREADS),
            inter_op_threads=onnx_config.get("inter_op_num_threads", DEFAULT_INTER_OP_THREADS),
        )


# =============================================================================
# Inference Engine
# =============================================================================


class InferenceEngine(Protocol):
    """Black-box model: input tensor in, output tensor out."""

    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...


class OnnxInferenceEngine:
    """InferenceEngine backed by an ONNX Runtime session.

    Feeds the tensor to the model's first input and returns its first
    output. Preprocessed tensors are NHWC; for a channels-first export
    (the usual YOLO ONNX layout) they are transposed to NCHW on the way
    in. ONNX Runtime sessions are safe to call from several threads.

    Example:
        >>> engine = registry.get_engine("lettuce_detector")
        >>> output = engine.run(prepare(image))
        >>> output.shape
        (1, 8, 8400)
    """

    def __init__(self, session: "ort.InferenceSession", info: ModelInfo) -> None:
        self.session = session
        self.info = info

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run the model on a single preprocessed tensor.

        Args:
            tensor: Preprocessed tensor, NHWC for image inputs

        Returns:
            First model output as a numpy array
        """
        if self.info.input_layout == "NCHW":
            tensor = np.ascontiguousarray(tensor.transpose(0, 3, 1, 2))

        outputs = self.session.run(
            [self.info.output_name],
            {self.info.input_name: tensor.astype(self.info.input_dtype, copy=False)},
        )
        return np.asarray(outputs[0])


# =============================================================================
# Model Registry
# =============================================================================


class ModelRegistry:
    """Registry for loading and caching ONNX inference engines.

    Example:
        >>> registry = ModelRegistry(models_dir=Path("models/"))
        >>> engine = registry.get_engine("lettuce_detector")
        >>> output = engine.run(input_tensor)

    Attributes:
        models_dir: Base directory for ONNX model files
        config: Session configuration (thread settings, providers)
        model_files: Known model names mapped to filenames
    """

    def __init__(
        self,
        models_dir: Path,
        config: SessionConfig | None = None,
        model_files: dict[str, str] | None = None,
    ) -> None:
        """Initialize ModelRegistry.

        Args:
            models_dir: Directory containing ONNX model files
            config: Session configuration (default: from detector.yaml)
            model_files: Name to filename map (default: the detector from detector.yaml)
        """
        self.models_dir = Path(models_dir)
        self.config = config or SessionConfig.from_config()

        if model_files is None:
            model_config = get_model_config()
            model_files = {model_config["name"]: model_config["filename"]}
        self.model_files = dict(model_files)

        self._engines: dict[str, OnnxInferenceEngine] = {}
        self._lock = Lock()

        logger.info("ModelRegistry initialized")
        logger.info(f"  Models dir: {self.models_dir}")
        logger.info(f"  Intra-op threads: {self.config.intra_op_threads}")
        logger.info(f"  Inter-op threads: {self.config.inter_op_threads}")

    def get_engine(self, model_name: str) -> OnnxInferenceEngine:
        """Get the inference engine for a model.

        Engines are cached after first load. Thread-safe for concurrent access.

        Args:
            model_name: Name of model (e.g. "lettuce_detector")

        Returns:
            OnnxInferenceEngine ready for inference

        Raises:
            FileNotFoundError: If model file not found
            ValueError: If the model input layout is unsupported
        """
        with self._lock:
            if model_name not in self._engines:
                self._load_model(model_name)

            return self._engines[model_name]

    def get_model_info(self, model_name: str) -> ModelInfo:
        """Get information about a model, loading it if needed.

        Example:
            >>> info = registry.get_model_info("lettuce_detector")
            >>> info.input_shape
            (1, 640, 640, 3)
        """
        return self.get_engine(model_name).info

    def resolve_path(self, model_name: str) -> Path:
        """Resolve the ONNX file for a model name.

        Unknown names are treated as bare filenames: ``<name>.onnx``.
        """
        filename = self.model_files.get(model_name, f"{model_name}.onnx")
        return self.models_dir / filename

    def _load_model(self, model_name: str) -> None:
        """Load a model into the registry.

        Raises:
            FileNotFoundError: If model file not found
            ValueError: If the model input layout is unsupported
        """
        import onnxruntime as ort

        model_path = self.resolve_path(model_name)

        if not model_path.exists():
            raise FileNotFoundError(
                f"Model file not found: {model_path}. "
                f"Export the detector to ONNX and place it in {self.models_dir}."
            )

        logger.info(f"Loading model: {model_name} from {model_path}")

        sess_options = ort.SessionOptions()
        sess_options.intra_op_num_threads = self.config.intra_op_threads
        sess_options.inter_op_num_threads = self.config.inter_op_threads

        # Disable memory pattern optimization for consistent behavior
        sess_options.enable_mem_pattern = False

        session = ort.InferenceSession(
            str(model_path),
            sess_options,
            providers=self.config.providers,
        )

        input_meta = session.get_inputs()[0]
        output_meta = session.get_outputs()[0]

        onnx_to_numpy = {
            "tensor(float)": np.float32,
            "tensor(float16)": np.float16,
            "tensor(double)": np.float64,
        }

        model_info = ModelInfo(
            name=model_name,
            path=model_path,
            input_name=input_meta.name,
            input_shape=tuple(input_meta.shape),
            input_dtype=np.dtype(onnx_to_numpy.get(input_meta.type, np.float32)),
            output_name=output_meta.name,
            output_shape=tuple(output_meta.shape),
            input_layout=detect_input_layout(tuple(input_meta.shape)),
        )

        self._engines[model_name] = OnnxInferenceEngine(session, model_info)

        logger.info(f"  Loaded {model_name}")
        logger.info(f"    Input: {model_info.input_name} {model_info.input_shape}")
        logger.info(f"    Output: {model_info.output_name} {model_info.output_shape}")

    def is_loaded(self, model_name: str) -> bool:
        """Check if a model is already loaded."""
        return model_name in self._engines

    def clear_cache(self) -> None:
        """Clear all cached engines."""
        with self._lock:
            self._engines.clear()
            logger.info("Model cache cleared")

    def list_available(self) -> list[str]:
        """List known models present in the models directory."""
        return [
            name
            for name, filename in self.model_files.items()
            if (self.models_dir / filename).exists()
        ]


# =============================================================================
# Default Registry Singleton
# =============================================================================

_default_registry: ModelRegistry | None = None
_default_registry_lock = Lock()


def get_default_registry(
    models_dir: Path | None = None,
    config: SessionConfig | None = None,
) -> ModelRegistry:
    """Get or create the default ModelRegistry singleton.

    Args:
        models_dir: Directory containing models (default: ./models)
        config: Session configuration

    Returns:
        Shared ModelRegistry instance
    """
    global _default_registry

    with _default_registry_lock:
        if _default_registry is None:
            if models_dir is None:
                models_dir = Path("models")

            _default_registry = ModelRegistry(models_dir, config)

        return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry singleton."""
    global _default_registry

    with _default_registry_lock:
        if _default_registry is not None:
            _default_registry.clear_cache()
        _default_registry = None
