"""
Model Module - Inference Engine for the Lettuce Detector

This module provides:
- registry: ONNX Runtime session loading, caching and the engine adapter
"""

from lettucesee.model.registry import (
    DEFAULT_INTER_OP_THREADS,
    DEFAULT_INTRA_OP_THREADS,
    InferenceEngine,
    ModelInfo,
    ModelRegistry,
    OnnxInferenceEngine,
    SessionConfig,
    get_default_registry,
    reset_default_registry,
)

__all__ = [
    "DEFAULT_INTER_OP_THREADS",
    "DEFAULT_INTRA_OP_THREADS",
    "InferenceEngine",
    "ModelInfo",
    "ModelRegistry",
    "OnnxInferenceEngine",
    "SessionConfig",
    "get_default_registry",
    "reset_default_registry",
]
