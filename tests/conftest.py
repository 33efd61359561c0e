"""
Pytest Fixtures - Shared Test Fixtures for LettuceSee

Fixtures:
    sample_image: Sample RGB image (960x1280) for testing
    sample_image_square: Sample RGB image (640x640) for testing
    sample_image_portrait: Sample RGB image (1280x720) for testing
    catalog: Default three-class catalog
    make_output: Factory for [1, 8, N] detector output tensors
    fake_engine: InferenceEngine stand-in returning a fixed output

Author: Matthew Hong
"""

from typing import Callable, Sequence

import numpy as np
import pytest

from lettucesee.catalog import ClassCatalog, ClassInfo

NUM_CLASSES = 3
INPUT_SIZE = 640


# =============================================================================
# Image Fixtures
# =============================================================================

@pytest.fixture
def sample_image() -> np.ndarray:
    """
    Sample landscape RGB image for testing.

    Returns:
        RGB uint8 array with shape [960, 1280, 3]
    """
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (960, 1280, 3), dtype=np.uint8)


@pytest.fixture
def sample_image_square() -> np.ndarray:
    """
    Sample square RGB image (640x640) for testing.

    Returns:
        RGB uint8 array with shape [640, 640, 3]
    """
    rng = np.random.default_rng(43)
    return rng.integers(0, 256, (640, 640, 3), dtype=np.uint8)


@pytest.fixture
def sample_image_portrait() -> np.ndarray:
    """
    Sample portrait RGB image (1280x720) for testing.

    Returns:
        RGB uint8 array with shape [1280, 720, 3]
    """
    rng = np.random.default_rng(44)
    return rng.integers(0, 256, (1280, 720, 3), dtype=np.uint8)


# =============================================================================
# Catalog Fixtures
# =============================================================================

@pytest.fixture
def catalog() -> ClassCatalog:
    """Default catalog: normal_lettuce/blue, disease_lettuce/red, weed/yellow."""
    return ClassCatalog(
        entries={
            0: ClassInfo("normal_lettuce", (0, 0, 255)),
            1: ClassInfo("disease_lettuce", (255, 0, 0)),
            2: ClassInfo("weed", (255, 255, 0)),
        }
    )


# =============================================================================
# Output Tensor Fixtures
# =============================================================================

Candidate = tuple[Sequence[float], float, Sequence[float]]
"""(box [x, y, w, h], confidence, class_scores)."""


def build_output(
    candidates: Sequence[Candidate],
    num_candidates: int | None = None,
    num_classes: int = NUM_CLASSES,
) -> np.ndarray:
    """
    Build a detector output tensor with the given candidates.

    Candidates fill indices 0..len(candidates)-1; any remaining indices
    are all-zero (and so are never emitted).

    Returns:
        float32 array with shape [1, 5 + num_classes, N]
    """
    n = num_candidates if num_candidates is not None else len(candidates)
    output = np.zeros((1, 5 + num_classes, n), dtype=np.float32)

    for i, (box, confidence, scores) in enumerate(candidates):
        output[0, 0:4, i] = box
        output[0, 4, i] = confidence
        output[0, 5 : 5 + num_classes, i] = scores

    return output


@pytest.fixture
def make_output() -> Callable[..., np.ndarray]:
    """Factory fixture wrapping build_output."""
    return build_output


class FakeEngine:
    """InferenceEngine stand-in that records inputs and returns a fixed output."""

    def __init__(self, output: np.ndarray) -> None:
        self.output = output
        self.calls: list[np.ndarray] = []

    def run(self, tensor: np.ndarray) -> np.ndarray:
        self.calls.append(tensor)
        return self.output


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Engine returning one disease_lettuce candidate at the model center."""
    output = build_output(
        [([320, 320, 100, 50], 0.9, [0.1, 0.8, 0.05])],
        num_candidates=8400,
    )
    return FakeEngine(output)
