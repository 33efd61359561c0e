"""Lettuce detector preprocessing pipeline.

This module provides the LettucePreprocessor class for preparing images
for the lettuce detector.

Pipeline:
    1. Stretch resize to 640x640 (aspect ratio NOT preserved)
    2. Normalize to [-1, 1] via (pixel / 255) * 2 - 1
    3. Add batch dimension -> [1, 640, 640, 3] (NHWC)

The tensor stays channels-last: flattened, it is R, G, B for each pixel
in row-major order, which is the layout the exported detector reads.

Author: Matthew Hong
"""

from dataclasses import dataclass

import numpy as np

from lettucesee.config import get_model_config
from lettucesee.errors import InvalidImage
from lettucesee.processing.transforms import stretch_resize, symmetric_normalize

# =============================================================================
# Constants (Loaded from detector.yaml)
# =============================================================================

INPUT_SIZE: int = get_model_config()["input_size"]
"""Square model input dimension from detector.yaml."""


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class LettucePreprocessResult:
    """Result container for detector preprocessing.

    Attributes:
        tensor: Preprocessed image tensor [1, 640, 640, 3], float32, range [-1, 1]
        original_shape: (height, width) of input image
    """

    tensor: np.ndarray
    original_shape: tuple[int, int]

    @property
    def original_width(self) -> int:
        return self.original_shape[1]

    @property
    def original_height(self) -> int:
        return self.original_shape[0]

    @property
    def values(self) -> np.ndarray:
        """Flat view of the tensor: 3 * INPUT_SIZE**2 float32 values."""
        return self.tensor.reshape(-1)


# =============================================================================
# Preprocessor Class
# =============================================================================


class LettucePreprocessor:
    """Preprocessor for the lettuce detection model.

    Pure and stateless apart from its configuration, so one instance can be
    shared between threads.

    Attributes:
        input_size: Target input dimension (default: 640)

    Example:
        >>> preprocessor = LettucePreprocessor()
        >>> image = np.random.randint(0, 256, (960, 1280, 3), dtype=np.uint8)
        >>> result = preprocessor(image)
        >>> result.tensor.shape
        (1, 640, 640, 3)
        >>> -1.0 <= result.tensor.min() <= result.tensor.max() <= 1.0
        True
    """

    def __init__(self, input_size: int = INPUT_SIZE) -> None:
        """Initialize LettucePreprocessor.

        Args:
            input_size: Target square dimension for model input (default: 640)
        """
        self.input_size = input_size

    def __call__(self, image: np.ndarray) -> LettucePreprocessResult:
        """Preprocess image for detector inference.

        Args:
            image: RGB uint8 array with shape [H, W, 3]

        Returns:
            LettucePreprocessResult containing tensor and original shape

        Raises:
            InvalidImage: If image has zero size, invalid shape or dtype
        """
        return self.preprocess(image)

    def preprocess(self, image: np.ndarray) -> LettucePreprocessResult:
        """Preprocess image for detector inference.

        Pipeline:
            1. Stretch resize to input_size x input_size
            2. Normalize to [-1, 1]
            3. Add batch dimension

        Args:
            image: RGB uint8 array with shape [H, W, 3]

        Returns:
            LettucePreprocessResult containing:
                - tensor: [1, 640, 640, 3] float32 in [-1, 1]
                - original_shape: Input image dimensions

        Raises:
            InvalidImage: If image has zero size, invalid shape or dtype
        """
        self._validate_input(image)

        original_shape = (image.shape[0], image.shape[1])

        # Step 1: Stretch resize
        resized = stretch_resize(image, self.input_size)

        # Step 2: Normalize to [-1, 1]
        normalized = symmetric_normalize(resized)

        # Step 3: Add batch dimension
        batched = np.expand_dims(normalized, axis=0)

        tensor = np.ascontiguousarray(batched, dtype=np.float32)

        return LettucePreprocessResult(tensor=tensor, original_shape=original_shape)

    def _validate_input(self, image: np.ndarray) -> None:
        """Validate input image.

        Raises:
            InvalidImage: If image has zero size, invalid shape or dtype
        """
        if not isinstance(image, np.ndarray):
            raise InvalidImage(f"Expected numpy array, got {type(image)}")

        if image.ndim != 3:
            raise InvalidImage(f"Expected 3D array [H, W, C], got {image.ndim}D")

        if image.shape[2] != 3:
            raise InvalidImage(f"Expected 3 channels, got {image.shape[2]}")

        if image.dtype != np.uint8:
            raise InvalidImage(f"Expected uint8 dtype, got {image.dtype}")

        if image.shape[0] == 0 or image.shape[1] == 0:
            raise InvalidImage(
                f"Image has zero size: width={image.shape[1]}, height={image.shape[0]}"
            )

    def get_input_shape(self) -> tuple[int, int, int, int]:
        """Get expected model input shape.

        Returns:
            Tuple of (batch, height, width, channels)
        """
        return (1, self.input_size, self.input_size, 3)

    @staticmethod
    def get_input_dtype() -> np.dtype:
        """Get expected model input dtype.

        Returns:
            numpy dtype (float32)
        """
        return np.dtype(np.float32)


def prepare(image: np.ndarray, input_size: int = INPUT_SIZE) -> np.ndarray:
    """Preprocess an image and return only the input tensor.

    Args:
        image: RGB uint8 array with shape [H, W, 3]
        input_size: Target square dimension (default: 640)

    Returns:
        float32 tensor [1, input_size, input_size, 3] in [-1, 1]

    Raises:
        InvalidImage: If image has zero size, invalid shape or dtype
    """
    return LettucePreprocessor(input_size).preprocess(image).tensor
