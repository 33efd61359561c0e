"""
Low-Level Image Transforms

This module contains atomic transformation functions used by
LettucePreprocessor and the detection service.

Functions:
    load_image: Load image file as RGB numpy array
    load_image_from_bytes: Decode image bytes as RGB numpy array
    stretch_resize: Resize to a square without preserving aspect ratio
    symmetric_normalize: Map uint8 pixels [0, 255] to float32 [-1, 1]

Author: Matthew Hong
"""

import cv2
import numpy as np


# =============================================================================
# Image Loading
# =============================================================================

def load_image(image_path: str) -> np.ndarray:
    """
    Load an image file as an RGB numpy array.

    OpenCV decodes to BGR; the result is converted to RGB to match the
    channel order the detector was trained on.

    Args:
        image_path: Path to image file (JPEG, PNG, etc.)

    Returns:
        RGB uint8 array with shape [H, W, 3]

    Raises:
        ValueError: If image cannot be loaded (file not found or corrupted)
    """
    bgr = cv2.imread(image_path, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ValueError(f"Failed to load image: {image_path}")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def load_image_from_bytes(image_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes as an RGB numpy array.

    Used for uploads received over HTTP without writing to disk.

    Args:
        image_bytes: Raw image bytes (JPEG, PNG, etc.)

    Returns:
        RGB uint8 array with shape [H, W, 3]

    Raises:
        ValueError: If image cannot be decoded
    """
    if not image_bytes:
        raise ValueError("Failed to decode image from bytes: empty input")

    buffer = np.frombuffer(image_bytes, np.uint8)
    bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ValueError("Failed to decode image from bytes")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


# =============================================================================
# Geometric Transforms
# =============================================================================

def stretch_resize(image: np.ndarray, target_size: int) -> np.ndarray:
    """
    Resize image to target_size x target_size, stretching as needed.

    The detector was trained on stretched squares, so no letterbox
    padding is applied and the aspect ratio changes freely. Box
    coordinates are mapped back with independent x/y scale factors.

    Args:
        image: RGB uint8 array with shape [H, W, 3], H and W > 0
        target_size: Side of the square output (e.g., 640)

    Returns:
        Resized uint8 array [target_size, target_size, 3]

    Example:
        >>> image = np.zeros((960, 1280, 3), dtype=np.uint8)
        >>> stretch_resize(image, 640).shape
        (640, 640, 3)
    """
    return cv2.resize(
        image,
        (target_size, target_size),
        interpolation=cv2.INTER_LINEAR,
    )


# =============================================================================
# Intensity Transforms
# =============================================================================

def symmetric_normalize(image: np.ndarray) -> np.ndarray:
    """
    Normalize uint8 pixels to float32 in [-1, 1].

    Formula: normalized = (pixel / 255.0) * 2 - 1

    Args:
        image: uint8 array of any shape

    Returns:
        float32 array with the same shape

    Example:
        >>> symmetric_normalize(np.array([0, 255], dtype=np.uint8))
        array([-1.,  1.], dtype=float32)
    """
    normalized = image.astype(np.float32) / np.float32(255.0)
    return normalized * np.float32(2.0) - np.float32(1.0)
