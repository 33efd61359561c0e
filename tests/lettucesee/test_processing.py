"""
Unit Tests for Processing Module

This module tests:
- transforms.py: stretch_resize, symmetric_normalize, load functions
- preprocess.py: LettucePreprocessor class and prepare()
- visualize.py: draw_detections, encode_png

Test Categories:
- Shape validation: Output tensor dimensions and layout
- Dtype validation: Output tensors are float32
- Range validation: Output values within [-1, 1]
- Edge cases: Zero-sized and malformed inputs

Author: Matthew Hong
"""

import cv2
import numpy as np
import pytest

from lettucesee.errors import InvalidImage
from lettucesee.processing.decode import BoundingBox, Detection
from lettucesee.processing.preprocess import (
    INPUT_SIZE,
    LettucePreprocessor,
    LettucePreprocessResult,
    prepare,
)
from lettucesee.processing.transforms import (
    load_image,
    load_image_from_bytes,
    stretch_resize,
    symmetric_normalize,
)
from lettucesee.processing.visualize import draw_detections, encode_png

# =============================================================================
# Tests for transforms.py
# =============================================================================


class TestStretchResize:
    """Tests for stretch_resize transform."""

    @pytest.mark.parametrize(
        "shape",
        [
            (960, 1280, 3),  # landscape
            (1280, 720, 3),  # portrait
            (640, 640, 3),  # exact fit
            (1, 1, 3),  # single pixel
            (7, 3000, 3),  # extreme aspect ratio
        ],
    )
    def test_output_is_square(self, shape: tuple) -> None:
        """Any input should become exactly 640x640, no padding."""
        image = np.zeros(shape, dtype=np.uint8)

        resized = stretch_resize(image, 640)

        assert resized.shape == (640, 640, 3)
        assert resized.dtype == np.uint8

    def test_stretch_does_not_pad(self) -> None:
        """A uniform wide image stays uniform: no letterbox bars."""
        image = np.full((100, 400, 3), 200, dtype=np.uint8)

        resized = stretch_resize(image, 640)

        assert np.all(resized == 200)

    def test_left_half_maps_to_left_half(self) -> None:
        """Horizontal content is stretched across the full width."""
        image = np.zeros((100, 400, 3), dtype=np.uint8)
        image[:, :200] = 255

        resized = stretch_resize(image, 640)

        assert np.all(resized[:, :310] == 255)
        assert np.all(resized[:, 330:] == 0)


class TestSymmetricNormalize:
    """Tests for [-1, 1] normalization."""

    def test_extremes(self) -> None:
        """0 maps to -1 and 255 maps to 1."""
        pixels = np.array([0, 255], dtype=np.uint8)

        normalized = symmetric_normalize(pixels)

        assert normalized[0] == -1.0
        assert normalized[1] == 1.0

    def test_formula(self) -> None:
        """Every value should equal (c / 255) * 2 - 1."""
        pixels = np.arange(256, dtype=np.uint8)

        normalized = symmetric_normalize(pixels)

        expected = (np.arange(256) / 255.0) * 2 - 1
        assert np.allclose(normalized, expected, atol=1e-6)

    def test_output_dtype(self, sample_image: np.ndarray) -> None:
        """Output should be float32 and keep the input shape."""
        normalized = symmetric_normalize(sample_image)

        assert normalized.dtype == np.float32
        assert normalized.shape == sample_image.shape


class TestLoadImage:
    """Tests for image loading functions."""

    def test_load_image_nonexistent_file(self) -> None:
        """Should raise ValueError for missing file."""
        with pytest.raises(ValueError, match="Failed to load"):
            load_image("/nonexistent/path/image.jpg")

    def test_load_image_from_bytes_invalid(self) -> None:
        """Should raise ValueError for invalid bytes."""
        with pytest.raises(ValueError, match="Failed to decode"):
            load_image_from_bytes(b"not an image")

    def test_load_image_from_bytes_empty(self) -> None:
        """Should raise ValueError for empty bytes."""
        with pytest.raises(ValueError, match="Failed to decode"):
            load_image_from_bytes(b"")

    def test_load_image_from_bytes_png_is_rgb(self) -> None:
        """Decoded pixels should be RGB, not OpenCV's BGR."""
        rgb = np.zeros((4, 6, 3), dtype=np.uint8)
        rgb[..., 0] = 255  # pure red
        ok, buffer = cv2.imencode(".png", cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
        assert ok

        decoded = load_image_from_bytes(buffer.tobytes())

        assert decoded.shape == (4, 6, 3)
        assert np.array_equal(decoded, rgb)


# =============================================================================
# Tests for LettucePreprocessor
# =============================================================================


class TestLettucePreprocessor:
    """Tests for LettucePreprocessor class."""

    @pytest.fixture
    def preprocessor(self) -> LettucePreprocessor:
        """Create LettucePreprocessor instance."""
        return LettucePreprocessor()

    def test_input_size_from_config(self) -> None:
        """Default input size should be 640."""
        assert INPUT_SIZE == 640

    def test_output_shape(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Output tensor should be NHWC [1, 640, 640, 3]."""
        result = preprocessor(sample_image)

        assert result.tensor.shape == (1, 640, 640, 3)

    def test_value_count(
        self,
        preprocessor: LettucePreprocessor,
        sample_image_portrait: np.ndarray,
    ) -> None:
        """Flat view should hold exactly 3 * 640^2 values."""
        result = preprocessor(sample_image_portrait)

        assert result.values.shape == (3 * 640 * 640,)

    def test_output_dtype(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Output tensor should be float32."""
        result = preprocessor(sample_image)

        assert result.tensor.dtype == np.float32

    def test_output_range(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Output tensor should be in range [-1, 1]."""
        result = preprocessor(sample_image)

        assert result.tensor.min() >= -1.0
        assert result.tensor.max() <= 1.0

    def test_output_contiguous(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Output tensor should be contiguous for the inference engine."""
        result = preprocessor(sample_image)

        assert result.tensor.flags["C_CONTIGUOUS"]

    def test_pixel_interleaved_layout(self, preprocessor: LettucePreprocessor) -> None:
        """Flat values should be R, G, B per pixel in row-major order."""
        image = np.zeros((640, 640, 3), dtype=np.uint8)
        image[0, 0] = (255, 0, 0)
        image[0, 1] = (0, 255, 0)
        image[1, 0] = (0, 0, 255)

        values = preprocessor(image).values

        assert values[0:3].tolist() == [1.0, -1.0, -1.0]
        assert values[3:6].tolist() == [-1.0, 1.0, -1.0]
        row = 640 * 3
        assert values[row : row + 3].tolist() == [-1.0, -1.0, 1.0]

    def test_square_input_is_unchanged_before_normalization(
        self,
        preprocessor: LettucePreprocessor,
        sample_image_square: np.ndarray,
    ) -> None:
        """A 640x640 input should only be normalized."""
        result = preprocessor(sample_image_square)

        expected = symmetric_normalize(sample_image_square)
        assert np.allclose(result.tensor[0], expected)

    def test_result_contains_original_shape(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Result should remember the original height and width."""
        result = preprocessor(sample_image)

        assert result.original_shape == (960, 1280)
        assert result.original_width == 1280
        assert result.original_height == 960

    def test_callable_interface(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Preprocessor should be callable."""
        result = preprocessor(sample_image)

        assert isinstance(result, LettucePreprocessResult)

    def test_does_not_modify_input(
        self,
        preprocessor: LettucePreprocessor,
        sample_image: np.ndarray,
    ) -> None:
        """Preprocessing is pure."""
        original = sample_image.copy()

        preprocessor(sample_image)

        assert np.array_equal(sample_image, original)

    @pytest.mark.parametrize("shape", [(0, 100, 3), (100, 0, 3), (0, 0, 3)])
    def test_zero_size_raises_invalid_image(
        self,
        preprocessor: LettucePreprocessor,
        shape: tuple,
    ) -> None:
        """Zero width or height should raise InvalidImage."""
        with pytest.raises(InvalidImage, match="zero size"):
            preprocessor(np.zeros(shape, dtype=np.uint8))

    def test_invalid_input_wrong_ndim(self, preprocessor: LettucePreprocessor) -> None:
        """Should raise InvalidImage for non-3D input."""
        with pytest.raises(InvalidImage, match="3D array"):
            preprocessor(np.zeros((100, 100), dtype=np.uint8))

    def test_invalid_input_wrong_channels(self, preprocessor: LettucePreprocessor) -> None:
        """Should raise InvalidImage for non-RGB input."""
        with pytest.raises(InvalidImage, match="3 channels"):
            preprocessor(np.zeros((100, 100, 4), dtype=np.uint8))

    def test_invalid_input_wrong_dtype(self, preprocessor: LettucePreprocessor) -> None:
        """Should raise InvalidImage for non-uint8 input."""
        with pytest.raises(InvalidImage, match="uint8"):
            preprocessor(np.zeros((100, 100, 3), dtype=np.float32))

    def test_invalid_image_is_value_error(self, preprocessor: LettucePreprocessor) -> None:
        """InvalidImage should be catchable as ValueError."""
        with pytest.raises(ValueError):
            preprocessor(np.zeros((0, 10, 3), dtype=np.uint8))

    def test_get_input_shape(self, preprocessor: LettucePreprocessor) -> None:
        """Input shape should be NHWC."""
        assert preprocessor.get_input_shape() == (1, 640, 640, 3)

    def test_get_input_dtype(self) -> None:
        """Static method should return float32 dtype."""
        assert LettucePreprocessor.get_input_dtype() == np.float32

    def test_custom_input_size(self, sample_image: np.ndarray) -> None:
        """Other square sizes should be supported."""
        result = LettucePreprocessor(input_size=320)(sample_image)

        assert result.tensor.shape == (1, 320, 320, 3)


class TestPrepare:
    """Tests for the prepare() convenience function."""

    def test_matches_preprocessor(self, sample_image: np.ndarray) -> None:
        """prepare() should return the preprocessor's tensor."""
        tensor = prepare(sample_image)

        expected = LettucePreprocessor()(sample_image).tensor
        assert np.array_equal(tensor, expected)

    def test_zero_size(self) -> None:
        """prepare() should reject empty images."""
        with pytest.raises(InvalidImage):
            prepare(np.zeros((0, 0, 3), dtype=np.uint8))


# =============================================================================
# Tests for visualize.py
# =============================================================================


class TestDrawDetections:
    """Tests for detection overlays."""

    @pytest.fixture
    def detection(self) -> Detection:
        return Detection(
            box=BoundingBox(left=20, top=30, right=80, bottom=90),
            confidence=0.9,
            class_index=1,
            class_name="disease_lettuce",
            color=(255, 0, 0),
        )

    def test_does_not_modify_input(self, detection: Detection) -> None:
        """Input image should be left untouched."""
        image = np.zeros((120, 120, 3), dtype=np.uint8)

        annotated = draw_detections(image, [detection])

        assert not image.any()
        assert annotated.shape == image.shape

    def test_box_drawn_in_class_color(self, detection: Detection) -> None:
        """Box edge pixels should carry the class RGB color."""
        image = np.zeros((120, 120, 3), dtype=np.uint8)

        annotated = draw_detections(image, [detection])

        assert tuple(annotated[60, 20]) == (255, 0, 0)
        assert tuple(annotated[60, 80]) == (255, 0, 0)

    def test_no_detections(self, sample_image_square: np.ndarray) -> None:
        """No detections should give an identical copy."""
        annotated = draw_detections(sample_image_square, [])

        assert np.array_equal(annotated, sample_image_square)

    def test_box_outside_image(self) -> None:
        """Boxes past the image edge should not raise."""
        image = np.zeros((50, 50, 3), dtype=np.uint8)
        det = Detection(
            box=BoundingBox(left=-40, top=-40, right=200, bottom=200),
            confidence=0.5,
            class_index=2,
            class_name="weed",
            color=(255, 255, 0),
        )

        annotated = draw_detections(image, [det])

        assert annotated.shape == (50, 50, 3)

    def test_encode_png_roundtrip(self, detection: Detection) -> None:
        """encode_png output should decode back to the same RGB pixels."""
        image = draw_detections(np.zeros((120, 120, 3), dtype=np.uint8), [detection])

        png = encode_png(image)

        assert png[:8] == b"\x89PNG\r\n\x1a\n"
        assert np.array_equal(load_image_from_bytes(png), image)
