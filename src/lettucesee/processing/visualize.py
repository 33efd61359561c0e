"""Detection overlay rendering.

Draws decoded detections onto an RGB image: a rectangle in the class
color plus a ``"<class>: <percent>%"`` label above it.

Author: Matthew Hong
"""

from typing import Iterable

import cv2
import numpy as np

from lettucesee.processing.decode import Detection

BOX_THICKNESS: int = 2
FONT_SCALE: float = 0.5
FONT = cv2.FONT_HERSHEY_SIMPLEX


def draw_detections(
    image: np.ndarray,
    detections: Iterable[Detection],
    thickness: int = BOX_THICKNESS,
) -> np.ndarray:
    """Return a copy of image with detections drawn on it.

    Boxes are rounded to integer pixels for drawing only; boxes that
    extend past the image edge are clipped by OpenCV.

    Args:
        image: RGB uint8 array [H, W, 3]
        detections: Detections in image pixel coordinates
        thickness: Rectangle line thickness in pixels

    Returns:
        Annotated RGB uint8 array, same shape as image
    """
    canvas = np.ascontiguousarray(image.copy())

    for det in detections:
        left, top, right, bottom = (int(round(v)) for v in det.box.as_tuple())
        color = tuple(int(c) for c in det.color)

        cv2.rectangle(canvas, (left, top), (right, bottom), color, thickness)

        (text_w, text_h), baseline = cv2.getTextSize(det.label, FONT, FONT_SCALE, 1)
        text_top = max(top - text_h - baseline, 0)
        cv2.rectangle(
            canvas,
            (left, text_top),
            (left + text_w, text_top + text_h + baseline),
            color,
            cv2.FILLED,
        )
        cv2.putText(
            canvas,
            det.label,
            (left, text_top + text_h),
            FONT,
            FONT_SCALE,
            _text_color(det.color),
            1,
            cv2.LINE_AA,
        )

    return canvas


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGB image as PNG bytes.

    Raises:
        ValueError: If OpenCV fails to encode the image
    """
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(image, cv2.COLOR_RGB2BGR))
    if not ok:
        raise ValueError("Failed to encode image as PNG")
    return buffer.tobytes()


def _text_color(background: tuple[int, int, int]) -> tuple[int, int, int]:
    # Black on light fills (yellow), white on dark ones (blue, red)
    r, g, b = background
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    return (0, 0, 0) if luminance > 140 else (255, 255, 255)
