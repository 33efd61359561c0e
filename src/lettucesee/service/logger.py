"""Structured JSON logging for the detection service.

Every record is written as one JSON object per line. The request id set
by the endpoint handlers is attached automatically, and a detect call's
summary (image size, threshold, per-class counts) travels as ``extra``
fields built by ``detection_fields``.

Author: Matthew Hong
"""

import json
import logging
import sys
from collections import Counter
from contextvars import ContextVar
from typing import IO, Any, Sequence

from lettucesee.processing.decode import Detection

# Request id of the call being served, None outside a request
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Keys copied from ``extra={...}`` into the JSON object when present
EXTRA_FIELDS = (
    "endpoint",
    "status_code",
    "latency_ms",
    "port",
    "image_width",
    "image_height",
    "threshold",
    "detections",
    "class_counts",
)


def detection_fields(
    detections: Sequence[Detection],
    threshold: float,
    image_shape: tuple[int, ...],
) -> dict[str, Any]:
    """Build the log ``extra`` that summarizes one detect call.

    Example:
        >>> detection_fields(dets, 0.25, (960, 1280, 3))
        {'image_width': 1280, 'image_height': 960, 'threshold': 0.25,
         'detections': 2, 'class_counts': {'weed': 2}}
    """
    height, width = image_shape[:2]
    return {
        "image_width": int(width),
        "image_height": int(height),
        "threshold": float(threshold),
        "detections": len(detections),
        "class_counts": dict(Counter(det.class_name for det in detections)),
    }


class JSONFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object.

    Always present: timestamp, level, logger, message. ``request_id`` is
    added inside a request, any of EXTRA_FIELDS the record carries are
    added as-is, and ``exception`` holds the formatted traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id is not None:
            entry["request_id"] = request_id

        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(log_level: str = "INFO", stream: IO[str] | None = None) -> None:
    """Route all logging through a single JSON handler on the root logger.

    Args:
        log_level: Level name, case-insensitive (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: stdout)

    Raises:
        ValueError: If log_level is not a known level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
