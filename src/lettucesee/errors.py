"""Error types raised by the detection pipeline.

Both concrete errors subclass ValueError, so callers that already guard
image decoding with ``except ValueError`` keep working.
"""


class LettuceSeeError(Exception):
    """Base class for detection pipeline errors."""


class InvalidImage(LettuceSeeError, ValueError):
    """Input image cannot be preprocessed (zero-sized, wrong shape or dtype)."""


class MalformedTensor(LettuceSeeError, ValueError):
    """Model output does not match the [1, 5 + num_classes, N] contract.

    Treat as fatal for the call: the model and decoder disagree, and
    re-running inference will not fix it.
    """
