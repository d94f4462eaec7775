"""
Exception classes for the handwriting recognition engine.

All engine exceptions inherit from RecognitionError, so callers can catch
every library error in one place. The validation errors also inherit from
ValueError, which keeps code that already catches ValueError working.

Example:
    >>> try:
    ...     erode([0.0, 1.0, 0.5], 2, 2, StructuringElement.SQUARE_3X3)
    ... except InvalidDimensionsError as e:
    ...     print(f"Bad buffer: {e}")
"""


class RecognitionError(Exception):
    """
    Base exception for all recognition engine errors.
    """

    pass


class InvalidDimensionsError(RecognitionError, ValueError):
    """
    Raised when a pixel buffer does not match its declared width and height.

    Example:
        >>> segment_characters([0.0] * 10, 4, 4)
        InvalidDimensionsError: Image array size (10) doesn't match dimensions (4x4=16)
    """

    pass


class InvalidArgumentError(RecognitionError, ValueError):
    """
    Raised when a required argument is missing or out of range.

    Covers absent images or words, bad kernel sizes, non-positive region
    dimensions and max_suggestions < 1.
    """

    pass


class UnsupportedFormatError(RecognitionError, ValueError):
    """
    Raised when an image cannot be decoded into a pixel buffer.
    """

    pass


class ResourceUnavailableError(RecognitionError):
    """
    Raised when an external resource (e.g. a dictionary file) cannot be read.

    The language model factory recovers from this by falling back to the
    built-in word list.
    """

    pass
