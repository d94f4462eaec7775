"""
Morphological preprocessing for handwritten glyph images.

This module cleans up a normalized grayscale pixel buffer before segmentation.
Buffers are flat, row-major float32 arrays where ink is high (close to 1.0)
and paper is low (close to 0.0). Every operation returns a new buffer.

It also hosts the image decode boundary: turning an image file or array
into such a buffer.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from .exceptions import InvalidArgumentError, InvalidDimensionsError, UnsupportedFormatError

logger = logging.getLogger(__name__)

# Minimum value range below which contrast stretching is skipped
CONTRAST_EPSILON = 0.001

BufferLike = Union[np.ndarray, Sequence[float]]


class StructuringElement(Enum):
    """Structuring element shapes for morphological operations"""
    SQUARE_3X3 = "square_3x3"
    SQUARE_5X5 = "square_5x5"
    CROSS_3X3 = "cross_3x3"
    HORIZONTAL_3X1 = "horizontal_3x1"
    VERTICAL_1X3 = "vertical_1x3"


_KERNELS = {
    StructuringElement.SQUARE_3X3: np.ones((3, 3), np.uint8),
    StructuringElement.SQUARE_5X5: np.ones((5, 5), np.uint8),
    StructuringElement.CROSS_3X3: np.array(
        [[0, 1, 0],
         [1, 1, 1],
         [0, 1, 0]], np.uint8
    ),
    StructuringElement.HORIZONTAL_3X1: np.ones((1, 3), np.uint8),
    StructuringElement.VERTICAL_1X3: np.ones((3, 1), np.uint8),
}


@dataclass
class PreprocessingResult:
    """Container for preprocessing result data"""
    original: np.ndarray
    processed: np.ndarray
    method_name: str
    params: Dict = field(default_factory=dict)
    intermediate_steps: Dict[str, np.ndarray] = field(default_factory=dict)


def get_kernel(element: StructuringElement) -> np.ndarray:
    """
    Get the kernel matrix for a structuring element.

    Args:
        element: Structuring element shape

    Returns:
        Kernel as a uint8 array (rows x cols) where 1 marks an active offset
    """
    if not isinstance(element, StructuringElement):
        raise InvalidArgumentError(f"Unknown structuring element: {element!r}")
    return _KERNELS[element].copy()


def validate_buffer(image: Optional[BufferLike], width: int, height: int) -> np.ndarray:
    """
    Validate a pixel buffer against its dimensions.

    Args:
        image: Pixel values in row-major order (flat or 2-D)
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        The buffer as a flat float32 array (a view when no conversion is needed)

    Raises:
        InvalidArgumentError: If the image is missing
        InvalidDimensionsError: If the dimensions are not positive or don't match
    """
    if image is None:
        raise InvalidArgumentError("Image cannot be None")
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(
            f"Width and height must be positive, got {width}x{height}"
        )

    buffer = np.asarray(image, dtype=np.float32).reshape(-1)
    if buffer.size != width * height:
        raise InvalidDimensionsError(
            f"Image array size ({buffer.size}) doesn't match dimensions "
            f"({width}x{height}={width * height})"
        )
    return buffer


def erode(image: BufferLike, width: int, height: int, element: StructuringElement) -> np.ndarray:
    """
    Apply erosion to a grayscale buffer.

    Each output pixel is the minimum over the active kernel offsets. Offsets
    falling outside the image count as background (0.0), so foreground
    touching the border shrinks.

    Args:
        image: Grayscale buffer (values 0.0-1.0)
        width: Image width
        height: Image height
        element: Structuring element to use

    Returns:
        Eroded buffer
    """
    buffer = validate_buffer(image, width, height)
    kernel = get_kernel(element)

    result = cv2.erode(
        buffer.reshape(height, width),
        kernel,
        borderType=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
    return result.reshape(-1)


def dilate(image: BufferLike, width: int, height: int, element: StructuringElement) -> np.ndarray:
    """
    Apply dilation to a grayscale buffer.

    Each output pixel is the maximum over the active kernel offsets.
    Out-of-bounds offsets are skipped (OpenCV's default dilation border).

    Args:
        image: Grayscale buffer (values 0.0-1.0)
        width: Image width
        height: Image height
        element: Structuring element to use

    Returns:
        Dilated buffer
    """
    buffer = validate_buffer(image, width, height)
    kernel = get_kernel(element)

    result = cv2.dilate(buffer.reshape(height, width), kernel)
    return result.reshape(-1)


def open_image(image: BufferLike, width: int, height: int, element: StructuringElement) -> np.ndarray:
    """
    Apply opening (erosion followed by dilation) to remove small noise.
    """
    eroded = erode(image, width, height, element)
    return dilate(eroded, width, height, element)


def close_image(image: BufferLike, width: int, height: int, element: StructuringElement) -> np.ndarray:
    """
    Apply closing (dilation followed by erosion) to fill small gaps.
    """
    dilated = dilate(image, width, height, element)
    return erode(dilated, width, height, element)


def median_filter(image: BufferLike, width: int, height: int, kernel_size: int = 3) -> np.ndarray:
    """
    Apply a median filter to remove salt-and-pepper noise.

    The neighbourhood of each pixel is clipped to the image bounds. When the
    clipped neighbourhood has an even number of pixels the upper median is used.

    Args:
        image: Grayscale buffer
        width: Image width
        height: Image height
        kernel_size: Odd kernel size, at least 3

    Returns:
        Filtered buffer

    Raises:
        InvalidArgumentError: If kernel_size is even or smaller than 3
    """
    buffer = validate_buffer(image, width, height)

    if kernel_size < 3 or kernel_size % 2 == 0:
        raise InvalidArgumentError(f"Kernel size must be odd and >= 3, got {kernel_size}")

    offset = kernel_size // 2

    # NaN marks out-of-bounds samples; np.sort places them last
    padded = np.pad(
        buffer.reshape(height, width), offset, mode="constant", constant_values=np.nan
    )
    windows = np.lib.stride_tricks.sliding_window_view(padded, (kernel_size, kernel_size))
    windows = windows.reshape(height, width, kernel_size * kernel_size)

    ordered = np.sort(windows, axis=-1)
    counts = np.count_nonzero(~np.isnan(windows), axis=-1)
    median = np.take_along_axis(ordered, (counts // 2)[..., np.newaxis], axis=-1)

    return median.reshape(-1).astype(np.float32)


def enhance_contrast(image: BufferLike) -> np.ndarray:
    """
    Stretch the buffer linearly so its minimum maps to 0.0 and maximum to 1.0.

    Args:
        image: Grayscale buffer

    Returns:
        Contrast-enhanced buffer, or an unchanged copy when the value range
        is narrower than CONTRAST_EPSILON

    Raises:
        InvalidArgumentError: If the buffer is missing or empty
    """
    if image is None:
        raise InvalidArgumentError("Image cannot be None")

    buffer = np.asarray(image, dtype=np.float32).reshape(-1)
    if buffer.size == 0:
        raise InvalidArgumentError("Image cannot be empty")

    min_val = float(buffer.min())
    max_val = float(buffer.max())

    if max_val - min_val < CONTRAST_EPSILON:
        return buffer.copy()

    value_range = np.float32(max_val - min_val)
    return ((buffer - np.float32(min_val)) / value_range).astype(np.float32)


def separate_touching_characters(
    image: BufferLike,
    width: int,
    height: int,
    iterations: int = 1
) -> np.ndarray:
    """
    Separate touching characters by repeated 3x3 erosion.

    Args:
        image: Grayscale buffer
        width: Image width
        height: Image height
        iterations: Number of erosion passes (1-3 recommended)

    Returns:
        Buffer with thinner, hopefully disconnected, glyphs
    """
    buffer = validate_buffer(image, width, height)

    if iterations < 0:
        raise InvalidArgumentError(f"Iterations must be non-negative, got {iterations}")

    result = buffer.copy()
    for _ in range(iterations):
        result = erode(result, width, height, StructuringElement.SQUARE_3X3)

    return result


def enhance_characters(image: BufferLike, width: int, height: int) -> np.ndarray:
    """
    Fill small gaps in broken strokes, then remove leftover specks.

    Closing followed by opening, both with the 3x3 square kernel.
    """
    closed = close_image(image, width, height, StructuringElement.SQUARE_3X3)
    return open_image(closed, width, height, StructuringElement.SQUARE_3X3)


def preprocess_image(
    image: BufferLike,
    width: int,
    height: int,
    separate_characters: bool = False,
    return_steps: bool = False
) -> Union[np.ndarray, PreprocessingResult]:
    """
    Apply the preprocessing pipeline used before segmentation.

    Contrast stretch, 3x3 median filter, then optional character separation.

    Args:
        image: Grayscale buffer (values 0.0-1.0)
        width: Image width
        height: Image height
        separate_characters: Whether to erode once to split touching glyphs
        return_steps: Whether to return intermediate steps

    Returns:
        Preprocessed buffer or PreprocessingResult object if return_steps=True
    """
    original = validate_buffer(image, width, height).copy()
    steps = {'original': original}

    result = enhance_contrast(original)
    steps['contrast'] = result

    result = median_filter(result, width, height, 3)
    steps['median'] = result

    if separate_characters:
        result = separate_touching_characters(result, width, height, 1)
        steps['separated'] = result

    logger.debug(
        f"Preprocessed {width}x{height} buffer (separate_characters={separate_characters})"
    )

    if return_steps:
        return PreprocessingResult(
            original=original,
            processed=result,
            method_name='separated' if separate_characters else 'standard',
            params={'median_kernel': 3, 'separate_characters': separate_characters},
            intermediate_steps=steps
        )

    return result


def check_image(image: Union[str, np.ndarray, Path]) -> np.ndarray:
    """
    Check and load image from various input types.

    Args:
        image: Input image as path string, Path object, or numpy array

    Returns:
        Loaded image as numpy array

    Raises:
        UnsupportedFormatError: If image cannot be loaded or is invalid
    """
    if image is None:
        raise InvalidArgumentError("Image cannot be None")

    if isinstance(image, (str, Path)):
        img = cv2.imread(str(image), cv2.IMREAD_UNCHANGED)
        if img is None:
            raise UnsupportedFormatError(f"Could not read image at {image}")
        return img
    elif isinstance(image, np.ndarray):
        if image.ndim < 2 or image.size == 0:
            raise UnsupportedFormatError("Invalid image array: must have at least 2 dimensions")
        return image
    else:
        raise UnsupportedFormatError(f"Unsupported image type: {type(image)}")


def resize_if_needed(image: np.ndarray, max_size: int = 1920) -> np.ndarray:
    """
    Resize image if either dimension exceeds max_size while preserving aspect ratio.

    Args:
        image: Input image
        max_size: Maximum allowed dimension size

    Returns:
        Resized image or original if no resize needed
    """
    h, w = image.shape[:2]

    if max(h, w) <= max_size:
        return image

    if h > w:
        new_h = max_size
        new_w = max(1, int(w * (max_size / h)))
    else:
        new_w = max_size
        new_h = max(1, int(h * (max_size / w)))

    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)
    logger.info(f"Resized image from {w}x{h} to {new_w}x{new_h}")

    return resized


def to_pixel_buffer(image: Union[str, np.ndarray, Path]) -> Tuple[np.ndarray, int, int]:
    """
    Convert an image into a normalized, inverted grayscale buffer.

    Luminance is computed with the standard perceptual coefficients, scaled
    to [0, 1] and inverted so that dark ink becomes a high value.

    Args:
        image: Image path or numpy array (grayscale, BGR or BGRA)

    Returns:
        Tuple of (flat float32 buffer, width, height)
    """
    img = check_image(image)

    if img.dtype not in (np.uint8, np.uint16, np.float32):
        img = img.astype(np.float32)

    if img.ndim == 3:
        channels = img.shape[2]
        if channels == 4:
            gray = cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
        elif channels == 3:
            gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        elif channels == 1:
            gray = img[:, :, 0]
        else:
            raise UnsupportedFormatError(f"Unsupported channel count: {channels}")
    else:
        gray = img

    if np.issubdtype(gray.dtype, np.integer):
        scale = float(np.iinfo(gray.dtype).max)
    else:
        scale = 1.0

    height, width = gray.shape[:2]
    normalized = np.clip(gray.astype(np.float32) / scale, 0.0, 1.0)
    buffer = (1.0 - normalized).astype(np.float32).reshape(-1)

    return buffer, width, height
