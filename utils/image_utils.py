"""
Image handling utilities for the handwriting text recognizer.

This module provides functions for:
- Loading images from files, URLs, bytes and PIL images
- Converting pixel buffers back to viewable images
- Saving images
"""

import io
import logging
import os
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

import cv2
import numpy as np
import requests
from PIL import Image, UnidentifiedImageError

from core.exceptions import UnsupportedFormatError
from core.preprocessing import BufferLike, validate_buffer

logger = logging.getLogger(__name__)


def is_url(path: str) -> bool:
    """
    Check if a string is a valid URL.

    Args:
        path: String to check

    Returns:
        Boolean indicating if the string is a URL
    """
    try:
        result = urlparse(path)
    except ValueError:
        return False
    return result.scheme in ('http', 'https') and bool(result.netloc)


def load_image(
    source: Union[str, Path, np.ndarray, bytes, Image.Image],
    timeout: int = 10
) -> np.ndarray:
    """
    Load an image from various sources as an OpenCV-style array.

    Args:
        source: Image source (file path, URL, numpy array, bytes, PIL Image)
        timeout: Download timeout in seconds for URLs

    Returns:
        Grayscale, BGR or BGRA numpy array

    Raises:
        UnsupportedFormatError: If the image cannot be loaded or is invalid
    """
    if isinstance(source, np.ndarray):
        if source.ndim < 2:
            raise UnsupportedFormatError("Invalid image array: must have at least 2 dimensions")
        return source

    if isinstance(source, (str, Path)):
        source_str = str(source)

        if is_url(source_str):
            try:
                response = requests.get(source_str, timeout=timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise UnsupportedFormatError(f"Failed to load image from URL: {e}") from e
            return load_image(response.content)

        if not os.path.exists(source_str):
            raise UnsupportedFormatError(f"Image file not found: {source_str}")

        try:
            img = Image.open(source_str)
            img.load()
        except (OSError, UnidentifiedImageError) as e:
            raise UnsupportedFormatError(f"Failed to load image from file: {e}") from e

    elif isinstance(source, bytes):
        try:
            img = Image.open(io.BytesIO(source))
            img.load()
        except (OSError, UnidentifiedImageError) as e:
            raise UnsupportedFormatError(f"Failed to load image from bytes: {e}") from e

    elif isinstance(source, Image.Image):
        img = source

    else:
        raise UnsupportedFormatError(f"Unsupported image source type: {type(source)}")

    # Palette, 16-bit and other exotic modes are flattened first
    if img.mode not in ('L', 'RGB', 'RGBA'):
        img = img.convert('RGBA' if 'A' in img.getbands() else 'RGB')

    img_array = np.array(img)

    # Convert to BGR(A) for OpenCV compatibility
    if img_array.ndim == 3 and img_array.shape[2] == 3:
        return cv2.cvtColor(img_array, cv2.COLOR_RGB2BGR)
    if img_array.ndim == 3 and img_array.shape[2] == 4:
        return cv2.cvtColor(img_array, cv2.COLOR_RGBA2BGRA)
    return img_array


def buffer_to_image(image: BufferLike, width: int, height: int) -> np.ndarray:
    """
    Convert a normalized buffer back to a grayscale image.

    Inverse of the buffer conversion: 0.0 becomes white paper, 1.0 black
    ink. Values outside [0, 1] are clamped.

    Returns:
        uint8 array of shape (height, width)
    """
    buffer = validate_buffer(image, width, height)
    clamped = np.clip(buffer, 0.0, 1.0)
    gray = np.round((1.0 - clamped) * 255.0).astype(np.uint8)
    return gray.reshape(height, width)


def save_image(
    image: Union[np.ndarray, Image.Image],
    path: Union[str, Path],
    quality: int = 95
) -> str:
    """
    Save an image to a file.

    Args:
        image: Image to save (numpy array or PIL Image)
        path: Path where to save the image; the extension picks the format
        quality: JPEG quality (1-100) if saving as JPEG

    Returns:
        Path where the image was saved
    """
    path = str(path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if isinstance(image, np.ndarray):
        if image.ndim == 3 and image.shape[2] == 3:
            pil_image = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        else:
            pil_image = Image.fromarray(image)
    else:
        pil_image = image

    ext = os.path.splitext(path)[1].lower()
    try:
        if ext in ['.jpg', '.jpeg']:
            pil_image.save(path, quality=quality, optimize=True)
        elif ext == '.png':
            pil_image.save(path, optimize=True)
        else:
            pil_image.save(path)
    except (OSError, ValueError) as e:
        raise UnsupportedFormatError(f"Failed to save image to {path}: {e}") from e

    return path


def save_buffer(image: BufferLike, width: int, height: int, path: Union[str, Path]) -> str:
    """Write a normalized buffer to disk as a grayscale image."""
    return save_image(buffer_to_image(image, width, height), path)


__all__ = [
    'is_url',
    'load_image',
    'buffer_to_image',
    'save_image',
    'save_buffer',
]
