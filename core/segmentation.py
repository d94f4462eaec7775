"""
Connected-component segmentation of handwritten glyphs.

Splits a preprocessed grayscale buffer into per-character bounding boxes,
orders them for reading, and resamples each one to the fixed-size input
expected by the glyph classifier (28x28, MNIST/EMNIST layout).
"""

import logging
from collections import deque
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .exceptions import InvalidArgumentError
from .preprocessing import BufferLike, validate_buffer

logger = logging.getLogger(__name__)

# Noise filter: components smaller than this are dropped
MIN_CHARACTER_WIDTH = 5
MIN_CHARACTER_HEIGHT = 5

# Regions whose tops are within this many pixels share a visual row
SAME_LINE_TOLERANCE = 10

# Classifier input geometry; must match the layout the classifier was trained on
TARGET_SIZE = 28
TARGET_PADDING = 2

FOREGROUND_THRESHOLD = 0.1

# 8-connectivity offsets (dx, dy)
NEIGHBORS = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1),
)


@dataclass(frozen=True)
class GlyphRegion:
    """Axis-aligned bounding box of one glyph in source-image coordinates"""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidArgumentError(
                f"Width and height must be positive, got {self.width}x{self.height}"
            )

    def is_valid_size(self) -> bool:
        """Whether the region is large enough to be a character rather than noise."""
        return self.width >= MIN_CHARACTER_WIDTH and self.height >= MIN_CHARACTER_HEIGHT

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    def __str__(self) -> str:
        return f"GlyphRegion(x={self.x}, y={self.y}, w={self.width}, h={self.height})"


def is_foreground(value: float) -> bool:
    return value > FOREGROUND_THRESHOLD


def find_connected_component(
    foreground: np.ndarray,
    visited: np.ndarray,
    start_x: int,
    start_y: int,
    width: int,
    height: int
) -> GlyphRegion:
    """
    Collect one 8-connected component with a breadth-first flood fill.

    Every pixel reached is marked in ``visited`` so the caller's scan skips it.

    Args:
        foreground: Flat boolean mask, True where the pixel is ink
        visited: Flat boolean array, same indexing as ``foreground``; updated in place
        start_x: Column of the seed pixel
        start_y: Row of the seed pixel
        width: Image width
        height: Image height

    Returns:
        Bounding box of the component
    """
    start_index = start_y * width + start_x
    queue = deque([start_index])
    visited[start_index] = True

    min_x = max_x = start_x
    min_y = max_y = start_y

    while queue:
        index = queue.popleft()
        y, x = divmod(index, width)

        min_x = min(min_x, x)
        max_x = max(max_x, x)
        min_y = min(min_y, y)
        max_y = max(max_y, y)

        for dx, dy in NEIGHBORS:
            nx = x + dx
            ny = y + dy
            if 0 <= nx < width and 0 <= ny < height:
                neighbor = ny * width + nx
                if not visited[neighbor] and foreground[neighbor]:
                    visited[neighbor] = True
                    queue.append(neighbor)

    return GlyphRegion(min_x, min_y, max_x - min_x + 1, max_y - min_y + 1)


def compare_reading_order(a: GlyphRegion, b: GlyphRegion) -> int:
    """
    Compare two regions top-to-bottom, then left-to-right.

    Tops further apart than SAME_LINE_TOLERANCE are ordered by row;
    otherwise the regions share a line and are ordered by column.
    """
    if abs(a.y - b.y) > SAME_LINE_TOLERANCE:
        return (a.y > b.y) - (a.y < b.y)
    return (a.x > b.x) - (a.x < b.x)


def sort_in_reading_order(regions: List[GlyphRegion]) -> List[GlyphRegion]:
    """Return the regions sorted in reading order (stable)."""
    return sorted(regions, key=cmp_to_key(compare_reading_order))


def segment_characters(image: BufferLike, width: int, height: int) -> List[GlyphRegion]:
    """
    Segment a grayscale buffer into character bounding boxes.

    Pixels are scanned in row-major order; each unvisited foreground pixel
    seeds a flood fill. Components below the minimum size are discarded as
    noise.

    Args:
        image: Flat grayscale buffer (row-major), values in [0, 1]
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        Character regions sorted in reading order (may be empty)
    """
    buffer = validate_buffer(image, width, height)

    foreground = buffer > FOREGROUND_THRESHOLD
    visited = np.zeros(buffer.size, dtype=bool)
    characters = []
    discarded = 0

    # Row-major order over foreground pixels only; background can't seed a component
    for index in np.flatnonzero(foreground):
        if visited[index]:
            continue

        y, x = divmod(int(index), width)
        region = find_connected_component(foreground, visited, x, y, width, height)

        if region.is_valid_size():
            characters.append(region)
        else:
            discarded += 1

    logger.debug(
        f"Segmented {len(characters)} glyph(s) from {width}x{height} image "
        f"({discarded} noise component(s) discarded)"
    )

    return sort_in_reading_order(characters)


def _pixel_safe(buffer: np.ndarray, width: int, height: int, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Gather pixels at integer coordinates, 0.0 where out of bounds."""
    inside = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
    values = np.zeros(xs.shape, dtype=np.float32)
    values[inside] = buffer[ys[inside] * width + xs[inside]]
    return values


def extract_and_normalize(
    image: BufferLike,
    width: int,
    height: int,
    region: Optional[GlyphRegion],
    target_size: int = TARGET_SIZE,
    padding: int = TARGET_PADDING
) -> np.ndarray:
    """
    Resample a glyph region to a square classifier input with bilinear interpolation.

    The glyph is stretched to fill the inner ``target_size - 2 * padding``
    square; the padding border stays 0.0.

    Args:
        image: Source buffer
        width: Source image width
        height: Source image height
        region: Glyph bounding box
        target_size: Side length of the output glyph
        padding: Empty border kept around the glyph

    Returns:
        Flat float32 array of target_size * target_size values
    """
    buffer = validate_buffer(image, width, height)

    if region is None:
        raise InvalidArgumentError("Region cannot be None")
    if target_size <= 0 or padding < 0:
        raise InvalidArgumentError(
            f"Invalid target geometry: size={target_size}, padding={padding}"
        )

    result = np.zeros((target_size, target_size), dtype=np.float32)
    inner = target_size - 2 * padding
    if inner <= 0:
        return result.reshape(-1)

    scale_x = region.width / inner
    scale_y = region.height / inner

    offsets = np.arange(inner, dtype=np.float64)
    sx = region.x + offsets * scale_x
    sy = region.y + offsets * scale_y
    grid_x, grid_y = np.meshgrid(sx, sy)

    x0 = np.floor(grid_x).astype(np.int64)
    y0 = np.floor(grid_y).astype(np.int64)
    x1 = np.minimum(x0 + 1, width - 1)
    y1 = np.minimum(y0 + 1, height - 1)

    dx = (grid_x - x0).astype(np.float32)
    dy = (grid_y - y0).astype(np.float32)

    val00 = _pixel_safe(buffer, width, height, x0, y0)
    val10 = _pixel_safe(buffer, width, height, x1, y0)
    val01 = _pixel_safe(buffer, width, height, x0, y1)
    val11 = _pixel_safe(buffer, width, height, x1, y1)

    top = val00 * (1 - dx) + val10 * dx
    bottom = val01 * (1 - dx) + val11 * dx

    result[padding:padding + inner, padding:padding + inner] = top * (1 - dy) + bottom * dy
    return result.reshape(-1)


def extract_glyphs(
    image: BufferLike,
    width: int,
    height: int,
    target_size: int = TARGET_SIZE,
    padding: int = TARGET_PADDING
) -> List[Tuple[GlyphRegion, np.ndarray]]:
    """
    Segment a buffer and normalize every glyph found.

    Returns:
        List of (region, normalized glyph) pairs in reading order
    """
    buffer = validate_buffer(image, width, height)
    return [
        (region, extract_and_normalize(buffer, width, height, region, target_size, padding))
        for region in segment_characters(buffer, width, height)
    ]
