"""
Visualization utilities for handwriting text recognition.

This module provides functions for:
- Rendering buffers as ASCII art in the terminal
- Comparing the preprocessing stages side by side
- Annotating segmented glyph regions with their recognized characters
- Showing normalized glyphs as a montage
"""

import logging
import math
from typing import Optional, Sequence, Tuple

import cv2
import matplotlib.pyplot as plt
import numpy as np

from core.preprocessing import BufferLike, PreprocessingResult, validate_buffer
from core.recognizer import CharDetail
from core.segmentation import TARGET_SIZE

from .image_utils import buffer_to_image

logger = logging.getLogger(__name__)

INK_CHAR = '█'
FAINT_CHAR = '▓'
BLANK_CHAR = ' '


def render_ascii(image: BufferLike, width: int, height: int) -> str:
    """
    Render a normalized buffer as text, one line per row.

    Pixels above 0.5 are drawn solid, pixels above 0.1 shaded and the rest
    left blank.
    """
    buffer = validate_buffer(image, width, height).reshape(height, width)
    chars = np.where(buffer > 0.5, INK_CHAR, np.where(buffer > 0.1, FAINT_CHAR, BLANK_CHAR))
    return "\n".join("".join(row) for row in chars)


def _finish_figure(fig, output_path: Optional[str]) -> Optional[str]:
    plt.tight_layout()

    # Save or display
    if output_path:
        fig.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Visualization saved to {output_path}")
        return output_path

    plt.show()
    plt.close(fig)
    return None


def visualize_preprocessing(
    result: PreprocessingResult,
    width: int,
    height: int,
    output_path: Optional[str] = None,
    title: str = "Preprocessing Stages",
    figsize: Optional[Tuple[int, int]] = None
) -> Optional[str]:
    """
    Create a side-by-side view of each preprocessing stage.

    Args:
        result: Preprocessing result produced with ``return_steps=True``
        width: Image width in pixels
        height: Image height in pixels
        output_path: Path to save visualization (if None, displayed inline)
        title: Title for the visualization
        figsize: Figure size (width, height) in inches

    Returns:
        Path to saved visualization if output_path is provided, None otherwise
    """
    stages = list(result.intermediate_steps.items()) or [
        ('original', result.original),
        ('processed', result.processed),
    ]

    n_cols = len(stages)
    if figsize is None:
        figsize = (n_cols * 4, 4)

    fig, axes = plt.subplots(1, n_cols, figsize=figsize)
    fig.suptitle(f"{title} ({result.method_name})", fontsize=16)
    axes = np.atleast_1d(axes)

    for ax, (name, buffer) in zip(axes, stages):
        ax.imshow(buffer_to_image(buffer, width, height), cmap='gray', vmin=0, vmax=255)
        ax.set_title(name.capitalize())
        ax.axis('off')

    return _finish_figure(fig, output_path)


def visualize_regions(
    image: BufferLike,
    width: int,
    height: int,
    details: Sequence[CharDetail],
    output_path: Optional[str] = None,
    color: Tuple[int, int, int] = (0, 255, 0),
    thickness: int = 1,
    font_scale: float = 0.4,
    figsize: Tuple[int, int] = (12, 6)
) -> Optional[str]:
    """
    Draw a box around each glyph region, labelled with its character.

    Args:
        image: Normalized buffer the regions were found in
        width: Image width in pixels
        height: Image height in pixels
        details: Recognized characters with their regions
        output_path: Path to save visualization (if None, displayed inline)
        color: Box and label color (BGR format)
        thickness: Line thickness for boxes
        font_scale: Scale for label font
        figsize: Figure size (width, height) in inches

    Returns:
        Path to saved visualization if output_path is provided, None otherwise
    """
    vis_image = cv2.cvtColor(buffer_to_image(image, width, height), cv2.COLOR_GRAY2BGR)

    for detail in details:
        x, y, w, h = detail.region.as_tuple()
        cv2.rectangle(vis_image, (x, y), (x + w - 1, y + h - 1), color, thickness)

        # Label above the box, or below it near the top edge
        text_y = y - 3 if y - 3 > 8 else y + h + 10
        cv2.putText(
            vis_image, detail.character, (x, text_y),
            cv2.FONT_HERSHEY_SIMPLEX, font_scale, color, thickness
        )

    fig = plt.figure(figsize=figsize)
    plt.imshow(cv2.cvtColor(vis_image, cv2.COLOR_BGR2RGB))
    plt.axis('off')

    return _finish_figure(fig, output_path)


def visualize_glyphs(
    glyphs: Sequence[np.ndarray],
    labels: Optional[Sequence[str]] = None,
    output_path: Optional[str] = None,
    max_cols: int = 10,
    title: str = "Normalized Glyphs"
) -> Optional[str]:
    """
    Show normalized glyphs in a grid, optionally titled with their labels.

    Returns:
        Path to saved visualization if output_path is provided, None otherwise
    """
    n_glyphs = len(glyphs)
    if n_glyphs == 0:
        logger.warning("No glyphs to visualize")
        return None

    n_cols = min(max_cols, n_glyphs)
    n_rows = math.ceil(n_glyphs / n_cols)

    fig, axes = plt.subplots(n_rows, n_cols, figsize=(n_cols * 1.5, n_rows * 1.8))
    fig.suptitle(title, fontsize=14)
    axes = np.atleast_1d(axes).reshape(-1)

    for i, ax in enumerate(axes):
        ax.axis('off')
        if i >= n_glyphs:
            continue

        glyph = buffer_to_image(glyphs[i], TARGET_SIZE, TARGET_SIZE)
        ax.imshow(glyph, cmap='gray', vmin=0, vmax=255)
        if labels is not None and i < len(labels):
            ax.set_title(labels[i])

    return _finish_figure(fig, output_path)


__all__ = [
    'render_ascii',
    'visualize_preprocessing',
    'visualize_regions',
    'visualize_glyphs',
]
