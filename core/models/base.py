"""
Abstract base class for glyph classifiers used by the text recognizer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import cv2
import numpy as np

from ..exceptions import InvalidDimensionsError
from ..segmentation import TARGET_SIZE


def render_glyph(glyph: np.ndarray, upscale: int = 4, border: int = 8) -> np.ndarray:
    """
    Turn a square glyph buffer into a dark-on-white uint8 image for OCR engines.

    Args:
        glyph: Flat square buffer, ink high
        upscale: Integer magnification (OCR engines dislike tiny images)
        border: White margin added around the glyph, in output pixels

    Returns:
        Grayscale uint8 image
    """
    side = int(round(np.sqrt(glyph.size)))
    ink = np.clip(glyph.reshape(side, side), 0.0, 1.0)
    image = ((1.0 - ink) * 255.0).round().astype(np.uint8)

    if upscale > 1:
        image = cv2.resize(
            image, (side * upscale, side * upscale), interpolation=cv2.INTER_CUBIC
        )
    if border > 0:
        image = cv2.copyMakeBorder(
            image, border, border, border, border, cv2.BORDER_CONSTANT, value=255
        )
    return image


@dataclass(frozen=True)
class Prediction:
    """Classifier output for one glyph"""
    label: str
    confidence: float
    scores: Optional[np.ndarray] = None

    def __str__(self) -> str:
        return f"Predicted: {self.label}, Confidence: {self.confidence * 100:.2f}%"


class GlyphClassifier(ABC):
    """
    Abstract base class for glyph classifiers.

    A classifier maps one normalized TARGET_SIZE x TARGET_SIZE glyph buffer
    (ink high, background low) to a label and a confidence in [0, 1].
    Confidences must be comparable across calls, since the recognizer
    averages them.
    """

    input_size = TARGET_SIZE * TARGET_SIZE

    @abstractmethod
    def classify(self, glyph: np.ndarray) -> Prediction:
        """
        Classify a single normalized glyph.

        Args:
            glyph: Flat float buffer of ``input_size`` values

        Returns:
            Prediction with label and confidence
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the classifier is available and properly initialized.

        Returns:
            Boolean indicating if the classifier is available
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        pass

    @abstractmethod
    def get_version(self) -> Optional[str]:
        pass

    @property
    def name(self) -> str:
        return self.get_name()

    def check_glyph(self, glyph: np.ndarray) -> np.ndarray:
        """
        Validate a glyph buffer against the classifier input size.

        Returns:
            The glyph as a flat float32 array
        """
        buffer = np.asarray(glyph, dtype=np.float32).reshape(-1)
        if buffer.size != self.input_size:
            raise InvalidDimensionsError(
                f"Glyph size mismatch: expected {self.input_size} pixels, got {buffer.size}"
            )
        return buffer

    def get_model_info(self) -> Dict[str, Any]:
        """
        Get information about this classifier.

        Returns:
            Dictionary with classifier information
        """
        return {
            'name': self.get_name(),
            'version': self.get_version(),
            'available': self.is_available(),
            'input_size': self.input_size,
        }

    def __str__(self) -> str:
        info = self.get_model_info()
        return f"{info['name']} (v{info['version']}) - Available: {info['available']}"
