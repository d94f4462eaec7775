"""
Main recognition engine for handwritten text.

This module sequences preprocessing, glyph segmentation, per-glyph
classification and lexical correction to turn an image into text.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .exceptions import InvalidArgumentError
from .language_model import LanguageModel, create_language_model, correct_text
from .models.base import GlyphClassifier, Prediction
from .preprocessing import (
    BufferLike,
    check_image,
    preprocess_image,
    resize_if_needed,
    to_pixel_buffer,
    validate_buffer,
)
from .segmentation import GlyphRegion, extract_and_normalize, segment_characters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CharDetail:
    """One recognized character with its confidence and source region"""
    character: str
    confidence: float
    region: GlyphRegion

    def to_dict(self) -> Dict[str, Any]:
        return {
            'character': self.character,
            'confidence': self.confidence,
            'region': self.region.to_dict(),
        }


@dataclass(frozen=True)
class RecognitionResult:
    """Recognized text, before and after correction, with per-character details"""
    raw_text: str
    corrected_text: str
    char_details: Tuple[CharDetail, ...] = field(default_factory=tuple)
    average_confidence: float = 0.0

    @classmethod
    def empty(cls) -> 'RecognitionResult':
        return cls(raw_text="", corrected_text="", char_details=(), average_confidence=0.0)

    @property
    def character_count(self) -> int:
        return len(self.char_details)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'raw_text': self.raw_text,
            'corrected_text': self.corrected_text,
            'average_confidence': self.average_confidence,
            'characters': [detail.to_dict() for detail in self.char_details],
        }

    def __str__(self) -> str:
        return (
            "TextRecognition{\n"
            f"  Raw: {self.raw_text}\n"
            f"  Corrected: {self.corrected_text}\n"
            f"  Confidence: {self.average_confidence * 100:.2f}%\n"
            "}"
        )


class TextRecognizer:
    """
    Main engine for recognizing handwritten text from images.

    This class:
    1. Cleans up the image with morphological preprocessing
    2. Segments it into glyphs in reading order
    3. Classifies each glyph with the configured classifier
    4. Corrects the resulting words with the language model

    A recognizer holds no per-image state; the language model it owns is
    long-lived and shared by every call.
    """

    def __init__(
        self,
        classifier: GlyphClassifier,
        language_model: Optional[LanguageModel] = None,
        separate_characters: bool = False,
        max_workers: int = 1
    ):
        """
        Initialize the text recognizer.

        Args:
            classifier: Glyph classifier used for every character
            language_model: Correction strategy; defaults to the built-in
                frequency-weighted dictionary
            separate_characters: Whether to erode touching glyphs apart before segmenting
            max_workers: Number of threads used to classify glyphs (1 = sequential)
        """
        if classifier is None:
            raise InvalidArgumentError("Classifier cannot be None")
        if max_workers < 1:
            raise InvalidArgumentError(f"max_workers must be at least 1, got {max_workers}")

        self.classifier = classifier
        self.language_model = (
            language_model if language_model is not None else create_language_model('weighted')
        )
        self.separate_characters = separate_characters
        self.max_workers = max_workers

        logger.info(
            f"Text recognizer using {classifier.get_name()} with "
            f"{type(self.language_model).__name__} ({self.language_model.get_dictionary_size()} words)"
        )

    def _classify_all(self, glyphs: List[np.ndarray]) -> List[Prediction]:
        """Classify glyphs, returning predictions in input order."""
        if self.max_workers == 1 or len(glyphs) < 2:
            return [self.classifier.classify(glyph) for glyph in glyphs]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # map() yields results in submission order
            return list(executor.map(self.classifier.classify, glyphs))

    def recognize(self, image: BufferLike, width: int, height: int) -> RecognitionResult:
        """
        Recognize text in a normalized grayscale buffer.

        Args:
            image: Flat grayscale buffer (row-major), ink high
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            RecognitionResult; empty when no glyph is found
        """
        start_time = time.time()
        buffer = validate_buffer(image, width, height)

        processed = preprocess_image(
            buffer, width, height, separate_characters=self.separate_characters
        )

        regions = segment_characters(processed, width, height)
        if not regions:
            logger.info("No glyphs found in image")
            return RecognitionResult.empty()

        logger.info(f"Found {len(regions)} glyph(s), classifying")

        glyphs = [extract_and_normalize(processed, width, height, region) for region in regions]
        predictions = self._classify_all(glyphs)

        char_details = []
        for region, prediction in zip(regions, predictions):
            logger.debug(f"{region}: '{prediction.label}' ({prediction.confidence:.2f})")
            char_details.append(
                CharDetail(prediction.label, float(prediction.confidence), region)
            )

        raw_text = "".join(detail.character for detail in char_details)
        corrected_text = correct_text(self.language_model, raw_text)
        average_confidence = sum(d.confidence for d in char_details) / len(char_details)

        logger.info(
            f"Recognized '{raw_text}' -> '{corrected_text}' "
            f"(confidence {average_confidence:.2f}) in {time.time() - start_time:.2f}s"
        )

        return RecognitionResult(
            raw_text=raw_text,
            corrected_text=corrected_text,
            char_details=tuple(char_details),
            average_confidence=average_confidence
        )

    def recognize_image(
        self,
        image: Union[str, np.ndarray, Path],
        max_size: Optional[int] = None
    ) -> RecognitionResult:
        """
        Recognize text in an image file or array.

        Args:
            image: Input image (path or numpy array, grayscale/BGR/BGRA)
            max_size: Downscale the image first if either side exceeds this

        Returns:
            RecognitionResult
        """
        img = check_image(image)
        if max_size:
            img = resize_if_needed(img, max_size)

        buffer, width, height = to_pixel_buffer(img)
        return self.recognize(buffer, width, height)

    def recognize_single_character(self, glyph: np.ndarray) -> str:
        """Classify one already-normalized glyph."""
        return self.classifier.classify(glyph).label
