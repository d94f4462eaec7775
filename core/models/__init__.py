"""
Glyph classifier implementations for the handwriting text recognizer.

This package contains:
- Abstract base class for glyph classifiers
- Tesseract single-character classifier
- EasyOCR classifier
- NumPy multilayer-perceptron classifier
"""

from .base import GlyphClassifier, Prediction, render_glyph
from .tesseract_model import TesseractClassifier
from .easyocr_model import EasyOCRClassifier
from .network_model import NetworkClassifier, label_to_string

__all__ = [
    'GlyphClassifier',
    'Prediction',
    'render_glyph',
    'TesseractClassifier',
    'EasyOCRClassifier',
    'NetworkClassifier',
    'label_to_string',
]
