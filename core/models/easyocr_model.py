"""
EasyOCR-backed glyph classifier.
"""

import logging
import string
from typing import Any, Dict, List, Optional

import numpy as np

from .base import GlyphClassifier, Prediction, render_glyph

logger = logging.getLogger(__name__)

# Import easyocr with error handling
try:
    import easyocr
except ImportError:
    logger.error("easyocr not installed. Install with: pip install easyocr")
    easyocr = None


class EasyOCRClassifier(GlyphClassifier):
    """
    Glyph classifier using an EasyOCR reader restricted to an allow-list.

    EasyOCR is a word-level engine; each glyph is read as a tiny word and the
    highest-confidence single character answer is kept.
    """

    def __init__(
        self,
        language: str = 'en',
        use_gpu: bool = False,
        allowlist: str = string.ascii_letters + string.digits,
        upscale: int = 2,
        **kwargs
    ):
        """
        Initialize the EasyOCR classifier.

        Args:
            language: EasyOCR language code
            use_gpu: Whether to use GPU for recognition if available
            allowlist: Characters the reader may answer with
            upscale: Magnification applied to the glyph before recognition
            **kwargs: Additional parameters for easyocr.Reader
        """
        self.language = language
        self.use_gpu = use_gpu
        self.allowlist = allowlist
        self.upscale = upscale
        self._reader = None
        self._version = None

        if easyocr is None:
            logger.error("easyocr module not found. EasyOCR classifier will not be available.")
            self._available = False
            return

        self._version = getattr(easyocr, '__version__', 'unknown')

        try:
            logger.info(f"Initializing EasyOCR with language '{self.language}' (GPU: {self.use_gpu})")
            self._reader = easyocr.Reader([self.language], gpu=self.use_gpu, **kwargs)
            self._available = True
            logger.info("EasyOCR initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize EasyOCR: {e}")
            self._available = False
            self._reader = None

    def classify(self, glyph: np.ndarray) -> Prediction:
        buffer = self.check_glyph(glyph)

        if not self.is_available():
            logger.error("EasyOCR is not available")
            return Prediction(label="", confidence=0.0)

        image = render_glyph(buffer, upscale=self.upscale)
        results = self._reader.readtext(image, detail=1, allowlist=self.allowlist)

        best_label = ""
        best_conf = 0.0
        for _bbox, text, conf in results:
            text = text.strip()
            if text and (conf > best_conf or not best_label):
                best_label = text[0]
                best_conf = float(conf)

        return Prediction(label=best_label, confidence=best_conf)

    def is_available(self) -> bool:
        return self._available and self._reader is not None

    def get_available_languages(self) -> List[str]:
        return [self.language] if self.is_available() else []

    def get_name(self) -> str:
        return "EasyOCR"

    def get_version(self) -> Optional[str]:
        return self._version

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info['languages'] = self.get_available_languages()
        info['gpu'] = self.use_gpu
        return info
