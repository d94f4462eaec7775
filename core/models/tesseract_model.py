"""
Tesseract-backed glyph classifier.
"""

import logging
import string
import subprocess
from typing import Any, Dict, List, Optional

import numpy as np
from PIL import Image

from .base import GlyphClassifier, Prediction, render_glyph

logger = logging.getLogger(__name__)

# Import pytesseract with error handling
try:
    import pytesseract
except ImportError:
    logger.error("pytesseract not installed. Install with: pip install pytesseract")
    pytesseract = None

DEFAULT_WHITELIST = string.ascii_letters + string.digits


class TesseractClassifier(GlyphClassifier):
    """
    Glyph classifier using Tesseract in single-character mode.

    Each glyph is rendered dark-on-white, magnified, and read with page
    segmentation mode 10 ("treat the image as a single character").
    """

    def __init__(
        self,
        tesseract_path: Optional[str] = None,
        language: str = 'eng',
        whitelist: Optional[str] = DEFAULT_WHITELIST,
        upscale: int = 4,
    ):
        """
        Initialize the Tesseract classifier.

        Args:
            tesseract_path: Path to Tesseract executable
            language: Tesseract language pack to use
            whitelist: Characters Tesseract may answer with (None for any)
            upscale: Magnification applied to the glyph before recognition
        """
        self.language = language
        self.whitelist = whitelist
        self.upscale = upscale
        self._version = None
        self._languages: List[str] = []

        if pytesseract is None:
            logger.error("pytesseract module not found. Tesseract classifier will not be available.")
            self._available = False
            return

        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path
            logger.info(f"Using Tesseract executable at: {tesseract_path}")

        try:
            version = pytesseract.get_tesseract_version()
            self._version = str(version)
            logger.info(f"Tesseract version: {version}")
            self._available = True
        except Exception as e:
            logger.error(f"Failed to initialize Tesseract: {e}")
            self._available = False

        if self._available:
            self._languages = self._get_languages()
            if self.language not in self._languages:
                logger.warning(f"Requested language '{language}' not available in Tesseract")
                self.language = None

    def _get_languages(self) -> List[str]:
        """
        Get list of languages supported by Tesseract.

        Returns:
            List of language codes
        """
        try:
            result = subprocess.run(
                [pytesseract.pytesseract.tesseract_cmd, '--list-langs'],
                capture_output=True, text=True
            )

            if result.returncode != 0:
                logger.warning(f"Error getting languages: {result.stderr}")
                return []

            langs = result.stdout.strip().split('\n')
            if langs and langs[0].startswith('List of'):
                langs = langs[1:]

            return langs
        except OSError as e:
            logger.error(f"Error getting languages: {e}")
            return []

    def build_config(self) -> str:
        """Tesseract command-line options for single-character recognition."""
        config = '--psm 10 --oem 3'
        if self.language:
            config += f' -l {self.language}'
        if self.whitelist:
            config += f' -c tessedit_char_whitelist={self.whitelist}'
        return config

    def classify(self, glyph: np.ndarray) -> Prediction:
        """
        Recognize a single glyph with Tesseract.

        Empty answers yield an empty label with zero confidence.
        """
        buffer = self.check_glyph(glyph)

        if not self._available:
            logger.error("Tesseract is not available")
            return Prediction(label="", confidence=0.0)

        image = Image.fromarray(render_glyph(buffer, upscale=self.upscale))
        data = pytesseract.image_to_data(
            image, config=self.build_config(), output_type=pytesseract.Output.DICT
        )

        best_label = ""
        best_conf = 0.0
        for text, conf in zip(data.get('text', []), data.get('conf', [])):
            text = str(text).strip()
            conf = float(conf)
            # Tesseract reports -1 for non-word boxes
            if not text or conf < 0:
                continue
            if conf > best_conf or not best_label:
                best_label = text[0]
                best_conf = conf

        return Prediction(label=best_label, confidence=min(best_conf / 100.0, 1.0))

    def is_available(self) -> bool:
        return self._available

    def get_available_languages(self) -> List[str]:
        return self._languages if self._available else []

    def get_name(self) -> str:
        return "Tesseract OCR"

    def get_version(self) -> Optional[str]:
        return self._version

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info['languages'] = self.get_available_languages()
        info['config'] = self.build_config()
        return info
