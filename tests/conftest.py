"""
Pytest configuration and fixtures for the handwriting recognizer tests.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from core.models.base import GlyphClassifier, Prediction


class StubClassifier(GlyphClassifier):
    """Classifier returning fixed labels in call order."""

    def __init__(self, labels: Sequence[str], confidence: float = 0.9):
        self.labels = list(labels)
        self.confidence = confidence
        self.calls = 0

    def classify(self, glyph: np.ndarray) -> Prediction:
        self.check_glyph(glyph)
        label = self.labels[self.calls % len(self.labels)]
        self.calls += 1
        return Prediction(label, self.confidence)

    def is_available(self) -> bool:
        return True

    def get_name(self) -> str:
        return "Stub"

    def get_version(self) -> Optional[str]:
        return "0.0"


class CenterClassifier(GlyphClassifier):
    """Classifier labelling a glyph by its center pixel: solid 'l', hollow 'o'."""

    def classify(self, glyph: np.ndarray) -> Prediction:
        buffer = self.check_glyph(glyph)
        center = buffer[14 * 28 + 14]
        return Prediction('l' if center > 0.5 else 'o', 0.8)

    def is_available(self) -> bool:
        return True

    def get_name(self) -> str:
        return "Center"

    def get_version(self) -> Optional[str]:
        return None


def make_buffer(
    width: int,
    height: int,
    squares: Iterable[Tuple[int, int, int, int]] = (),
    value: float = 1.0
) -> np.ndarray:
    """Blank buffer with filled (x, y, w, h) rectangles."""
    image = np.zeros((height, width), dtype=np.float32)
    for x, y, w, h in squares:
        image[y:y + h, x:x + w] = value
    return image.reshape(-1)


def make_ring(
    width: int,
    height: int,
    x: int,
    y: int,
    size: int,
    thickness: int,
    image: Optional[np.ndarray] = None
) -> np.ndarray:
    """Buffer with a hollow square outline drawn onto it."""
    canvas = np.zeros((height, width), np.float32) if image is None else image.reshape(height, width).copy()
    canvas[y:y + size, x:x + size] = 1.0
    inner = size - 2 * thickness
    canvas[y + thickness:y + thickness + inner, x + thickness:x + thickness + inner] = 0.0
    return canvas.reshape(-1)


@pytest.fixture
def two_squares() -> Tuple[np.ndarray, int, int]:
    """40x20 buffer with two 10x10 squares at (2, 2) and (25, 2)."""
    return make_buffer(40, 20, [(2, 2, 10, 10), (25, 2, 10, 10)]), 40, 20


@pytest.fixture
def single_pixel() -> Tuple[np.ndarray, int, int]:
    """20x20 buffer with one foreground pixel."""
    buffer = make_buffer(20, 20)
    buffer[10 * 20 + 10] = 1.0
    return buffer, 20, 20


@pytest.fixture
def word_frequencies() -> dict:
    """Small weighted dictionary."""
    return {
        'the': 1000,
        'ten': 5,
        'world': 50,
        'word': 40,
        'hello': 30,
        'in': 200,
    }


@pytest.fixture
def basic_words() -> List[str]:
    """Small plain dictionary."""
    return ['the', 'ten', 'world', 'word', 'hello', 'in', 'cat', 'cart']


@pytest.fixture
def stub_classifier():
    """Factory for stub classifiers with fixed labels."""
    return StubClassifier


@pytest.fixture
def dictionary_file(tmp_path):
    """Word list file with comments, frequencies and malformed lines."""
    path = tmp_path / "words.txt"
    path.write_text(
        "# common words\n"
        "the 1000\n"
        "\n"
        "World,50\n"
        "cat\n"
        "dog\tnot-a-number\n"
        "supercalifragilisticexpialidocious 3\n",
        encoding="utf-8"
    )
    return path
