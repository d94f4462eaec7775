"""
NumPy multilayer-perceptron glyph classifier for MNIST/EMNIST-style models.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..exceptions import InvalidArgumentError, ResourceUnavailableError
from .base import GlyphClassifier, Prediction

logger = logging.getLogger(__name__)

DIGITS = 'digits'
EMNIST = 'emnist'


def label_to_string(label: int, dataset: str = EMNIST) -> str:
    """
    Convert a class index to its character.

    EMNIST (62 classes): 0-9 digits, 10-35 'A'-'Z', 36-61 'a'-'z'.
    Any other index, or the digits dataset, maps to the index itself.
    """
    if dataset == EMNIST:
        if 0 <= label <= 9:
            return str(label)
        if 10 <= label <= 35:
            return chr(ord('A') + label - 10)
        if 36 <= label <= 61:
            return chr(ord('a') + label - 36)
    return str(label)


def softmax(values: np.ndarray) -> np.ndarray:
    shifted = values - np.max(values)
    exp = np.exp(shifted)
    return exp / exp.sum()


class NetworkClassifier(GlyphClassifier):
    """
    Fully connected network: ReLU hidden layers and a softmax output.

    Layer ``i`` computes ``x @ weights[i] + biases[i]``.
    """

    def __init__(
        self,
        weights: Sequence[np.ndarray],
        biases: Sequence[np.ndarray],
        dataset: str = EMNIST,
        labels: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the network classifier.

        Args:
            weights: Weight matrices, first one shaped (input_size, hidden)
            biases: Bias vectors, one per weight matrix
            dataset: Label scheme, 'emnist' or 'digits'
            labels: Explicit class labels (overrides the dataset scheme)
        """
        if not weights or len(weights) != len(biases):
            raise InvalidArgumentError("Network needs one bias vector per weight matrix")

        self.weights = [np.asarray(w, dtype=np.float32) for w in weights]
        self.biases = [np.asarray(b, dtype=np.float32).reshape(-1) for b in biases]

        for index, (w, b) in enumerate(zip(self.weights, self.biases)):
            if w.ndim != 2 or w.shape[1] != b.size:
                raise InvalidArgumentError(f"Layer {index} has mismatched weight/bias shapes")
            if index > 0 and self.weights[index - 1].shape[1] != w.shape[0]:
                raise InvalidArgumentError(f"Layer {index} input doesn't match previous layer output")

        self.input_size = self.weights[0].shape[0]
        self.output_size = self.weights[-1].shape[1]
        self.dataset = dataset

        if labels is not None:
            if len(labels) != self.output_size:
                raise InvalidArgumentError(
                    f"Expected {self.output_size} labels, got {len(labels)}"
                )
            self.labels: List[str] = list(labels)
        else:
            self.labels = [label_to_string(i, dataset) for i in range(self.output_size)]

    @classmethod
    def from_npz(cls, path: Union[str, Path], dataset: str = EMNIST) -> 'NetworkClassifier':
        """
        Load a network saved with ``numpy.savez`` as W0, b0, W1, b1, ...
        """
        try:
            with np.load(path) as data:
                layer_count = sum(1 for key in data.files if key.startswith('W'))
                weights = [data[f'W{i}'] for i in range(layer_count)]
                biases = [data[f'b{i}'] for i in range(layer_count)]
        except (OSError, KeyError, ValueError) as e:
            raise ResourceUnavailableError(f"Could not load network from {path}: {e}") from e

        logger.info(f"Loaded {layer_count}-layer network from {path}")
        return cls(weights, biases, dataset=dataset)

    def predict_scores(self, glyph: np.ndarray) -> np.ndarray:
        """Class probabilities for one glyph."""
        activation = self.check_glyph(glyph)
        last = len(self.weights) - 1

        for index, (w, b) in enumerate(zip(self.weights, self.biases)):
            activation = activation @ w + b
            if index < last:
                activation = np.maximum(activation, 0.0)

        return softmax(activation)

    def classify(self, glyph: np.ndarray) -> Prediction:
        scores = self.predict_scores(glyph)
        label_index = int(np.argmax(scores))
        return Prediction(
            label=self.labels[label_index],
            confidence=float(scores[label_index]),
            scores=scores,
        )

    def is_available(self) -> bool:
        return True

    def get_name(self) -> str:
        return "NumPy Network"

    def get_version(self) -> Optional[str]:
        return np.__version__

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info['layers'] = [list(w.shape) for w in self.weights]
        info['dataset'] = self.dataset
        return info
