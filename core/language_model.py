"""
Lexical correction for raw character streams.

Two interchangeable strategies implement the LanguageModel interface:

- SimpleLanguageModel: plain dictionary; equally distant candidates are
  ranked by how close their length is to the input.
- WeightedLanguageModel: dictionary with word frequencies; equally distant
  candidates are ranked by frequency, so "teh" becomes "the" rather than "ten".

Both search only dictionary words within MAX_EDIT_DISTANCE edits and never
return a correction outside that bound.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, NamedTuple, Optional, Union

from .dictionary import (
    BASIC_WORD_FREQUENCIES,
    BASIC_WORDS,
    DEFAULT_FREQUENCY,
    WordDictionary,
    read_dictionary_file,
)
from .exceptions import InvalidArgumentError, ResourceUnavailableError

logger = logging.getLogger(__name__)

MAX_EDIT_DISTANCE = 2
MAX_LENGTH_DIFF = MAX_EDIT_DISTANCE

_NON_ALPHA = re.compile(r"[^a-zA-Z]")


class CandidateMatch(NamedTuple):
    word: str
    distance: int
    frequency: int = DEFAULT_FREQUENCY


def edit_distance(s1: str, s2: str, max_distance: int = MAX_EDIT_DISTANCE) -> int:
    """
    Edit distance with unit costs, using three rolling rows.

    Insertions, deletions and substitutions cost one, and so does swapping
    two adjacent characters ("teh" -> "the"), a common slip in handwriting
    and typing (optimal string alignment distance).

    Args:
        s1: First string
        s2: Second string
        max_distance: Distance bound; when the length difference alone
            exceeds it, ``max_distance + 1`` is returned without computing

    Returns:
        Edit distance, or ``max_distance + 1`` if it is certainly larger
    """
    if s1 == s2:
        return 0

    # Keep s1 the shorter string so the rows are as small as possible
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    len1 = len(s1)
    len2 = len(s2)

    if len2 - len1 > max_distance:
        return max_distance + 1

    older_row = [0] * (len1 + 1)
    prev_row = list(range(len1 + 1))
    curr_row = [0] * (len1 + 1)

    for j in range(1, len2 + 1):
        curr_row[0] = j
        c2 = s2[j - 1]

        for i in range(1, len1 + 1):
            cost = 0 if s1[i - 1] == c2 else 1
            best = min(
                curr_row[i - 1] + 1,     # insertion
                prev_row[i] + 1,         # deletion
                prev_row[i - 1] + cost   # substitution
            )
            if i > 1 and j > 1 and s1[i - 1] == s2[j - 2] and s1[i - 2] == c2:
                best = min(best, older_row[i - 2] + 1)  # transposition
            curr_row[i] = best

        older_row, prev_row, curr_row = prev_row, curr_row, older_row

    return prev_row[len1]


def clean_token(token: str) -> str:
    """Strip every non-alphabetic character from a token."""
    return _NON_ALPHA.sub("", token)


@dataclass(frozen=True)
class ValidationError:
    """A misspelled token and the correction suggested for it"""
    original_word: str
    suggested_correction: str

    def __str__(self) -> str:
        return f"'{self.original_word}' -> '{self.suggested_correction}'"


@dataclass
class ValidationResult:
    """Misspellings found in a sentence"""
    errors: List[ValidationError] = field(default_factory=list)

    def add_error(self, original: str, suggestion: str) -> None:
        self.errors.append(ValidationError(original, suggestion))

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def __str__(self) -> str:
        if not self.errors:
            return "No errors found"
        lines = [f"Found {len(self.errors)} error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)


class LanguageModel(ABC):
    """
    Interface for dictionary-backed spell checking.

    Implementations hold their own dictionary; this class carries no state.
    """

    @abstractmethod
    def is_valid_word(self, word: str) -> bool:
        """
        Check whether a word is in the dictionary (case-insensitive).

        Args:
            word: Word to validate

        Returns:
            True if the word is known; the empty string is never valid

        Raises:
            InvalidArgumentError: If word is None
        """

    @abstractmethod
    def suggest_correction(self, word: str) -> str:
        """
        Return the best correction for a word.

        A known word is returned unchanged, with its original casing. An
        unknown word with no candidate within MAX_EDIT_DISTANCE is also
        returned unchanged.

        Raises:
            InvalidArgumentError: If word is None
        """

    @abstractmethod
    def get_suggestions(self, word: str, max_suggestions: int) -> List[str]:
        """
        Return up to ``max_suggestions`` ranked corrections.

        Raises:
            InvalidArgumentError: If word is None or max_suggestions < 1
        """

    @abstractmethod
    def add_word(self, word: str) -> None:
        """
        Add a word to the dictionary (stored lower-case).

        Raises:
            InvalidArgumentError: If word is None or empty
        """

    @abstractmethod
    def remove_word(self, word: str) -> bool:
        """
        Remove a word from the dictionary.

        Returns:
            True if the word was present and removed

        Raises:
            InvalidArgumentError: If word is None
        """

    @abstractmethod
    def get_dictionary_size(self) -> int:
        """Number of words in the dictionary."""

    def is_empty(self) -> bool:
        return self.get_dictionary_size() == 0

    def __len__(self) -> int:
        return self.get_dictionary_size()

    def validate_sentence(self, sentence: str) -> ValidationResult:
        """
        Report every misspelled token of a sentence with its suggested correction.

        Tokens are split on whitespace and stripped of non-alphabetic
        characters before validation; tokens that end up empty are ignored.

        Args:
            sentence: Text to validate

        Returns:
            ValidationResult listing (original token, suggestion) pairs
        """
        if sentence is None:
            raise InvalidArgumentError("Sentence cannot be None")

        result = ValidationResult()
        for token in sentence.split():
            cleaned = clean_token(token)
            if cleaned and not self.is_valid_word(cleaned):
                result.add_error(token, self.suggest_correction(cleaned))

        return result


def _require_word(word: Optional[str]) -> str:
    if word is None:
        raise InvalidArgumentError("Word cannot be None")
    return word


def _require_max_suggestions(max_suggestions: int) -> None:
    if max_suggestions < 1:
        raise InvalidArgumentError(
            f"max_suggestions must be at least 1, got {max_suggestions}"
        )


class SimpleLanguageModel(LanguageModel):
    """
    Plain dictionary spell checker.

    Candidates come from the length index (input length +/- MAX_LENGTH_DIFF)
    and are ranked by edit distance, then by closeness of length, then
    alphabetically.
    """

    def __init__(self, words: Iterable[str] = ()):
        """
        Initialize the model.

        Args:
            words: Dictionary words (case-insensitive)
        """
        self._dictionary = WordDictionary(words=words)
        logger.info(f"Simple language model ready with {len(self._dictionary)} words")

    def _find_candidates(self, word: str) -> List[CandidateMatch]:
        word_length = len(word)
        candidates = []

        for dict_word in self._dictionary.words_in_length_range(
            word_length - MAX_LENGTH_DIFF, word_length + MAX_LENGTH_DIFF
        ):
            distance = edit_distance(word, dict_word)
            if distance <= MAX_EDIT_DISTANCE:
                candidates.append(CandidateMatch(dict_word, distance))

        candidates.sort(
            key=lambda c: (c.distance, abs(len(c.word) - word_length), c.word)
        )
        return candidates

    def is_valid_word(self, word: str) -> bool:
        word = _require_word(word)
        return bool(word) and word in self._dictionary

    def suggest_correction(self, word: str) -> str:
        word = _require_word(word)
        if not word:
            return word

        lower_word = word.lower()
        if lower_word in self._dictionary:
            return word

        candidates = self._find_candidates(lower_word)
        if not candidates:
            return word

        return candidates[0].word

    def get_suggestions(self, word: str, max_suggestions: int) -> List[str]:
        word = _require_word(word)
        _require_max_suggestions(max_suggestions)
        if not word:
            return []

        candidates = self._find_candidates(word.lower())
        return [c.word for c in candidates[:max_suggestions]]

    def add_word(self, word: str) -> None:
        self._dictionary.add(_require_word(word))

    def remove_word(self, word: str) -> bool:
        return self._dictionary.remove(_require_word(word))

    def get_dictionary_size(self) -> int:
        return len(self._dictionary)

    @property
    def dictionary(self) -> WordDictionary:
        return self._dictionary


class WeightedLanguageModel(LanguageModel):
    """
    Spell checker that prefers common words.

    Candidates are ranked by edit distance, then by descending frequency,
    then alphabetically. Example: "teh" could be "the" or "ten"; "the" wins
    because it is far more frequent.
    """

    def __init__(self, frequencies: Optional[Mapping[str, int]] = None):
        """
        Initialize the model.

        Args:
            frequencies: Mapping of dictionary word to frequency
        """
        self._dictionary = WordDictionary(frequencies=frequencies)
        logger.info(f"Weighted language model ready with {len(self._dictionary)} words")

    def _find_candidates(self, word: str) -> List[CandidateMatch]:
        word_length = len(word)
        candidates = []

        for dict_word in self._dictionary:
            # Cheap pre-check before the distance computation
            if abs(len(dict_word) - word_length) > MAX_EDIT_DISTANCE:
                continue

            distance = edit_distance(word, dict_word)
            if distance <= MAX_EDIT_DISTANCE:
                frequency = self._dictionary.frequency(dict_word, DEFAULT_FREQUENCY)
                candidates.append(CandidateMatch(dict_word, distance, frequency))

        candidates.sort(key=lambda c: (c.distance, -c.frequency, c.word))
        return candidates

    def is_valid_word(self, word: str) -> bool:
        word = _require_word(word)
        return bool(word) and word in self._dictionary

    def suggest_correction(self, word: str) -> str:
        word = _require_word(word)
        if not word:
            return word

        lower_word = word.lower()
        if lower_word in self._dictionary:
            return word

        candidates = self._find_candidates(lower_word)
        if not candidates:
            return word

        return candidates[0].word

    def get_suggestions(self, word: str, max_suggestions: int) -> List[str]:
        word = _require_word(word)
        _require_max_suggestions(max_suggestions)
        if not word:
            return []

        candidates = self._find_candidates(word.lower())
        return [c.word for c in candidates[:max_suggestions]]

    def add_word(self, word: str) -> None:
        self._dictionary.add(_require_word(word))

    def add_word_with_frequency(self, word: str, frequency: int) -> None:
        """Add a word, or overwrite the frequency of an existing one."""
        self._dictionary.add(_require_word(word), frequency)

    def increment_frequency(self, word: str) -> None:
        """Count one more use of a known word; unknown words are ignored."""
        self._dictionary.increment_frequency(_require_word(word))

    def get_frequency(self, word: str) -> int:
        return self._dictionary.frequency(_require_word(word))

    def remove_word(self, word: str) -> bool:
        return self._dictionary.remove(_require_word(word))

    def get_dictionary_size(self) -> int:
        return len(self._dictionary)

    @property
    def dictionary(self) -> WordDictionary:
        return self._dictionary


_MODEL_FACTORIES: Mapping[str, Callable[[Mapping[str, int]], LanguageModel]] = {
    'simple': lambda entries: SimpleLanguageModel(entries.keys()),
    'weighted': lambda entries: WeightedLanguageModel(entries),
}


def create_language_model(
    kind: str = 'weighted',
    dictionary_path: Optional[Union[str, Path]] = None
) -> LanguageModel:
    """
    Build a language model, loading its dictionary from a file if given.

    When the file is missing or unreadable the built-in word list for that
    kind of model is used instead.

    Args:
        kind: 'weighted' (frequency-aware) or 'simple'
        dictionary_path: Optional word list file

    Returns:
        Language model instance
    """
    if kind not in _MODEL_FACTORIES:
        raise InvalidArgumentError(
            f"Unknown language model '{kind}'. Must be one of {sorted(_MODEL_FACTORIES)}"
        )

    entries = None
    if dictionary_path:
        try:
            entries = read_dictionary_file(dictionary_path)
            logger.info(f"Dictionary loaded successfully from {dictionary_path}")
        except ResourceUnavailableError as e:
            logger.warning(f"{e}; using built-in dictionary")

    if entries is None:
        if kind == 'weighted':
            entries = dict(BASIC_WORD_FREQUENCIES)
        else:
            entries = dict.fromkeys(BASIC_WORDS, DEFAULT_FREQUENCY)
        logger.info(f"Using built-in {kind} dictionary ({len(entries)} words)")

    return _MODEL_FACTORIES[kind](entries)


def correct_text(model: LanguageModel, text: str) -> str:
    """
    Correct every word of a text.

    The text is split on whitespace; each token is stripped of non-alphabetic
    characters and corrected. Tokens left empty by stripping pass through
    unchanged. Corrected tokens are joined with single spaces.
    """
    if text is None:
        raise InvalidArgumentError("Text cannot be None")

    corrected = []
    for token in text.split():
        cleaned = clean_token(token)
        corrected.append(model.suggest_correction(cleaned) if cleaned else token)

    return " ".join(corrected)
