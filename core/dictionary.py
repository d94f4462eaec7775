"""
Word dictionary backing the lexical correction engine.

The dictionary keeps three structures in step: the set of words, an index
of words bucketed by length (to bound the correction search), and a
frequency count per word. It is long-lived and shared between recognition
requests, so writes are serialised and length buckets are replaced rather
than mutated: a reader iterating a bucket never sees it change.
"""

import logging
import re
import threading
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple, Union

from .exceptions import InvalidArgumentError, ResourceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_FREQUENCY = 1
MAX_WORD_LENGTH = 20

# "word frequency", "word,frequency" or "word\tfrequency"
_FIELD_SEPARATOR = re.compile(r"[\s,]+")


# Fallback plain word list used when no dictionary file is available
BASIC_WORDS = (
    # Articles & determiners
    "the", "a", "an", "this", "that", "these", "those", "my", "your", "his", "her",
    "its", "our", "their", "some", "any", "all", "both", "each", "every", "no",

    # Pronouns
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "us", "them",
    "what", "which", "who", "whom", "whose", "whoever", "whatever", "whichever",

    # Verbs
    "be", "am", "is", "are", "was", "were", "been", "being",
    "have", "has", "had", "having", "do", "does", "did", "doing",
    "will", "would", "shall", "should", "can", "could", "may", "might", "must",
    "go", "goes", "went", "gone", "going", "get", "gets", "got", "getting",
    "make", "makes", "made", "making", "know", "knows", "knew", "known", "knowing",
    "think", "thinks", "thought", "thinking", "take", "takes", "took", "taken", "taking",
    "see", "sees", "saw", "seen", "seeing", "come", "comes", "came", "coming",
    "want", "wants", "wanted", "wanting", "use", "uses", "used", "using",
    "find", "finds", "found", "finding", "give", "gives", "gave", "given", "giving",
    "tell", "tells", "told", "telling", "work", "works", "worked", "working",
    "call", "calls", "called", "calling", "try", "tries", "tried", "trying",
    "ask", "asks", "asked", "asking", "need", "needs", "needed", "needing",
    "feel", "feels", "felt", "feeling", "become", "becomes", "became", "becoming",
    "leave", "leaves", "left", "leaving", "put", "puts", "putting",

    # Prepositions
    "in", "on", "at", "to", "for", "of", "with", "from", "by", "about",
    "into", "through", "during", "before", "after", "above", "below", "between",
    "under", "over", "against", "among", "within", "without", "throughout",

    # Conjunctions
    "and", "or", "but", "if", "because", "as", "when", "while", "where",
    "although", "though", "unless", "until", "since", "so", "than", "whether",

    # Adverbs
    "not", "now", "just", "very", "too", "also", "here", "there", "then",
    "only", "well", "back", "even", "still", "again", "already", "always",
    "never", "often", "sometimes", "usually", "really", "almost", "quite",

    # Adjectives
    "good", "new", "first", "last", "long", "great", "little", "own", "other",
    "old", "right", "big", "high", "different", "small", "large", "next",
    "early", "young", "important", "few", "public", "bad", "same", "able",

    # Nouns
    "time", "year", "people", "way", "day", "man", "thing", "woman", "life",
    "child", "world", "school", "state", "family", "student", "group", "country",
    "problem", "hand", "part", "place", "case", "week", "company", "system",
    "program", "question", "government", "number", "night", "point",
    "home", "water", "room", "mother", "area", "money", "story", "fact",
    "month", "lot", "study", "book", "eye", "job", "word", "business",
    "issue", "side", "kind", "head", "house", "service", "friend", "father",
    "power", "hour", "game", "line", "end", "member", "law", "car", "city",
    "community", "name", "president", "team", "minute", "idea", "kid", "body",
    "information", "parent", "face", "others", "level", "office",
)

# Fallback frequency list: most common English words with estimated counts,
# followed by frequent words at the default count
BASIC_WORD_FREQUENCIES = {
    "the": 1000000, "be": 500000, "to": 450000, "of": 400000, "and": 350000,
    "a": 300000, "in": 250000, "that": 200000, "have": 180000, "it": 170000,
    "for": 160000, "not": 150000, "on": 140000, "with": 130000, "he": 120000,
    "as": 110000, "you": 100000, "do": 95000, "at": 90000, "this": 85000,
    "but": 80000, "his": 75000, "by": 70000, "from": 65000, "they": 60000,
    "we": 58000, "say": 56000, "her": 54000, "she": 52000, "or": 50000,
    **{
        word: DEFAULT_FREQUENCY
        for word in (
            "when", "make", "can", "like", "time", "no", "just", "him", "know", "take",
            "people", "into", "year", "your", "good", "some", "could", "them", "see", "other",
            "than", "then", "now", "look", "only", "come", "its", "over", "think", "also",
            "back", "after", "use", "two", "how", "our", "work", "first", "well", "way",
            "even", "new", "want", "because", "any", "these", "give", "day", "most", "us",
        )
    },
}


def read_dictionary_file(
    path: Union[str, Path],
    max_word_length: int = MAX_WORD_LENGTH
) -> Dict[str, int]:
    """
    Read a line-oriented word list, with optional frequencies.

    Accepted line formats are ``word``, ``word frequency``, ``word,frequency``
    and ``word<TAB>frequency``. Blank lines and ``#`` comments are ignored,
    words longer than ``max_word_length`` are skipped, and lines with a
    malformed frequency are skipped rather than aborting the load.

    Args:
        path: Path to the dictionary file (UTF-8)
        max_word_length: Longest word to keep

    Returns:
        Mapping of lower-cased word to frequency

    Raises:
        ResourceUnavailableError: If the file is missing or unreadable
    """
    path = Path(path)
    entries: Dict[str, int] = {}
    skipped = 0

    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                parts = [part for part in _FIELD_SEPARATOR.split(line) if part]
                if not parts:
                    skipped += 1
                    continue
                word = parts[0].lower()

                if len(word) > max_word_length:
                    skipped += 1
                    continue

                if len(parts) == 1:
                    entries[word] = DEFAULT_FREQUENCY
                    continue

                try:
                    entries[word] = int(parts[1])
                except ValueError:
                    skipped += 1
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceUnavailableError(f"Could not read dictionary {path}: {e}") from e

    logger.info(f"Read {len(entries)} words from {path} ({skipped} line(s) skipped)")
    return entries


class WordDictionary:
    """
    Set of lower-case words with a length index and per-word frequencies.

    Every word in the length index is in the word set and vice versa.
    """

    def __init__(
        self,
        words: Optional[Iterable[str]] = None,
        frequencies: Optional[Mapping[str, int]] = None
    ):
        """
        Initialize the dictionary.

        Args:
            words: Words to add with the default frequency
            frequencies: Words to add with an explicit frequency
        """
        self._words = set()
        self._by_length: Dict[int, FrozenSet[str]] = {}
        self._frequencies: Dict[str, int] = {}
        self._lock = threading.Lock()

        entries = [(word, None) for word in words or ()]
        entries.extend((frequencies or {}).items())
        self._load(entries)

    def _load(self, entries: Iterable[Tuple[str, Optional[int]]]) -> None:
        """Bulk insert, freezing each length bucket once at the end."""
        buckets: Dict[int, Set[str]] = {}

        with self._lock:
            try:
                for word, frequency in entries:
                    word = self._normalize(word)
                    if not word:
                        raise InvalidArgumentError("Word cannot be empty")

                    if word not in self._words:
                        self._words.add(word)
                        buckets.setdefault(len(word), set()).add(word)

                    if frequency is not None:
                        self._frequencies[word] = frequency
                    else:
                        self._frequencies.setdefault(word, DEFAULT_FREQUENCY)
            finally:
                # Index whatever was inserted, even when a bad word aborts the load
                for length, bucket in buckets.items():
                    self._by_length[length] = self._by_length.get(length, frozenset()) | bucket

    @staticmethod
    def _normalize(word: Optional[str]) -> str:
        if word is None:
            raise InvalidArgumentError("Word cannot be None")
        return word.lower()

    def add(self, word: str, frequency: Optional[int] = None) -> None:
        """
        Add a word, or update its frequency if already present.

        Args:
            word: Word to add (stored lower-case)
            frequency: Explicit frequency; None keeps an existing count or
                uses DEFAULT_FREQUENCY for a new word
        """
        word = self._normalize(word)
        if not word:
            raise InvalidArgumentError("Word cannot be empty")

        with self._lock:
            if word not in self._words:
                length = len(word)
                self._by_length[length] = self._by_length.get(length, frozenset()) | {word}
                self._words.add(word)

            if frequency is not None:
                self._frequencies[word] = frequency
            else:
                self._frequencies.setdefault(word, DEFAULT_FREQUENCY)

    def remove(self, word: str) -> bool:
        """
        Remove a word and prune its length bucket if it becomes empty.

        Returns:
            True if the word was present and removed
        """
        word = self._normalize(word)
        if not word:
            return False

        with self._lock:
            if word not in self._words:
                return False

            self._words.discard(word)
            self._frequencies.pop(word, None)

            length = len(word)
            remaining = self._by_length.get(length, frozenset()) - {word}
            if remaining:
                self._by_length[length] = remaining
            else:
                self._by_length.pop(length, None)

            return True

    def frequency(self, word: str, default: int = 0) -> int:
        return self._frequencies.get(self._normalize(word), default)

    def increment_frequency(self, word: str, amount: int = 1) -> bool:
        """
        Increase the count of a known word.

        Returns:
            False if the word is not in the dictionary
        """
        word = self._normalize(word)
        with self._lock:
            if word not in self._words:
                return False
            self._frequencies[word] = self._frequencies.get(word, 0) + amount
            return True

    def words_in_length_range(self, min_length: int, max_length: int) -> Iterator[str]:
        """Yield words whose length lies in [min_length, max_length]."""
        for length in range(max(1, min_length), max_length + 1):
            # Bucket snapshot; writers replace it instead of mutating it
            bucket = self._by_length.get(length)
            if bucket:
                yield from bucket

    def length_index_sizes(self) -> Dict[int, int]:
        """Number of words per length bucket."""
        return {length: len(bucket) for length, bucket in sorted(self._by_length.items())}

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.lower() in self._words

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            snapshot: List[str] = list(self._words)
        return iter(snapshot)

    def __repr__(self) -> str:
        return f"WordDictionary(size={len(self)})"
