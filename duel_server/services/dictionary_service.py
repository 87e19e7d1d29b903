"""
Dictionary Service

The word validity oracle consulted by the duel engine. Two implementations:
- DictionaryService: in-process dictionary over the bundled word list
- RemoteDictionaryOracle: the same contract over HTTP
"""

import random
from typing import Dict, Iterable, List, Optional, Protocol

import requests

from ..config.game_settings import WORD_LIST, WORD_LENGTH
from .insight_service import classify_branching
from .word_graph import WordGraphIndex
from ..utils.game_logger import game_logger


class DictionaryUnavailableError(Exception):
    """The oracle could not answer (transport failure, timeout, bad payload)."""


class DictionaryOracle(Protocol):
    """Contract the duel engine relies on."""

    def is_valid_word(self, word: str) -> bool:
        """True for dictionary words. Unknown words return False, never raise."""

    def random_word(self, min_degree: int = 0) -> Optional[str]:
        """A uniformly chosen word with at least min_degree neighbors, or None."""


def levenshtein_distance(first: str, second: str) -> int:
    previous = list(range(len(second) + 1))
    for i, left in enumerate(first, start=1):
        current = [i]
        for j, right in enumerate(second, start=1):
            cost = 0 if left == right else 1
            current.append(min(previous[j - 1] + cost, current[j - 1] + 1, previous[j] + 1))
        previous = current
    return previous[-1]


class DictionaryService:
    """
    Local dictionary and word graph built once from a static vocabulary.

    This class handles:
    - Word validity checks
    - Guarded random word selection (minimum neighbor count)
    - Per-word graph analysis for clients
    - Spelling suggestions for rejected words
    """

    def __init__(self, words: Iterable[str] = WORD_LIST, word_length: int = WORD_LENGTH, rng=None):
        self.word_length = word_length
        self._words = frozenset(
            word.strip().upper() for word in words if isinstance(word, str) and word.strip()
        )
        self.graph = WordGraphIndex(self._words, word_length)
        self._morphable = self.graph.words
        self._rng = rng or random
        game_logger.logger.info(
            f"Dictionary loaded: {len(self._words)} words ({len(self._morphable)} morphable)"
        )

    def is_valid_word(self, word: str) -> bool:
        if not word or not isinstance(word, str):
            return False
        return word.strip().upper() in self._words

    def validate_words(self, words: Iterable) -> List[Dict]:
        return [{'word': word, 'valid': self.is_valid_word(word)} for word in words]

    def get_all_words(self) -> List[str]:
        return sorted(self._words)

    def random_word(self, min_degree: int = 0) -> Optional[str]:
        eligible = [word for word in self._morphable if self.graph.degree(word) >= min_degree]
        pool = eligible or self._morphable
        if not pool:
            return None
        return self._rng.choice(pool)

    def get_word_analysis(self, word: str, neighbor_limit: int = 20) -> Dict:
        """Describe a word's position in the graph, the shape the dictionary API returns."""
        normalized = (word or '').strip().upper()
        neighbors = sorted(self.graph.neighbors(normalized))
        return {
            'word': normalized,
            'valid': self.is_valid_word(normalized),
            'neighborCount': len(neighbors),
            'neighbors': neighbors[:max(neighbor_limit, 0)],
            'branchLevel': classify_branching(len(neighbors)).value,
        }

    def get_suggestions(self, word: str, max_suggestions: int = 3) -> List[str]:
        """Dictionary words within edit distance 2 of word, closest first."""
        normalized = (word or '').strip().upper()
        if not normalized:
            return []

        scored = []
        for candidate in self._words:
            if abs(len(candidate) - len(normalized)) > 2:
                continue
            distance = levenshtein_distance(normalized, candidate)
            if 0 < distance <= 2:
                scored.append((distance, candidate))

        scored.sort()
        return [candidate for _, candidate in scored[:max_suggestions]]

    def get_stats(self) -> Dict:
        return {
            'total_words': len(self._words),
            'morphable_words': len(self._morphable),
            'graph': self.graph.stats(),
        }


class RemoteDictionaryOracle:
    """
    Oracle backed by a dictionary HTTP service.

    Any transport error, timeout or malformed body raises
    DictionaryUnavailableError so callers never mistake it for an invalid word.
    """

    def __init__(self, base_url: str, timeout: float = 3.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            game_logger.logger.error(f"Dictionary service error on {method} {url}: {e}")
            raise DictionaryUnavailableError(str(e)) from e

        if not isinstance(data, dict):
            raise DictionaryUnavailableError(f"Unexpected response from {url}: {data!r}")
        return data

    def is_valid_word(self, word: str) -> bool:
        if not word or not isinstance(word, str):
            return False
        data = self._request('POST', '/validate', json={'word': word.strip().lower()})
        if 'valid' not in data:
            raise DictionaryUnavailableError("Dictionary response is missing 'valid'")
        return bool(data['valid'])

    def random_word(self, min_degree: int = 0) -> Optional[str]:
        data = self._request('GET', '/words/random', params={'minDegree': min_degree})
        word = data.get('word')
        return word.strip().upper() if isinstance(word, str) and word.strip() else None


# Global service instance
_dictionary_service = None


def get_dictionary_service() -> Optional[DictionaryService]:
    """Get the global dictionary service instance."""
    return _dictionary_service


def initialize_dictionary_service(words: Iterable[str] = WORD_LIST) -> DictionaryService:
    """Initialize the global dictionary service instance."""
    global _dictionary_service
    _dictionary_service = DictionaryService(words)
    return _dictionary_service
