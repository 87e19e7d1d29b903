"""
Word Graph Index

Indexes a fixed-length vocabulary into an adjacency graph where two words are
neighbors when they differ in exactly one letter position.
"""

from collections import deque
from typing import Dict, FrozenSet, Iterable, List, Set

from ..config.game_settings import WORD_LENGTH

WILDCARD = '*'

_EMPTY: FrozenSet[str] = frozenset()


def wildcard_keys(word: str) -> List[str]:
    """Return one key per position with that position masked, e.g. CR*NE for CRANE."""
    return [word[:i] + WILDCARD + word[i + 1:] for i in range(len(word))]


class WordGraphIndex:
    """
    Read-only one-letter-change graph over a vocabulary of a single word length.

    Words sharing a wildcard key differ only at the masked position, so every
    pair inside a bucket is an edge. Building is one O(N*L) pass; lookups are
    dictionary reads. Unknown words are treated as fully disconnected.
    """

    def __init__(self, words: Iterable[str], word_length: int = WORD_LENGTH):
        self.word_length = word_length
        self._adjacency: Dict[str, FrozenSet[str]] = self._build(self._normalize(words))

    def _normalize(self, words: Iterable[str]) -> Set[str]:
        normalized = set()
        for word in words:
            if not isinstance(word, str):
                continue
            candidate = word.strip().upper()
            if len(candidate) == self.word_length and candidate.isalpha():
                normalized.add(candidate)
        return normalized

    @staticmethod
    def _build(words: Set[str]) -> Dict[str, FrozenSet[str]]:
        buckets: Dict[str, List[str]] = {}
        for word in words:
            for key in wildcard_keys(word):
                buckets.setdefault(key, []).append(word)

        adjacency: Dict[str, Set[str]] = {word: set() for word in words}
        for bucket in buckets.values():
            if len(bucket) < 2:
                continue
            for word in bucket:
                adjacency[word].update(candidate for candidate in bucket if candidate != word)

        return {word: frozenset(neighbors) for word, neighbors in adjacency.items()}

    def neighbors(self, word: str) -> FrozenSet[str]:
        """Words one letter away from word; empty for words outside the index."""
        if not isinstance(word, str):
            return _EMPTY
        return self._adjacency.get(word.strip().upper(), _EMPTY)

    def degree(self, word: str) -> int:
        return len(self.neighbors(word))

    @property
    def words(self) -> List[str]:
        return sorted(self._adjacency)

    def __contains__(self, word) -> bool:
        return isinstance(word, str) and word.strip().upper() in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def edge_count(self) -> int:
        return sum(len(neighbors) for neighbors in self._adjacency.values()) // 2

    def pruned(self, min_degree: int) -> "WordGraphIndex":
        """
        Return a new index without words whose degree falls below min_degree.

        Removal is repeated until stable, since dropping a word lowers the
        degree of its neighbors.
        """
        degrees = {word: len(neighbors) for word, neighbors in self._adjacency.items()}
        removed: Set[str] = set()
        queue = deque(word for word, degree in degrees.items() if degree < min_degree)

        while queue:
            word = queue.popleft()
            if word in removed:
                continue
            removed.add(word)
            for neighbor in self._adjacency[word]:
                if neighbor in removed:
                    continue
                degrees[neighbor] -= 1
                if degrees[neighbor] < min_degree:
                    queue.append(neighbor)

        return WordGraphIndex((word for word in self._adjacency if word not in removed), self.word_length)

    def largest_component(self) -> List[str]:
        """Words of the largest connected component, sorted."""
        seen: Set[str] = set()
        best: List[str] = []

        for start in sorted(self._adjacency):
            if start in seen:
                continue
            component = []
            queue = deque([start])
            seen.add(start)
            while queue:
                word = queue.popleft()
                component.append(word)
                for neighbor in self._adjacency[word]:
                    if neighbor not in seen:
                        seen.add(neighbor)
                        queue.append(neighbor)
            if len(component) > len(best):
                best = component

        return sorted(best)

    def stats(self) -> Dict[str, float]:
        nodes = len(self._adjacency)
        edges = self.edge_count()
        isolated = sum(1 for neighbors in self._adjacency.values() if not neighbors)
        return {
            'word_length': self.word_length,
            'nodes': nodes,
            'edges': edges,
            'isolated_words': isolated,
            'average_degree': round((2 * edges) / nodes, 2) if nodes else 0.0,
        }
