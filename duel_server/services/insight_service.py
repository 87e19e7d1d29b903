"""
Word Insight Service

Turns a word (and optionally the duel's target) into a player-facing
judgment: how many onward moves it affords and how far it is from the target.
"""

import threading
from typing import TYPE_CHECKING, Dict, List, Optional

from ..config.game_settings import HIGH_BRANCH_THRESHOLD, LOW_BRANCH_THRESHOLD, NEIGHBOR_SAMPLE
from ..models.duel import BranchLevel, WordInsight

if TYPE_CHECKING:
    from .word_graph import WordGraphIndex


def classify_branching(degree: int,
                       high_threshold: int = HIGH_BRANCH_THRESHOLD,
                       low_threshold: int = LOW_BRANCH_THRESHOLD) -> BranchLevel:
    if degree >= high_threshold:
        return BranchLevel.HIGH
    if degree <= low_threshold:
        return BranchLevel.LOW
    return BranchLevel.MEDIUM


def hamming_distance(word: Optional[str], target: Optional[str]) -> Optional[int]:
    """
    Count positions where word and target differ.

    This is not the shortest path through the dictionary graph: a path may need
    detours because some intermediate letter combinations are not words.
    Returns None when either word is missing or the lengths differ.
    """
    if not word or not target or len(word) != len(target):
        return None
    return sum(1 for left, right in zip(word.upper(), target.upper()) if left != right)


class WordInsightEngine:
    """
    Builds WordInsight values on top of a WordGraphIndex.

    Target-independent fields are cached per word for the process lifetime
    since the vocabulary is static; the distance is recomputed per call.
    """

    def __init__(self, graph: "WordGraphIndex",
                 high_threshold: int = HIGH_BRANCH_THRESHOLD,
                 low_threshold: int = LOW_BRANCH_THRESHOLD,
                 sample_size: int = NEIGHBOR_SAMPLE):
        self.graph = graph
        self.high_threshold = high_threshold
        self.low_threshold = low_threshold
        self.sample_size = sample_size
        self._cache: Dict[str, WordInsight] = {}
        self._cache_lock = threading.Lock()

    def classify(self, degree: int) -> BranchLevel:
        return classify_branching(degree, self.high_threshold, self.low_threshold)

    def _base_insight(self, word: str) -> WordInsight:
        cached = self._cache.get(word)
        if cached is not None:
            return cached

        neighbors = self.graph.neighbors(word)
        insight = WordInsight(
            word=word,
            neighbor_count=len(neighbors),
            branch_level=self.classify(len(neighbors)),
            neighbor_sample=tuple(sorted(neighbors)[:self.sample_size]),
        )
        with self._cache_lock:
            return self._cache.setdefault(word, insight)

    def build_insight(self, word: str, target: Optional[str] = None) -> WordInsight:
        """Never raises: unknown words come back with degree 0, low branching, no sample."""
        normalized = word.strip().upper() if isinstance(word, str) else ''
        normalized_target = target.strip().upper() if isinstance(target, str) else None
        return self._base_insight(normalized).with_distance(hamming_distance(normalized, normalized_target))

    def build_warnings(self, insight: WordInsight) -> List[str]:
        warnings = []
        if insight.branch_level == BranchLevel.LOW:
            warnings.append('This move leads to a near dead-end. Choose carefully.')
        elif insight.branch_level == BranchLevel.MEDIUM and insight.neighbor_count <= self.low_threshold + 1:
            warnings.append('Limited onward moves remain from this word.')
        return warnings

    def cache_size(self) -> int:
        return len(self._cache)
