"""
Hint Service

Ranks the neighbors of a player's current word and meters how many hint
requests each player may make in a duel.
"""

from typing import List, Optional, Tuple

from ..config.game_settings import HINTS_PER_REQUEST, MAX_HINTS_PER_PLAYER
from ..models.duel import BranchLevel, HintBudget, HintCategory, HintSuggestion, PlayerProgress, WordInsight
from .insight_service import WordInsightEngine, hamming_distance


def categorize_hint(insight: WordInsight, distance_delta: int) -> HintCategory:
    if distance_delta > 0:
        return HintCategory.DISTANCE
    if insight.branch_level == BranchLevel.HIGH:
        return HintCategory.SAFE
    return HintCategory.STRUCTURE


class HintSelector:
    """Budget-limited next-word suggestions scored by the word graph."""

    def __init__(self, insight_engine: WordInsightEngine,
                 max_hints_per_player: int = MAX_HINTS_PER_PLAYER,
                 default_limit: int = HINTS_PER_REQUEST):
        self.insight_engine = insight_engine
        self.max_hints_per_player = max_hints_per_player
        self.default_limit = default_limit

    def suggest(self, current_word: str, target_word: str, limit: Optional[int] = None) -> List[HintSuggestion]:
        """
        Rank neighbors of current_word by progress toward target_word.

        Neighbors that move away from the target are dropped unless they are
        highly branching, which keeps a safe detour available. Ordering is
        distance gain first, then branch level, then alphabetical.
        """
        if limit is None:
            limit = self.default_limit

        neighbors = self.insight_engine.graph.neighbors(current_word)
        if not neighbors or limit <= 0:
            return []

        current_distance = hamming_distance(current_word, target_word)
        if current_distance is None:
            current_distance = 0

        scored = []
        for neighbor in neighbors:
            insight = self.insight_engine.build_insight(neighbor, target_word)
            distance = insight.distance_to_target if insight.distance_to_target is not None else current_distance
            distance_delta = current_distance - distance
            if distance_delta < 0 and insight.branch_level != BranchLevel.HIGH:
                continue
            scored.append(HintSuggestion.from_insight(insight, categorize_hint(insight, distance_delta), distance_delta))

        scored.sort(key=lambda s: (-s.distance_delta, -s.branch_level.rank, s.word))
        return scored[:limit]

    def budget_for(self, player: PlayerProgress) -> HintBudget:
        return HintBudget(
            used=player.hints_used,
            remaining=max(self.max_hints_per_player - player.hints_used, 0),
            limit=self.max_hints_per_player,
        )

    def request_hints(self, player: PlayerProgress, target_word: str,
                      limit: Optional[int] = None) -> Tuple[List[HintSuggestion], HintBudget]:
        """
        Serve one hint request for player, consuming one unit of budget.

        An empty suggestion list still costs a unit. Once the budget is spent,
        requests return nothing and consume nothing. Caller must hold the match lock.
        """
        if player.hints_used >= self.max_hints_per_player:
            return [], self.budget_for(player)

        suggestions = self.suggest(player.current_word, target_word, limit)
        player.hints_used = min(player.hints_used + 1, self.max_hints_per_player)
        return suggestions, self.budget_for(player)
