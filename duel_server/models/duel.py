"""
Duel Data Models

Contains all word morph duel data structures, enums and operation results.
Every structure exposes to_dict() producing the camelCase JSON shape sent to clients.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple


class ColorFeedback(str, Enum):
    """Per-letter evaluation of a word against the target."""
    GREEN = "green"
    YELLOW = "yellow"
    GRAY = "gray"


class BranchLevel(str, Enum):
    """Coarse classification of how many onward moves a word affords."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 2, "medium": 1, "low": 0}[self.value]


class HintCategory(str, Enum):
    DISTANCE = "distance"
    SAFE = "safe"
    STRUCTURE = "structure"


class DuelStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


class ErrorKind(str, Enum):
    """Every way a duel operation can be refused."""
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    MATCH_ALREADY_FINISHED = "MATCH_ALREADY_FINISHED"
    MATCH_ALREADY_EXISTS = "MATCH_ALREADY_EXISTS"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    PLAYER_ALREADY_COMPLETED = "PLAYER_ALREADY_COMPLETED"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    INVALID_PLAYERS = "INVALID_PLAYERS"
    INVALID_WORD_LENGTH = "INVALID_WORD_LENGTH"
    INVALID_TRANSFORMATION = "INVALID_TRANSFORMATION"
    WORD_NOT_IN_DICTIONARY = "WORD_NOT_IN_DICTIONARY"
    VALIDATION_UNAVAILABLE = "VALIDATION_UNAVAILABLE"
    NO_WORD_PAIR = "NO_WORD_PAIR"


@dataclass(frozen=True)
class WordInsight:
    """Player-facing judgment of a word: how free or stuck it leaves the player."""
    word: str
    neighbor_count: int
    branch_level: BranchLevel
    neighbor_sample: Tuple[str, ...] = ()
    distance_to_target: Optional[int] = None

    def with_distance(self, distance: Optional[int]) -> "WordInsight":
        return replace(self, distance_to_target=distance)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "neighborCount": self.neighbor_count,
            "branchLevel": self.branch_level.value,
            "neighborSample": list(self.neighbor_sample),
            "distanceToTarget": self.distance_to_target,
        }


@dataclass(frozen=True)
class HintSuggestion(WordInsight):
    """A suggested next word, ranked by how much closer it brings the player."""
    category: HintCategory = HintCategory.STRUCTURE
    distance_delta: int = 0

    @classmethod
    def from_insight(cls, insight: WordInsight, category: HintCategory, distance_delta: int) -> "HintSuggestion":
        return cls(
            word=insight.word,
            neighbor_count=insight.neighbor_count,
            branch_level=insight.branch_level,
            neighbor_sample=insight.neighbor_sample,
            distance_to_target=insight.distance_to_target,
            category=category,
            distance_delta=distance_delta,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["category"] = self.category.value
        data["distanceDelta"] = self.distance_delta
        return data


@dataclass(frozen=True)
class HintBudget:
    used: int
    remaining: int
    limit: int

    def to_dict(self) -> Dict[str, int]:
        return {"used": self.used, "remaining": self.remaining, "limit": self.limit}


@dataclass(frozen=True)
class TransformationStep:
    """One accepted word in a player's path. Never mutated once appended."""
    word: str
    feedback: Tuple[ColorFeedback, ...]
    timestamp: str
    branch_level: BranchLevel
    neighbor_count: int
    distance_to_target: Optional[int]

    @property
    def green_count(self) -> int:
        return sum(1 for color in self.feedback if color == ColorFeedback.GREEN)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "feedback": [color.value for color in self.feedback],
            "timestamp": self.timestamp,
            "branchLevel": self.branch_level.value,
            "neighborCount": self.neighbor_count,
            "distanceToTarget": self.distance_to_target,
        }


@dataclass
class PlayerProgress:
    """A single player's progress within one duel."""
    user_id: str
    username: str
    current_word: str
    path: List[TransformationStep]
    completed: bool = False
    transformation_count: int = 0
    hints_used: int = 0
    last_insight: Optional[WordInsight] = None

    @property
    def last_step(self) -> TransformationStep:
        return self.path[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "username": self.username,
            "currentWord": self.current_word,
            "path": [step.to_dict() for step in self.path],
            "completed": self.completed,
            "transformationCount": self.transformation_count,
            "hintsUsed": self.hints_used,
            "lastInsight": self.last_insight.to_dict() if self.last_insight else None,
        }


@dataclass
class DuelState:
    """Server-side state of one duel. Owns both PlayerProgress records."""
    match_id: str
    start_word: str
    target_word: str
    players: Dict[str, PlayerProgress]
    player_order: List[str]
    current_player: str
    started_at: str
    start_word_meta: WordInsight
    target_word_meta: WordInsight
    turn_count: int = 0
    status: DuelStatus = DuelStatus.ACTIVE
    winner_id: Optional[str] = None
    end_reason: Optional[str] = None  # "target_reached", "turn_limit", "turn_limit_draw", "forfeit"
    finished_at: Optional[str] = None
    finished_monotonic: Optional[float] = None
    insight_by_player: Dict[str, WordInsight] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == DuelStatus.ACTIVE

    def other_player(self, user_id: str) -> str:
        return next(pid for pid in self.player_order if pid != user_id)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable snapshot of the full match, safe to hand to a broadcaster."""
        return {
            "matchId": self.match_id,
            "startWord": self.start_word,
            "targetWord": self.target_word,
            "players": {pid: self.players[pid].to_dict() for pid in self.player_order},
            "playerOrder": list(self.player_order),
            "currentPlayer": self.current_player,
            "turnCount": self.turn_count,
            "status": self.status.value,
            "winnerId": self.winner_id,
            "endReason": self.end_reason,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "startWordMeta": self.start_word_meta.to_dict(),
            "targetWordMeta": self.target_word_meta.to_dict(),
            "insightByPlayer": {pid: insight.to_dict() for pid, insight in self.insight_by_player.items()},
        }


@dataclass(frozen=True)
class DuelError:
    kind: ErrorKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.kind.value, "message": self.message}


# Operation results. Each operation returns its success variant or OperationFailed.

@dataclass
class DuelStarted:
    state: Dict[str, Any]
    success: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        return {"success": True, "state": self.state}


@dataclass
class MoveAccepted:
    feedback: List[ColorFeedback]
    insight: WordInsight
    completed: bool
    winner_declared: bool
    transformation_count: int
    hint_budget: HintBudget
    state: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)
    success: ClassVar[bool] = True

    @property
    def accepted(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "accepted": True,
            "feedback": [color.value for color in self.feedback],
            "insight": self.insight.to_dict(),
            "completed": self.completed,
            "winnerDeclared": self.winner_declared,
            "transformationCount": self.transformation_count,
            "hintBudget": self.hint_budget.to_dict(),
            "warnings": list(self.warnings),
            "errors": [],
            "state": self.state,
        }


@dataclass
class HintGranted:
    suggestions: List[HintSuggestion]
    hint_budget: HintBudget
    state: Dict[str, Any]
    success: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
            "hintBudget": self.hint_budget.to_dict(),
            "state": self.state,
        }


@dataclass
class DuelFinished:
    """A duel concluded outside the move pipeline (e.g. forfeit)."""
    winner_id: Optional[str]
    end_reason: str
    state: Dict[str, Any]
    success: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        return {"success": True, "winnerId": self.winner_id, "endReason": self.end_reason, "state": self.state}


@dataclass
class OperationFailed:
    """A refused operation. The match, if any, is left exactly as it was."""
    error: DuelError
    state: Optional[Dict[str, Any]] = None
    success: ClassVar[bool] = False

    @property
    def accepted(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "accepted": False,
            "error": self.error.to_dict(),
            "errors": [self.error.to_dict()],
            "state": self.state,
        }
