"""
Duel Service

Contains the core word morph duel logic: starting a duel, the move
validation pipeline, win and turn-limit adjudication, and hint requests.
"""

import copy
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..config.game_settings import (
    FIRST_TO_FINISH_BONUS,
    MAX_HINTS_PER_REQUEST,
    MAX_TURNS,
    MAX_WORD_PICK_ATTEMPTS,
    MIN_START_DEGREE,
    POINTS_BASE,
    POINTS_PER_STEP_PENALTY,
    WORD_LENGTH,
)
from ..models.duel import (
    ColorFeedback,
    DuelError,
    DuelFinished,
    DuelStarted,
    DuelState,
    DuelStatus,
    ErrorKind,
    HintGranted,
    MoveAccepted,
    OperationFailed,
    PlayerProgress,
    TransformationStep,
    WordInsight,
)
from ..utils.game_logger import game_logger
from ..utils.helpers import normalize_word
from .dictionary_service import DictionaryOracle, DictionaryUnavailableError
from .hint_service import HintSelector
from .insight_service import WordInsightEngine
from .match_store import InMemoryMatchStore, MatchEntry, MatchStore
from .word_graph import WordGraphIndex

# broadcaster(match_id, event, snapshot)
Broadcaster = Callable[[str, str, Dict], None]

StartResult = Union[DuelStarted, OperationFailed]
MoveResult = Union[MoveAccepted, OperationFailed]
HintResult = Union[HintGranted, OperationFailed]
FinishResult = Union[DuelFinished, OperationFailed]

# Exceptions an oracle may leak on transport trouble, all meaning "could not validate"
_ORACLE_FAILURES = (DictionaryUnavailableError, TimeoutError, ConnectionError)


def evaluate_color_feedback(word: str, target: str) -> List[ColorFeedback]:
    """
    Wordle-style feedback of word against target.

    First pass marks exact matches green and consumes those target letters;
    second pass marks yellows left to right from the remaining letters.
    """
    word = word.upper()
    target = target.upper()
    result = [ColorFeedback.GRAY] * len(word)
    remaining: List[Optional[str]] = list(target)

    for i, letter in enumerate(word):
        if i < len(target) and letter == target[i]:
            result[i] = ColorFeedback.GREEN
            remaining[i] = None

    for i, letter in enumerate(word):
        if result[i] == ColorFeedback.GREEN:
            continue
        if letter in remaining:
            result[i] = ColorFeedback.YELLOW
            remaining[remaining.index(letter)] = None

    return result


def letter_differences(current: str, candidate: str) -> int:
    return sum(1 for left, right in zip(current, candidate) if left != right)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fail(kind: ErrorKind, message: str, state: Optional[Dict] = None) -> OperationFailed:
    return OperationFailed(DuelError(kind, message), state)


class DuelService:
    """
    Core duel service managing every active match.

    This class handles:
    - Duel creation with guarded start/target word selection
    - The move legality pipeline and path bookkeeping
    - Victory, turn-limit and forfeit conclusions
    - Budgeted hint requests
    - Publishing a state snapshot to the room broadcaster after each change

    Operations on one match are serialized by that match's lock. The oracle
    is consulted outside the lock and the move is re-checked once the lock
    is held again.
    """

    def __init__(self,
                 oracle: DictionaryOracle,
                 graph: WordGraphIndex,
                 store: Optional[MatchStore] = None,
                 insight_engine: Optional[WordInsightEngine] = None,
                 hint_selector: Optional[HintSelector] = None,
                 broadcaster: Optional[Broadcaster] = None,
                 word_length: int = WORD_LENGTH,
                 max_turns: int = MAX_TURNS,
                 min_start_degree: int = MIN_START_DEGREE,
                 clock: Callable[[], float] = time.monotonic):
        self.oracle = oracle
        self.store = store if store is not None else InMemoryMatchStore()
        self.insight_engine = insight_engine or WordInsightEngine(graph)
        self.hint_selector = hint_selector or HintSelector(self.insight_engine)
        self.broadcaster = broadcaster
        self.word_length = word_length
        self.max_turns = max_turns
        self.min_start_degree = min_start_degree
        self.clock = clock

    def set_broadcaster(self, broadcaster: Optional[Broadcaster]) -> None:
        self.broadcaster = broadcaster

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start_duel(self, match_id: str, player1_id: str, player1_name: str,
                   player2_id: str, player2_name: str) -> StartResult:
        """
        Create a duel between two players.

        Player 1 moves first. Both players begin on the same start word.
        """
        if not player1_id or not player2_id or player1_id == player2_id:
            return _fail(ErrorKind.INVALID_PLAYERS, 'A duel needs two distinct players')

        existing = self.store.get(match_id)
        if existing is not None:
            return _fail(ErrorKind.MATCH_ALREADY_EXISTS, f'Match {match_id} already exists',
                         self._snapshot(existing))

        try:
            pair = self._pick_word_pair()
        except _ORACLE_FAILURES as e:
            game_logger.logger.error(f"Could not pick words for match {match_id}: {e}")
            return _fail(ErrorKind.NO_WORD_PAIR, 'Dictionary unavailable while picking words')

        if pair is None:
            return _fail(ErrorKind.NO_WORD_PAIR, 'Could not find a distinct start and target word')

        start_word, target_word = pair
        state = self._new_state(match_id, start_word, target_word,
                                [(player1_id, player1_name), (player2_id, player2_name)])

        if not self.store.put(match_id, state):
            entry = self.store.get(match_id)
            return _fail(ErrorKind.MATCH_ALREADY_EXISTS, f'Match {match_id} already exists',
                         self._snapshot(entry) if entry else None)

        game_logger.log_game_event(
            match_id, 'duel_started', player1_id,
            players=[player1_id, player2_id], start_word=start_word, target_word=target_word
        )
        entry = self.store.get(match_id)
        if entry is None or entry.state is not state:
            return DuelStarted(state.to_dict())

        with entry.lock:
            snapshot = state.to_dict()
            self._publish(match_id, 'duel_started', snapshot)
        return DuelStarted(snapshot)

    def _pick_word(self) -> Optional[str]:
        word = normalize_word(self.oracle.random_word(self.min_start_degree))
        if len(word) != self.word_length or not word.isalpha():
            return None
        return word

    def _pick_word_pair(self) -> Optional[Tuple[str, str]]:
        start_word = None
        for _ in range(MAX_WORD_PICK_ATTEMPTS):
            if start_word is None:
                start_word = self._pick_word()
                continue
            target_word = self._pick_word()
            if target_word and target_word != start_word:
                return start_word, target_word
        return None

    def _new_state(self, match_id: str, start_word: str, target_word: str,
                   players: List[Tuple[str, str]]) -> DuelState:
        start_insight = self.insight_engine.build_insight(start_word, target_word)
        target_insight = self.insight_engine.build_insight(target_word, target_word)
        feedback = tuple(evaluate_color_feedback(start_word, target_word))
        now = _utc_now()

        progress = {}
        for user_id, username in players:
            first_step = self._make_step(start_word, feedback, start_insight, now)
            progress[user_id] = PlayerProgress(
                user_id=user_id,
                username=username or user_id,
                current_word=start_word,
                path=[first_step],
                last_insight=start_insight,
            )

        order = [user_id for user_id, _ in players]
        return DuelState(
            match_id=match_id,
            start_word=start_word,
            target_word=target_word,
            players=progress,
            player_order=order,
            current_player=order[0],
            started_at=now,
            start_word_meta=start_insight,
            target_word_meta=target_insight,
            insight_by_player={user_id: start_insight for user_id in order},
        )

    @staticmethod
    def _make_step(word: str, feedback, insight: WordInsight, timestamp: str) -> TransformationStep:
        return TransformationStep(
            word=word,
            feedback=tuple(feedback),
            timestamp=timestamp,
            branch_level=insight.branch_level,
            neighbor_count=insight.neighbor_count,
            distance_to_target=insight.distance_to_target,
        )

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def _check_move(self, state: DuelState, user_id: str, word: str) -> Optional[DuelError]:
        """Local legality checks, in pipeline order. Needs the match lock."""
        if state.status != DuelStatus.ACTIVE:
            return DuelError(ErrorKind.MATCH_ALREADY_FINISHED, 'This duel has already finished')

        player = state.players.get(user_id)
        if player is None:
            return DuelError(ErrorKind.PLAYER_NOT_FOUND, 'Player is not part of this duel')

        if state.current_player != user_id:
            return DuelError(ErrorKind.NOT_YOUR_TURN, "It's not your turn")

        if player.completed:
            return DuelError(ErrorKind.PLAYER_ALREADY_COMPLETED, 'You have already reached the target')

        if len(word) != self.word_length:
            return DuelError(ErrorKind.INVALID_WORD_LENGTH,
                             f'Word must be exactly {self.word_length} letters')

        differences = letter_differences(player.current_word, word)
        if differences != 1:
            return DuelError(ErrorKind.INVALID_TRANSFORMATION,
                             f'You must change exactly 1 letter (changed {differences})')

        return None

    def submit_move(self, match_id: str, user_id: str, new_word: str) -> MoveResult:
        """
        Validate and apply one transformation.

        Any failure leaves the match untouched. An oracle outage is reported
        as VALIDATION_UNAVAILABLE, never as an invalid word.
        """
        entry = self.store.get(match_id)
        if entry is None:
            return _fail(ErrorKind.MATCH_NOT_FOUND, 'Game not found')

        word = normalize_word(new_word)

        with entry.lock:
            error = self._check_move(entry.state, user_id, word)
            if error:
                return OperationFailed(error, entry.state.to_dict())
            target_word = entry.state.target_word

        try:
            valid = self.oracle.is_valid_word(word)
        except _ORACLE_FAILURES as e:
            game_logger.logger.error(f"Dictionary validation failed for match {match_id}: {e}")
            return _fail(ErrorKind.VALIDATION_UNAVAILABLE, 'Could not validate word with dictionary',
                         self._snapshot(entry))

        if not valid:
            return _fail(ErrorKind.WORD_NOT_IN_DICTIONARY, f'"{word}" is not a valid word',
                         self._snapshot(entry))

        insight = self.insight_engine.build_insight(word, target_word)

        with entry.lock:
            if self.store.get(match_id) is not entry:
                return _fail(ErrorKind.MATCH_NOT_FOUND, 'Game not found')

            state = entry.state
            # State may have moved on while the oracle was consulted
            error = self._check_move(state, user_id, word)
            if error:
                return OperationFailed(error, state.to_dict())

            player = state.players[user_id]
            feedback, completed, finished = self._apply_move(state, player, word, insight)
            snapshot = state.to_dict()
            result = MoveAccepted(
                feedback=feedback,
                insight=insight,
                completed=completed,
                winner_declared=finished and state.winner_id == user_id,
                transformation_count=player.transformation_count,
                hint_budget=self.hint_selector.budget_for(player),
                state=snapshot,
                warnings=self.insight_engine.build_warnings(insight),
            )
            self._publish(match_id, 'move_accepted', snapshot)
            if finished:
                self._publish(match_id, 'duel_finished', snapshot)

        game_logger.log_game_event(
            match_id, 'move_accepted', user_id,
            word=word, transformation_count=result.transformation_count,
            distance_to_target=insight.distance_to_target, completed=completed
        )
        return result

    def _apply_move(self, state: DuelState, player: PlayerProgress, word: str,
                    insight: WordInsight) -> Tuple[List[ColorFeedback], bool, bool]:
        feedback = evaluate_color_feedback(word, state.target_word)
        player.path.append(self._make_step(word, feedback, insight, _utc_now()))
        player.current_word = word
        player.transformation_count += 1
        player.last_insight = insight
        state.insight_by_player[player.user_id] = insight

        completed = word == state.target_word
        finished = False
        if completed:
            player.completed = True
            finished = self._conclude(state, player.user_id, 'target_reached')
        else:
            state.current_player = state.other_player(player.user_id)
            state.turn_count += 1
            if state.turn_count >= self.max_turns:
                finished = self._conclude_by_turn_limit(state)

        return feedback, completed, finished

    # ------------------------------------------------------------------
    # Conclusion
    # ------------------------------------------------------------------

    def _conclude(self, state: DuelState, winner_id: Optional[str], reason: str) -> bool:
        """
        Compare-and-set the match from active to finished.

        The only code path that sets winner_id. Returns False when another
        conclusion already committed. Needs the match lock.
        """
        if state.status != DuelStatus.ACTIVE:
            return False

        state.status = DuelStatus.FINISHED
        state.winner_id = winner_id
        state.end_reason = reason
        state.finished_at = _utc_now()
        state.finished_monotonic = self.clock()

        winner = state.players[winner_id] if winner_id else None
        game_logger.log_game_event(
            state.match_id, 'duel_finished', winner_id,
            reason=reason, turn_count=state.turn_count,
            winner=winner.username if winner else None,
            winner_steps=winner.transformation_count if winner else None,
        )
        return True

    def _conclude_by_turn_limit(self, state: DuelState) -> bool:
        """Closest literal match to the target wins; equal green counts are a draw."""
        green_counts = {pid: state.players[pid].last_step.green_count for pid in state.player_order}
        best = max(green_counts.values())
        leaders = [pid for pid in state.player_order if green_counts[pid] == best]

        if len(leaders) == 1:
            return self._conclude(state, leaders[0], 'turn_limit')
        return self._conclude(state, None, 'turn_limit_draw')

    def forfeit(self, match_id: str, user_id: str) -> FinishResult:
        """Concede an active duel; the opponent is declared winner."""
        entry = self.store.get(match_id)
        if entry is None:
            return _fail(ErrorKind.MATCH_NOT_FOUND, 'Game not found')

        with entry.lock:
            state = entry.state
            if state.status != DuelStatus.ACTIVE:
                return _fail(ErrorKind.MATCH_ALREADY_FINISHED, 'This duel has already finished', state.to_dict())
            if user_id not in state.players:
                return _fail(ErrorKind.PLAYER_NOT_FOUND, 'Player is not part of this duel', state.to_dict())

            self._conclude(state, state.other_player(user_id), 'forfeit')
            snapshot = state.to_dict()
            result = DuelFinished(state.winner_id, state.end_reason, snapshot)
            self._publish(match_id, 'duel_finished', snapshot)

        return result

    def handle_player_disconnect(self, user_id: str) -> Dict:
        """Forfeit every active duel the user is playing in."""
        affected = []
        for match_id, entry in self.store.items():
            with entry.lock:
                involved = user_id in entry.state.players and entry.state.is_active
            if involved and isinstance(self.forfeit(match_id, user_id), DuelFinished):
                affected.append(match_id)

        return {
            'games_affected': len(affected),
            'affected_match_ids': affected
        }

    # ------------------------------------------------------------------
    # Hints
    # ------------------------------------------------------------------

    def _normalize_limit(self, limit) -> Optional[int]:
        if limit is None:
            return None
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            return None
        if limit < 1:
            return None
        return min(limit, MAX_HINTS_PER_REQUEST)

    def request_hint(self, match_id: str, user_id: str, limit: Optional[int] = None) -> HintResult:
        """Serve suggestions for the player's current word. Never changes match status."""
        entry = self.store.get(match_id)
        if entry is None:
            return _fail(ErrorKind.MATCH_NOT_FOUND, 'Game not found')

        with entry.lock:
            state = entry.state
            if state.status != DuelStatus.ACTIVE:
                return _fail(ErrorKind.MATCH_ALREADY_FINISHED, 'This duel has already finished', state.to_dict())

            player = state.players.get(user_id)
            if player is None:
                return _fail(ErrorKind.PLAYER_NOT_FOUND, 'Player is not part of this duel', state.to_dict())

            suggestions, budget = self.hint_selector.request_hints(
                player, state.target_word, self._normalize_limit(limit)
            )
            snapshot = state.to_dict()
            self._publish(match_id, 'hint_granted', snapshot)

        game_logger.log_game_event(
            match_id, 'hint_granted', user_id,
            suggestions=[s.word for s in suggestions], hints_used=budget.used
        )
        return HintGranted(suggestions, budget, snapshot)

    # ------------------------------------------------------------------
    # Queries and housekeeping
    # ------------------------------------------------------------------

    def get_match_state(self, match_id: str) -> Optional[DuelState]:
        """A detached copy of the match, or None when it does not exist."""
        entry = self.store.get(match_id)
        if entry is None:
            return None
        with entry.lock:
            return copy.deepcopy(entry.state)

    def delete_match(self, match_id: str) -> bool:
        return self.store.delete(match_id)

    def evict_finished_matches(self, max_age_seconds: float) -> List[str]:
        """Drop matches that finished at least max_age_seconds ago."""
        now = self.clock()
        evicted = []
        for match_id, entry in self.store.items():
            with entry.lock:
                state = entry.state
                expired = (state.status == DuelStatus.FINISHED
                           and state.finished_monotonic is not None
                           and now - state.finished_monotonic >= max_age_seconds)
            if expired and self.store.delete(match_id):
                evicted.append(match_id)
        return evicted

    @staticmethod
    def calculate_score(player: PlayerProgress, is_winner: bool) -> int:
        score = POINTS_BASE - player.transformation_count * POINTS_PER_STEP_PENALTY
        if is_winner:
            score += FIRST_TO_FINISH_BONUS
        return max(0, score)

    def get_stats(self) -> Dict:
        active = 0
        finished = 0
        for _, entry in self.store.items():
            with entry.lock:
                if entry.state.is_active:
                    active += 1
                else:
                    finished += 1
        return {
            'active_matches': active,
            'finished_matches': finished,
            'total_matches': active + finished,
            'insight_cache_size': self.insight_engine.cache_size(),
        }

    def _snapshot(self, entry: MatchEntry) -> Dict:
        with entry.lock:
            return entry.state.to_dict()

    def _publish(self, match_id: str, event: str, snapshot: Dict) -> None:
        """
        Hand a snapshot to the broadcaster. Called with the match lock held so
        snapshots of one match go out in commit order; the broadcaster must not
        call back into this service for the same match.
        """
        if self.broadcaster is None:
            return
        try:
            self.broadcaster(match_id, event, snapshot)
        except Exception as e:
            game_logger.logger.error(f"Error broadcasting {event} for match {match_id}: {e}")


# Global service instance
_duel_service = None


def get_duel_service() -> Optional[DuelService]:
    """Get the global duel service instance."""
    return _duel_service


def initialize_duel_service(oracle: DictionaryOracle, graph: WordGraphIndex, **kwargs) -> DuelService:
    """Initialize the global duel service instance."""
    global _duel_service
    _duel_service = DuelService(oracle, graph, **kwargs)
    return _duel_service
