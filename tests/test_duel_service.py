"""Tests for the duel state machine."""

import threading
import time
from unittest.mock import Mock

import pytest

from duel_server.models.duel import (
    ColorFeedback, DuelFinished, DuelStarted, DuelStatus, ErrorKind, HintGranted, MoveAccepted, OperationFailed,
    PlayerProgress,
)
from duel_server.services.duel_service import DuelService, evaluate_color_feedback, letter_differences

from conftest import DUEL_VOCAB, FakeOracle

G, Y, X = ColorFeedback.GREEN, ColorFeedback.YELLOW, ColorFeedback.GRAY


class TestColorFeedback:

    def test_mixed_feedback(self):
        assert evaluate_color_feedback("CRANE", "RAISE") == [X, Y, Y, X, G]
        assert evaluate_color_feedback("RAISE", "CRANE") == [Y, Y, X, X, G]

    def test_all_green(self):
        assert evaluate_color_feedback("PLANE", "PLANE") == [G] * 5

    def test_duplicate_letters_are_not_over_credited(self):
        # ABIDE has a single E: only the first unmatched E of SPEED is yellow
        assert evaluate_color_feedback("SPEED", "ABIDE") == [X, X, Y, X, Y]

    def test_green_takes_priority_over_yellow(self):
        # The green E of LEVEL consumes the only E in HELLO
        assert evaluate_color_feedback("LEVEL", "HELLO") == [Y, G, X, X, Y]
        assert evaluate_color_feedback("LLAMA", "HELLO") == [Y, Y, X, X, X]

    def test_letter_differences(self):
        assert letter_differences("SLATE", "PLATE") == 1
        assert letter_differences("SLATE", "CRANE") == 3
        assert letter_differences("SLATE", "SLATE") == 0


class TestStartDuel:

    def test_start_creates_symmetric_progress(self, service):
        result = service.start_duel("m1", "u1", "Alice", "u2", "Bob")

        assert isinstance(result, DuelStarted)
        state = service.get_match_state("m1")
        assert state.start_word == "SLATE"
        assert state.target_word == "PLANE"
        assert state.status == DuelStatus.ACTIVE
        assert state.current_player == "u1"
        assert state.turn_count == 0
        assert state.winner_id is None
        for user_id in ("u1", "u2"):
            player = state.players[user_id]
            assert player.current_word == "SLATE"
            assert [step.word for step in player.path] == ["SLATE"]
            assert list(player.path[0].feedback) == [X, G, G, X, G]
            assert player.transformation_count == 0
            assert player.hints_used == 0
        assert state.start_word_meta.distance_to_target == 2
        assert state.target_word_meta.distance_to_target == 0

    def test_start_snapshot_is_serializable(self, service):
        result = service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        assert result.to_dict()["state"]["startWord"] == "SLATE"
        assert result.to_dict()["state"]["playerOrder"] == ["u1", "u2"]

    def test_duplicate_match_id(self, started):
        result = started.start_duel("m1", "u3", "Carol", "u4", "Dan")
        assert isinstance(result, OperationFailed)
        assert result.kind == ErrorKind.MATCH_ALREADY_EXISTS

    def test_players_must_be_distinct(self, service):
        assert service.start_duel("m1", "u1", "Alice", "u1", "Alice").kind == ErrorKind.INVALID_PLAYERS
        assert service.start_duel("m1", "", "Alice", "u2", "Bob").kind == ErrorKind.INVALID_PLAYERS
        assert service.get_match_state("m1") is None

    def test_start_and_target_always_differ(self, graph):
        oracle = FakeOracle(DUEL_VOCAB, picks=["SLATE", "SLATE", "SLATE", "PLANE"])
        service = DuelService(oracle, graph, min_start_degree=0)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        state = service.get_match_state("m1")
        assert (state.start_word, state.target_word) == ("SLATE", "PLANE")

    def test_no_word_pair_after_bounded_attempts(self, graph):
        oracle = FakeOracle(DUEL_VOCAB, picks=["SLATE"] * 100)
        service = DuelService(oracle, graph, min_start_degree=0)
        result = service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        assert result.kind == ErrorKind.NO_WORD_PAIR
        assert len(oracle.picks) > 0

    def test_empty_dictionary(self, graph):
        service = DuelService(FakeOracle(DUEL_VOCAB), graph, min_start_degree=0)
        assert service.start_duel("m1", "u1", "Alice", "u2", "Bob").kind == ErrorKind.NO_WORD_PAIR

    def test_oracle_outage_while_picking(self, graph):
        oracle = FakeOracle(DUEL_VOCAB, picks=["SLATE", "PLANE"])
        oracle.fail = True
        service = DuelService(oracle, graph, min_start_degree=0)
        assert service.start_duel("m1", "u1", "Alice", "u2", "Bob").kind == ErrorKind.NO_WORD_PAIR
        assert service.get_match_state("m1") is None


class TestSubmitMove:
    """The move pipeline: order of checks and state effects."""

    def test_accepted_move(self, started):
        result = started.submit_move("m1", "u1", "PLATE")

        assert isinstance(result, MoveAccepted)
        assert result.accepted
        assert result.feedback == [G, G, G, X, G]
        assert result.completed is False
        assert result.winner_declared is False
        assert result.transformation_count == 1
        assert result.insight.word == "PLATE"
        assert result.insight.distance_to_target == 1
        assert result.hint_budget.remaining == 5

        state = started.get_match_state("m1")
        assert state.current_player == "u2"
        assert state.turn_count == 1
        assert state.players["u1"].current_word == "PLATE"
        assert [s.word for s in state.players["u1"].path] == ["SLATE", "PLATE"]
        assert state.players["u2"].current_word == "SLATE"
        assert state.insight_by_player["u1"].word == "PLATE"

    def test_lowercase_input_is_normalized(self, started):
        result = started.submit_move("m1", "u1", " plate ")
        assert result.accepted
        assert started.get_match_state("m1").players["u1"].current_word == "PLATE"

    def test_warnings_for_dead_end(self, started):
        result = started.submit_move("m1", "u1", "SKATE")
        assert result.warnings == ['This move leads to a near dead-end. Choose carefully.']

    def test_reaching_target_wins(self, graph):
        service = DuelService(FakeOracle(DUEL_VOCAB, picks=["SLATE", "PLATE"]), graph, min_start_degree=0)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")

        result = service.submit_move("m1", "u1", "PLATE")

        assert result.completed
        assert result.winner_declared
        assert result.feedback == [G] * 5
        state = service.get_match_state("m1")
        assert state.status == DuelStatus.FINISHED
        assert state.winner_id == "u1"
        assert state.end_reason == "target_reached"
        assert state.players["u1"].completed
        assert state.finished_at is not None

    def test_turns_alternate(self, started):
        assert started.submit_move("m1", "u1", "STATE").accepted
        assert started.submit_move("m1", "u2", "SKATE").accepted
        assert started.submit_move("m1", "u1", "SLATE").accepted
        state = started.get_match_state("m1")
        assert state.current_player == "u2"
        assert state.turn_count == 3
        assert state.players["u1"].transformation_count == 2
        assert state.players["u2"].transformation_count == 1

    def test_second_player_can_win_after_first_moves(self, started):
        started.submit_move("m1", "u1", "STATE")
        started.submit_move("m1", "u2", "PLATE")
        started.submit_move("m1", "u1", "SLATE")
        result = started.submit_move("m1", "u2", "PLANE")

        assert result.winner_declared
        assert started.get_match_state("m1").winner_id == "u2"

    def test_match_not_found(self, started):
        result = started.submit_move("nope", "u1", "PLATE")
        assert result.kind == ErrorKind.MATCH_NOT_FOUND
        assert result.error.message == 'Game not found'
        assert result.state is None

    def test_not_your_turn(self, started):
        result = started.submit_move("m1", "u2", "PLATE")
        assert result.kind == ErrorKind.NOT_YOUR_TURN
        assert result.error.message == "It's not your turn"
        state = started.get_match_state("m1")
        assert state.players["u2"].current_word == "SLATE"
        assert state.current_player == "u1"

    def test_stranger_is_not_a_player(self, started):
        assert started.submit_move("m1", "intruder", "PLATE").kind == ErrorKind.PLAYER_NOT_FOUND

    def test_wrong_length(self, started):
        result = started.submit_move("m1", "u1", "SLATES")
        assert result.kind == ErrorKind.INVALID_WORD_LENGTH
        assert result.error.message == 'Word must be exactly 5 letters'

    def test_must_change_exactly_one_letter(self, started):
        result = started.submit_move("m1", "u1", "CRANE")
        assert result.kind == ErrorKind.INVALID_TRANSFORMATION
        assert result.error.message == 'You must change exactly 1 letter (changed 3)'
        assert started.submit_move("m1", "u1", "SLATE").kind == ErrorKind.INVALID_TRANSFORMATION

    def test_local_checks_skip_the_oracle(self, started, oracle):
        started.submit_move("m1", "u1", "CRANE")
        started.submit_move("m1", "u2", "PLATE")
        assert oracle.validated == []

    def test_word_not_in_dictionary(self, started):
        result = started.submit_move("m1", "u1", "SLATX")
        assert result.kind == ErrorKind.WORD_NOT_IN_DICTIONARY
        assert result.error.message == '"SLATX" is not a valid word'
        state = started.get_match_state("m1")
        assert state.current_player == "u1"
        assert state.players["u1"].transformation_count == 0

    def test_oracle_outage_is_not_an_invalid_word(self, started, oracle):
        oracle.fail = True
        result = started.submit_move("m1", "u1", "PLATE")
        assert result.kind == ErrorKind.VALIDATION_UNAVAILABLE
        assert started.get_match_state("m1").players["u1"].current_word == "SLATE"

        oracle.fail = False
        assert started.submit_move("m1", "u1", "PLATE").accepted

    def test_timeout_from_oracle_is_unavailable(self, started, oracle):
        oracle.is_valid_word = Mock(side_effect=TimeoutError("slow"))
        assert started.submit_move("m1", "u1", "PLATE").kind == ErrorKind.VALIDATION_UNAVAILABLE

    def test_finished_match_rejects_moves(self, graph):
        service = DuelService(FakeOracle(DUEL_VOCAB, picks=["SLATE", "PLATE"]), graph, min_start_degree=0)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        service.submit_move("m1", "u1", "PLATE")

        result = service.submit_move("m1", "u2", "PLATE")
        assert result.kind == ErrorKind.MATCH_ALREADY_FINISHED
        assert service.get_match_state("m1").winner_id == "u1"


class TestTurnLimit:

    def make_service(self, graph, oracle):
        service = DuelService(oracle, graph, min_start_degree=0, max_turns=2)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        return service

    def test_more_greens_wins(self, graph, oracle):
        service = self.make_service(graph, oracle)
        service.submit_move("m1", "u1", "PLATE")  # 4 greens against PLANE
        result = service.submit_move("m1", "u2", "STATE")  # 2 greens

        assert result.accepted
        assert result.winner_declared is False
        state = service.get_match_state("m1")
        assert state.status == DuelStatus.FINISHED
        assert state.winner_id == "u1"
        assert state.end_reason == "turn_limit"
        assert state.turn_count == 2

    def test_equal_greens_is_a_draw(self, graph, oracle):
        service = self.make_service(graph, oracle)
        service.submit_move("m1", "u1", "STATE")
        service.submit_move("m1", "u2", "SKATE")

        state = service.get_match_state("m1")
        assert state.status == DuelStatus.FINISHED
        assert state.winner_id is None
        assert state.end_reason == "turn_limit_draw"
        assert service.submit_move("m1", "u1", "SLATE").kind == ErrorKind.MATCH_ALREADY_FINISHED


class TestConcurrency:

    def test_same_player_racing_moves_apply_once(self, graph):
        barrier = threading.Barrier(2, timeout=5)

        class SlowOracle(FakeOracle):
            def is_valid_word(self, word):
                barrier.wait()
                return super().is_valid_word(word)

        service = DuelService(SlowOracle(DUEL_VOCAB, picks=["SLATE", "PLANE"]), graph, min_start_degree=0)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")

        results = []

        def move(word):
            results.append(service.submit_move("m1", "u1", word))

        threads = [threading.Thread(target=move, args=(word,)) for word in ("PLATE", "STATE")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        accepted = [r for r in results if r.accepted]
        rejected = [r for r in results if not r.accepted]
        assert len(accepted) == 1
        assert len(rejected) == 1
        assert rejected[0].kind == ErrorKind.NOT_YOUR_TURN

        state = service.get_match_state("m1")
        assert state.players["u1"].transformation_count == 1
        assert state.turn_count == 1
        assert state.current_player == "u2"

    def test_snapshots_reach_broadcaster_in_commit_order(self, started):
        published = []
        hint_publishing = threading.Event()
        release = threading.Event()

        def broadcaster(match_id, event, snapshot):
            if event == 'hint_granted':
                hint_publishing.set()
                release.wait(timeout=5)
            published.append((event, snapshot['turnCount'], snapshot['currentPlayer']))

        started.set_broadcaster(broadcaster)
        hint = threading.Thread(target=started.request_hint, args=("m1", "u2"))
        hint.start()
        assert hint_publishing.wait(timeout=5)

        move = threading.Thread(target=started.submit_move, args=("m1", "u1", "PLATE"))
        move.start()
        # Give the move time to commit if it could slip past the hint's publish
        time.sleep(0.2)
        release.set()
        hint.join(timeout=5)
        move.join(timeout=5)

        assert published == [('hint_granted', 0, 'u1'), ('move_accepted', 1, 'u2')]
        state = started.get_match_state("m1")
        assert published[-1][1:] == (state.turn_count, state.current_player)

    def test_forfeit_during_validation_wins_the_race(self, graph):
        service = None

        class ForfeitingOracle(FakeOracle):
            def is_valid_word(self, word):
                service.forfeit("m1", "u2")
                return super().is_valid_word(word)

        service = DuelService(ForfeitingOracle(DUEL_VOCAB, picks=["SLATE", "PLATE"]), graph, min_start_degree=0)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")

        result = service.submit_move("m1", "u1", "PLATE")

        assert result.kind == ErrorKind.MATCH_ALREADY_FINISHED
        state = service.get_match_state("m1")
        assert state.winner_id == "u1"
        assert state.end_reason == "forfeit"
        assert state.players["u1"].completed is False


class TestForfeitAndDisconnect:

    def test_forfeit_declares_opponent(self, started):
        result = started.forfeit("m1", "u1")
        assert isinstance(result, DuelFinished)
        assert result.winner_id == "u2"
        assert result.end_reason == "forfeit"

    def test_at_most_one_conclusion(self, started):
        started.forfeit("m1", "u1")
        assert started.forfeit("m1", "u2").kind == ErrorKind.MATCH_ALREADY_FINISHED
        assert started.get_match_state("m1").winner_id == "u2"

    def test_forfeit_errors(self, started):
        assert started.forfeit("nope", "u1").kind == ErrorKind.MATCH_NOT_FOUND
        assert started.forfeit("m1", "intruder").kind == ErrorKind.PLAYER_NOT_FOUND

    def test_disconnect_forfeits_active_duels(self, started):
        result = started.handle_player_disconnect("u2")
        assert result == {'games_affected': 1, 'affected_match_ids': ['m1']}
        assert started.get_match_state("m1").winner_id == "u1"
        assert started.handle_player_disconnect("u2")['games_affected'] == 0

    def test_disconnect_of_unknown_user(self, started):
        assert started.handle_player_disconnect("ghost")['games_affected'] == 0


class TestHints:

    def test_hint_granted(self, started):
        result = started.request_hint("m1", "u1")
        assert isinstance(result, HintGranted)
        assert [s.word for s in result.suggestions] == ["PLATE", "SLAVE"]
        assert result.hint_budget.used == 1
        assert result.hint_budget.remaining == 4
        assert started.get_match_state("m1").players["u1"].hints_used == 1

    def test_hint_allowed_off_turn(self, started):
        assert started.request_hint("m1", "u2").success

    def test_hint_does_not_change_turn_or_status(self, started):
        started.request_hint("m1", "u1")
        state = started.get_match_state("m1")
        assert state.current_player == "u1"
        assert state.status == DuelStatus.ACTIVE

    def test_hint_limit(self, started):
        assert len(started.request_hint("m1", "u1", limit=1).suggestions) == 1
        assert len(started.request_hint("m1", "u1", limit="abc").suggestions) == 2
        assert len(started.request_hint("m1", "u1", limit=0).suggestions) == 2

    def test_budget_runs_out(self, started):
        for _ in range(5):
            started.request_hint("m1", "u1")
        result = started.request_hint("m1", "u1")
        assert result.success
        assert result.suggestions == []
        assert result.hint_budget.used == 5
        assert result.hint_budget.remaining == 0
        assert started.request_hint("m1", "u2").hint_budget.used == 1

    def test_hint_errors(self, started):
        assert started.request_hint("nope", "u1").kind == ErrorKind.MATCH_NOT_FOUND
        assert started.request_hint("m1", "intruder").kind == ErrorKind.PLAYER_NOT_FOUND
        started.forfeit("m1", "u1")
        assert started.request_hint("m1", "u2").kind == ErrorKind.MATCH_ALREADY_FINISHED

    def test_move_reports_hint_budget(self, started):
        started.request_hint("m1", "u1")
        assert started.submit_move("m1", "u1", "PLATE").hint_budget.used == 1


class TestBroadcasting:

    def test_events_are_published(self, graph):
        broadcaster = Mock()
        service = DuelService(FakeOracle(DUEL_VOCAB, picks=["SLATE", "PLATE"]), graph,
                              min_start_degree=0, broadcaster=broadcaster)
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        service.request_hint("m1", "u2")
        service.submit_move("m1", "u1", "PLATE")

        events = [call.args[1] for call in broadcaster.call_args_list]
        assert events == ['duel_started', 'hint_granted', 'move_accepted', 'duel_finished']
        match_id, _, snapshot = broadcaster.call_args_list[-1].args
        assert match_id == "m1"
        assert snapshot["status"] == "finished"
        assert snapshot["winnerId"] == "u1"

    def test_rejected_move_publishes_nothing(self, started):
        broadcaster = Mock()
        started.set_broadcaster(broadcaster)
        started.submit_move("m1", "u2", "PLATE")
        broadcaster.assert_not_called()

    def test_broadcaster_failure_does_not_break_moves(self, started):
        started.set_broadcaster(Mock(side_effect=RuntimeError("socket gone")))
        assert started.submit_move("m1", "u1", "PLATE").accepted


class TestHousekeeping:

    def test_get_match_state_is_a_copy(self, started):
        state = started.get_match_state("m1")
        state.players["u1"].current_word = "ZZZZZ"
        state.status = DuelStatus.FINISHED
        fresh = started.get_match_state("m1")
        assert fresh.players["u1"].current_word == "SLATE"
        assert fresh.status == DuelStatus.ACTIVE

    def test_delete_match(self, started):
        assert started.delete_match("m1") is True
        assert started.delete_match("m1") is False
        assert started.get_match_state("m1") is None

    def test_evict_finished_matches(self, graph):
        now = [100.0]
        service = DuelService(FakeOracle(DUEL_VOCAB, picks=["SLATE", "PLANE", "SLATE", "PLANE"]), graph,
                              min_start_degree=0, clock=lambda: now[0])
        service.start_duel("m1", "u1", "Alice", "u2", "Bob")
        service.start_duel("m2", "u3", "Carol", "u4", "Dan")
        service.forfeit("m1", "u1")

        now[0] = 150.0
        assert service.evict_finished_matches(60) == []
        now[0] = 160.0
        assert service.evict_finished_matches(60) == ["m1"]
        assert service.get_match_state("m1") is None
        assert service.get_match_state("m2") is not None

    def test_stats(self, started):
        started.submit_move("m1", "u1", "PLATE")
        stats = started.get_stats()
        assert stats['active_matches'] == 1
        assert stats['finished_matches'] == 0
        assert stats['total_matches'] == 1
        assert stats['insight_cache_size'] >= 2

    @pytest.mark.parametrize("steps,is_winner,expected", [
        (5, True, 125),
        (3, False, 85),
        (30, False, 0),
    ])
    def test_calculate_score(self, steps, is_winner, expected):
        player = PlayerProgress(user_id="u1", username="Alice", current_word="PLANE", path=[],
                                transformation_count=steps)
        assert DuelService.calculate_score(player, is_winner) == expected
