"""
Tests for the transactional action engine.

Tests:
- Score and Steal resolution (the canonical scenarios)
- Precondition failures leave the game untouched
- Optimistic concurrency and retries
- Pending bot actions
- Local (single controller) mode
- Starting a game
"""

import threading

import pytest

from ..engine_core.action import ActionRequest, ActionType
from ..engine_core.engine import ActionEngine
from ..engine_core.errors import (
    AuthenticationRequired,
    BotActionConsumed,
    BotActionExpired,
    BotActionMismatch,
    EmptyDeck,
    GameFinished,
    GameNotFound,
    GameNotStarted,
    InvalidAction,
    InvalidTarget,
    LobbyError,
    TransactionConflict,
    TurnViolation,
)
from ..engine_core.state import GameState, GameStatus, HintSequence, PlayerState
from ..store.base import ConflictError
from ..store.memory import InMemoryGameStore
from ..config import Settings
from .conftest import START_MS, filler, make_card, make_game


class TestScore:
    """Tests for the Score action."""

    def test_score_pair(self, engine, store, stored_two_player_game):
        """A red in tank plus a drawn red scores both and passes the turn."""
        result = engine.score("TEST", "A")

        game = store.get("TEST")
        a = game.get_player("A")
        assert result.success
        assert a.tank == []
        assert a.score_count == 2
        assert result.animation_hint.sequence == HintSequence.SCORE_SUCCESS
        assert result.animation_hint.affected_card_ids == ("red-0", "red-1")
        assert result.animation_hint.color == "red"
        assert game.current_player_index == 1
        assert game.status == GameStatus.PLAYING

    def test_score_records_last_action(self, engine, store, stored_two_player_game):
        """The audit record names the actor, result and color."""
        engine.score("TEST", "A")

        last = store.get("TEST").last_action
        assert last.player == "A"
        assert last.action == "score"
        assert last.result == "success"
        assert last.result_symbol == "MATCH"
        assert last.color == "red"
        assert last.target is None

    def test_score_no_match_keeps_card(self, engine, store):
        """A lone color stays in the tank."""
        store.create(make_game(
            tanks=[[make_card("blue-0", "blue")], []],
            draw_pile=[*filler(3), make_card("red-1", "red")],
        ))
        result = engine.score("TEST", "A")

        a = store.get("TEST").get_player("A")
        assert [c.id for c in a.tank] == ["blue-0", "red-1"]
        assert a.score_count == 0
        assert result.animation_hint.sequence == HintSequence.SCORE_FAIL
        assert result.animation_hint.affected_card_ids == ("red-1",)
        assert store.get("TEST").last_action.result == "no match"

    def test_score_collects_every_matching_card(self, engine, store):
        """Three of a color in tank plus the drawn one scores four."""
        tank = [
            make_card("red-0", "red"),
            make_card("blue-0", "blue"),
            make_card("red-2", "red"),
            make_card("red-3", "red"),
        ]
        store.create(make_game(
            tanks=[tank, []],
            draw_pile=[*filler(3), make_card("red-4", "red")],
        ))
        result = engine.score("TEST", "A")

        a = store.get("TEST").get_player("A")
        assert a.score_count == 4
        assert [c.id for c in a.tank] == ["blue-0"]
        assert result.animation_hint.affected_card_ids == ("red-0", "red-2", "red-3", "red-4")

    def test_reaching_threshold_finishes_game(self, engine, store):
        """Three players: C at 9 scores a pair and the game ends."""
        store.create(make_game(
            tanks=[[], [], [make_card("yellow-0", "yellow")]],
            draw_pile=[*filler(3), make_card("yellow-1", "yellow")],
            current=2,
            scores=[0, 0, 9],
        ))
        engine.score("TEST", "C")

        game = store.get("TEST")
        assert game.get_player("C").score_count == 11
        assert game.status == GameStatus.FINISHED

        with pytest.raises(GameFinished):
            engine.score("TEST", "A")

    def test_last_card_leaves_game_open(self, engine, store):
        """Drawing the last card does not end the game; the next action hits EmptyDeck."""
        store.create(make_game(
            tanks=[[], []],
            draw_pile=[make_card("red-0", "red")],
        ))
        engine.score("TEST", "A")

        game = store.get("TEST")
        assert game.draw_pile == []
        assert game.status == GameStatus.PLAYING

        with pytest.raises(EmptyDeck):
            engine.score("TEST", "B")
        assert store.get("TEST").version == game.version


class TestSteal:
    """Tests for the Steal action."""

    def test_steal_no_match(self, engine, store):
        """A red drawn onto a lone blue stays with the target."""
        store.create(make_game(
            tanks=[[make_card("red-0", "red")], [make_card("blue-0", "blue")]],
            draw_pile=[*filler(3), make_card("red-1", "red")],
        ))
        result = engine.steal("TEST", "A", "B")

        game = store.get("TEST")
        assert [c.id for c in game.get_player("B").tank] == ["blue-0", "red-1"]
        assert [c.id for c in game.get_player("A").tank] == ["red-0"]
        assert result.animation_hint.sequence == HintSequence.STEAL_FAIL
        assert result.animation_hint.target_player_id == "B"
        assert game.current_player_index == 1

    def test_steal_match_moves_cards_and_chains(self, engine, store):
        """Two greens plus a drawn green move to the stealer, who goes again."""
        store.create(make_game(
            tanks=[[], [make_card("green-0", "green"), make_card("green-1", "green")]],
            draw_pile=[*filler(3), make_card("green-2", "green")],
        ))
        result = engine.steal("TEST", "A", "B")

        game = store.get("TEST")
        a, b = game.get_player("A"), game.get_player("B")
        assert [c.id for c in a.tank] == ["green-0", "green-1", "green-2"]
        assert b.tank == []
        assert a.score_count == 0
        assert result.animation_hint.sequence == HintSequence.STEAL_SUCCESS
        assert game.current_player_index == 0
        assert game.last_action.target == "B"

    def test_successful_steal_passes_turn_with_three_players(self, engine, store):
        """The chain rule only applies heads-up."""
        store.create(make_game(
            tanks=[[], [make_card("green-0", "green")], []],
            draw_pile=[*filler(3), make_card("green-2", "green")],
        ))
        engine.steal("TEST", "A", "B")
        assert store.get("TEST").current_player_index == 1

    def test_steal_self_is_invalid(self, engine, store, stored_two_player_game):
        """Stealing from yourself is rejected."""
        with pytest.raises(InvalidTarget):
            engine.steal("TEST", "A", "A")

    def test_steal_unknown_target_is_invalid(self, engine, store, stored_two_player_game):
        """Stealing from a stranger is rejected."""
        with pytest.raises(InvalidTarget):
            engine.steal("TEST", "A", "Z")

    def test_steal_without_target(self, engine, store, stored_two_player_game):
        """A steal must name a target."""
        with pytest.raises(InvalidAction):
            engine.steal("TEST", "A", "")


class TestPreconditions:
    """Failures raise typed errors and write nothing."""

    def test_unknown_game(self, engine):
        """Missing rooms raise GameNotFound."""
        with pytest.raises(GameNotFound):
            engine.score("NOPE", "A")

    def test_wrong_player(self, engine, store, stored_two_player_game):
        """Acting out of turn is a TurnViolation with no mutation."""
        before = store.get("TEST")
        with pytest.raises(TurnViolation):
            engine.score("TEST", "B")
        after = store.get("TEST")
        assert after.version == before.version
        assert after.to_dict() == before.to_dict()

    def test_stranger(self, engine, store, stored_two_player_game):
        """Callers who are not seated are rejected."""
        with pytest.raises(TurnViolation):
            engine.score("TEST", "mallory")

    def test_missing_identity(self, engine, store, stored_two_player_game):
        """Anonymous callers must authenticate."""
        with pytest.raises(AuthenticationRequired):
            engine.score("TEST", None)

    def test_empty_deck(self, engine, store):
        """Nothing to draw raises EmptyDeck."""
        store.create(make_game(tanks=[[], []], draw_pile=[]))
        with pytest.raises(EmptyDeck):
            engine.score("TEST", "A")
        assert store.get("TEST").version == 1

    def test_waiting_game(self, engine, store):
        """Actions before the deal are rejected."""
        store.create(GameState(
            room_code="WAIT",
            players=[PlayerState("A", "A"), PlayerState("B", "B")],
        ))
        with pytest.raises(GameNotStarted):
            engine.score("WAIT", "A")

    def test_finished_game_checked_before_turn(self, engine, store):
        """A finished game reports the terminal state, whoever calls."""
        game = make_game(tanks=[[], []], draw_pile=filler(3))
        store.create(game._copy_with(status=GameStatus.FINISHED))
        with pytest.raises(GameFinished):
            engine.score("TEST", "B")


class TestConcurrency:
    """Tests for optimistic concurrency."""

    def test_retries_after_conflicting_write(self, store, clock, rng, stored_two_player_game):
        """A concurrent commit forces a fresh read, then the write lands."""

        class InterleavedStore(InMemoryGameStore):
            def __init__(self):
                super().__init__()
                self.interleave = True

            def compare_and_swap(self, game, expected_version):
                if self.interleave:
                    self.interleave = False
                    super().compare_and_swap(self.get(game.room_code), expected_version)
                return super().compare_and_swap(game, expected_version)

        racy = InterleavedStore()
        racy.create(stored_two_player_game)
        engine = ActionEngine(racy, clock=clock, rng=rng)

        engine.score("TEST", "A")

        game = racy.get("TEST")
        assert game.version == 3
        assert game.get_player("A").score_count == 2

    def test_gives_up_after_max_retries(self, clock, rng, stored_two_player_game):
        """Endless conflicts surface as TransactionConflict."""

        class AlwaysConflicting(InMemoryGameStore):
            attempts = 0

            def compare_and_swap(self, game, expected_version):
                self.attempts += 1
                raise ConflictError(game.room_code, expected_version, expected_version + 1)

        racy = AlwaysConflicting()
        racy.create(stored_two_player_game)
        engine = ActionEngine(racy, clock=clock, rng=rng, settings=Settings(txn_max_retries=2))

        with pytest.raises(TransactionConflict):
            engine.score("TEST", "A")
        assert racy.attempts == 3
        assert racy.get("TEST").version == 1

    def test_parallel_callers_serialize(self, engine, store, stored_two_player_game):
        """Two simultaneous scores by the same player: exactly one lands."""
        barrier = threading.Barrier(2)
        outcomes = []

        def act():
            barrier.wait()
            try:
                engine.score("TEST", "A")
                outcomes.append("ok")
            except TurnViolation:
                outcomes.append("rejected")

        threads = [threading.Thread(target=act) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["ok", "rejected"]
        game = store.get("TEST")
        assert game.version == 2
        assert game.get_player("A").score_count == 2


class TestBroadcastAndHints:
    """Tests for the change feed and hint ordering."""

    def test_commit_notifies_subscribers(self, engine, store, stored_two_player_game):
        """Every subscriber receives the committed snapshot."""
        received = []
        store.subscribe("TEST", received.append)

        engine.score("TEST", "A")

        assert len(received) == 1
        assert received[0].version == 2
        assert received[0].animation_hint.sequence == HintSequence.SCORE_SUCCESS

    def test_failed_action_does_not_notify(self, engine, store, stored_two_player_game):
        """Rejected actions are invisible to the feed."""
        received = []
        store.subscribe("TEST", received.append)
        with pytest.raises(TurnViolation):
            engine.score("TEST", "B")
        assert received == []

    def test_hint_timestamps_strictly_increase(self, engine, store):
        """Two actions within the same millisecond still get distinct stamps."""
        store.create(make_game(
            tanks=[[], []],
            draw_pile=[*filler(3), make_card("red-0", "red"), make_card("blue-0", "blue")],
        ))
        first = engine.score("TEST", "A").animation_hint
        second = engine.score("TEST", "B").animation_hint
        assert first.timestamp == START_MS
        assert second.timestamp == START_MS + 1


class TestBotPendingActions:
    """Tests for staged bot moves."""

    @pytest.fixture
    def bot_game(self, store):
        """A (human) draws a blue; then B (medium bot) faces a red/blue/green back."""
        return store.create(make_game(
            tanks=[[make_card("red-0", "red")], [make_card("blue-0", "blue")]],
            draw_pile=[
                *filler(3),
                make_card("green-5", "green", ("red", "blue", "green")),
                make_card("blue-1", "blue"),
            ],
            bots={1: "medium"},
        ))

    def test_pending_action_staged_for_bot(self, engine, store, clock, bot_game):
        """Handing the turn to a bot stores its decision."""
        engine.score("TEST", "A")

        pending = store.get("TEST").bot_pending_action
        assert pending is not None
        assert pending.bot_player_id == "B"
        assert pending.action == "score"
        assert pending.action_id.startswith(f"bot-{clock.now}-")
        assert len(pending.action_id.split("-")[-1]) == 9
        assert pending.expires_at == clock.now + 30_000
        assert not pending.consumed

    def test_execute_pending(self, engine, store, bot_game):
        """Presenting the live action id plays the bot's move."""
        engine.score("TEST", "A")
        pending = store.get("TEST").bot_pending_action

        result = engine.execute_pending("TEST", pending)

        game = store.get("TEST")
        assert result.animation_hint.player_id == "B"
        assert game.current_player_index == 0
        assert game.bot_pending_action.action_id == pending.action_id
        assert game.bot_pending_action.consumed

    def test_replay_is_rejected(self, engine, store, bot_game):
        """A consumed action cannot run twice."""
        engine.score("TEST", "A")
        pending = store.get("TEST").bot_pending_action
        engine.execute_pending("TEST", pending)

        with pytest.raises(BotActionConsumed):
            engine.execute_pending("TEST", pending)

    def test_expired_action_is_rejected(self, engine, store, clock, bot_game):
        """Past its TTL the action is stale."""
        engine.score("TEST", "A")
        pending = store.get("TEST").bot_pending_action
        clock.advance(30_001)

        with pytest.raises(BotActionExpired):
            engine.execute_pending("TEST", pending)
        assert store.get("TEST").current_player_index == 1

    def test_action_at_expiry_is_still_live(self, engine, store, clock, bot_game):
        """Expiry is strict: exactly at expires_at still counts."""
        engine.score("TEST", "A")
        pending = store.get("TEST").bot_pending_action
        clock.advance(30_000)
        assert engine.execute_pending("TEST", pending).success

    def test_wrong_action_id(self, engine, store, bot_game):
        """Ids must match exactly."""
        engine.score("TEST", "A")
        request = ActionRequest.score("TEST", bot_player_id="B", action_id="bot-0-forged")
        with pytest.raises(BotActionMismatch):
            engine.perform(request, caller_id="B")

    def test_missing_action_id(self, engine, store, bot_game):
        """Bot requests must present an id."""
        engine.score("TEST", "A")
        request = ActionRequest.score("TEST", bot_player_id="B")
        with pytest.raises(BotActionMismatch):
            engine.perform(request, caller_id="B")

    def test_different_action_than_staged(self, engine, store, bot_game):
        """The bot cannot swap its staged score for a steal."""
        engine.score("TEST", "A")
        pending = store.get("TEST").bot_pending_action
        request = ActionRequest.steal(
            "TEST", "A", bot_player_id="B", action_id=pending.action_id
        )
        with pytest.raises(BotActionMismatch):
            engine.perform(request, caller_id="B")

    def test_no_pending_action(self, engine, store, stored_two_player_game):
        """Bot requests without a staged action are rejected."""
        request = ActionRequest.score("TEST", bot_player_id="B", action_id="bot-1-x")
        with pytest.raises(BotActionMismatch):
            engine.perform(request, caller_id="B")

    def test_human_cannot_act_on_bot_turn(self, engine, store, bot_game):
        """Networked humans may only act on their own turn."""
        engine.score("TEST", "A")
        with pytest.raises(TurnViolation):
            engine.score("TEST", "A")

    def test_bot_id_cannot_bypass_pending_action(self, engine, store, bot_game):
        """Calling as the bot's player id, without its action id, is refused."""
        engine.score("TEST", "A")
        before = store.get("TEST")

        with pytest.raises(TurnViolation):
            engine.steal("TEST", "B", "A")
        with pytest.raises(TurnViolation):
            engine.score("TEST", "B")
        assert store.get("TEST").version == before.version

    def test_refresh_restages_expired_action(self, engine, store, clock, bot_game):
        """An action that lapsed unplayed is replaced and the bot can move."""
        engine.score("TEST", "A")
        stale = store.get("TEST").bot_pending_action
        clock.advance(30_001)

        refreshed = engine.refresh_bot_turn("TEST")

        pending = refreshed.bot_pending_action
        assert pending.action_id != stale.action_id
        assert pending.bot_player_id == "B"
        assert pending.computed_at == clock.now
        assert pending.is_live(clock.now)
        result = engine.execute_pending("TEST", pending)
        assert result.animation_hint.player_id == "B"
        assert store.get("TEST").current_player_index == 0

    def test_refresh_keeps_live_action(self, engine, store, bot_game):
        """A live action is left alone and nothing is written."""
        engine.score("TEST", "A")
        before = store.get("TEST")

        refreshed = engine.refresh_bot_turn("TEST")

        assert refreshed.version == before.version
        assert refreshed.bot_pending_action == before.bot_pending_action

    def test_refresh_on_human_turn_is_noop(self, engine, store, stored_two_player_game):
        """Nothing is staged when a human holds the turn."""
        refreshed = engine.refresh_bot_turn("TEST")
        assert refreshed.version == stored_two_player_game.version
        assert refreshed.bot_pending_action is None

    def test_refresh_preconditions(self, engine, store):
        """Missing and finished games fail the same way actions do."""
        with pytest.raises(GameNotFound):
            engine.refresh_bot_turn("NOPE")

        store.create(make_game(
            tanks=[[], []],
            draw_pile=filler(2),
            bots={1: "easy"},
        )._copy_with(status=GameStatus.FINISHED))
        with pytest.raises(GameFinished):
            engine.refresh_bot_turn("TEST")


class TestLocalMode:
    """Tests for single-device games."""

    @pytest.fixture
    def local_game(self, store):
        return store.create(make_game(
            tanks=[[], []],
            draw_pile=[*filler(3), make_card("red-0", "red"), make_card("blue-0", "blue")],
            is_local_mode=True,
            player_ids=["host-local-0", "host-local-1"],
        ))

    def test_controller_acts_for_current_seat(self, engine, store, local_game):
        """The controller plays whichever seat is on turn."""
        first = engine.score("TEST", "host")
        second = engine.score("TEST", "host")

        assert first.animation_hint.player_id == "host-local-0"
        assert second.animation_hint.player_id == "host-local-1"
        assert store.get("TEST").current_player_index == 0

    def test_other_caller_rejected(self, engine, store, local_game):
        """Only the owning controller may act."""
        with pytest.raises(TurnViolation):
            engine.score("TEST", "guest")

    def test_anonymous_rejected(self, engine, store, local_game):
        """Local mode still needs an identity."""
        with pytest.raises(AuthenticationRequired):
            engine.score("TEST", None)

    def test_controller_cannot_play_bot_seat(self, engine, store):
        """A bot seat in a local game only moves through its pending action."""
        store.create(make_game(
            tanks=[[], []],
            draw_pile=[*filler(3), make_card("red-0", "red"), make_card("blue-0", "blue")],
            is_local_mode=True,
            player_ids=["host-local-0", "host-local-1"],
            bots={1: "medium"},
        ))
        engine.score("TEST", "host")

        with pytest.raises(TurnViolation):
            engine.score("TEST", "host")
        pending = store.get("TEST").bot_pending_action
        assert engine.execute_pending("TEST", pending).success


class TestStartGame:
    """Tests for dealing."""

    def _waiting(self, store, n, bot_seats=()):
        players = [
            PlayerState(f"p{i}", f"P{i}", is_bot=i in bot_seats, bot_difficulty="hard" if i in bot_seats else None)
            for i in range(n)
        ]
        return store.create(GameState(room_code="DEAL", players=players))

    def test_deal(self, engine, store):
        """Four cards each, the rest forms the pile, seat 0 starts."""
        self._waiting(store, 3)
        game = engine.start_game("DEAL")

        assert game.status == GameStatus.PLAYING
        assert [len(p.tank) for p in game.players] == [4, 4, 4]
        assert len(game.draw_pile) == 93
        assert game.total_cards() == 105
        assert game.current_player_index == 0
        assert game.bot_pending_action is None

    def test_bot_in_first_seat_gets_pending_action(self, engine, store):
        """A bot opening the game has its move staged immediately."""
        self._waiting(store, 2, bot_seats=(0,))
        game = engine.start_game("DEAL")
        assert game.bot_pending_action is not None
        assert game.bot_pending_action.bot_player_id == "p0"

    def test_cannot_start_twice(self, engine, store):
        """Dealing only happens from waiting."""
        self._waiting(store, 2)
        engine.start_game("DEAL")
        with pytest.raises(LobbyError):
            engine.start_game("DEAL")

    def test_needs_two_players(self, engine, store):
        """A lone player cannot start."""
        self._waiting(store, 1)
        with pytest.raises(LobbyError):
            engine.start_game("DEAL")


class TestActionRequest:
    """Tests for request parsing."""

    def test_from_wire(self):
        """camelCase keys map onto the request."""
        request = ActionRequest.from_dict({
            "gameId": "ABCD",
            "action": "steal",
            "targetPlayerId": "B",
            "botPlayerId": "bot-1",
            "actionId": "bot-1-abc",
        })
        assert request.action == ActionType.STEAL
        assert request.target_player_id == "B"
        assert request.is_bot

    def test_unknown_action(self):
        """Only score and steal exist."""
        with pytest.raises(InvalidAction):
            ActionRequest.from_dict({"gameId": "ABCD", "action": "fold"})
