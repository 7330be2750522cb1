"""
Game Manager - Lobby operations on the shared store.

LIFECYCLE:
1. A host creates a room (networked) or a controller creates a
   local game with every seat configured up front
2. While waiting: players join, bots are added, removed or retuned
3. Start: the engine shuffles, deals and opens play
4. Play runs through the ActionEngine until the game finishes

Every lobby change is its own transaction, so two players joining
at once never lose a seat.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import random

from ..bots.pending import new_action_id
from ..bots.policy import Difficulty
from ..engine_core.authorization import local_player_id
from ..engine_core.cards import generate_room_code
from ..engine_core.engine import ActionEngine
from ..engine_core.errors import LobbyError
from ..engine_core.rules import MAX_PLAYERS
from ..engine_core.state import GameState, GameStatus, PlayerState
from ..store.base import GameStore, run_transaction

logger = logging.getLogger(__name__)

BOT_NAMES = [
    "C-3PO",
    "Data",
    "HAL 9000",
    "R2-D2",
    "T-800",
    "Johnny 5",
    "Wall-E",
    "Bender",
    "KITT",
    "Marvin",
    "Lore",
    "GLaDOS",
    "Cortana",
    "Claptrap",
    "EDI",
    "HK-47",
    "R. Daneel",
    "Skynet",
    "J.A.R.V.I.S.",
    "Agent Smith",
]

MAX_ROOM_CODE_ATTEMPTS = 20


@dataclass
class LocalPlayerConfig:
    """One seat of a local (single device) game."""
    name: str
    is_bot: bool = False
    bot_difficulty: str | None = None


def _parse_difficulty(value: str | Difficulty) -> str:
    try:
        return Difficulty(value).value
    except ValueError:
        raise LobbyError(f"Unknown bot difficulty: {value}")


class GameManager:
    """
    Creates rooms and edits their seating.

    Usage:
        manager = GameManager(store, engine)
        code = manager.create_game("u1", "Alice")
        manager.add_bot(code, "hard")
        manager.start_game(code)
    """

    def __init__(
        self,
        store: GameStore,
        engine: ActionEngine,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.engine = engine
        self.rng = rng or random.Random()

    # =========================================================================
    # Creation
    # =========================================================================

    def create_game(self, host_id: str, host_name: str) -> str:
        """Open a networked room with the host in seat 0."""
        host = PlayerState(player_id=host_id, name=host_name)
        return self._create([host], is_local_mode=False)

    def create_local_game(
        self,
        player_configs: list[LocalPlayerConfig],
        controller_id: str,
    ) -> str:
        """
        Open a single-device game.

        Human seats are owned by `controller_id` through their ids
        ("<controller>-local-<seat>").
        """
        if len(player_configs) > MAX_PLAYERS:
            raise LobbyError(f"At most {MAX_PLAYERS} players")

        now = self.engine.clock()
        players = []
        for seat, config in enumerate(player_configs):
            if config.is_bot:
                players.append(PlayerState(
                    player_id=f"bot-local-{now}-{seat}",
                    name=config.name,
                    is_bot=True,
                    bot_difficulty=_parse_difficulty(config.bot_difficulty or Difficulty.MEDIUM),
                ))
            else:
                players.append(PlayerState(
                    player_id=local_player_id(controller_id, seat),
                    name=config.name,
                ))
        return self._create(players, is_local_mode=True)

    def _create(self, players: list[PlayerState], is_local_mode: bool) -> str:
        created_at = datetime.fromtimestamp(
            self.engine.clock() / 1000, tz=timezone.utc
        ).isoformat()
        for _ in range(MAX_ROOM_CODE_ATTEMPTS):
            room_code = generate_room_code(self.rng)
            game = GameState(
                room_code=room_code,
                players=players,
                is_local_mode=is_local_mode,
                created_at=created_at,
            )
            try:
                self.store.create(game)
            except ValueError:
                logger.debug("Room code %s taken, retrying", room_code)
                continue
            logger.info(
                "Created %s game %s with %d players",
                "local" if is_local_mode else "online",
                room_code,
                len(players),
            )
            return room_code
        raise LobbyError("Could not allocate a room code")

    # =========================================================================
    # Seating (waiting only)
    # =========================================================================

    def join_game(self, room_code: str, player_id: str, name: str) -> str:
        """Take a seat. Joining twice is a no-op."""
        room_code = room_code.upper()

        def mutate(game: GameState) -> tuple[GameState, None]:
            self._require_waiting(game)
            if game.get_player(player_id) is not None:
                return game, None
            self._require_space(game)
            joined = PlayerState(player_id=player_id, name=name)
            return game._copy_with(players=[*game.players, joined]), None

        run_transaction(self.store, room_code, mutate)
        return room_code

    def add_bot(self, room_code: str, difficulty: str = Difficulty.MEDIUM.value) -> str:
        """Seat a bot with an unused name. Returns the bot's id."""
        difficulty = _parse_difficulty(difficulty)
        bot_id = new_action_id(self.engine.clock(), self.rng)  # same "bot-<ms>-<rand>" shape

        def mutate(game: GameState) -> tuple[GameState, None]:
            self._require_waiting(game)
            self._require_space(game)
            bot = PlayerState(
                player_id=bot_id,
                name=self._bot_name(game),
                is_bot=True,
                bot_difficulty=difficulty,
            )
            return game._copy_with(players=[*game.players, bot]), None

        run_transaction(self.store, room_code, mutate)
        logger.info("Added %s bot %s to %s", difficulty, bot_id, room_code)
        return bot_id

    def remove_bot(self, room_code: str, bot_id: str):
        def mutate(game: GameState) -> tuple[GameState, None]:
            self._require_waiting(game, "Cannot remove bot after game has started")
            self._require_bot(game, bot_id)
            players = [p for p in game.players if p.player_id != bot_id]
            return game._copy_with(players=players), None

        run_transaction(self.store, room_code, mutate)

    def change_bot_difficulty(self, room_code: str, bot_id: str, difficulty: str):
        difficulty = _parse_difficulty(difficulty)

        def mutate(game: GameState) -> tuple[GameState, None]:
            self._require_waiting(game, "Cannot change bot difficulty after game has started")
            self._require_bot(game, bot_id)
            players = [
                p._copy_with(bot_difficulty=difficulty) if p.player_id == bot_id else p
                for p in game.players
            ]
            return game._copy_with(players=players), None

        run_transaction(self.store, room_code, mutate)

    def start_game(self, room_code: str) -> GameState:
        return self.engine.start_game(room_code, self.rng)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _bot_name(self, game: GameState) -> str:
        taken = {p.name for p in game.players}
        available = [n for n in BOT_NAMES if n not in taken]
        if not available:
            return f"Bot {game.num_players + 1}"
        return self.rng.choice(available)

    @staticmethod
    def _require_waiting(game: GameState, message: str = "Game already started"):
        if game.status != GameStatus.WAITING:
            raise LobbyError(message)

    @staticmethod
    def _require_space(game: GameState):
        if game.num_players >= MAX_PLAYERS:
            raise LobbyError("Game is full")

    @staticmethod
    def _require_bot(game: GameState, bot_id: str):
        player = game.get_player(bot_id)
        if player is None or not player.is_bot:
            raise LobbyError("Bot not found")
