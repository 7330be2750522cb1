"""
Errors - Typed failures raised by the engine.

Every validation failure aborts the transaction before anything is
written, so a raised MantisError always means "nothing changed".
The API layer maps `code` onto its error responses.
"""

from __future__ import annotations


class MantisError(Exception):
    """Base exception for game-related errors."""
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.code = code or self.code
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class GameNotFound(MantisError):
    code = "GAME_NOT_FOUND"


class TurnViolation(MantisError):
    """Caller is not allowed to act right now."""
    code = "TURN_VIOLATION"


class InvalidTarget(MantisError):
    code = "INVALID_TARGET"


class EmptyDeck(MantisError):
    code = "EMPTY_DECK"


class AuthenticationRequired(MantisError):
    code = "AUTHENTICATION_REQUIRED"


class BotActionExpired(MantisError):
    code = "BOT_ACTION_EXPIRED"


class BotActionConsumed(MantisError):
    code = "BOT_ACTION_CONSUMED"


class BotActionMismatch(MantisError):
    code = "BOT_ACTION_MISMATCH"


class GameFinished(MantisError):
    """Terminal state: the game accepts no further actions."""
    code = "GAME_FINISHED"


class GameNotStarted(MantisError):
    code = "GAME_NOT_STARTED"


class InvalidAction(MantisError):
    code = "INVALID_ACTION"


class TransactionConflict(MantisError):
    """Concurrent writers kept winning; the caller may retry."""
    code = "TRANSACTION_CONFLICT"


class LobbyError(MantisError):
    """Room setup rejected (full, already started, unknown bot...)."""
    code = "LOBBY_ERROR"
