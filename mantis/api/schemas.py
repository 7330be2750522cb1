"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between game clients and the
engine. Game documents are passed through in their persisted
(camelCase) shape; action submissions accept the same camelCase keys.

Error Codes:
- GAME_NOT_FOUND: Room code does not exist
- AUTHENTICATION_REQUIRED: No caller identity supplied
- TURN_VIOLATION: Caller may not act right now
- INVALID_TARGET: Self-steal or unknown target
- EMPTY_DECK: Nothing left to draw
- BOT_ACTION_EXPIRED / BOT_ACTION_CONSUMED / BOT_ACTION_MISMATCH:
  Stale or replayed bot execution
- GAME_FINISHED / GAME_NOT_STARTED: Wrong lifecycle state
- LOBBY_ERROR: Seating change rejected
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    TURN_VIOLATION = "TURN_VIOLATION"
    INVALID_TARGET = "INVALID_TARGET"
    EMPTY_DECK = "EMPTY_DECK"
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    BOT_ACTION_EXPIRED = "BOT_ACTION_EXPIRED"
    BOT_ACTION_CONSUMED = "BOT_ACTION_CONSUMED"
    BOT_ACTION_MISMATCH = "BOT_ACTION_MISMATCH"
    GAME_FINISHED = "GAME_FINISHED"
    GAME_NOT_STARTED = "GAME_NOT_STARTED"
    INVALID_ACTION = "INVALID_ACTION"
    TRANSACTION_CONFLICT = "TRANSACTION_CONFLICT"
    LOBBY_ERROR = "LOBBY_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ActionName(str, Enum):
    SCORE = "score"
    STEAL = "steal"


class BotDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# =============================================================================
# Request Models
# =============================================================================

class ActionSubmission(BaseModel):
    """Score or Steal. Bots also send their pending action id."""
    model_config = ConfigDict(populate_by_name=True)

    action: ActionName
    target_player_id: Optional[str] = Field(None, alias="targetPlayerId")
    bot_player_id: Optional[str] = Field(None, alias="botPlayerId")
    action_id: Optional[str] = Field(None, alias="actionId")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class CreateGameRequest(BaseModel):
    player_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=40)


class LocalSeatModel(BaseModel):
    name: str = Field(..., min_length=1, max_length=40)
    is_bot: bool = False
    bot_difficulty: Optional[BotDifficulty] = None


class CreateLocalGameRequest(BaseModel):
    controller_id: str = Field(..., min_length=1)
    players: list[LocalSeatModel] = Field(..., min_length=2, max_length=6)


class JoinGameRequest(BaseModel):
    player_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=40)


class AddBotRequest(BaseModel):
    difficulty: BotDifficulty = BotDifficulty.MEDIUM


class ChangeBotDifficultyRequest(BaseModel):
    difficulty: BotDifficulty


# =============================================================================
# Response Models
# =============================================================================

class ActionResponse(BaseModel):
    """Successful Score/Steal."""
    success: bool = True
    animation_hint: Optional[dict[str, Any]] = Field(
        None, description="Persisted hint: sequence, playerId, affectedCardIds, ..."
    )
    status: Optional[str] = None
    current_player_index: Optional[int] = None


class GameResponse(BaseModel):
    """A game document as stored."""
    room_code: str
    version: int
    game: dict[str, Any]


class RoomResponse(BaseModel):
    room_code: str
    player_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
