"""
FastAPI Application - REST and WebSocket surface for game clients.

Endpoints:
    POST   /api/v1/games                          Create a networked room
    POST   /api/v1/games/local                    Create a single-device game
    GET    /api/v1/games/{room}                   Current game document
    POST   /api/v1/games/{room}/join              Take a seat
    POST   /api/v1/games/{room}/bots              Add a bot
    PATCH  /api/v1/games/{room}/bots/{bot_id}     Change a bot's difficulty
    DELETE /api/v1/games/{room}/bots/{bot_id}     Remove a bot
    POST   /api/v1/games/{room}/start             Deal and start
    POST   /api/v1/games/{room}/actions           Score or Steal
    WS     /api/v1/games/{room}/ws                Snapshot feed
    GET    /api/v1/health                         Health check

Caller identity for actions is the X-Player-Id header.

The WebSocket sends {"type": "snapshot", "game": {...}} once on
connect and again after every commit to the room. Clients answer
{"type": "ping"} with nothing else required.
"""

from typing import Annotated, Optional, Union
import asyncio
import json
import logging

from ..config import Settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "mantis-engine"
API_VERSION = "1.0.0"

# Errors that mean "not now" rather than "bad request"
CONFLICT_CODES = {
    "TURN_VIOLATION",
    "GAME_FINISHED",
    "GAME_NOT_STARTED",
    "BOT_ACTION_EXPIRED",
    "BOT_ACTION_CONSUMED",
    "BOT_ACTION_MISMATCH",
    "TRANSACTION_CONFLICT",
}


def status_for(error_code: str) -> int:
    """HTTP status for an engine error code."""
    if error_code == "GAME_NOT_FOUND":
        return 404
    if error_code == "AUTHENTICATION_REQUIRED":
        return 401
    if error_code in CONFLICT_CODES:
        return 409
    return 400


def create_app(service=None, settings: Optional[Settings] = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Header, WebSocket, WebSocketDisconnect
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from . import models
    from .schemas import (
        # Request models
        ActionSubmission,
        CreateGameRequest,
        CreateLocalGameRequest,
        JoinGameRequest,
        AddBotRequest,
        ChangeBotDifficultyRequest,
        # Response models
        ActionResponse,
        GameResponse,
        RoomResponse,
        ErrorResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    settings = settings or Settings.from_env()
    api_service = service or APIService(settings=settings)

    app = FastAPI(
        title="Mantis Engine API",
        description="""
Real-time card matching for 2 to 6 players.

Every action is validated and committed atomically; clients follow the
game through the WebSocket snapshot feed and animate from the
`animationHint` each snapshot carries.
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    def make_error_response(response: models.ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_for(response.error_code),
            content=ErrorResponse(
                error=response.error,
                error_code=ErrorCode(response.error_code),
                details=response.details,
            ).model_dump(mode="json"),
        )

    def room_or_error(response) -> Union[RoomResponse, JSONResponse]:
        if isinstance(response, models.ErrorResponse):
            return make_error_response(response)
        return RoomResponse(room_code=response.room_code, player_id=response.player_id)

    def game_or_error(response) -> Union[GameResponse, JSONResponse]:
        if isinstance(response, models.ErrorResponse):
            return make_error_response(response)
        return GameResponse(
            room_code=response.room_code,
            version=response.version,
            game=response.game,
        )

    error_responses = {
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }

    # =========================================================================
    # Lobby
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Create a networked room",
    )
    async def create_game(request: CreateGameRequest):
        return room_or_error(api_service.create_game(request.player_id, request.name))

    @app.post(
        "/api/v1/games/local",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Create a single-device game",
    )
    async def create_local_game(request: CreateLocalGameRequest):
        local = models.CreateLocalGameRequest(
            controller_id=request.controller_id,
            players=[
                models.LocalSeat(
                    name=p.name,
                    is_bot=p.is_bot,
                    bot_difficulty=p.bot_difficulty.value if p.bot_difficulty else None,
                )
                for p in request.players
            ],
        )
        return room_or_error(api_service.create_local_game(local))

    @app.post(
        "/api/v1/games/{room_code}/join",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Join a room",
    )
    async def join_game(room_code: str, request: JoinGameRequest):
        return room_or_error(api_service.join_game(room_code, request.player_id, request.name))

    @app.post(
        "/api/v1/games/{room_code}/bots",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Add a bot",
    )
    async def add_bot(room_code: str, request: AddBotRequest):
        return room_or_error(api_service.add_bot(room_code, request.difficulty.value))

    @app.patch(
        "/api/v1/games/{room_code}/bots/{bot_id}",
        response_model=GameResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Change a bot's difficulty",
    )
    async def change_bot_difficulty(room_code: str, bot_id: str, request: ChangeBotDifficultyRequest):
        return game_or_error(
            api_service.change_bot_difficulty(room_code, bot_id, request.difficulty.value)
        )

    @app.delete(
        "/api/v1/games/{room_code}/bots/{bot_id}",
        response_model=GameResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Remove a bot",
    )
    async def remove_bot(room_code: str, bot_id: str):
        return game_or_error(api_service.remove_bot(room_code, bot_id))

    @app.post(
        "/api/v1/games/{room_code}/start",
        response_model=GameResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Deal and start the game",
    )
    async def start_game(room_code: str):
        return game_or_error(api_service.start_game(room_code))

    # =========================================================================
    # Play
    # =========================================================================

    @app.get(
        "/api/v1/games/{room_code}",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get the game document",
    )
    async def get_game(room_code: str):
        return game_or_error(api_service.get_game(room_code))

    @app.post(
        "/api/v1/games/{room_code}/bot-turn",
        response_model=GameResponse,
        responses=error_responses,
        tags=["Games"],
        summary="Re-stage an expired bot move",
    )
    async def refresh_bot_turn(room_code: str):
        return game_or_error(api_service.refresh_bot_turn(room_code))

    @app.post(
        "/api/v1/games/{room_code}/actions",
        response_model=ActionResponse,
        responses={**error_responses, 401: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Score or Steal",
    )
    async def perform_action(
        room_code: str,
        submission: ActionSubmission,
        x_player_id: Annotated[Optional[str], Header()] = None,
    ):
        """
        Submit an action for the calling player.

        Bots are driven by a client presenting `botPlayerId` and the
        live `actionId` from the game's `botPendingAction`.
        """
        response = api_service.perform_action(room_code, submission.to_wire(), x_player_id)
        if isinstance(response, models.ErrorResponse):
            return make_error_response(response)
        return ActionResponse(
            success=response.success,
            animation_hint=response.animation_hint,
            status=response.status,
            current_player_index=response.current_player_index,
        )

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/games/{room_code}/ws")
    async def game_feed(websocket: WebSocket, room_code: str):
        """
        Snapshot feed for one room.

        Messages from server:
        - snapshot: full game document after a commit
        - pong: reply to ping
        - error: unknown room or bad message

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()

        loop = asyncio.get_running_loop()
        outbox: asyncio.Queue = asyncio.Queue()

        def on_commit(game):
            # commits may happen on any thread
            loop.call_soon_threadsafe(outbox.put_nowait, game.to_dict())

        unsubscribe = api_service.subscribe(room_code, on_commit)

        async def pump():
            while True:
                game = await outbox.get()
                await websocket.send_json({"type": "snapshot", "game": game})

        pump_task = asyncio.create_task(pump())
        try:
            response = api_service.get_game(room_code)
            if isinstance(response, models.ErrorResponse):
                await websocket.send_json({
                    "type": "error",
                    "payload": {"message": response.error, "error_code": response.error_code},
                })
                await websocket.close(code=4404)
                return
            outbox.put_nowait(response.game)

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

        except WebSocketDisconnect:
            logger.debug("Feed for %s disconnected", room_code)
        finally:
            unsubscribe()
            pump_task.cancel()

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service=SERVICE_NAME,
            version=API_VERSION,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Mantis Engine API",
            "version": API_VERSION,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app
