"""
Tests for API Pydantic schemas.

Validates that:
- Action submissions accept the camelCase wire keys
- Error codes cover every engine error
- Lobby requests enforce their bounds
"""

import pytest
from pydantic import ValidationError


class TestActionSubmission:
    """Tests for the action payload."""

    def test_wire_keys(self):
        """camelCase keys parse and dump back unchanged."""
        from ..api.schemas import ActionName, ActionSubmission

        submission = ActionSubmission.model_validate({
            "action": "steal",
            "targetPlayerId": "B",
            "botPlayerId": "bot-1",
            "actionId": "bot-1-abc",
        })
        assert submission.action == ActionName.STEAL
        assert submission.target_player_id == "B"
        assert submission.to_wire() == {
            "action": "steal",
            "targetPlayerId": "B",
            "botPlayerId": "bot-1",
            "actionId": "bot-1-abc",
        }

    def test_field_names_accepted(self):
        """Python field names work too."""
        from ..api.schemas import ActionSubmission

        submission = ActionSubmission(action="score", action_id="x")
        assert submission.action_id == "x"

    def test_unknown_action(self):
        from ..api.schemas import ActionSubmission

        with pytest.raises(ValidationError):
            ActionSubmission.model_validate({"action": "fold"})


class TestErrorCodes:
    def test_every_engine_error_has_a_code(self):
        """Each MantisError subclass maps onto ErrorCode."""
        from ..api.schemas import ErrorCode
        from ..engine_core import errors

        classes = [
            obj for obj in vars(errors).values()
            if isinstance(obj, type) and issubclass(obj, errors.MantisError)
        ]
        assert len(classes) > 10
        for cls in classes:
            assert ErrorCode(cls.code)

    def test_error_response_shape(self):
        from ..api.schemas import ErrorCode, ErrorResponse

        data = ErrorResponse(error="Not your turn", error_code=ErrorCode.TURN_VIOLATION).model_dump(mode="json")
        assert data == {
            "error": "Not your turn",
            "error_code": "TURN_VIOLATION",
            "details": None,
            "api_version": "v1",
        }


class TestLobbySchemas:
    def test_local_game_seat_bounds(self):
        """Two to six seats."""
        from ..api.schemas import CreateLocalGameRequest

        seats = [{"name": f"P{i}"} for i in range(7)]
        with pytest.raises(ValidationError):
            CreateLocalGameRequest(controller_id="ctl", players=seats)
        assert len(CreateLocalGameRequest(controller_id="ctl", players=seats[:6]).players) == 6

    def test_bot_difficulty_default(self):
        from ..api.schemas import AddBotRequest, BotDifficulty

        assert AddBotRequest().difficulty == BotDifficulty.MEDIUM
        with pytest.raises(ValidationError):
            AddBotRequest(difficulty="brutal")

    def test_names_required(self):
        from ..api.schemas import CreateGameRequest

        with pytest.raises(ValidationError):
            CreateGameRequest(player_id="u1", name="")
