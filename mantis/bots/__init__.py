"""
Bots module - Automated seats.

Provides:
- decide(): difficulty-tiered Score/Steal choice
- BotDecision: the chosen action and target
- Pending actions: decisions staged on the game for timed execution
"""

from .policy import (
    BotDecision,
    Difficulty,
    decide,
    match_probability,
    bot_thinking_time_ms,
)
from .pending import create_pending_action, validate_pending_action, request_for

__all__ = [
    "BotDecision",
    "Difficulty",
    "decide",
    "match_probability",
    "bot_thinking_time_ms",
    "create_pending_action",
    "validate_pending_action",
    "request_for",
]
