"""
Configuration - Environment-driven settings.

Environment variables:
    MANTIS_ENV                      development | production
    MANTIS_LOG_LEVEL                logging level name (INFO)
    ALLOWED_ORIGINS                 comma separated CORS origins (*)
    MANTIS_BOT_ACTION_TTL_MS        lifetime of a pending bot action (30000)
    MANTIS_TXN_MAX_RETRIES          retries on a version conflict (5)
    MANTIS_ALLOW_SERVER_OVERWRITE   adopt server snapshots even when they
                                    disagree with the visible state (false)
    MANTIS_LOG_SERVER_DIFFS         log client/server discrepancies (true)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


@dataclass
class Settings:
    env: str = "development"
    log_level: str = "INFO"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    bot_action_ttl_ms: int = 30_000
    txn_max_retries: int = 5
    allow_server_overwrite: bool = False
    log_server_diffs: bool = True

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            env=os.getenv("MANTIS_ENV", "development"),
            log_level=os.getenv("MANTIS_LOG_LEVEL", "INFO").upper(),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
            bot_action_ttl_ms=_env_int("MANTIS_BOT_ACTION_TTL_MS", 30_000),
            txn_max_retries=_env_int("MANTIS_TXN_MAX_RETRIES", 5),
            allow_server_overwrite=_env_bool("MANTIS_ALLOW_SERVER_OVERWRITE", False),
            log_server_diffs=_env_bool("MANTIS_LOG_SERVER_DIFFS", True),
        )


@dataclass
class AnimationTimings:
    """Client presentation timeline, in milliseconds."""
    flip_ms: int = 2600
    flip_grace_ms: int = 500
    hold_ms: int = 2000
    fade_ms: int = 500
    highlight_ms: int = 400
    move_ms: int = 1000
    fail_move_ms: int = 500
    settle_ms: int = 100

    @property
    def transition_timeout_ms(self) -> int:
        """Fallback for a flip that never signals its end."""
        return self.flip_ms + self.flip_grace_ms
