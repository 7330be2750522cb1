"""
State Reconciler - Compares a client's visible state with the server's.

A buffered server snapshot is only adopted when the client's own
visible state (advanced by hint predictions) already agrees with it
on every checked field. Disagreement is logged and the snapshot is
dropped unless server overwrite is enabled.

Checked fields:
- draw pile length and top card id
- current player index
- player count
- per player: score count and tank card ids (order sensitive)
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, TYPE_CHECKING
import logging

from ..config import Settings

if TYPE_CHECKING:
    from ..engine_core.state import GameState

logger = logging.getLogger(__name__)


class DiscrepancyKind(str, Enum):
    MISSING_STATE = "missingState"
    DRAW_PILE_LENGTH = "drawPileLength"
    TOP_CARD_DIFFERENT = "topCardDifferent"
    TURN_MISMATCH = "turnMismatch"
    PLAYER_COUNT_MISMATCH = "playerCountMismatch"
    SCORE_MISMATCH = "scoreMismatch"
    TANK_MISMATCH = "tankMismatch"


@dataclass(frozen=True)
class Discrepancy:
    kind: DiscrepancyKind
    client: Any
    server: Any
    player_index: int | None = None
    player_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"kind": self.kind.value, "client": self.client, "server": self.server}
        if self.player_index is not None:
            data["playerIndex"] = self.player_index
        if self.player_id is not None:
            data["playerId"] = self.player_id
        return data


def _top_id(game: GameState) -> str | None:
    top = game.top_card
    return top.id if top else None


def diff(client: GameState | None, server: GameState | None) -> list[Discrepancy]:
    """All discrepancies between two states; empty when they agree."""
    if client is None or server is None:
        return [Discrepancy(DiscrepancyKind.MISSING_STATE, client is not None, server is not None)]

    diffs: list[Discrepancy] = []

    if len(client.draw_pile) != len(server.draw_pile):
        diffs.append(Discrepancy(
            DiscrepancyKind.DRAW_PILE_LENGTH, len(client.draw_pile), len(server.draw_pile)
        ))

    client_top, server_top = _top_id(client), _top_id(server)
    if client_top != server_top:
        diffs.append(Discrepancy(DiscrepancyKind.TOP_CARD_DIFFERENT, client_top, server_top))

    if client.current_player_index != server.current_player_index:
        diffs.append(Discrepancy(
            DiscrepancyKind.TURN_MISMATCH,
            client.current_player_index,
            server.current_player_index,
        ))

    for i in range(max(len(client.players), len(server.players))):
        cp = client.players[i] if i < len(client.players) else None
        sp = server.players[i] if i < len(server.players) else None
        if cp is None or sp is None:
            diffs.append(Discrepancy(
                DiscrepancyKind.PLAYER_COUNT_MISMATCH, cp is not None, sp is not None, player_index=i
            ))
            continue
        if cp.score_count != sp.score_count:
            diffs.append(Discrepancy(
                DiscrepancyKind.SCORE_MISMATCH,
                cp.score_count,
                sp.score_count,
                player_index=i,
                player_id=cp.player_id,
            ))
        if cp.tank_ids != sp.tank_ids:
            diffs.append(Discrepancy(
                DiscrepancyKind.TANK_MISMATCH,
                cp.tank_ids,
                sp.tank_ids,
                player_index=i,
                player_id=cp.player_id,
            ))

    return diffs


def should_adopt(diffs: list[Discrepancy]) -> bool:
    return not diffs


class StateReconciler:
    """
    Applies the adoption policy to a buffered snapshot.

    Returns the state the client should show next: the server
    snapshot when adopted, otherwise the unchanged visible state.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.rejected = 0

    def reconcile(self, visible: GameState | None, snapshot: GameState) -> GameState:
        if visible is None:
            return snapshot

        diffs = diff(visible, snapshot)
        if should_adopt(diffs):
            return snapshot

        if self.settings.log_server_diffs:
            logger.warning(
                "Server snapshot for %s disagrees with visible state: %s",
                snapshot.room_code,
                [d.to_dict() for d in diffs],
            )
        if self.settings.allow_server_overwrite:
            return snapshot

        self.rejected += 1
        return visible
