"""
In-memory store - Process-local GameStore.

Documents are kept in their persisted dict shape, so every read is
an independent copy and no caller can reach into stored state.
Writes for a room are serialized by a per-room lock; subscribers are
notified after the lock is released.
"""

from __future__ import annotations
from collections import defaultdict
import logging
import threading

from ..engine_core.state import GameState
from .base import ConflictError, GameStore, Subscriber, Unsubscribe

logger = logging.getLogger(__name__)


class InMemoryGameStore(GameStore):
    """
    Versioned, lock-protected documents with a change feed.

    Usage:
        store = InMemoryGameStore()
        store.create(game)
        unsubscribe = store.subscribe(game.room_code, on_snapshot)
    """

    def __init__(self):
        self._documents: dict[str, tuple[dict, int]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def _lock_for(self, room_code: str, create: bool = True) -> threading.Lock | None:
        """Locks exist only for rooms that were created."""
        with self._registry_lock:
            if create:
                return self._locks.setdefault(room_code, threading.Lock())
            return self._locks.get(room_code)

    def get(self, room_code: str) -> GameState | None:
        lock = self._lock_for(room_code, create=False)
        if lock is None:
            return None
        with lock:
            entry = self._documents.get(room_code)
        if entry is None:
            return None
        document, version = entry
        return GameState.from_dict(document, version=version)

    def create(self, game: GameState) -> GameState:
        with self._lock_for(game.room_code):
            if game.room_code in self._documents:
                raise ValueError(f"Room {game.room_code} already exists")
            self._documents[game.room_code] = (game.to_dict(), 1)
        stored = GameState.from_dict(game.to_dict(), version=1)
        self._notify(stored)
        return stored

    def compare_and_swap(self, game: GameState, expected_version: int) -> GameState:
        lock = self._lock_for(game.room_code, create=False)
        if lock is None:
            raise ConflictError(game.room_code, expected_version, 0)
        with lock:
            entry = self._documents.get(game.room_code)
            current_version = entry[1] if entry else 0
            if current_version != expected_version:
                raise ConflictError(game.room_code, expected_version, current_version)
            new_version = current_version + 1
            document = game.to_dict()
            self._documents[game.room_code] = (document, new_version)
        stored = GameState.from_dict(document, version=new_version)
        self._notify(stored)
        return stored

    def delete(self, room_code: str):
        lock = self._lock_for(room_code, create=False)
        if lock is not None:
            with lock:
                self._documents.pop(room_code, None)
            with self._registry_lock:
                self._locks.pop(room_code, None)
        self._subscribers.pop(room_code, None)

    def subscribe(self, room_code: str, callback: Subscriber) -> Unsubscribe:
        self._subscribers[room_code].append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(room_code, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def list_rooms(self) -> list[str]:
        return list(self._documents.keys())

    def _notify(self, snapshot: GameState):
        for callback in list(self._subscribers.get(snapshot.room_code, [])):
            # each subscriber gets its own copy
            try:
                callback(snapshot.clone())
            except Exception:
                logger.exception("Subscriber for %s failed", snapshot.room_code)
