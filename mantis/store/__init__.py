"""
Store - The shared per-game document store.

A transactional key-value store with a change feed. The engine
reads, validates and writes back with compare-and-swap; clients
subscribe to full snapshots.
"""

from .base import GameStore, ConflictError, run_transaction
from .memory import InMemoryGameStore

__all__ = [
    "GameStore",
    "ConflictError",
    "run_transaction",
    "InMemoryGameStore",
]
