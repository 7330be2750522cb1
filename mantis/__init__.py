"""
Mantis - Real-time card matching engine

A turn-based card game for 2 to 6 players where everyone draws into
shared tanks, racing to a score threshold. The package provides:
- A transactional action engine over a versioned game store
- Tiered bot opponents that play on imperfect information
- A client-side coordinator that merges optimistic effects with
  authoritative updates
"""

__version__ = "0.1.0"
