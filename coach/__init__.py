"""
Chess coach engine package.

This package implements a chess opponent with a ladder of strength tiers and
a move-quality coach, on top of python-chess for the rules.

Modules:
    constants       Piece values, score sentinels and tunable parameters
    rules           Rules adapter (legal moves, move application, FEN)
    evaluate        Static evaluation (material + positional heuristics)
    transposition   Bounded, thread-safe transposition cache
    search          Minimax with alpha-beta pruning and deadlines
    difficulty      Tier table and move-selection policies
    quality         Move quality classifier
    feedback        Narrative coaching feedback
    external        Validation of moves from alternate sources
    errors          Error taxonomy
    engine          CoachEngine, the engine-facing API
"""

from coach.engine import CoachEngine, EngineMove, MoveHint, NoLegalMove
from coach.errors import (
    CoachError,
    IllegalMoveError,
    InvalidPositionError,
    MalformedExternalMoveError,
)
from coach.quality import IllegalMove, MoveAssessment, MoveQuality
from coach.transposition import TranspositionCache

__all__ = [
    "CoachEngine",
    "CoachError",
    "EngineMove",
    "IllegalMove",
    "IllegalMoveError",
    "InvalidPositionError",
    "MalformedExternalMoveError",
    "MoveAssessment",
    "MoveHint",
    "MoveQuality",
    "NoLegalMove",
    "TranspositionCache",
]
