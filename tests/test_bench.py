import random

import chess

from coach.engine import CoachEngine
from tools.bench import POSITIONS, position_fen, run_tier


def test_benchmark_positions_resolve_to_valid_fens():
    for name, spec in POSITIONS:
        assert chess.Board(position_fen(spec)).is_valid(), name


def test_position_fen_applies_moves():
    assert position_fen("startpos") == chess.STARTING_FEN
    assert position_fen("startpos moves e2e4").startswith("rnbqkbnr/pppppppp/8/8/4P3/")
    fen = "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"
    assert position_fen(f"fen {fen} moves g2f3").startswith("8/5pk1/6p1/7p/7P/5KP1/5P2/8 b")


def test_run_tier_summarises_moves():
    engine = CoachEngine(rng=random.Random(0))
    fens = [position_fen(spec) for _, spec in POSITIONS[:3]]
    summary = run_tier(engine, 1, fens, trials=2)
    assert summary["tier"] == 1
    assert summary["moves"] == 6
    assert summary["avg_ms"] >= 0.0
