#!/usr/bin/env python3
"""
Benchmark: move quality and response time per difficulty tier.

Each tier plays one move in each benchmark position a few times; every move
is graded by the quality classifier. Average delta should not drop as the
tier rises, and the time column shows what each tier costs.

Usage: python3 tools/bench.py [max_tier] [trials]
"""
import random
import sys
import time

import chess

from coach.constants import MAX_TIER, MIN_TIER
from coach.engine import CoachEngine, EngineMove
from coach.quality import MoveAssessment

# 10 standard positions spanning opening, middlegame, and endgame.
# These are fixed forever: the same positions used for every version comparison.
POSITIONS = [
    ("Start",        "startpos"),
    ("After 1.e4",   "startpos moves e2e4"),
    ("Sicilian",     "startpos moves e2e4 c7c5"),
    ("Italian",      "startpos moves e2e4 e7e5 g1f3 b8c6 f1c4"),
    ("London",       "startpos moves d2d4 d7d5 g1f3 g8f6 c1f4"),
    ("Mid-open",     "fen r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Complex mid",  "fen r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Queen ending", "fen 6k1/ppp2ppp/8/3p4/3P4/8/PPP2PPP/6K1 w - - 0 1"),
    ("Rook ending",  "fen 8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"),
    ("Pawn race",    "fen 8/1p4k1/p7/P1K5/8/8/8/8 w - - 0 1"),
]


def position_fen(pos_spec: str) -> str:
    """Turn a UCI-style position spec ("startpos moves ...", "fen ...") into a FEN."""
    tokens = pos_spec.split()
    if tokens[0] == "startpos":
        board = chess.Board()
        moves = tokens[2:] if len(tokens) > 1 and tokens[1] == "moves" else []
    else:
        if "moves" in tokens:
            idx = tokens.index("moves")
            board = chess.Board(" ".join(tokens[1:idx]))
            moves = tokens[idx + 1:]
        else:
            board = chess.Board(" ".join(tokens[1:]))
            moves = []
    for uci_move in moves:
        board.push_uci(uci_move)
    return board.fen()


def run_tier(engine: CoachEngine, tier: int, fens: list[str], trials: int) -> dict:
    """Play ``trials`` moves per position at ``tier`` and grade each one.

    Returns:
        Dict with keys: tier, moves, avg_delta, avg_ms.
    """
    deltas = []
    elapsed_ms = 0.0
    for fen in fens:
        for _ in range(trials):
            start = time.monotonic()
            result = engine.request_move(fen, tier)
            elapsed_ms += (time.monotonic() - start) * 1000
            if not isinstance(result, EngineMove):
                continue
            verdict = engine.evaluate_move(fen, result.move.uci)
            if isinstance(verdict, MoveAssessment):
                deltas.append(verdict.score_delta)

    count = len(deltas)
    return {
        "tier": tier,
        "moves": count,
        "avg_delta": sum(deltas) / count if count else 0.0,
        "avg_ms": elapsed_ms / count if count else 0.0,
    }


def main() -> None:
    """Run every tier over the benchmark positions and print a summary table."""
    max_tier = int(sys.argv[1]) if len(sys.argv) > 1 else MAX_TIER
    trials = int(sys.argv[2]) if len(sys.argv) > 2 else 3

    engine = CoachEngine(rng=random.Random(0))
    fens = [position_fen(spec) for _, spec in POSITIONS]

    print(f"Chess coach tier benchmark: {len(fens)} positions x {trials} trials")
    print()
    print(f"{'Tier':>4} {'Moves':>6} {'AvgDelta':>9} {'AvgMs':>9}")
    print("-" * 32)
    for tier in range(MIN_TIER, max_tier + 1):
        r = run_tier(engine, tier, fens, trials)
        print(f"{r['tier']:>4} {r['moves']:>6} {r['avg_delta']:>9.1f} {r['avg_ms']:>9.1f}")


if __name__ == "__main__":
    main()
