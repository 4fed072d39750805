"""
Engine constants: piece values, score sentinels, search limits and tables.

All numeric constants used throughout the coach are defined here so that
tuning never means hunting for magic numbers inside the search or the
classifier. Piece values follow the standard centipawn convention
(1 pawn = 100 cp).
"""

import chess

# ---------------------------------------------------------------------------
# Piece values (centipawns)
# ---------------------------------------------------------------------------

PAWN_VALUE: int = 100
KNIGHT_VALUE: int = 320
BISHOP_VALUE: int = 330
ROOK_VALUE: int = 500
QUEEN_VALUE: int = 900
KING_VALUE: int = 0  # The king is never traded; it carries no material value.

PIECE_VALUES: dict[int, int] = {
    chess.PAWN:   PAWN_VALUE,
    chess.KNIGHT: KNIGHT_VALUE,
    chess.BISHOP: BISHOP_VALUE,
    chess.ROOK:   ROOK_VALUE,
    chess.QUEEN:  QUEEN_VALUE,
    chess.KING:   KING_VALUE,
}

# Attacker value used by MVV-LVA ordering. The king must sort last as an
# attacker, so it gets a large value here even though its material is 0.
ORDERING_KING_VALUE: int = 20_000

# ---------------------------------------------------------------------------
# Special scores
# ---------------------------------------------------------------------------
# MATE_SCORE must dominate every heuristic score. Nine queens plus the
# remaining pieces stay far below 100k, so no material swing can reach it.

MATE_SCORE: int = 100_000
DRAW_SCORE: int = 0

# ---------------------------------------------------------------------------
# Positional evaluation
# ---------------------------------------------------------------------------

CENTER_SQUARES: tuple[int, ...] = (chess.D4, chess.E4, chess.D5, chess.E5)
EXTENDED_CENTER_SQUARES: tuple[int, ...] = (
    chess.C3, chess.D3, chess.E3, chess.F3,
    chess.C4, chess.F4, chess.C5, chess.F5,
    chess.C6, chess.D6, chess.E6, chess.F6,
)

CENTER_PIECE_BONUS: int = 15
CENTER_PAWN_BONUS: int = 10  # on top of CENTER_PIECE_BONUS
EXTENDED_CENTER_BONUS: int = 5

KING_SAFETY_MOVE_LIMIT: int = 20
KING_WANDER_PENALTY: int = 40
KING_HOME_SQUARES: dict[bool, int] = {chess.WHITE: chess.E1, chess.BLACK: chess.E8}
KING_CASTLED_SQUARES: dict[bool, frozenset[int]] = {
    chess.WHITE: frozenset((chess.G1, chess.C1, chess.B1)),
    chess.BLACK: frozenset((chess.G8, chess.C8, chess.B8)),
}

DOUBLED_PAWN_PENALTY: int = 20
MOBILITY_WEIGHT: int = 2

# ---------------------------------------------------------------------------
# Search parameters
# ---------------------------------------------------------------------------

# Hard cap on requested depth. A pure-Python search beyond this is far
# outside an interactive latency budget.
MAX_SEARCH_DEPTH: int = 6

# How often (in nodes) the search checks the clock.
TIME_CHECK_NODES: int = 512

# Fraction of the time budget the search may consume before it stops.
TIME_USAGE_FRACTION: float = 0.9

# ---------------------------------------------------------------------------
# Transposition cache
# ---------------------------------------------------------------------------
# Entries are keyed by full FEN strings, so each one costs a few hundred
# bytes. 200k entries stays well under 100 MB.
DEFAULT_CACHE_SIZE: int = 200_000

# ---------------------------------------------------------------------------
# Difficulty
# ---------------------------------------------------------------------------

MIN_TIER: int = 1
MAX_TIER: int = 10

# A non-capturing move that lets the opponent capture a piece worth at
# least this much is treated as an obvious blunder by the filtered policy.
BLUNDER_CAPTURE_THRESHOLD: int = 300

# ---------------------------------------------------------------------------
# Move quality thresholds (mover-perspective centipawn delta, strict >)
# ---------------------------------------------------------------------------

EXCELLENT_THRESHOLD: int = 100
GOOD_THRESHOLD: int = 50
NEUTRAL_THRESHOLD: int = -50
INACCURACY_THRESHOLD: int = -150
MISTAKE_THRESHOLD: int = -300

# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

FEEDBACK_WINDOW: int = 4
OPENING_MOVE_LIMIT: int = 10
OPENING_DEVELOPED_LIMIT: int = 6
ENDGAME_PIECE_LIMIT: int = 6
ADVANTAGE_SLIGHT: int = 100
ADVANTAGE_SIGNIFICANT: int = 300
