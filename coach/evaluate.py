"""
Static evaluation: material plus a handful of cheap positional heuristics.

The search needs a numeric score for every leaf it reaches, and the
classifier compares the score before and after a move. Both use this one
function, so there is exactly one notion of "good" in the engine.

Sign convention: scores are white-positive. A positive score favours White
regardless of whose turn it is; callers that want the mover's point of view
flip the sign themselves. The search maximises for White and minimises for
Black, which keeps evaluator and search signs in agreement.

Terms (each can be switched off through EvaluationConfig):
    material        piece values from coach.constants
    center          occupancy of d4/d5/e4/e5 and the surrounding ring
    king safety     early king walks that did not end on a castled square
    pawn structure  doubled pawns
    mobility        legal moves of the side to move against the other side

Terminal positions bypass the heuristics entirely: checkmate returns the
mate sentinel and drawn positions return 0.
"""

from dataclasses import dataclass

import chess

from coach import rules
from coach.constants import (
    ADVANTAGE_SIGNIFICANT,
    ADVANTAGE_SLIGHT,
    CENTER_PAWN_BONUS,
    CENTER_PIECE_BONUS,
    CENTER_SQUARES,
    DOUBLED_PAWN_PENALTY,
    DRAW_SCORE,
    EXTENDED_CENTER_BONUS,
    EXTENDED_CENTER_SQUARES,
    KING_CASTLED_SQUARES,
    KING_HOME_SQUARES,
    KING_SAFETY_MOVE_LIMIT,
    KING_WANDER_PENALTY,
    MATE_SCORE,
    MOBILITY_WEIGHT,
    PIECE_VALUES,
)


@dataclass(frozen=True)
class EvaluationConfig:
    """Switches and weights for the positional terms. Material is always on."""

    center: bool = True
    king_safety: bool = True
    pawn_structure: bool = True
    mobility: bool = True
    mobility_weight: int = MOBILITY_WEIGHT


DEFAULT_EVAL_CONFIG = EvaluationConfig()


def evaluate(board: chess.Board, config: EvaluationConfig = DEFAULT_EVAL_CONFIG) -> int:
    """
    White-positive centipawn evaluation of a position.

    Runs in O(64 + legal move count): one pass over the pieces and at most
    two move-generation passes for the mobility term.

    Args:
        board:  Position to score. Not modified.
        config: Which positional terms to include.

    Returns:
        ``-MATE_SCORE`` if White is checkmated, ``+MATE_SCORE`` if Black is,
        0 for stalemate and rule draws, otherwise the heuristic score.

    Example:
        >>> import chess
        >>> evaluate(chess.Board())
        0
    """
    # Counting legal moves once serves both terminal detection and mobility.
    own_moves = board.legal_moves.count()
    if own_moves == 0:
        if rules.is_check(board):
            return -MATE_SCORE if board.turn == chess.WHITE else MATE_SCORE
        return DRAW_SCORE
    if rules.is_rule_draw(board):
        return DRAW_SCORE

    score = 0
    for piece in board.piece_map().values():
        sign = 1 if piece.color == chess.WHITE else -1
        score += sign * PIECE_VALUES[piece.piece_type]

    if config.center:
        score += _center_score(board)
    if config.king_safety:
        score += _king_safety_score(board)
    if config.pawn_structure:
        score += _pawn_structure_score(board)
    if config.mobility:
        score += _mobility_score(board, own_moves) * config.mobility_weight

    return score


def evaluate_fen(fen: str, config: EvaluationConfig = DEFAULT_EVAL_CONFIG) -> int:
    """Evaluate a FEN string. Raises InvalidPositionError for bad input."""
    return evaluate(rules.parse_position(fen), config)


def describe_score(score: int) -> str:
    """Short human-readable reading of a white-positive score."""
    if score >= MATE_SCORE:
        return "White wins by checkmate"
    if score <= -MATE_SCORE:
        return "Black wins by checkmate"

    side = "White" if score > 0 else "Black"
    if abs(score) > ADVANTAGE_SIGNIFICANT:
        return f"{side} has a significant advantage"
    if abs(score) > ADVANTAGE_SLIGHT:
        return f"{side} has a slight advantage"
    return "Position is roughly equal"


# ---------------------------------------------------------------------------
# Positional terms (all white-positive)
# ---------------------------------------------------------------------------


def _center_score(board: chess.Board) -> int:
    score = 0
    for sq in CENTER_SQUARES:
        piece = board.piece_at(sq)
        if piece is None:
            continue
        bonus = CENTER_PIECE_BONUS
        if piece.piece_type == chess.PAWN:
            bonus += CENTER_PAWN_BONUS
        score += bonus if piece.color == chess.WHITE else -bonus

    for sq in EXTENDED_CENTER_SQUARES:
        color = board.color_at(sq)
        if color is None:
            continue
        score += EXTENDED_CENTER_BONUS if color == chess.WHITE else -EXTENDED_CENTER_BONUS
    return score


def _king_safety_score(board: chess.Board) -> int:
    if rules.move_number(board) >= KING_SAFETY_MOVE_LIMIT:
        return 0

    score = 0
    for color, sign in ((chess.WHITE, -1), (chess.BLACK, 1)):
        king_sq = board.king(color)
        if king_sq is None:
            continue
        if king_sq != KING_HOME_SQUARES[color] and king_sq not in KING_CASTLED_SQUARES[color]:
            score += sign * KING_WANDER_PENALTY
    return score


def _pawn_structure_score(board: chess.Board) -> int:
    score = 0
    for color, sign in ((chess.WHITE, -1), (chess.BLACK, 1)):
        files = [chess.square_file(sq) for sq in board.pieces(chess.PAWN, color)]
        doubled = len(files) - len(set(files))
        score += sign * doubled * DOUBLED_PAWN_PENALTY
    return score


def _mobility_score(board: chess.Board, own_moves: int) -> int:
    # The other side's count uses a turn-flipped copy. Its moves may leave
    # its own king in check, so pseudo-legal is the honest count here.
    flipped = board.copy(stack=False)
    flipped.turn = not board.turn
    flipped.ep_square = None
    other_moves = flipped.pseudo_legal_moves.count()

    diff = own_moves - other_moves
    return diff if board.turn == chess.WHITE else -diff
