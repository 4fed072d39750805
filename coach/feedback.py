"""
Narrative feedback: short coaching text from recent move quality and phase.

The generator classifies the last few moves, averages their deltas, and
picks a templated message for that average. Advice for the current game
phase and a one-line reading of the position follow. With no usable moves
it falls back to a generic message for the phase.
"""

import logging
from collections.abc import Iterable
from enum import Enum

import chess

from coach import rules
from coach.constants import (
    ENDGAME_PIECE_LIMIT,
    FEEDBACK_WINDOW,
    OPENING_DEVELOPED_LIMIT,
    OPENING_MOVE_LIMIT,
)
from coach.errors import InvalidPositionError
from coach.evaluate import DEFAULT_EVAL_CONFIG, EvaluationConfig, describe_score, evaluate
from coach.quality import (
    DEFAULT_THRESHOLDS,
    IllegalMove,
    MoveAssessment,
    MoveQuality,
    QualityThresholds,
    classify,
)
from coach.rules import PlayedMove

_log = logging.getLogger(__name__)


class GamePhase(str, Enum):
    OPENING = "opening"
    MIDDLEGAME = "middlegame"
    ENDGAME = "endgame"


QUALITY_MESSAGES: dict[MoveQuality, str] = {
    MoveQuality.EXCELLENT: "Excellent play! Your last {count} moves gained {avg:+.0f} cp on average.",
    MoveQuality.GOOD: "Good moves. You are steadily improving your position ({avg:+.0f} cp per move).",
    MoveQuality.NEUTRAL: "Solid, steady play over your last {count} moves.",
    MoveQuality.INACCURACY: "A few inaccuracies crept in ({avg:+.0f} cp per move). Take a moment before each move.",
    MoveQuality.MISTAKE: "Some mistakes recently ({avg:+.0f} cp per move). Check what your opponent threatens first.",
    MoveQuality.BLUNDER: "Costly moves recently ({avg:+.0f} cp per move). Look for hanging pieces before you commit.",
}

GENERIC_MESSAGES: dict[GamePhase, str] = {
    GamePhase.OPENING: "The game is just getting started.",
    GamePhase.MIDDLEGAME: "The middlegame is underway.",
    GamePhase.ENDGAME: "You have reached the endgame.",
}

PHASE_ADVICE: dict[GamePhase, str] = {
    GamePhase.OPENING: "Develop your knights and bishops, fight for the center and castle early.",
    GamePhase.MIDDLEGAME: "Coordinate your pieces and look for tactics like forks, pins and discovered attacks.",
    GamePhase.ENDGAME: "Activate your king and push your passed pawns toward promotion.",
}


def game_phase(board: chess.Board) -> GamePhase:
    """
    Classify the game phase with a deterministic rule.

    Endgame: at most ENDGAME_PIECE_LIMIT pieces other than pawns and kings.
    Opening: within the first OPENING_MOVE_LIMIT moves and fewer than
    OPENING_DEVELOPED_LIMIT minor pieces off their back rank.
    Middlegame: everything else.
    """
    pieces = 0
    developed = 0
    for sq, piece in board.piece_map().items():
        if piece.piece_type in (chess.PAWN, chess.KING):
            continue
        pieces += 1
        if piece.piece_type in (chess.KNIGHT, chess.BISHOP):
            back_rank = 0 if piece.color == chess.WHITE else 7
            if chess.square_rank(sq) != back_rank:
                developed += 1

    if pieces <= ENDGAME_PIECE_LIMIT:
        return GamePhase.ENDGAME
    if rules.move_number(board) <= OPENING_MOVE_LIMIT and developed < OPENING_DEVELOPED_LIMIT:
        return GamePhase.OPENING
    return GamePhase.MIDDLEGAME


def summarize(
    board: chess.Board,
    recent_moves: Iterable[object],
    *,
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """
    Coaching text for the current position.

    Args:
        board:        Current position. Not modified.
        recent_moves: Move history, oldest first. Items are PlayedMove
                      objects or ``(fen_before, move)`` pairs. Only the last
                      FEEDBACK_WINDOW are considered; entries that cannot be
                      classified are skipped.
        config:       Evaluation terms.
        thresholds:   Bucket bounds for the average delta.

    Returns:
        Non-empty feedback text. Never raises for an empty or unusable
        history.
    """
    phase = game_phase(board)
    window = list(recent_moves or ())[-FEEDBACK_WINDOW:]
    assessments = [a for a in (_assess(item, config, thresholds) for item in window) if a]

    parts = []
    if assessments:
        avg = sum(a.score_delta for a in assessments) / len(assessments)
        overall = thresholds.bucket(avg)
        parts.append(QUALITY_MESSAGES[overall].format(count=len(assessments), avg=avg))

        worst = min(assessments, key=lambda a: a.score_delta)
        if worst.quality <= MoveQuality.MISTAKE and overall > MoveQuality.MISTAKE:
            parts.append(f"{worst.move.san} was a {worst.quality.label}, though.")
    else:
        parts.append(GENERIC_MESSAGES[phase])

    parts.append(_position_status(board, config))
    parts.append(PHASE_ADVICE[phase])
    return " ".join(parts)


def _position_status(board: chess.Board, config: EvaluationConfig) -> str:
    if rules.is_checkmate(board):
        return "Checkmate! Game over."
    if rules.is_stalemate_or_draw(board):
        return "The game is a draw."

    status = describe_score(evaluate(board, config)) + "."
    if rules.is_check(board):
        status = "The side to move is in check! " + status
    return status


def _assess(
    item: object,
    config: EvaluationConfig,
    thresholds: QualityThresholds,
) -> MoveAssessment | None:
    if isinstance(item, PlayedMove):
        fen, candidate = item.fen_before, item
    elif isinstance(item, (tuple, list)) and len(item) == 2:
        fen, candidate = item
    else:
        _log.info("feedback: skipping unrecognised history entry %r", item)
        return None

    try:
        board = rules.parse_position(fen)
    except InvalidPositionError as exc:
        _log.info("feedback: skipping entry with %s", exc.reason)
        return None

    verdict = classify(board, candidate, config=config, thresholds=thresholds)
    if isinstance(verdict, IllegalMove):
        _log.info("feedback: skipping entry, %s", verdict.reason)
        return None
    return verdict
