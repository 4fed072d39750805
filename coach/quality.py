"""
Move quality: grade a single move by how it changed the static evaluation.

The classifier validates the move through the rules adapter, evaluates the
position before and after it, and turns the difference into a quality
bucket. The difference is taken from the mover's point of view, so a
positive delta always means the move helped the side that played it.

Illegal candidates never get a numeric delta; they come back as an
IllegalMove result carrying the rejection reason.
"""

from dataclasses import dataclass
from enum import IntEnum

import chess

from coach import rules
from coach.constants import (
    EXCELLENT_THRESHOLD,
    GOOD_THRESHOLD,
    INACCURACY_THRESHOLD,
    MISTAKE_THRESHOLD,
    NEUTRAL_THRESHOLD,
)
from coach.errors import IllegalMoveError
from coach.evaluate import DEFAULT_EVAL_CONFIG, EvaluationConfig, evaluate
from coach.rules import PlayedMove


class MoveQuality(IntEnum):
    """Ordered quality buckets; a larger value is a better move."""

    BLUNDER = 0
    MISTAKE = 1
    INACCURACY = 2
    NEUTRAL = 3
    GOOD = 4
    EXCELLENT = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def accuracy(self) -> int:
        """0-100 accuracy score shown next to the bucket."""
        return ACCURACY_SCORES[self]


ACCURACY_SCORES: dict[MoveQuality, int] = {
    MoveQuality.BLUNDER: 15,
    MoveQuality.MISTAKE: 30,
    MoveQuality.INACCURACY: 45,
    MoveQuality.NEUTRAL: 60,
    MoveQuality.GOOD: 80,
    MoveQuality.EXCELLENT: 95,
}


@dataclass(frozen=True)
class QualityThresholds:
    """
    Lower bounds (exclusive) of each bucket, in mover-perspective centipawns.

    A delta above ``excellent`` is excellent, above ``good`` is good, and so
    on down to ``mistake``; anything at or below ``mistake`` is a blunder.
    The bounds must be strictly decreasing so the mapping stays monotone.
    """

    excellent: int = EXCELLENT_THRESHOLD
    good: int = GOOD_THRESHOLD
    neutral: int = NEUTRAL_THRESHOLD
    inaccuracy: int = INACCURACY_THRESHOLD
    mistake: int = MISTAKE_THRESHOLD

    def __post_init__(self) -> None:
        bounds = [self.excellent, self.good, self.neutral, self.inaccuracy, self.mistake]
        if any(higher <= lower for higher, lower in zip(bounds, bounds[1:])):
            raise ValueError(f"quality thresholds must be strictly decreasing, got {bounds}")

    def bucket(self, delta: float) -> MoveQuality:
        if delta > self.excellent:
            return MoveQuality.EXCELLENT
        if delta > self.good:
            return MoveQuality.GOOD
        if delta > self.neutral:
            return MoveQuality.NEUTRAL
        if delta > self.inaccuracy:
            return MoveQuality.INACCURACY
        if delta > self.mistake:
            return MoveQuality.MISTAKE
        return MoveQuality.BLUNDER


DEFAULT_THRESHOLDS = QualityThresholds()


@dataclass(frozen=True)
class MoveAssessment:
    """
    Verdict for a legal move.

    Attributes:
        move:         The validated move.
        score_before: White-positive evaluation before the move.
        score_after:  White-positive evaluation after the move.
        score_delta:  Change from the mover's point of view.
        quality:      Bucket derived from ``score_delta``.
        explanation:  One-sentence summary.
    """

    move: PlayedMove
    score_before: int
    score_after: int
    score_delta: int
    quality: MoveQuality
    explanation: str

    legal = True

    @property
    def accuracy(self) -> int:
        return self.quality.accuracy


@dataclass(frozen=True)
class IllegalMove:
    """Verdict for a candidate the rules adapter rejected."""

    candidate: object
    reason: str

    legal = False


def classify(
    board_before: chess.Board,
    candidate: object,
    *,
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> MoveAssessment | IllegalMove:
    """
    Grade ``candidate`` as played from ``board_before``.

    Args:
        board_before: Position before the move. Not modified.
        candidate:    Any form rules.resolve_candidate accepts.
        config:       Evaluation terms.
        thresholds:   Bucket bounds.

    Returns:
        MoveAssessment for a legal move, IllegalMove otherwise.
    """
    try:
        played = rules.apply(board_before, candidate)
    except IllegalMoveError as exc:
        return IllegalMove(candidate, exc.reason)

    before = evaluate(board_before, config)
    after_board = board_before.copy(stack=False)
    after_board.push(played.to_move())
    after = evaluate(after_board, config)

    sign = 1 if board_before.turn == chess.WHITE else -1
    delta = (after - before) * sign
    quality = thresholds.bucket(delta)
    explanation = f"{played.san} changed the evaluation by {delta:+d} cp: {quality.label} move."
    return MoveAssessment(played, before, after, delta, quality, explanation)
