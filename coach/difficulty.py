"""
Difficulty: map a strength tier to a move-selection policy.

Every tier is one row of TIER_POLICIES and one function, select_move,
interprets the rows. There are three kinds of policy:

    random           uniform choice among the legal moves
    filtered_random  uniform choice among moves that do not hang a piece
    search           minimax to the tier's depth; with probability
                     ``accuracy`` play the top move, otherwise pick
                     uniformly among the ``top_k`` best other moves ranked
                     by static evaluation one ply ahead

Depth and accuracy never decrease from one tier to the next, and the table
is checked for that at import time. The top tier always plays the search's
best move.

Randomness comes from an injected ``random.Random`` so a caller can seed it;
the search underneath stays deterministic.
"""

import logging
import random
import threading
from collections.abc import Sequence
from dataclasses import dataclass

import chess

from coach import rules, search
from coach.constants import BLUNDER_CAPTURE_THRESHOLD, MAX_TIER, MIN_TIER, PIECE_VALUES
from coach.evaluate import DEFAULT_EVAL_CONFIG, EvaluationConfig, evaluate
from coach.transposition import TranspositionCache

_log = logging.getLogger(__name__)

RANDOM = "random"
FILTERED_RANDOM = "filtered_random"
SEARCH = "search"


@dataclass(frozen=True)
class TierPolicy:
    """
    Configuration of one difficulty tier.

    Attributes:
        tier:     Tier number, MIN_TIER..MAX_TIER.
        kind:     RANDOM, FILTERED_RANDOM or SEARCH.
        depth:    Search depth in plies (0 for the random kinds).
        accuracy: Probability of playing the search's top move
                  (0.0 for the random kinds).
        top_k:    How many alternative moves the off-accuracy branch
                  samples from.
    """

    tier: int
    kind: str
    depth: int
    accuracy: float
    top_k: int


TIER_POLICIES: tuple[TierPolicy, ...] = (
    TierPolicy(1, RANDOM, 0, 0.0, 0),
    TierPolicy(2, FILTERED_RANDOM, 0, 0.0, 0),
    TierPolicy(3, SEARCH, 1, 0.55, 3),
    TierPolicy(4, SEARCH, 1, 0.70, 3),
    TierPolicy(5, SEARCH, 2, 0.80, 2),
    TierPolicy(6, SEARCH, 2, 0.88, 2),
    TierPolicy(7, SEARCH, 3, 0.93, 2),
    TierPolicy(8, SEARCH, 3, 0.97, 2),
    TierPolicy(9, SEARCH, 4, 0.99, 2),
    TierPolicy(10, SEARCH, 4, 1.0, 2),
)


@dataclass(frozen=True)
class Selection:
    """
    A move chosen by a tier policy.

    Attributes:
        move:      The chosen legal move.
        score:     White-positive score backing the choice, or None for the
                   random policies.
        policy:    The tier row that produced the move.
        reasoning: Human-readable account of how the move was picked.
        partial:   True when a deadline cut the search short.
        mate_plies: Signed plies to mate behind ``score``, or None.
    """

    move: chess.Move
    score: int | None
    policy: TierPolicy
    reasoning: str
    partial: bool = False
    mate_plies: int | None = None


def validate_policies(policies: Sequence[TierPolicy]) -> None:
    """
    Check a tier table.

    Raises:
        ValueError: Tiers are not MIN_TIER..MAX_TIER in order, a kind is
            unknown, a search row has depth < 1 or accuracy outside (0, 1],
            depth or accuracy decreases between tiers, or the top tier is
            not a full-accuracy search.
    """
    expected = list(range(MIN_TIER, MAX_TIER + 1))
    if [p.tier for p in policies] != expected:
        raise ValueError(f"tiers must be exactly {expected}")

    for policy in policies:
        if policy.kind not in (RANDOM, FILTERED_RANDOM, SEARCH):
            raise ValueError(f"tier {policy.tier}: unknown policy kind {policy.kind!r}")
        if policy.kind == SEARCH:
            if policy.depth < 1:
                raise ValueError(f"tier {policy.tier}: search depth must be >= 1")
            if not 0.0 < policy.accuracy <= 1.0:
                raise ValueError(f"tier {policy.tier}: accuracy must be in (0, 1]")
            if policy.accuracy < 1.0 and policy.top_k < 1:
                raise ValueError(f"tier {policy.tier}: top_k must be >= 1")

    for lower, higher in zip(policies, policies[1:]):
        if higher.depth < lower.depth or higher.accuracy < lower.accuracy:
            raise ValueError(
                f"tier {higher.tier} is weaker than tier {lower.tier} "
                f"(depth {higher.depth} vs {lower.depth}, "
                f"accuracy {higher.accuracy} vs {lower.accuracy})"
            )

    top = policies[-1]
    if top.kind != SEARCH or top.accuracy != 1.0:
        raise ValueError("the top tier must always play the search's best move")


validate_policies(TIER_POLICIES)


def policy_for_tier(tier: int) -> TierPolicy:
    """Table row for ``tier``. Raises ValueError outside MIN_TIER..MAX_TIER."""
    if not isinstance(tier, int) or not MIN_TIER <= tier <= MAX_TIER:
        raise ValueError(f"tier must be an integer in {MIN_TIER}..{MAX_TIER}, got {tier!r}")
    return TIER_POLICIES[tier - MIN_TIER]


def is_obvious_blunder(board: chess.Board, move: chess.Move) -> bool:
    """
    True if a non-capturing move lets the opponent capture a valuable piece.

    A piece is valuable when it is worth at least BLUNDER_CAPTURE_THRESHOLD
    (a minor piece or more). Captures are never flagged.
    """
    if board.is_capture(move):
        return False

    after = board.copy(stack=False)
    after.push(move)
    for reply in after.legal_moves:
        if not after.is_capture(reply):
            continue
        victim = after.piece_type_at(reply.to_square)
        if victim is not None and PIECE_VALUES[victim] >= BLUNDER_CAPTURE_THRESHOLD:
            return True
    return False


def rank_by_static_eval(
    board: chess.Board,
    moves: Sequence[chess.Move],
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
) -> list[tuple[chess.Move, int]]:
    """
    Moves sorted best-first for the side to move by static eval one ply ahead.

    Scores in the returned pairs stay white-positive. Ties keep the input
    order.
    """
    sign = 1 if board.turn == chess.WHITE else -1
    scored = []
    for move in moves:
        board.push(move)
        scored.append((move, evaluate(board, config)))
        board.pop()
    return sorted(scored, key=lambda pair: sign * pair[1], reverse=True)


def select_move(
    board: chess.Board,
    tier: int,
    *,
    rng: random.Random | None = None,
    cache: TranspositionCache | None = None,
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
    time_limit_ms: int | None = None,
    stop_event: threading.Event | None = None,
) -> Selection | None:
    """
    Pick a move for the side to move according to the tier's policy.

    Args:
        board:         Current position. Not modified.
        tier:          Strength tier, MIN_TIER..MAX_TIER.
        rng:           Random source; a fresh unseeded one if omitted.
        cache:         Transposition cache handed to the search.
        config:        Evaluation terms.
        time_limit_ms: Optional search budget.
        stop_event:    Optional stop signal for the search.

    Returns:
        The Selection, or None when the position has no legal move.

    Raises:
        ValueError: tier out of range.
    """
    policy = policy_for_tier(tier)
    moves = rules.legal_moves(board)
    if not moves:
        return None
    rng = rng if rng is not None else random.Random()

    if policy.kind == RANDOM:
        return Selection(rng.choice(moves), None, policy, f"random move (tier {tier})")

    if policy.kind == FILTERED_RANDOM:
        safe = [m for m in moves if not is_obvious_blunder(board, m)]
        if safe:
            reasoning = f"random safe move (tier {tier}, {len(safe)}/{len(moves)} safe)"
            return Selection(rng.choice(safe), None, policy, reasoning)
        return Selection(
            rng.choice(moves), None, policy, f"random move (tier {tier}, no safe move found)"
        )

    result = search.best_move(
        board,
        policy.depth,
        cache=cache,
        config=config,
        time_limit_ms=time_limit_ms,
        stop_event=stop_event,
    )
    best = Selection(
        result.move,
        result.score,
        policy,
        f"search best move (tier {tier}, depth {result.depth}, score {result.score})",
        result.partial,
        result.mate_plies,
    )
    if policy.accuracy >= 1.0 or rng.random() < policy.accuracy:
        return best

    board = board.copy()
    others = [m for m in moves if m != result.move]
    alternatives = rank_by_static_eval(board, others, config)[: policy.top_k]
    if not alternatives:
        return best

    move, score = rng.choice(alternatives)
    _log.debug("tier %d played alternative %s instead of %s", tier, move.uci(), result.move.uci())
    return Selection(
        move,
        score,
        policy,
        f"alternative move (tier {tier}, one of top {len(alternatives)} after {result.move.uci()})",
        result.partial,
        search.mate_plies(score, 1),
    )
